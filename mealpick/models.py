"""SQLAlchemy models for roster, menus, selections and food status.

Dates are stored as ISO ``YYYY-MM-DD`` strings and timestamps as ISO-8601
strings so raw ``text()`` queries in the repositories read back exactly what
was written on both SQLite and PostgreSQL.
"""

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Worker(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    generated_id: Mapped[str] = mapped_column(String(80), unique=True)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    name: Mapped[str] = mapped_column(String(200))
    department: Mapped[str] = mapped_column(String(120), default="")
    role: Mapped[str] = mapped_column(String(20), default="worker")  # worker, admin, distributor
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[str] = mapped_column(String(40), nullable=True)


class Menu(Base):
    __tablename__ = "menus"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[str] = mapped_column(String(10), unique=True)
    meals: Mapped[list] = mapped_column(JSON)  # [{id, name, description}, ...] in display order
    created_by: Mapped[int] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[str] = mapped_column(String(40), nullable=True)


class Selection(Base):
    __tablename__ = "selections"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_selections_user_date"),
        Index("ix_selections_date", "date"),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    date: Mapped[str] = mapped_column(String(10))
    meal_id: Mapped[str] = mapped_column(String(80))
    meal_name: Mapped[str] = mapped_column(String(200))  # copied from the menu at write time
    selected_at: Mapped[str] = mapped_column(String(40))
    collected: Mapped[bool] = mapped_column(Boolean, default=False)
    collected_at: Mapped[str] = mapped_column(String(40), nullable=True)


class FoodStatus(Base):
    __tablename__ = "food_status"
    date: Mapped[str] = mapped_column(String(10), primary_key=True)
    ready: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[str] = mapped_column(String(40), nullable=True)
