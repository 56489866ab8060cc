"""Role tags and the acting-user context passed into every core operation.

Role: the three account kinds stored on the roster.
ActingUser: identity supplied by the session collaborator; the engine never
reads ambient session state itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Role = Literal["worker", "admin", "distributor"]

ROLES: tuple[Role, ...] = ("worker", "admin", "distributor")

# Roles allowed to run the distribution workflow (collection, food ready)
DISTRIBUTION_ROLES: frozenset[str] = frozenset({"distributor", "admin"})


def to_role(value: str | None) -> Role:
    v = (value or "").strip().lower()
    if v not in ROLES:
        raise ValueError(f"unknown role: {value!r}")
    return v  # type: ignore[return-value]


@dataclass(frozen=True)
class ActingUser:
    id: int
    role: Role
    department: str = ""
    name: str = ""


__all__ = ["Role", "ROLES", "DISTRIBUTION_ROLES", "to_role", "ActingUser"]
