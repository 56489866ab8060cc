"""Roster of worker, admin and distributor accounts.

Accounts are identified to people by a ``generated_id`` built from the name
and a random four digit number (``jdoe4821``; distributors get a ``d`` prefix,
``djdoe0042``). Uniqueness is enforced by the database; a collision simply
draws a new number.
"""

from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from .db import session_scope
from .models import Worker
from .roles import Role, to_role

logger = logging.getLogger(__name__)

_MAX_ID_ATTEMPTS = 8
_NON_ALNUM = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class WorkerRecord:
    id: int
    generated_id: str
    first_name: str
    last_name: str
    name: str
    department: str
    role: Role
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _random_number() -> int:
    return secrets.randbelow(9000) + 1000


def generate_id(first_name: str, last_name: str, role: str, number: int) -> str:
    first = _NON_ALNUM.sub("", first_name.lower())[:1]
    last = _NON_ALNUM.sub("", last_name.lower())
    if role == "distributor":
        return f"d{first}{last}{number:04d}"
    return f"{first}{last}{number}"


def _to_record(w: Worker) -> WorkerRecord:
    return WorkerRecord(
        id=int(w.id),
        generated_id=w.generated_id,
        first_name=w.first_name,
        last_name=w.last_name,
        name=w.name,
        department=w.department or "",
        role=to_role(w.role),
        is_active=bool(w.is_active),
    )


class RosterRepo:
    def __init__(self, number_source: Callable[[], int] = _random_number) -> None:
        self._number = number_source

    def create_worker(
        self,
        first_name: str,
        last_name: str,
        department: str,
        role: str = "worker",
    ) -> WorkerRecord:
        first_name = first_name.strip()
        last_name = last_name.strip()
        if not first_name or not last_name:
            raise ValueError("first_name and last_name are required")
        role = to_role(role)
        for attempt in range(_MAX_ID_ATTEMPTS):
            gid = generate_id(first_name, last_name, role, self._number())
            try:
                with session_scope() as db:
                    w = Worker(
                        generated_id=gid,
                        first_name=first_name,
                        last_name=last_name,
                        name=f"{first_name} {last_name}",
                        department=department.strip(),
                        role=role,
                        is_active=True,
                        created_at=datetime.now().isoformat(timespec="seconds"),
                    )
                    db.add(w)
                    db.commit()
                    return _to_record(w)
            except IntegrityError:
                logger.info("generated_id collision on %s (attempt %d)", gid, attempt + 1)
        raise RuntimeError("could not allocate a unique generated_id")

    def get(self, user_id: int) -> WorkerRecord | None:
        with session_scope() as db:
            w = db.get(Worker, int(user_id))
            return _to_record(w) if w else None

    def get_by_generated_id(self, generated_id: str) -> WorkerRecord | None:
        with session_scope() as db:
            w = db.query(Worker).filter(Worker.generated_id == generated_id.strip().lower()).first()
            return _to_record(w) if w else None

    def list_roster(self, role: str | None = "worker", include_inactive: bool = False) -> list[WorkerRecord]:
        with session_scope() as db:
            q = db.query(Worker)
            if role:
                q = q.filter(Worker.role == role)
            if not include_inactive:
                q = q.filter(Worker.is_active.is_(True))
            return [_to_record(w) for w in q.order_by(Worker.name, Worker.id).all()]

    def update_worker(
        self,
        user_id: int,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        department: str | None = None,
        is_active: bool | None = None,
    ) -> WorkerRecord | None:
        with session_scope() as db:
            w = db.get(Worker, int(user_id))
            if w is None:
                return None
            if first_name is not None and first_name.strip():
                w.first_name = first_name.strip()
            if last_name is not None and last_name.strip():
                w.last_name = last_name.strip()
            w.name = f"{w.first_name} {w.last_name}"
            if department is not None:
                w.department = department.strip()
            if is_active is not None:
                w.is_active = bool(is_active)
            db.commit()
            return _to_record(w)

    def set_active(self, user_id: int, active: bool) -> WorkerRecord | None:
        return self.update_worker(user_id, is_active=active)

    def delete_worker(self, user_id: int) -> bool:
        """Hard delete; the worker's selections go with it in the same transaction."""
        with session_scope() as db:
            # row lock keeps concurrent selection writes for this worker out until commit
            w = db.get(Worker, int(user_id), with_for_update=True)
            if w is None:
                return False
            res = db.execute(text("DELETE FROM selections WHERE user_id=:uid"), {"uid": int(user_id)})
            removed = int(res.rowcount or 0)
            db.delete(w)
            db.commit()
        logger.info("deleted worker id=%s with %d selection(s)", user_id, removed)
        return True


__all__ = ["WorkerRecord", "RosterRepo", "generate_id"]
