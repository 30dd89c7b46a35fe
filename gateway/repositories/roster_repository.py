# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for roster (user) records."""
import json
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine

ROSTER_COLS = "id, name, access, img, extra"


def _row_to_dict(row) -> Dict[str, Any]:
    extra = row["extra"]
    if isinstance(extra, str):
        extra = json.loads(extra) if extra else {}
    return {
        "id": str(row["id"]),
        "name": row["name"],
        "access": row["access"],
        "img": row["img"],
        "extra": extra or {},
    }


class RosterRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    def list_roster(self, exclude_roles: Sequence[str]) -> List[Dict[str, Any]]:
        query = text(f"SELECT {ROSTER_COLS} FROM users WHERE access NOT IN :roles ORDER BY name")
        query = query.bindparams(bindparam("roles", expanding=True))
        with self._engine.connect() as conn:
            rows = conn.execute(query, {"roles": list(exclude_roles)}).mappings().all()
        return [_row_to_dict(r) for r in rows]

    def list_restricted_roster(self, only_role: str) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text(f"SELECT {ROSTER_COLS} FROM users WHERE access = :role ORDER BY name"),
                {"role": only_role},
            ).mappings().all()
        return [_row_to_dict(r) for r in rows]

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("SELECT id, name, email, access, reg_form FROM users WHERE email = :email"),
                {"email": email},
            ).mappings().first()
        if not row:
            return None
        return {
            "id": str(row["id"]),
            "name": row["name"],
            "email": row["email"],
            "access": row["access"],
            "reg_form": [str(i) for i in (row["reg_form"] or [])],
        }

    def verify_connection(self) -> None:
        with self._engine.connect() as conn:
            conn.execute(text("SELECT 1"))
