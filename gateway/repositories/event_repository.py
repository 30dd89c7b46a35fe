# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for event forms (scheduling data lives in the JSON ``info`` column)."""
import json
from typing import Any, Dict, List, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine


def _row_to_dict(row) -> Dict[str, Any]:
    info = row["info"]
    if isinstance(info, str):
        info = json.loads(info) if info else {}
    return {"id": str(row["id"]), "info": info or {}}


class EventRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    def list_forms(self) -> List[Dict[str, Any]]:
        # The public flag sits inside the JSON document and is filtered by the caller.
        with self._engine.connect() as conn:
            rows = conn.execute(text("SELECT id, info FROM forms")).mappings().all()
        return [_row_to_dict(r) for r in rows]

    def find_by_ids(self, ids: Sequence[str]) -> List[Dict[str, Any]]:
        if not ids:
            return []
        query = text("SELECT id, info FROM forms WHERE id IN :ids")
        query = query.bindparams(bindparam("ids", expanding=True))
        with self._engine.connect() as conn:
            rows = conn.execute(query, {"ids": list(ids)}).mappings().all()
        return [_row_to_dict(r) for r in rows]
