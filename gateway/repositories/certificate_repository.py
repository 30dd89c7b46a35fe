# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for issued certificates."""
from typing import Any, Dict, List

from sqlalchemy import text
from sqlalchemy.engine import Engine


class CertificateRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    def find_by_email(self, email: str) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text("""
                    SELECT c.id, c.mailed, c.image_src,
                           e.name AS event_name, e.description AS event_description
                    FROM issued_certificates c
                    LEFT JOIN certificate_events e ON e.id = c.event_id
                    WHERE c.email = :email
                """),
                {"email": email},
            ).mappings().all()
        return [
            {
                "id": str(r["id"]),
                "event_name": r["event_name"],
                "event_description": r["event_description"],
                "mailed": bool(r["mailed"]),
                "image_src": r["image_src"],
            }
            for r in rows
        ]
