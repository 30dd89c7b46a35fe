# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for published articles."""
from typing import Any, Dict, List

from sqlalchemy import text
from sqlalchemy.engine import Engine


class ArticleRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    def list_public_articles(self) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text("""
                    SELECT id, title, author, category, "desc", date, blog_link, summary
                    FROM blogs
                    WHERE visibility = 'public'
                """),
            ).mappings().all()
        return [
            {
                "id": str(r["id"]),
                "title": r["title"],
                "author": r["author"],
                "category": r["category"],
                "desc": r["desc"],
                "date": r["date"].isoformat() if hasattr(r["date"], "isoformat") else r["date"],
                "blog_link": r["blog_link"],
                "summary": r["summary"],
            }
            for r in rows
        ]
