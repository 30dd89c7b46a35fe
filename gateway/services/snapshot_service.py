# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Snapshot fetching — fresh data-store reads for every inbound message.

Reads run concurrently in worker threads. A failing read degrades to an empty
snapshot for that category; a malformed record is skipped on its own. Both are
logged and counted, never raised.
"""

import asyncio
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from gateway.core.logging import get_logger
from gateway.metrics.prometheus import SNAPSHOT_FAILURES, SNAPSHOT_SKIPPED_RECORDS
from gateway.models.domain import (
    DEFAULT_EVENT_PRIORITY,
    Article,
    Caller,
    CallerContext,
    Certificate,
    ContextSnapshot,
    Event,
    EventSnapshot,
    Member,
    Registration,
)
from gateway.repositories.article_repository import ArticleRepository
from gateway.repositories.certificate_repository import CertificateRepository
from gateway.repositories.event_repository import EventRepository
from gateway.repositories.roster_repository import RosterRepository
from gateway.services.context_builder import split_events

logger = get_logger(__name__)

T = TypeVar("T")

EXCLUDED_ROSTER_ROLES: tuple[str, ...] = ("USER", "ADMIN", "ALUMNI")
RESTRICTED_ROLE = "ALUMNI"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_priority(value: Any) -> int:
    """Integer prefix of the stored priority; DEFAULT_EVENT_PRIORITY when absent or unparseable."""
    if isinstance(value, bool) or value is None:
        return DEFAULT_EVENT_PRIORITY
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else DEFAULT_EVENT_PRIORITY
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else DEFAULT_EVENT_PRIORITY


def member_from_row(row: Dict[str, Any]) -> Member:
    return Member(
        id=row["id"],
        name=row.get("name") or "",
        role_code=row.get("access") or "",
        avatar=row.get("img"),
        extra=row.get("extra") or {},
    )


def event_from_form(form: Dict[str, Any]) -> Optional[Event]:
    """Map a stored form onto an Event; None unless the form is flagged public."""
    info = form.get("info") or {}
    if info.get("isPublic") is not True:
        return None
    return Event(
        id=form["id"],
        title=info.get("eventTitle") or "Untitled Event",
        date=info.get("eventDate"),
        description=info.get("eventDescription") or "",
        venue=info.get("eventVenue") or None,
        time=info.get("eventTime") or None,
        priority=parse_priority(info.get("eventPriority")),
        registration_link=info.get("registrationLink") or None,
        registration_closed=bool(info.get("isRegistrationClosed")),
        is_past=bool(info.get("isEventPast")),
        related_event=info.get("relatedEvent") or None,
    )


def article_from_row(row: Dict[str, Any]) -> Article:
    return Article(
        id=row["id"],
        title=row.get("title") or "",
        author=row.get("author"),
        category=row.get("category"),
        description=row.get("desc"),
        date=row.get("date"),
        link=row.get("blog_link"),
        summary=row.get("summary"),
    )


def map_records(
    category: str,
    records: List[Dict[str, Any]],
    mapper: Callable[[Dict[str, Any]], Optional[T]],
) -> List[T]:
    """Map each record on its own; a malformed record is logged and skipped."""
    mapped: List[T] = []
    for record in records:
        try:
            item = mapper(record)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            SNAPSHOT_SKIPPED_RECORDS.labels(category=category).inc()
            logger.warning("Skipping malformed %s record: %s", category, exc)
            continue
        if item is not None:
            mapped.append(item)
    return mapped


class SnapshotService:
    def __init__(
        self,
        roster_repo: RosterRepository,
        event_repo: EventRepository,
        article_repo: ArticleRepository,
        certificate_repo: CertificateRepository,
    ) -> None:
        self._roster = roster_repo
        self._events = event_repo
        self._articles = article_repo
        self._certificates = certificate_repo

    async def _read(self, category: str, reader: Callable[[], Awaitable[T]], empty: T) -> T:
        try:
            return await reader()
        except Exception as exc:
            SNAPSHOT_FAILURES.labels(category=category).inc()
            logger.error("Snapshot read failed for %s: %s", category, exc)
            return empty

    async def fetch_roster(self) -> List[Member]:
        async def reader():
            rows = await asyncio.to_thread(self._roster.list_roster, EXCLUDED_ROSTER_ROLES)
            return map_records("roster", rows, member_from_row)
        return await self._read("roster", reader, [])

    async def fetch_restricted_roster(self) -> List[Member]:
        async def reader():
            rows = await asyncio.to_thread(self._roster.list_restricted_roster, RESTRICTED_ROLE)
            return map_records("restricted_roster", rows, member_from_row)
        return await self._read("restricted_roster", reader, [])

    async def fetch_events(self) -> EventSnapshot:
        async def reader():
            forms = await asyncio.to_thread(self._events.list_forms)
            events = map_records("events", forms, event_from_form)
            snapshot = split_events(events)
            logger.info(
                "Events: %d forms, %d ongoing, %d past",
                len(forms), len(snapshot.ongoing), len(snapshot.past),
            )
            return snapshot
        return await self._read("events", reader, EventSnapshot())

    async def fetch_articles(self) -> List[Article]:
        async def reader():
            rows = await asyncio.to_thread(self._articles.list_public_articles)
            return map_records("articles", rows, article_from_row)
        return await self._read("articles", reader, [])

    async def fetch_certificates(self, email: str) -> List[Certificate]:
        async def reader():
            rows = await asyncio.to_thread(self._certificates.find_by_email, email)
            return [
                Certificate(
                    event_name=r.get("event_name") or "Unknown Event",
                    event_description=r.get("event_description") or "",
                    delivered=bool(r.get("mailed")),
                    image=r.get("image_src"),
                )
                for r in rows
            ]
        return await self._read("certificates", reader, [])

    async def fetch_registrations(self, event_ids: List[str]) -> List[Registration]:
        if not event_ids:
            return []

        async def reader():
            forms = await asyncio.to_thread(self._events.find_by_ids, event_ids)
            return [
                Registration(
                    event_id=f["id"],
                    title=(f.get("info") or {}).get("eventTitle") or "Unknown Event",
                    date=(f.get("info") or {}).get("eventDate"),
                    is_past=bool((f.get("info") or {}).get("isEventPast")),
                )
                for f in forms
            ]
        return await self._read("registrations", reader, [])

    async def fetch_caller_context(self, caller: Caller) -> CallerContext:
        certificates, registrations = await asyncio.gather(
            self.fetch_certificates(caller.email),
            self.fetch_registrations(caller.registered_event_ids),
        )
        context = CallerContext(
            name=caller.name,
            email=caller.email,
            role_code=caller.role_code,
            certificates=certificates,
            registrations=registrations,
        )
        logger.info(
            "Caller context: %d certificates, %d registrations",
            len(certificates), len(registrations),
        )
        return context

    async def fetch_snapshot(self, caller: Optional[Caller] = None) -> ContextSnapshot:
        """All four categories for one message, read concurrently."""
        reads = [self.fetch_roster(), self.fetch_events(), self.fetch_articles()]
        if caller is not None:
            reads.append(self.fetch_caller_context(caller))
        results = await asyncio.gather(*reads)
        roster, events, articles = results[:3]
        caller_context = results[3] if caller is not None else None
        return ContextSnapshot(
            roster=roster, events=events, articles=articles, caller=caller_context,
        )

    def verify_store(self) -> None:
        """Raises when the data store is unreachable."""
        self._roster.verify_connection()
