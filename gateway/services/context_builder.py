# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Context assembly — pure computation, no I/O.

Orders and caps the fetched snapshots and renders the persona instruction and
the grounded query turn. Every category is always rendered, with an explicit
"none available" line when empty.
"""

import json
import unicodedata
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from gateway.core.config import settings
from gateway.models.domain import (
    Article,
    CallerContext,
    ContextSnapshot,
    ConversationTurn,
    Event,
    EventSnapshot,
    Member,
    TurnRole,
)
from gateway.services.persona import (
    BASE_PERSONA,
    CALLER_SECTION,
    DATETIME_SECTION,
    ESCALATION_MARKER,
    RESTRICTED_ADDENDUM,
    RESTRICTED_NAV_MARKER,
    RESTRICTED_SENTINEL,
)

AUTH_REQUIRED_KEYWORDS: tuple[str, ...] = (
    "my certificate",
    "my certificates",
    "my profile",
    "my events",
    "my registration",
    "am i registered",
    "have i registered",
    "my account",
    "my details",
    "show my",
    "what events have i",
    "events i registered",
    "registered for",
)

_DATE_FORMATS = ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%B %d, %Y", "%d %B %Y")


def requires_auth(message: str) -> bool:
    lowered = message.lower()
    return any(keyword in lowered for keyword in AUTH_REQUIRED_KEYWORDS)


def sanitize_history(turns: Iterable[ConversationTurn]) -> list[ConversationTurn]:
    """Drop the leading run of assistant turns; an exchange starts with the caller."""
    history = list(turns)
    start = 0
    while start < len(history) and history[start].role is TurnRole.ASSISTANT:
        start += 1
    return history[start:]


# ── Ordering ──────────────────────────────────────────────────────────────

def parse_date(value: Any) -> Optional[datetime]:
    """Best-effort parse of stored date values into aware UTC datetimes."""
    if isinstance(value, datetime):
        parsed = value
    elif not value or not isinstance(value, str):
        return None
    else:
        raw = value.strip()
        parsed = None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _DATE_FORMATS:
                try:
                    parsed = datetime.strptime(raw, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def title_key(title: Optional[str]) -> tuple[str, str]:
    """Accent- and case-insensitive collation key, raw title as the final tie-break."""
    title = title or ""
    decomposed = unicodedata.normalize("NFKD", title)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), title


def _ascending_date(value: Any) -> tuple[int, float]:
    parsed = parse_date(value)
    # Undated records sort after dated ones in both directions.
    return (0, parsed.timestamp()) if parsed else (1, 0.0)


def _descending_date(value: Any) -> tuple[int, float]:
    parsed = parse_date(value)
    return (0, -parsed.timestamp()) if parsed else (1, 0.0)


def order_ongoing_events(events: Iterable[Event], limit: Optional[int] = None) -> list[Event]:
    """Not-past events by (priority asc, date asc, title asc), capped."""
    ongoing = [e for e in events if not e.is_past]
    ongoing.sort(key=lambda e: (e.priority, _ascending_date(e.date), title_key(e.title)))
    return ongoing[: settings.ONGOING_EVENTS_LIMIT if limit is None else limit]


def order_past_events(events: Iterable[Event], limit: Optional[int] = None) -> list[Event]:
    """Past events, most recent first, capped."""
    past = [e for e in events if e.is_past]
    past.sort(key=lambda e: _descending_date(e.date))
    return past[: settings.PAST_EVENTS_LIMIT if limit is None else limit]


def order_articles(articles: Iterable[Article], limit: Optional[int] = None) -> list[Article]:
    ordered = sorted(articles, key=lambda a: _descending_date(a.date))
    return ordered[: settings.ARTICLES_LIMIT if limit is None else limit]


def split_events(events: Iterable[Event]) -> EventSnapshot:
    """Partition events on the is_past flag and put each side in display order (uncapped)."""
    events = list(events)
    return EventSnapshot(
        ongoing=order_ongoing_events(events, limit=len(events)),
        past=order_past_events(events, limit=len(events)),
    )


# ── Rendering ─────────────────────────────────────────────────────────────

def _to_json(items: Sequence[BaseModel]) -> str:
    return json.dumps(
        [item.model_dump(mode="json") for item in items],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def _block(header: str, items: Sequence[BaseModel], empty: str, total: Optional[int] = None) -> str:
    if not items:
        return f"[{header}]: {empty}\n\n"
    count = len(items) if total is None else total
    return f"[{header} - {count}]:\n{_to_json(items)}\n\n"


def format_now(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> str:
    tz = ZoneInfo(tz_name or settings.DISPLAY_TIMEZONE)
    now = (now or datetime.now(timezone.utc)).astimezone(tz)
    return now.strftime("%A, %d %B %Y, %I:%M %p")


def build_instruction(caller: Optional[CallerContext] = None, now: Optional[datetime] = None) -> str:
    """Persona + current date/time + optional signed-in caller addendum."""
    instruction = BASE_PERSONA.format(
        assistant_name=settings.ASSISTANT_NAME,
        org_name=settings.ORG_NAME,
        contact_email=settings.ORG_CONTACT_EMAIL,
        sentinel=RESTRICTED_SENTINEL,
        escalation_marker=ESCALATION_MARKER,
    )
    instruction += DATETIME_SECTION.format(
        now=format_now(now), timezone=settings.DISPLAY_TIMEZONE,
    )
    if caller is not None:
        titles = ", ".join(r.title for r in caller.registrations if r.title) or "None"
        instruction += CALLER_SECTION.format(
            name=caller.name,
            email=caller.email,
            role_code=caller.role_code or "USER",
            registration_count=len(caller.registrations),
            registered_titles=titles,
            certificate_count=len(caller.certificates),
            pending=caller.pending_certificate_count,
        )
    return instruction


def build_query_turn(message: str, snapshot: ContextSnapshot) -> str:
    """Grounded user turn: every data category, then the caller's question."""
    ongoing = order_ongoing_events(snapshot.events.ongoing)
    past = order_past_events(snapshot.events.past)
    articles = order_articles(snapshot.articles)

    turn = _block("TEAM DATA", snapshot.roster, "No team members available.")
    turn += _block(
        "ONGOING EVENTS", ongoing, "No ongoing events at the moment.",
        total=len(snapshot.events.ongoing),
    )
    turn += _block(
        "PAST EVENTS", past, "No past events available.",
        total=len(snapshot.events.past),
    )
    turn += _block(
        "ARTICLES", articles, "No published articles available.",
        total=len(snapshot.articles),
    )

    caller = snapshot.caller
    if caller is not None:
        turn += f"[SIGNED-IN USER]: {caller.name} ({caller.email})\n"
        turn += _block("USER'S CERTIFICATES", caller.certificates, "No certificates issued yet.")
        turn += _block("USER'S REGISTERED EVENTS", caller.registrations, "No registered events.")

    turn += f"[USER QUERY]: {message}"
    return turn


def build_restricted_instruction(instruction: str) -> str:
    """Stage-two instruction: the stage-one instruction plus a fixed addendum."""
    return instruction + RESTRICTED_ADDENDUM.format(nav_marker=RESTRICTED_NAV_MARKER)


def build_restricted_turn(message: str, members: Sequence[Member]) -> str:
    """Stage-two turn: only the restricted dataset and the original question."""
    turn = _block("ALUMNI DATA", members, "No alumni data available.")
    turn += f"[USER QUERY]: {message}"
    return turn
