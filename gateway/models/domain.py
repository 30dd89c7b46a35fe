# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models — pure data structures, NO FastAPI dependency.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

DEFAULT_EVENT_PRIORITY = 999


class TurnRole(str, Enum):
    CALLER = "caller"
    ASSISTANT = "assistant"


class Member(BaseModel):
    """A roster entry as shown to the generation backend."""
    id: str
    name: str
    role_code: str
    avatar: Optional[str] = None
    extra: dict[str, Any] = Field(default_factory=dict)


class Event(BaseModel):
    id: str
    title: str = "Untitled Event"
    date: Optional[str] = None
    description: str = ""
    venue: Optional[str] = None
    time: Optional[str] = None
    priority: int = DEFAULT_EVENT_PRIORITY
    registration_link: Optional[str] = None
    registration_closed: bool = False
    is_past: bool = False
    related_event: Optional[str] = None


class Article(BaseModel):
    id: str
    title: str
    author: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    link: Optional[str] = None
    summary: Optional[str] = None


class Certificate(BaseModel):
    event_name: str = "Unknown Event"
    event_description: str = ""
    delivered: bool = False
    image: Optional[str] = None


class Registration(BaseModel):
    event_id: str
    title: str = "Unknown Event"
    date: Optional[str] = None
    is_past: bool = False


class Caller(BaseModel):
    """An already-verified caller identity attached to a request."""
    id: Optional[str] = None
    name: str
    email: str
    role_code: str = "USER"
    registered_event_ids: list[str] = Field(default_factory=list)


class CallerContext(BaseModel):
    """Participation record of an authenticated caller."""
    name: str
    email: str
    role_code: str = "USER"
    certificates: list[Certificate] = Field(default_factory=list)
    registrations: list[Registration] = Field(default_factory=list)

    @property
    def pending_certificate_count(self) -> int:
        return max(0, len(self.registrations) - len(self.certificates))


class EventSnapshot(BaseModel):
    ongoing: list[Event] = Field(default_factory=list)
    past: list[Event] = Field(default_factory=list)


class ContextSnapshot(BaseModel):
    """Everything fetched for one inbound message, before ordering and caps."""
    roster: list[Member] = Field(default_factory=list)
    events: EventSnapshot = Field(default_factory=EventSnapshot)
    articles: list[Article] = Field(default_factory=list)
    caller: Optional[CallerContext] = None


class ConversationTurn(BaseModel):
    role: TurnRole
    text: str = ""


class GenerationRequest(BaseModel):
    system_instruction: str
    history: list[ConversationTurn] = Field(default_factory=list)
    user_turn: str
