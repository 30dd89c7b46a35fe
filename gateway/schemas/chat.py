# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas — API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from gateway.models.domain import ConversationTurn, TurnRole

CALLER_ROLES = ("user", "caller")


# ── Chat Schemas ──

class HistoryTurn(BaseModel):
    """One prior turn as sent by the widget; both the role/content and isUser/text shapes are accepted."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    role: Optional[str] = None
    is_user: Optional[bool] = Field(default=None, alias="isUser")
    content: Optional[str] = None
    text: Optional[str] = None

    def to_turn(self) -> ConversationTurn:
        role = (self.role or ("user" if self.is_user else "model")).lower()
        return ConversationTurn(
            role=TurnRole.CALLER if role in CALLER_ROLES else TurnRole.ASSISTANT,
            text=self.content or self.text or "",
        )


class ChatMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Left untyped so an empty or non-string message reaches the 400 path, not a 422.
    message: Any = None
    conversation_history: List[HistoryTurn] = Field(
        default_factory=list, alias="conversationHistory",
    )

    def history(self) -> List[ConversationTurn]:
        return [turn.to_turn() for turn in self.conversation_history]


class ChatMetadata(BaseModel):
    roster_count: int = 0
    ongoing_events_count: int = 0
    past_events_count: int = 0
    articles_count: int = 0
    is_authenticated: bool = False
    caller_name: Optional[str] = None
    restricted_requery: bool = False
    report_requested: bool = False


class ChatMessageResponse(BaseModel):
    success: bool = True
    response: str
    metadata: ChatMetadata


class AuthRequiredResponse(BaseModel):
    success: bool = False
    requires_auth: bool = True
    message: str


# ── Report Schemas ──

class ReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: Any = None
    sender_name: Optional[str] = Field(default=None, max_length=255, alias="senderName")
    sender_email: Optional[str] = Field(default=None, max_length=320, alias="senderEmail")


class ReportResponse(BaseModel):
    success: bool = True
    message: str


# ── Shared ──

class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[str] = None
    request_id: Optional[str] = None


class ChatbotHealthResponse(BaseModel):
    status: str
    services: Dict[str, str]
    credentials: int
    timestamp: str
