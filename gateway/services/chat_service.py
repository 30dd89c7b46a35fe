# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Chat orchestration.
Validation, auth short-circuit, snapshot fetch, context assembly and dispatch.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from gateway.core.config import settings
from gateway.core.logging import get_logger
from gateway.metrics.prometheus import AUTH_REQUIRED_TOTAL
from gateway.models.domain import Caller, ConversationTurn
from gateway.models.errors import AuthRequired, UpstreamExhausted, ValidationError
from gateway.services.context_builder import (
    build_instruction,
    build_query_turn,
    requires_auth,
    sanitize_history,
)
from gateway.services.dispatcher import TwoStageDispatcher
from gateway.services.persona import ESCALATION_MARKER
from gateway.services.snapshot_service import SnapshotService

logger = get_logger(__name__)


@dataclass
class ChatReply:
    response: str
    metadata: dict[str, Any] = field(default_factory=dict)


class ChatService:
    def __init__(
        self,
        snapshots: SnapshotService,
        dispatcher: TwoStageDispatcher,
        deadline: float | None = None,
    ) -> None:
        self._snapshots = snapshots
        self._dispatcher = dispatcher
        self._deadline = settings.DISPATCH_DEADLINE if deadline is None else deadline

    async def process_message(
        self,
        message: Any,
        history: Sequence[ConversationTurn] = (),
        caller: Optional[Caller] = None,
    ) -> ChatReply:
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("Message is required and must be a non-empty string")

        logger.info(
            "Processing message (%d chars), caller=%s",
            len(message), caller.email if caller else "anonymous",
        )
        if caller is None and requires_auth(message):
            AUTH_REQUIRED_TOTAL.inc()
            logger.info("Personal-data query without a signed-in caller; asking for sign-in")
            raise AuthRequired()

        snapshot = await self._snapshots.fetch_snapshot(caller)
        instruction = build_instruction(snapshot.caller)
        turn = build_query_turn(message, snapshot)

        try:
            result = await asyncio.wait_for(
                self._dispatcher.dispatch(instruction, turn, sanitize_history(history), message),
                timeout=self._deadline,
            )
        except asyncio.TimeoutError:
            logger.error("Dispatch exceeded its %.1fs deadline", self._deadline)
            raise UpstreamExhausted(reason=f"dispatch deadline of {self._deadline}s exceeded")

        logger.info("Response generated (restricted=%s)", result.restricted)
        return ChatReply(
            response=result.text,
            metadata={
                "roster_count": len(snapshot.roster),
                "ongoing_events_count": len(snapshot.events.ongoing),
                "past_events_count": len(snapshot.events.past),
                "articles_count": len(snapshot.articles),
                "is_authenticated": caller is not None,
                "caller_name": caller.name if caller else None,
                "restricted_requery": result.restricted,
                "report_requested": result.text.rstrip().endswith(ESCALATION_MARKER),
            },
        )
