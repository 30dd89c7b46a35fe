# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Two-stage dispatch.

Stage one sends the full instruction and grounded turn. If the trimmed reply
is exactly RESTRICTED_SENTINEL, stage two re-queries once with the restricted
dataset only, reusing the caller's history unchanged. The sentinel is never
checked on the stage-two reply.

The branch hinges on an exact string match against free-form generated text;
any drift in the backend's formatting (quotes, punctuation, casing) silently
skips stage two.
"""

from dataclasses import dataclass
from typing import Sequence

from gateway.core.logging import get_logger
from gateway.metrics.prometheus import RESTRICTED_REQUERIES
from gateway.models.domain import ConversationTurn, GenerationRequest
from gateway.services.context_builder import (
    build_restricted_instruction,
    build_restricted_turn,
)
from gateway.services.persona import RESTRICTED_SENTINEL
from gateway.services.retry import RetryOrchestrator
from gateway.services.snapshot_service import SnapshotService

logger = get_logger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    text: str
    restricted: bool = False


class TwoStageDispatcher:
    def __init__(self, orchestrator: RetryOrchestrator, snapshots: SnapshotService) -> None:
        self._orchestrator = orchestrator
        self._snapshots = snapshots

    async def dispatch(
        self,
        instruction: str,
        turn: str,
        history: Sequence[ConversationTurn],
        message: str,
    ) -> DispatchResult:
        history = list(history)
        raw = await self._orchestrator.dispatch(
            GenerationRequest(system_instruction=instruction, history=history, user_turn=turn)
        )
        text = (raw or "").strip()
        if text != RESTRICTED_SENTINEL:
            return DispatchResult(text=text)

        RESTRICTED_REQUERIES.inc()
        logger.info("Sentinel reply received; re-querying with restricted dataset")
        members = await self._snapshots.fetch_restricted_roster()
        logger.info("Fetched %d restricted roster members", len(members))

        second = GenerationRequest(
            system_instruction=build_restricted_instruction(instruction),
            history=history,
            user_turn=build_restricted_turn(message, members),
        )
        raw = await self._orchestrator.dispatch(second)
        return DispatchResult(text=raw, restricted=True)
