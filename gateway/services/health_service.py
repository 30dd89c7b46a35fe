# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Health probing.

The upstream probe uses the active credential directly; it takes no part in
throttling or rotation, so probes never move the shared cursor.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict

from gateway.core.logging import get_logger
from gateway.models.errors import UpstreamError
from gateway.services.credential_pool import CredentialPool
from gateway.services.gemini_client import GeminiClient
from gateway.services.snapshot_service import SnapshotService

logger = get_logger(__name__)


class HealthService:
    def __init__(self, client: GeminiClient, pool: CredentialPool, snapshots: SnapshotService):
        self._client = client
        self._pool = pool
        self._snapshots = snapshots

    async def check_upstream(self) -> bool:
        index, credential = self._pool.peek()
        try:
            await self._client.ping(credential)
            return True
        except UpstreamError as exc:
            logger.warning("Upstream probe failed on key %d: %s", index + 1, exc)
            return False

    async def check_store(self) -> bool:
        try:
            await asyncio.to_thread(self._snapshots.verify_store)
            return True
        except Exception as exc:
            logger.warning("Data store probe failed: %s", exc)
            return False

    async def check(self) -> Dict[str, Any]:
        gemini, database = await asyncio.gather(self.check_upstream(), self.check_store())
        return {
            "status": "healthy" if gemini and database else "unhealthy",
            "services": {
                "gemini": "connected" if gemini else "disconnected",
                "database": "connected" if database else "disconnected",
            },
            "credentials": len(self._pool),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
