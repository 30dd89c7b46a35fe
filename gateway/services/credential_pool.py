# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Credential pool — ordered upstream API keys with a shared cursor.

Membership is fixed at construction. The cursor is process-wide and is only
read or advanced under one lock, so "read cursor then rotate" is atomic and
concurrent rotations never collapse into one.
"""

import asyncio

from gateway.core.logging import get_logger
from gateway.metrics.prometheus import CREDENTIAL_ROTATIONS

logger = get_logger(__name__)


class CredentialPool:
    """Cyclic pool of interchangeable credentials."""

    def __init__(self, credentials: list[str]) -> None:
        if not credentials:
            raise ValueError("Credential pool is empty; configure at least one API key")
        self._credentials: tuple[str, ...] = tuple(credentials)
        self._cursor = 0
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._credentials)

    @property
    def cursor(self) -> int:
        return self._cursor

    async def current(self) -> tuple[int, str]:
        """Return (index, credential) of the active credential."""
        async with self._lock:
            return self._cursor, self._credentials[self._cursor]

    def credential_at(self, index: int) -> str:
        return self._credentials[index % len(self._credentials)]

    def peek(self) -> tuple[int, str]:
        """Unlocked read for callers that take no part in rotation bookkeeping."""
        return self._cursor, self._credentials[self._cursor]

    async def rotate(self, origin: int | None = None) -> bool:
        """
        Advance the cursor by one, wrapping to 0.
        Returns True when the new cursor is back at ``origin`` (a full cycle).
        """
        async with self._lock:
            previous = self._cursor
            self._cursor = (self._cursor + 1) % len(self._credentials)
            current = self._cursor
        CREDENTIAL_ROTATIONS.inc()
        logger.info(
            "Rotating API key: %d -> %d (of %d)",
            previous + 1, current + 1, len(self._credentials),
        )
        if origin is None:
            return current == previous
        return current == origin
