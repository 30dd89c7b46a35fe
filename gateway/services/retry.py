# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Retry orchestrator — throttled attempts, per-credential backoff and
credential rotation across the whole pool.

Per dispatch:
    for each credential, starting at the pool cursor (each tried once):
        up to max_retries + 1 attempts, throttled before every attempt
        rate_limit        -> rotate immediately, no delay
        server / quota    -> back off, retry same credential
        anything else     -> raise at once, no rotation
    every credential failed -> UpstreamExhausted(last error)
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from gateway.core.config import settings
from gateway.core.logging import get_logger
from gateway.metrics.prometheus import POOL_EXHAUSTED, UPSTREAM_ATTEMPTS
from gateway.models.domain import GenerationRequest
from gateway.models.errors import FailureKind, UpstreamError, UpstreamExhausted
from gateway.services.credential_pool import CredentialPool
from gateway.services.gemini_client import GeminiClient
from gateway.services.throttler import DispatchThrottler

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries_per_credential: int = 2
    initial_delay: float = 1.0
    max_delay: float = 5.0
    backoff_multiplier: float = 2.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_retries_per_credential=settings.RETRY_MAX_RETRIES,
            initial_delay=settings.RETRY_INITIAL_DELAY,
            max_delay=settings.RETRY_MAX_DELAY,
            backoff_multiplier=settings.RETRY_BACKOFF_MULTIPLIER,
        )

    @property
    def attempts_per_credential(self) -> int:
        return self.max_retries_per_credential + 1

    def backoff_delay(self, attempt: int) -> float:
        """Exponential delay for a 0-indexed attempt, capped at max_delay."""
        return min(self.max_delay, self.initial_delay * (self.backoff_multiplier ** attempt))

    def delay_for(self, attempt: int, suggested: Optional[float] = None) -> float:
        """Upstream-suggested delay wins when present; the cap always applies."""
        if suggested is not None and suggested > 0:
            return min(self.max_delay, suggested)
        return self.backoff_delay(attempt)


class RetryOrchestrator:
    def __init__(
        self,
        client: GeminiClient,
        pool: CredentialPool,
        throttler: DispatchThrottler,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._pool = pool
        self._throttler = throttler
        self.policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep

    async def dispatch(self, request: GenerationRequest) -> str:
        """Return generated text or raise UpstreamError (fatal) / UpstreamExhausted."""
        pool_size = len(self._pool)
        origin, _ = await self._pool.current()
        last_error: UpstreamError | None = None

        for offset in range(pool_size):
            index = (origin + offset) % pool_size
            credential = self._pool.credential_at(index)
            logger.info("Using API key %d/%d", index + 1, pool_size)

            for attempt in range(self.policy.attempts_per_credential):
                await self._throttler.await_slot()
                logger.info(
                    "Key %d, attempt %d/%d",
                    index + 1, attempt + 1, self.policy.attempts_per_credential,
                )
                try:
                    text = await self._client.generate(credential, request)
                except UpstreamError as exc:
                    exc.credential_index = index
                    exc.attempt = attempt + 1
                    last_error = exc
                    UPSTREAM_ATTEMPTS.labels(outcome=exc.kind.value).inc()
                    logger.warning(
                        "Key %d, attempt %d failed (%s): %s",
                        index + 1, attempt + 1, exc.kind.value, exc.message,
                    )
                    if exc.kind is FailureKind.RATE_LIMIT:
                        logger.info("Rate limit hit on key %d, rotating to next key", index + 1)
                        break
                    if not exc.retryable:
                        raise
                    if attempt < self.policy.max_retries_per_credential:
                        delay = self.policy.delay_for(attempt, exc.retry_delay)
                        logger.info("Retrying key %d in %.2fs", index + 1, delay)
                        await self._sleep(delay)
                    continue

                UPSTREAM_ATTEMPTS.labels(outcome="success").inc()
                logger.info("Response generated with key %d", index + 1)
                return text

            cycled = await self._pool.rotate(origin)
            if cycled:
                logger.info("Credential pool cycled back to key %d", origin + 1)

        POOL_EXHAUSTED.inc()
        logger.error("All API keys and retry attempts exhausted")
        raise UpstreamExhausted(last_error)
