# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain errors raised by the gateway services and mapped to HTTP by controllers.
"""

from enum import Enum
from typing import Optional


class ValidationError(ValueError):
    """The inbound message is empty or malformed. Raised before any fetch."""


class AuthRequired(Exception):
    """The message asks for personal data but no caller identity is attached."""

    def __init__(self, message: str = "Please sign in to access personalized information "
                                      "like your certificates or registered events.") -> None:
        super().__init__(message)
        self.message = message


class FailureKind(str, Enum):
    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    OTHER = "other"


RETRYABLE_KINDS = frozenset(
    {FailureKind.RATE_LIMIT, FailureKind.SERVER_ERROR, FailureKind.QUOTA_EXCEEDED}
)


class UpstreamError(Exception):
    """A single failed call to the generation backend, already classified."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        status_code: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.retry_delay = retry_delay
        # Filled in by the retry orchestrator.
        self.credential_index: Optional[int] = None
        self.attempt: Optional[int] = None

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def __str__(self) -> str:
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message


class UpstreamExhausted(Exception):
    """Every pooled credential failed for one dispatch."""

    def __init__(self, last_error: Optional[UpstreamError] = None, reason: str | None = None) -> None:
        detail = reason or (str(last_error) if last_error else "All API keys exhausted")
        super().__init__(f"Generation backend error: {detail}")
        self.last_error = last_error


class DeliveryError(Exception):
    """A report could not be handed to any configured sender."""
