# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Gemini REST client — one generation attempt per call, no retry.

Failures are raised as UpstreamError already classified into
rate_limit / server_error / quota_exceeded / other.
"""

import re
import time
from typing import Any, Optional

import httpx

from gateway.core.config import settings
from gateway.metrics.prometheus import UPSTREAM_LATENCY
from gateway.models.domain import GenerationRequest, TurnRole
from gateway.models.errors import FailureKind, UpstreamError

_DELAY_PATTERN = re.compile(r"(\d+\.?\d*)")

_WIRE_ROLES = {TurnRole.CALLER: "user", TurnRole.ASSISTANT: "model"}


def classify_failure(status_code: Optional[int], message: str) -> FailureKind:
    """Map an upstream status and error text onto a failure kind."""
    message = message or ""
    status_code = status_code or 0
    if status_code == 429 or "429" in message or "Too Many Requests" in message:
        return FailureKind.RATE_LIMIT
    if 500 <= status_code < 600:
        return FailureKind.SERVER_ERROR
    lowered = message.lower()
    if "quota" in lowered or "rate limit" in lowered:
        return FailureKind.QUOTA_EXCEEDED
    return FailureKind.OTHER


def parse_retry_delay(details: Any) -> Optional[float]:
    """Extract the RetryInfo delay ("4s", "4.5s") in seconds, if the error carries one."""
    if not isinstance(details, list):
        return None
    for detail in details:
        if not isinstance(detail, dict) or "RetryInfo" not in str(detail.get("@type", "")):
            continue
        match = _DELAY_PATTERN.search(str(detail.get("retryDelay", "")))
        if match:
            return float(match.group(1))
    return None


def _error_from_response(response: httpx.Response) -> UpstreamError:
    message = response.text[:500]
    details = None
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        error = payload["error"]
        message = error.get("message") or message
        details = error.get("details")
    if response.status_code == 429 and "429" not in message:
        message = f"429 Too Many Requests: {message}"
    return UpstreamError(
        kind=classify_failure(response.status_code, message),
        message=message,
        status_code=response.status_code,
        retry_delay=parse_retry_delay(details),
    )


def build_contents(request: GenerationRequest) -> list[dict[str, Any]]:
    contents = [
        {"role": _WIRE_ROLES[turn.role], "parts": [{"text": turn.text}]}
        for turn in request.history
    ]
    contents.append({"role": "user", "parts": [{"text": request.user_turn}]})
    return contents


class GeminiClient:
    """Native Gemini API client using a shared httpx.AsyncClient."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        model: str | None = None,
        base_url: str | None = None,
    ) -> None:
        self._client = http_client
        self.model = model or settings.GEMINI_MODEL
        self.base_url = (base_url or settings.GEMINI_BASE_URL).rstrip("/")

    @property
    def generation_config(self) -> dict[str, Any]:
        return {
            "temperature": settings.GEMINI_TEMPERATURE,
            "topP": settings.GEMINI_TOP_P,
            "topK": settings.GEMINI_TOP_K,
            "maxOutputTokens": settings.GEMINI_MAX_OUTPUT_TOKENS,
        }

    async def _post(self, api_key: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        start = time.perf_counter()
        try:
            response = await self._client.post(
                url,
                json=body,
                headers={"x-goog-api-key": api_key},
                timeout=settings.GEMINI_TIMEOUT,
            )
        except httpx.TimeoutException:
            raise UpstreamError(
                FailureKind.SERVER_ERROR,
                f"Gemini API timeout after {settings.GEMINI_TIMEOUT}s",
            )
        except httpx.RequestError as exc:
            raise UpstreamError(FailureKind.SERVER_ERROR, f"Gemini API unreachable: {exc}")
        finally:
            UPSTREAM_LATENCY.observe(time.perf_counter() - start)

        if response.status_code != 200:
            raise _error_from_response(response)
        try:
            payload = response.json()
        except ValueError:
            raise UpstreamError(
                FailureKind.SERVER_ERROR,
                f"Gemini API returned a non-JSON body: {response.text[:200]}",
                status_code=response.status_code,
            )
        if not isinstance(payload, dict):
            raise UpstreamError(
                FailureKind.SERVER_ERROR,
                f"Gemini API returned a non-object body: {type(payload).__name__}",
                status_code=response.status_code,
            )
        return payload

    async def generate(self, api_key: str, request: GenerationRequest) -> str:
        body: dict[str, Any] = {
            "contents": build_contents(request),
            "generationConfig": self.generation_config,
        }
        if request.system_instruction:
            body["systemInstruction"] = {"parts": [{"text": request.system_instruction}]}

        data = await self._post(api_key, body)
        candidates = data.get("candidates", [])
        if not candidates:
            reason = (data.get("promptFeedback") or {}).get("blockReason")
            raise UpstreamError(
                FailureKind.OTHER,
                f"No candidates in response (blockReason={reason})" if reason
                else "No candidates in response",
            )
        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(p.get("text", "") for p in parts)

    async def ping(self, api_key: str) -> None:
        """Minimal generation call; raises UpstreamError on any failure."""
        await self._post(api_key, {"contents": [{"role": "user", "parts": [{"text": "ping"}]}]})
