# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Report delivery over the Resend HTTP API, with a logging mock when unconfigured."""
from typing import Optional, Sequence

import httpx

from gateway.core.config import settings
from gateway.core.logging import get_logger
from gateway.models.errors import DeliveryError

logger = get_logger(__name__)


class MailClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        senders: Optional[Sequence[str]] = None,
    ):
        self._http = http_client
        self._api_key = settings.RESEND_API_KEY if api_key is None else api_key
        self._api_url = api_url or settings.RESEND_API_URL
        self._senders = list(senders or settings.EMAIL_FROM or [settings.EMAIL_FROM_DEFAULT])

    @property
    def is_mock(self) -> bool:
        return not self._api_key

    async def deliver(self, recipient: str, subject: str, body: str,
                      reply_to: Optional[str] = None) -> str:
        """Send through the first sender that is accepted; returns the sender used."""
        if self.is_mock:
            logger.info("[MOCK EMAIL] To: %s | Subject: %s | Reply-To: %s | Body: %s",
                        recipient, subject, reply_to, body)
            return "mock"

        payload = {"to": [recipient], "subject": subject, "text": body}
        if reply_to:
            payload["reply_to"] = reply_to
        headers = {"Authorization": f"Bearer {self._api_key}"}

        last_error = "no sender configured"
        for sender in self._senders:
            try:
                resp = await self._http.post(
                    self._api_url,
                    json={**payload, "from": sender},
                    headers=headers,
                    timeout=settings.DELIVERY_TIMEOUT,
                )
            except httpx.HTTPError as exc:
                last_error = f"{sender}: {exc}"
                logger.warning("Mail delivery via %s failed: %s", sender, exc)
                continue
            if resp.status_code < 300:
                logger.info("Report delivered to %s via %s (status=%s)",
                            recipient, sender, resp.status_code)
                return sender
            last_error = f"{sender}: HTTP {resp.status_code}"
            logger.warning("Mail API returned %s for sender %s", resp.status_code, sender)

        raise DeliveryError(f"All senders failed; last error: {last_error}")
