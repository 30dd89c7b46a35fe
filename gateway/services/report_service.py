# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Business logic for caller-initiated reports to the organization."""
from typing import Any, Dict, Optional

from gateway.core.config import settings
from gateway.core.logging import get_logger
from gateway.metrics.prometheus import REPORTS_SENT
from gateway.models.domain import Caller
from gateway.models.errors import DeliveryError, ValidationError
from gateway.services.mail_client import MailClient

logger = get_logger(__name__)

ANONYMOUS_NAME = "Anonymous User"
UNKNOWN_EMAIL = "Not provided"

REPORT_TEMPLATE = """Message from the {assistant_name} website assistant
================================

From: {name}
Email: {email}

Message:
{content}

================================
Sent via the {assistant_name} chat widget.
"""


class ReportService:
    def __init__(self, mail: MailClient, recipient: Optional[str] = None):
        self._mail = mail
        self._recipient = recipient or settings.REPORT_RECIPIENT

    async def send_report(self, content: Any, sender_name: Optional[str] = None,
                          sender_email: Optional[str] = None,
                          caller: Optional[Caller] = None) -> Dict[str, Any]:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Report content is required")

        # A signed-in caller's identity wins over self-declared fields.
        name = (caller.name if caller else None) or sender_name or ANONYMOUS_NAME
        email = (caller.email if caller else None) or sender_email or UNKNOWN_EMAIL

        body = REPORT_TEMPLATE.format(
            assistant_name=settings.ASSISTANT_NAME, name=name, email=email, content=content,
        )
        try:
            sender = await self._mail.deliver(
                self._recipient,
                f"{name} wants to ask",
                body,
                reply_to=email if email != UNKNOWN_EMAIL else None,
            )
        except DeliveryError:
            REPORTS_SENT.labels(status="failed").inc()
            raise

        REPORTS_SENT.labels(status="sent").inc()
        logger.info("Report sent from %s (%s)", name, email)
        return {"sender": sender, "from_name": name, "from_email": email}
