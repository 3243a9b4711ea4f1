"""Email sending via Resend API.

Customer messages: the single-use form link after an order, and the
finished plan PDF as an attachment. Each is one HTTP POST to Resend; a non-2xx
response or transport error raises MailDeliveryError so the caller can
decide whether to consume the token.
"""

import base64
import logging
from html import escape

import httpx

from app.core.config import settings
from app.core.errors import APIError

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"


class MailDeliveryError(APIError):
    """The mail provider rejected the message or could not be reached."""

    def __init__(self, message: str = "Email delivery failed") -> None:
        super().__init__(
            code="MAIL_DELIVERY_ERROR",
            message=message,
            status_code=500,
        )


class Mailer:
    """Resend client for the two outbound messages.

    Args:
        api_key: Resend API key.
        email_from: Sender, e.g. ``"BulkBot AI <plans@bulkbot.app>"``.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        *,
        api_key: str,
        email_from: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.email_from = email_from
        self._timeout = timeout
        self._transport = transport

    async def send_form_link(
        self, *, to_email: str, plan_name: str, form_url: str
    ) -> None:
        """Send the single-use form link for a purchased plan.

        Args:
            to_email: Buyer's email address.
            plan_name: Display name of the purchased plan.
            form_url: Form link with token and plan query parameters.

        Raises:
            MailDeliveryError: If the message was not accepted.
        """
        url = escape(form_url)
        await self._send(
            {
                "from": self.email_from,
                "to": to_email,
                "subject": "Your BulkBot form link",
                "html": (
                    f"<p>Thanks for buying the <b>{escape(plan_name)}</b> plan!</p>"
                    "<p>Fill in your details here (link is single-use):<br>"
                    f'<a href="{url}">{url}</a></p>'
                ),
                "text": (
                    f"Thanks for buying the {plan_name} plan!\n\n"
                    f"Fill in your details here (link is single-use):\n{form_url}"
                ),
            }
        )

    async def send_plan_document(
        self,
        *,
        to_email: str,
        name: str,
        pdf_bytes: bytes,
        filename: str = "Plan.pdf",
    ) -> None:
        """Send the rendered plan as a PDF attachment.

        Args:
            to_email: Customer's email address.
            name: Customer name for the greeting.
            pdf_bytes: Rendered PDF.
            filename: Attachment file name.

        Raises:
            MailDeliveryError: If the message was not accepted.
        """
        await self._send(
            {
                "from": self.email_from,
                "to": to_email,
                "subject": "Your BulkBot Plan 💪",
                "html": (
                    f"<p>Hi {escape(name)}, your personalised plan is attached!</p>"
                ),
                "attachments": [
                    {
                        "filename": filename,
                        "content": base64.b64encode(pdf_bytes).decode("ascii"),
                    }
                ],
            }
        )

    async def send_text(self, *, to_email: str, subject: str, text: str) -> None:
        """Send a plain-text message (used by the transport smoke test).

        Raises:
            MailDeliveryError: If the message was not accepted.
        """
        await self._send(
            {
                "from": self.email_from,
                "to": to_email,
                "subject": subject,
                "text": text,
            }
        )

    async def _send(self, payload: dict) -> None:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json=payload,
                    timeout=self._timeout,
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Resend rejected email (status %d)", e.response.status_code
            )
            raise MailDeliveryError() from e
        except httpx.HTTPError as e:
            logger.warning("Failed to reach Resend: %s", e)
            raise MailDeliveryError() from e


_mailer: Mailer | None = None


def get_mailer() -> Mailer:
    """Get or create the process-wide mailer from settings."""
    global _mailer
    if _mailer is None:
        _mailer = Mailer(
            api_key=settings.resend_api_key.get_secret_value(),
            email_from=settings.email_from,
            timeout=settings.mail_timeout_seconds,
        )
    return _mailer
