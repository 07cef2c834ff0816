"""Transactional email delivery through the Resend HTTP API."""
from dataclasses import dataclass
from typing import Optional

import httpx

from ... import config
from ...log import get_logger

logger = get_logger(__name__)

NOT_CONFIGURED = "Email service not configured"


@dataclass
class EmailResult:
    """Outcome of a send attempt."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def is_email_configured() -> bool:
    """True when an API key is set."""
    return bool(config.RESEND_API_KEY)


class EmailSender:
    """Sends email via Resend.

    Sending never raises: failures are logged and reported through
    ``EmailResult`` so that callers can treat email as best effort.

    Example:
        sender = EmailSender()
        result = sender.send("jane@example.com", "Hello", "<p>Hi</p>", "Hi")
        if not result.success:
            ...
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: Optional[float] = None
    ):
        """
        Args:
            api_key: Resend API key (defaults to RESEND_API_KEY)
            api_url: Endpoint for sending (defaults to RESEND_API_URL)
            transport: Custom httpx transport, e.g. ``httpx.MockTransport`` in tests
            timeout: Request timeout in seconds
        """
        self.api_key = api_key if api_key is not None else config.RESEND_API_KEY
        self.api_url = api_url or config.RESEND_API_URL
        self.transport = transport
        self.timeout = timeout if timeout is not None else config.EMAIL_TIMEOUT

    @property
    def from_address(self) -> str:
        return f"{config.EMAIL_FROM_NAME} <{config.EMAIL_FROM}>"

    def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None
    ) -> EmailResult:
        """Send a single email.

        Returns:
            EmailResult with the provider message ID on success
        """
        if not self.api_key:
            logger.warning("email_not_configured", subject=subject)
            return EmailResult(success=False, error=NOT_CONFIGURED)

        payload = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
            "reply_to": config.EMAIL_REPLY_TO or config.EMAIL_FROM,
        }
        if text:
            payload["text"] = text

        try:
            with httpx.Client(transport=self.transport, timeout=self.timeout) as client:
                response = client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            error = f"HTTP {e.response.status_code}: {e.response.text}"
            logger.error("email_send_failed", to=to, subject=subject, error=error)
            return EmailResult(success=False, error=error)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("email_send_failed", to=to, subject=subject, error=str(e))
            return EmailResult(success=False, error=str(e) or type(e).__name__)

        message_id = data.get("id") if isinstance(data, dict) else None
        logger.info("email_sent", to=to, subject=subject, message_id=message_id)
        return EmailResult(success=True, message_id=message_id)
