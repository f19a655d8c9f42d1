"""
Email delivery providers.

SendGridProvider posts to the SendGrid v3 mail/send endpoint.
MockDeliveryProvider accepts everything, logs the payload, and returns a
synthetic message id so the rest of the system runs without credentials.
"""

import html as html_lib
import secrets
import time
from typing import Protocol

import httpx

from app.config import Settings, settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.email_domain import DeliveryResult

logger = get_logger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


def text_to_html(text: str) -> str:
    return html_lib.escape(text, quote=False).replace("\n", "<br>")


def _format_recipient(to: str, to_name: str | None) -> str:
    return f"{to_name} <{to}>" if to_name else to


class DeliveryProvider(Protocol):
    name: str
    is_mock: bool

    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
        to_name: str | None = None,
    ) -> DeliveryResult: ...

    async def close(self) -> None: ...


class MockDeliveryProvider:
    """Always succeeds; nothing leaves the process."""

    name = "mock"
    is_mock = True

    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
        to_name: str | None = None,
    ) -> DeliveryResult:
        message_id = f"mock_{int(time.time() * 1000)}_{secrets.token_hex(4)}"
        logger.info(
            "Mock email delivery",
            to=_format_recipient(to, to_name),
            subject=subject,
            body_preview=text[:100],
            has_html=bool(html),
            message_id=message_id,
        )
        return DeliveryResult(success=True, message_id=message_id, mock_mode=True)

    async def close(self) -> None:
        return None


class SendGridProvider:
    """Thin async client for SendGrid's v3 mail/send API."""

    name = "sendgrid"
    is_mock = False

    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str,
        timeout_seconds: float = 15.0,
    ):
        self._api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))

    async def close(self) -> None:
        await self._client.aclose()

    def _build_payload(
        self, to: str, subject: str, text: str, html: str | None, to_name: str | None
    ) -> dict:
        recipient = {"email": to}
        if to_name:
            recipient["name"] = to_name

        return {
            "personalizations": [{"to": [recipient]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text},
                {"type": "text/html", "value": html or text_to_html(text)},
            ],
        }

    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
        to_name: str | None = None,
    ) -> DeliveryResult:
        try:
            response = await self._client.post(
                SENDGRID_SEND_URL,
                json=self._build_payload(to, subject, text, html, to_name),
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as e:
            logger.error("SendGrid request failed", to=to, error=str(e))
            return DeliveryResult(success=False, error=f"SendGrid request failed: {e}")

        if response.is_success:
            message_id = response.headers.get("x-message-id") or (
                f"sg_{int(time.time() * 1000)}_{secrets.token_hex(4)}"
            )
            logger.info("SendGrid accepted email", to=to, message_id=message_id)
            return DeliveryResult(success=True, message_id=message_id)

        error_message = self._extract_error(response)
        logger.error(
            "SendGrid rejected email",
            to=to,
            status_code=response.status_code,
            error=error_message,
        )
        return DeliveryResult(success=False, error=error_message)

    @staticmethod
    def _extract_error(response: httpx.Response) -> str:
        try:
            errors = response.json().get("errors") or []
        except ValueError:
            errors = []
        if errors and isinstance(errors[0], dict) and errors[0].get("message"):
            return errors[0]["message"]
        return f"Failed to send email (HTTP {response.status_code})"


def build_delivery_provider(config: Settings = settings) -> DeliveryProvider:
    if not config.sendgrid_configured():
        logger.warning("SENDGRID_API_KEY missing or placeholder; email delivery in mock mode")
        return MockDeliveryProvider()

    return SendGridProvider(
        config.SENDGRID_API_KEY,
        config.SENDGRID_FROM_EMAIL,
        config.SENDGRID_FROM_NAME,
        config.SENDGRID_TIMEOUT_SECONDS,
    )
