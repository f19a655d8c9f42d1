"""
Email delivery and status tracking.

send_saved_email() walks a saved email through queued -> sent | failed.
Preconditions are checked in a fixed order and a precondition failure
never touches the row. Delivery-provider failures are reported in the
SendEmailResponse, not raised. Once the provider has accepted a message
the row is never marked failed; writing "sent" is retried instead.

update_email_tracking() applies provider webhook events to the email
identified by its provider message id.
"""

import asyncio
from collections.abc import Sequence
from typing import Any

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.email_domain import (
    ALREADY_SENT_STATUSES,
    SENDABLE_STATUSES,
    BatchSendItem,
    BatchSendResult,
    Email,
    EmailStatus,
    SendEmailResponse,
    SentInfo,
)
from app.repositories.email_repository import EmailRepository
from app.services.email_delivery.sendgrid_client import (
    DeliveryProvider,
    build_delivery_provider,
    text_to_html,
)

logger = get_logger(__name__)

TRACKING_EVENTS: frozenset[str] = frozenset({"delivered", "opened", "clicked", "bounced"})

MARK_SENT_ATTEMPTS = 3
MARK_SENT_RETRY_DELAY_SECONDS = 0.5


class EmailService:
    """Sends saved emails through the configured provider and tracks their status."""

    def __init__(
        self,
        provider: DeliveryProvider | None = None,
        *,
        email_repository: type[EmailRepository] = EmailRepository,
    ):
        self.provider = provider or build_delivery_provider(settings)
        self.emails = email_repository

    async def send_saved_email(self, email_id: str, user_id: str) -> SendEmailResponse:
        """Send one saved email owned by user_id."""
        try:
            email = await self.emails.get_with_recipient(user_id, email_id)

            if not email:
                return SendEmailResponse(
                    success=False, error="Email not found", error_code="NOT_FOUND"
                )

            if email.status in ALREADY_SENT_STATUSES:
                return SendEmailResponse(
                    success=False,
                    error=f"Email already sent (status: {email.status})",
                    error_code="ALREADY_SENT",
                )

            if email.status not in SENDABLE_STATUSES:
                return SendEmailResponse(
                    success=False,
                    error=f"Email cannot be sent from status {email.status}",
                    error_code="INVALID_STATE",
                )

            if not (email.contact_email or "").strip():
                return SendEmailResponse(
                    success=False,
                    error="Contact has no email address",
                    error_code="MISSING_RECIPIENT",
                )

            await self.emails.set_status(email_id, "queued")

            delivery = await self.provider.send(
                to=email.contact_email,
                subject=email.subject,
                text=email.body_text,
                html=email.body_html,
                to_name=email.recipient_name,
            )

            if not delivery.success:
                await self.emails.set_status(email_id, "failed")
                logger.warning(
                    "Email delivery failed",
                    email_id=email_id,
                    user_id=user_id,
                    provider=self.provider.name,
                    error=delivery.error,
                )
                return SendEmailResponse(
                    success=False,
                    error=delivery.error or "Failed to send email",
                    error_code="PROVIDER_ERROR",
                    mock_mode=delivery.mock_mode,
                )

        except Exception as e:
            logger.error(
                "Unexpected error sending email",
                email_id=email_id,
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._mark_failed_best_effort(email_id)
            return SendEmailResponse(
                success=False, error=f"Failed to send email: {e}", error_code="PROVIDER_ERROR"
            )

        # The provider has accepted the message; from here the row never goes back to failed
        sent = await self._record_sent(email_id, delivery.message_id)
        logger.info(
            "Email sent",
            email_id=email_id,
            user_id=user_id,
            message_id=delivery.message_id,
            mock_mode=delivery.mock_mode,
            status_recorded=sent is not None,
        )
        return SendEmailResponse(
            success=True,
            email=SentInfo(
                id=email_id,
                status="sent" if sent else "queued",
                sent_at=sent.sent_at if sent else None,
                provider_message_id=delivery.message_id,
            ),
            mock_mode=delivery.mock_mode,
        )

    async def _record_sent(self, email_id: str, message_id: str | None) -> Email | None:
        """
        Persist the sent status, retrying transient failures.

        Returns None when every attempt failed; the row is then left in
        "queued" and the provider message id is only in the logs.
        """
        for attempt in range(1, MARK_SENT_ATTEMPTS + 1):
            try:
                return await self.emails.mark_sent(email_id, message_id)
            except Exception as e:
                logger.warning(
                    "Could not record sent status",
                    email_id=email_id,
                    message_id=message_id,
                    attempt=attempt,
                    error=str(e),
                )
                if attempt < MARK_SENT_ATTEMPTS:
                    await asyncio.sleep(MARK_SENT_RETRY_DELAY_SECONDS * attempt)

        logger.error(
            "Email accepted by provider but sent status not recorded",
            email_id=email_id,
            message_id=message_id,
            attempts=MARK_SENT_ATTEMPTS,
        )
        return None

    async def _mark_failed_best_effort(self, email_id: str) -> None:
        try:
            await self.emails.set_status(email_id, "failed")
        except Exception as status_error:
            logger.error(
                "Could not record failed email status",
                email_id=email_id,
                error=str(status_error),
            )

    async def send_batch_emails(self, email_ids: Sequence[str], user_id: str) -> BatchSendResult:
        """Send emails one after another; one failure never stops the rest."""
        result = BatchSendResult()

        for email_id in email_ids:
            response = await self.send_saved_email(email_id, user_id)
            result.results.append(
                BatchSendItem(
                    email_id=email_id,
                    success=response.success,
                    error=response.error,
                    error_code=response.error_code,
                )
            )
            if response.success:
                result.success += 1
            else:
                result.failed += 1

        logger.info(
            "Batch send finished",
            user_id=user_id,
            success=result.success,
            failed=result.failed,
        )
        return result

    async def update_email_tracking(self, provider_message_id: str, event: str) -> bool:
        """
        Apply a tracking event. Returns False for unknown events, unknown
        message ids or storage errors; never raises.
        """
        if event not in TRACKING_EVENTS:
            logger.warning("Ignoring unsupported tracking event", event_type=event)
            return False

        try:
            email = await self.emails.find_by_provider_message_id(provider_message_id)
            if not email:
                logger.warning(
                    "No email matches tracking event",
                    message_id=provider_message_id,
                    event_type=event,
                )
                return False

            status: EmailStatus = event  # tracking events share status names
            updated = await self.emails.apply_tracking_status(email.id, status, event)
            logger.info(
                "Email tracking updated",
                email_id=email.id,
                message_id=provider_message_id,
                event_type=event,
                previous_status=email.status,
            )
            return updated

        except Exception as e:
            logger.error(
                "Failed to apply tracking event",
                message_id=provider_message_id,
                event_type=event,
                error=str(e),
            )
            return False

    async def get_email_stats(self, user_id: str) -> dict[str, int]:
        counts = await self.emails.status_counts(user_id)
        counts["total"] = sum(counts.values())
        return counts

    async def save_draft(
        self,
        user_id: str,
        contact_id: str,
        subject: str,
        body_text: str,
        body_html: str | None = None,
    ) -> Email:
        """Persist email content as a draft; HTML is derived from text when absent."""
        return await self.emails.create_draft(
            user_id, contact_id, subject, body_text, body_html or text_to_html(body_text)
        )

    async def get_emails(self, user_id: str, status: EmailStatus | None = None) -> list[Email]:
        return await self.emails.list_for_user(user_id, status)

    async def get_email(self, user_id: str, email_id: str) -> Email | None:
        return await self.emails.get(user_id, email_id)

    async def delete_email(self, user_id: str, email_id: str) -> bool:
        return await self.emails.delete(user_id, email_id)

    def get_email_service_status(self) -> dict[str, Any]:
        return {
            "ready": True,
            "provider": self.provider.name,
            "mock_mode": self.provider.is_mock,
            "from_email": settings.SENDGRID_FROM_EMAIL,
            "from_name": settings.SENDGRID_FROM_NAME,
        }

    async def close(self) -> None:
        await self.provider.close()


# Singleton instance for application use
email_service = EmailService()
