from typing import Optional

import httpx

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.reminder import ReminderNotice
from packages.billing.providers.notifications.interface import (
    NotificationSenderInterface,
)

logger = get_logger(__name__)


class WebhookNotificationSender(NotificationSenderInterface):
    """POSTs reminder payloads as JSON to the notification service."""

    def __init__(
        self,
        url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.notification_webhook_url
        self.timeout = settings.notification_timeout_seconds
        self._transport = transport

    @trace_span
    async def send_reminder(self, notice: ReminderNotice) -> None:
        payload = {
            "template": "payment_reminder",
            "account_id": notice.account_id,
            "to": notice.email,
            "data": {
                "user_name": notice.display_name or notice.email.split("@")[0],
                "days_left": notice.days_until_due,
                "amount": notice.projected_amount,
                "currency": notice.currency,
                "due_date": notice.due_date.isoformat(),
                "is_trial": notice.is_trial,
            },
        }
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()

        logger.info(
            f"Sent payment reminder for account {notice.account_id}",
            extra={"account_id": notice.account_id, "status": response.status_code},
        )
