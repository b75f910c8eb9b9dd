from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.reminder import ReminderNotice
from packages.billing.providers.notifications.interface import (
    NotificationSenderInterface,
)

logger = get_logger(__name__)


class LogNotificationSender(NotificationSenderInterface):
    """Writes reminders to the log. Default when no delivery endpoint is configured."""

    @trace_span
    async def send_reminder(self, notice: ReminderNotice) -> None:
        logger.info(
            f"Payment reminder for account {notice.account_id}: "
            f"{notice.projected_amount} {notice.currency.upper()} due in "
            f"{notice.days_until_due} day(s)",
            extra={
                "account_id": notice.account_id,
                "due_date": notice.due_date.isoformat(),
                "is_trial": notice.is_trial,
            },
        )
