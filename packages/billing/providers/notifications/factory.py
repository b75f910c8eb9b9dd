"""
Factory for getting the reminder notification sender.
"""

from common.core.config import settings
from packages.billing.providers.notifications.interface import (
    NotificationSenderInterface,
)
from packages.billing.providers.notifications.log_sender import LogNotificationSender
from packages.billing.providers.notifications.webhook_sender import (
    WebhookNotificationSender,
)


def get_notification_sender() -> NotificationSenderInterface:
    """Webhook delivery when an endpoint is configured, otherwise log only."""
    if settings.notification_webhook_url:
        return WebhookNotificationSender()
    return LogNotificationSender()
