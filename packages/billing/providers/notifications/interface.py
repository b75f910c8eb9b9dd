"""
Interface for the reminder notification collaborator.
"""

from abc import ABC, abstractmethod

from packages.billing.models.domain.reminder import ReminderNotice


class NotificationSenderInterface(ABC):
    """Delivers payment reminders (email, push, ...) on the engine's behalf."""

    @abstractmethod
    async def send_reminder(self, notice: ReminderNotice) -> None:
        """
        Dispatch one reminder.

        Raises on delivery failure so the caller does not record it as sent.
        """
        pass
