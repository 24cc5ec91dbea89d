from .reminders import Category, Completion, Reminder
from .telegram import TelegramChat
from .notification import NotificationEvent, ScheduledNotification


__all__ = [
    "Reminder",
    "Completion",
    "Category",
    "TelegramChat",
    "NotificationEvent",
    "ScheduledNotification",
]
