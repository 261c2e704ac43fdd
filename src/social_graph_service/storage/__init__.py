"""Notification storage: local SQLite log and remote service client."""

from .notification_client import NotificationServiceClient
from .notification_log import NotificationLog

__all__ = ["NotificationLog", "NotificationServiceClient"]
