"""Data models for users and notification events."""

from .notification import NotificationEvent, NotificationKind
from .user import UserProfile, UserSummary

__all__ = ["NotificationEvent", "NotificationKind", "UserProfile", "UserSummary"]
