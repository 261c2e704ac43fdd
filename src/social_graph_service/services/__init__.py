"""Business logic shared by the HTTP API and the MCP server."""

from .notification_emitter import NotificationEmitter
from .relationship_service import RelationshipService

__all__ = ["NotificationEmitter", "RelationshipService"]
