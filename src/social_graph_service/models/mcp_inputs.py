"""MCP tool input models.

Each MCP tool validates its arguments by constructing the corresponding
model; id ranges and the self-follow rule live here as declarative
constraints.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, Field, model_validator

from .validators import NotificationId, UserId


class ProfileParams(BaseModel):
    """Validated input for the ``get_profile`` MCP tool."""

    user_id: UserId


class RelationshipParams(BaseModel):
    """Validated input for the ``follow_user`` / ``unfollow_user`` MCP tools."""

    follower_id: UserId
    followee_id: UserId

    @model_validator(mode="after")
    def distinct_users(self) -> Self:
        """A user cannot follow or unfollow themselves."""
        if self.follower_id == self.followee_id:
            raise ValueError("follower_id and followee_id must differ")
        return self


class NeighboursParams(BaseModel):
    """Validated input for the ``list_followers`` / ``list_following`` MCP tools."""

    user_id: UserId


class ListNotificationsParams(BaseModel):
    """Validated input for the ``list_notifications`` MCP tool."""

    user_id: UserId
    unread_only: bool = False
    limit: int = Field(default=50, ge=1, le=500)


class MarkReadParams(BaseModel):
    """Validated input for the ``mark_notification_read`` MCP tool."""

    notification_id: NotificationId
