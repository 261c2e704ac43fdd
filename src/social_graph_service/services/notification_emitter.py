"""
Notification emitter - best-effort delivery of follow/unfollow events.

One attempt per event, no retry, no rollback. A failed delivery is logged
and dropped; the relationship change that triggered it stands.
"""

import logging
from typing import Protocol

from ..hooks import FollowEvent, HookRegistry, UnfollowEvent
from ..models.notification import NotificationEvent, NotificationKind

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Anything that can store a notification event (local log or remote service)."""

    async def append(self, event: NotificationEvent) -> NotificationEvent: ...


class NotificationEmitter:
    """Builds notification events and hands them to a sink."""

    def __init__(self, sink: NotificationSink):
        self._sink = sink

    async def emit(
        self,
        recipient_id: int,
        actor_id: int,
        kind: NotificationKind,
        actor_username: str,
    ) -> NotificationEvent | None:
        """
        Deliver one notification.

        Returns:
            The stored event, or None if delivery failed
        """
        event = NotificationEvent(
            recipient_id=recipient_id,
            actor_id=actor_id,
            kind=kind,
            actor_username=actor_username,
        )
        try:
            return await self._sink.append(event)
        except Exception as e:
            logger.warning(f"Failed to deliver {kind.value} notification to user {recipient_id} from {actor_id}: {e}")
            return None

    async def on_follow(self, event: FollowEvent) -> None:
        await self.emit(event.followee_id, event.follower_id, NotificationKind.FOLLOW, event.actor_username)

    async def on_unfollow(self, event: UnfollowEvent) -> None:
        await self.emit(event.followee_id, event.follower_id, NotificationKind.UNFOLLOW, event.actor_username)

    def register(self, hooks: HookRegistry) -> None:
        """Attach to the post-commit follow/unfollow hooks."""
        hooks.add("post_follow", self.on_follow)
        hooks.add("post_unfollow", self.on_unfollow)
