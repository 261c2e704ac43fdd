"""Relationship lifecycle hooks.

Provides HookRegistry for registering async pre/post callbacks on follow,
unfollow and profile-update operations.
Pre-hooks can veto operations by raising HookValidationError.
Post-hooks run after the graph mutation committed and are fire-and-forget:
failures are logged but never propagate.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

HookName = Literal[
    "pre_follow",
    "post_follow",
    "pre_unfollow",
    "post_unfollow",
    "post_profile_update",
]

AsyncHookFn = Callable[[Any], Awaitable[None]]


class HookValidationError(Exception):
    """Raised by a pre-hook to reject a relationship operation.

    The service reports it to the caller as an invalid operation.
    """


class FollowEvent(BaseModel):
    """Context for follow lifecycle hooks.

    ``actor_username`` is only known after the mutation, so it is empty for
    pre-hooks.
    """

    follower_id: int
    followee_id: int
    actor_username: str = ""
    created: bool = False


class UnfollowEvent(BaseModel):
    """Context for unfollow lifecycle hooks."""

    follower_id: int
    followee_id: int
    actor_username: str = ""


class ProfileUpdateEvent(BaseModel):
    """Context for profile-update hooks."""

    user_id: int
    fields: dict[str, Any] = Field(default_factory=dict)


class HookRegistry:
    """Registry of async lifecycle hook callbacks.

    Usage::

        registry = HookRegistry()

        async def block_list(event: FollowEvent) -> None:
            if event.followee_id in blocked:
                raise HookValidationError("user is not accepting followers")

        async def notify(event: FollowEvent) -> None:
            await emitter.emit(event.followee_id, event.follower_id, NotificationKind.FOLLOW, event.actor_username)

        registry.add("pre_follow", block_list)
        registry.add("post_follow", notify)

        service = RelationshipService(graph, hooks=registry)
    """

    def __init__(self) -> None:
        self._hooks: dict[str, list[AsyncHookFn]] = {}

    def add(self, name: HookName, fn: AsyncHookFn) -> None:
        """Register an async hook handler.

        Args:
            name: Hook event name (e.g. "pre_follow", "post_unfollow").
            fn: Async callable receiving the event model for this hook type.
        """
        self._hooks.setdefault(name, []).append(fn)

    def has(self, name: str) -> bool:
        """True if at least one handler is registered for *name*."""
        return bool(self._hooks.get(name))

    async def fire_pre(self, name: str, event: Any) -> None:
        """Fire all pre-hooks for *name*.

        All exceptions propagate; callers must handle HookValidationError
        to abort the operation gracefully.
        """
        for handler in self._hooks.get(name, []):
            await handler(event)

    async def fire_post(self, name: str, event: Any) -> None:
        """Fire all post-hooks for *name*.

        Exceptions are caught and logged as WARNING; they never propagate.
        """
        for handler in self._hooks.get(name, []):
            try:
                await handler(event)
            except Exception as exc:
                logger.warning("Post-hook '%s' raised (non-fatal): %s", name, exc)
