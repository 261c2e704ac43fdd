"""
Relationship Service - business logic for users and follow relationships.

Single entry point used by both the HTTP API and the MCP server, so
validation, error classification and notification side effects behave the
same on every surface.

Contract notes:
- follow() is idempotent: following an already-followed user succeeds
  silently and still fires the post_follow hook.
- unfollow() of a missing edge is an error (NotFollowingError). The
  asymmetry with follow() is intentional and relied upon by clients.
- Counts are derived from live edges at read time; nothing is counted
  in-process.
- Post-commit hooks (notifications) run after the graph query returned and
  never affect the outcome of the mutation.
"""

import asyncio
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from ..cache.redis_cache import RedisCache
from ..errors import (
    InvalidArgumentError,
    InvalidOperationError,
    NotFollowingError,
    NotFoundError,
    SocialGraphError,
    StoreUnavailableError,
    UsernameTakenError,
)
from ..graph.client import GraphClient
from ..hooks import FollowEvent, HookRegistry, HookValidationError, ProfileUpdateEvent, UnfollowEvent
from ..models.user import UserProfile, UserSummary

logger = logging.getLogger(__name__)


def _require(field: str, value: str | None) -> str:
    """Return the trimmed value, or raise if it is missing or blank."""
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{field} is required")
    return str(value).strip()


def _optional(value: str | None) -> str | None:
    return value.strip() if isinstance(value, str) else value


class RelationshipService:
    """
    Users, FOLLOWS edges and derived counts over a GraphClient.

    Args:
        graph: Initialized graph client
        hooks: Lifecycle hook registry (notification emitter attaches here)
        cache: Optional initialized RedisCache for profile reads
        detach_hooks: Run post-hooks as background tasks instead of awaiting them
    """

    def __init__(
        self,
        graph: GraphClient,
        hooks: HookRegistry | None = None,
        cache: RedisCache | None = None,
        detach_hooks: bool = True,
    ):
        self._graph = graph
        self._hooks = hooks
        self._cache = cache
        self._detach_hooks = detach_hooks
        self._pending: set[asyncio.Future] = set()

    # ── Internals ───────────────────────────────────────────────────────

    @contextmanager
    def _store_errors(self, operation: str) -> Iterator[None]:
        """Re-raise anything the store throws as StoreUnavailableError."""
        try:
            yield
        except SocialGraphError:
            raise
        except Exception as e:
            logger.error(f"Graph store failure during {operation}: {e}")
            raise StoreUnavailableError(f"Graph store unavailable during {operation}") from e

    async def _fire_pre(self, name: str, event: Any) -> None:
        if self._hooks is None:
            return
        try:
            await self._hooks.fire_pre(name, event)
        except HookValidationError as e:
            raise InvalidOperationError(str(e)) from e

    async def _fire_post(self, name: str, event: Any) -> None:
        """Dispatch post-commit hooks, detached or inline."""
        if self._hooks is None or not self._hooks.has(name):
            return

        if not self._detach_hooks:
            await self._hooks.fire_post(name, event)
            return

        task = asyncio.ensure_future(self._hooks.fire_post(name, event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for detached post-hooks still in flight (used at shutdown)."""
        if not self._pending:
            return
        logger.info(f"Draining {len(self._pending)} pending hook task(s)")
        await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_hooks(self) -> int:
        return len(self._pending)

    async def _invalidate_profiles(self, *user_ids: int) -> None:
        if self._cache is None:
            return
        await self._cache.invalidate_profiles(*user_ids)

    async def _raise_missing(self, *user_ids: int) -> None:
        """Raise NotFoundError for the first id without a user, if any."""
        with self._store_errors("existence check"):
            existing = await self._graph.existing_user_ids(list(user_ids))
        for uid in user_ids:
            if uid not in existing:
                raise NotFoundError("User", uid)

    # ── Users ───────────────────────────────────────────────────────────

    async def get_profile(self, user_id: int) -> UserProfile:
        """
        Get a user with follower/following counts.

        Raises:
            NotFoundError: If the user does not exist
        """
        version = None
        if self._cache is not None:
            cached = await self._cache.get_profile(user_id)
            if cached is not None:
                return UserProfile.model_validate(cached)
            # Taken before the graph read so a concurrent mutation voids the populate
            version = await self._cache.read_version(user_id)

        with self._store_errors("get_profile"):
            row = await self._graph.get_profile(user_id)
        if row is None:
            raise NotFoundError("User", user_id)

        profile = UserProfile.from_row(row)
        if version is not None:
            await self._cache.populate_profile(user_id, profile.model_dump(), version)
        return profile

    async def get_user_by_username(self, username: str) -> UserProfile:
        """Case-insensitive username lookup."""
        username = _require("username", username)
        with self._store_errors("get_user_by_username"):
            row = await self._graph.find_profile_by_username(username)
        if row is None:
            raise NotFoundError("User", username)
        return UserProfile.from_row(row)

    async def list_users(self) -> list[UserProfile]:
        """All users with counts, id ascending."""
        with self._store_errors("list_users"):
            rows = await self._graph.list_profiles()
        return [UserProfile.from_row(row) for row in rows]

    async def create_user(
        self,
        username: str | None,
        name: str | None,
        email: str | None,
        bio: str | None = None,
    ) -> UserProfile:
        """
        Register a new user. Counts start at zero.

        Raises:
            InvalidArgumentError: If username, name or email is missing or blank
            UsernameTakenError: If the username is held by another user
        """
        username = _require("username", username)
        name = _require("name", name)
        email = _require("email", email)
        bio = _optional(bio)

        with self._store_errors("create_user"):
            row = await self._graph.create_user(username, name, email=email, bio=bio, joined=time.time())
        if row is None:
            raise UsernameTakenError(username)

        logger.info(f"User created: {row['id']} ({username})")
        return UserProfile.from_row({**row, "followers": 0, "following": 0})

    async def update_profile(
        self,
        user_id: int,
        username: str | None,
        name: str | None,
        email: str | None = None,
        bio: str | None = None,
    ) -> UserProfile:
        """
        Update user attributes. Edges and counts are untouched.

        ``email``/``bio`` of None keep the stored values.

        Raises:
            InvalidArgumentError: If username or name is missing or blank
            UsernameTakenError: If another user holds the username
            NotFoundError: If the user does not exist
        """
        username = _require("username", username)
        name = _require("name", name)
        email = _optional(email)
        bio = _optional(bio)

        with self._store_errors("update_profile"):
            updated = await self._graph.update_user(user_id, username, name, email=email, bio=bio)
        if not updated:
            await self._raise_missing(user_id)
            raise UsernameTakenError(username)

        await self._invalidate_profiles(user_id)
        logger.info(f"User {user_id} profile updated")

        fields = {"username": username, "name": name}
        if email is not None:
            fields["email"] = email
        if bio is not None:
            fields["bio"] = bio
        await self._fire_post("post_profile_update", ProfileUpdateEvent(user_id=user_id, fields=fields))

        return await self.get_profile(user_id)

    # ── Relationships ───────────────────────────────────────────────────

    async def follow(self, follower_id: int, followee_id: int) -> bool:
        """
        Make ``follower_id`` follow ``followee_id``.

        Returns:
            True if a new edge was created, False if it already existed

        Raises:
            InvalidOperationError: If the ids are equal or a pre-hook vetoed
            NotFoundError: If either user does not exist
        """
        if follower_id == followee_id:
            raise InvalidOperationError("Cannot follow yourself")

        await self._fire_pre("pre_follow", FollowEvent(follower_id=follower_id, followee_id=followee_id))

        with self._store_errors("follow"):
            result = await self._graph.follow(follower_id, followee_id)
        if result is None:
            await self._raise_missing(follower_id, followee_id)
            raise NotFoundError("User", followee_id)

        created = result["created"]
        await self._invalidate_profiles(follower_id, followee_id)

        if created:
            logger.info(f"User {follower_id} followed user {followee_id}")
        else:
            logger.info(f"User {follower_id} already follows user {followee_id}")

        await self._fire_post(
            "post_follow",
            FollowEvent(
                follower_id=follower_id,
                followee_id=followee_id,
                actor_username=result["actor_username"],
                created=created,
            ),
        )
        return created

    async def unfollow(self, follower_id: int, followee_id: int) -> None:
        """
        Remove the follow edge.

        Raises:
            InvalidOperationError: If the ids are equal or a pre-hook vetoed
            NotFoundError: If either user does not exist
            NotFollowingError: If both users exist but no edge does
        """
        if follower_id == followee_id:
            raise InvalidOperationError("Cannot unfollow yourself")

        await self._fire_pre("pre_unfollow", UnfollowEvent(follower_id=follower_id, followee_id=followee_id))

        with self._store_errors("unfollow"):
            actor_username = await self._graph.unfollow(follower_id, followee_id)
        if actor_username is None:
            await self._raise_missing(follower_id, followee_id)
            raise NotFollowingError(follower_id, followee_id)

        await self._invalidate_profiles(follower_id, followee_id)
        logger.info(f"User {follower_id} unfollowed user {followee_id}")

        await self._fire_post(
            "post_unfollow",
            UnfollowEvent(follower_id=follower_id, followee_id=followee_id, actor_username=actor_username),
        )

    async def is_following(self, follower_id: int, followee_id: int) -> bool:
        """
        Check whether the edge exists.

        Raises:
            NotFoundError: If either user does not exist
        """
        with self._store_errors("is_following"):
            following = await self._graph.is_following(follower_id, followee_id)
        if not following:
            await self._raise_missing(follower_id, followee_id)
        return following

    async def _list_neighbours(self, user_id: int, direction: str) -> list[UserSummary]:
        with self._store_errors(f"list_{direction}"):
            rows = await self._graph.list_neighbours(user_id, direction)
        if rows is None:
            raise NotFoundError("User", user_id)
        return [UserSummary.from_row(row) for row in rows]

    async def list_followers(self, user_id: int) -> list[UserSummary]:
        """Users following ``user_id``, username ascending."""
        return await self._list_neighbours(user_id, "followers")

    async def list_following(self, user_id: int) -> list[UserSummary]:
        """Users ``user_id`` follows, username ascending."""
        return await self._list_neighbours(user_id, "following")
