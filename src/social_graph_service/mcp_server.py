#!/usr/bin/env python3
"""FastMCP server for the Social Graph Service.

Exposes profile, follow and notification operations as MCP tools. Each tool
handler constructs an input model for validation and returns a dict with
``success`` plus either the result or an ``error`` message.
"""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastmcp import Context, FastMCP
from pydantic import ValidationError

from .errors import SocialGraphError
from .models.mcp_inputs import (
    ListNotificationsParams,
    MarkReadParams,
    NeighboursParams,
    ProfileParams,
    RelationshipParams,
)
from .services.relationship_service import RelationshipService
from .storage.notification_log import NotificationLog

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class MCPServerContext:
    """Application context for the MCP server."""

    relationship_service: RelationshipService | None
    notification_log: NotificationLog | None


@asynccontextmanager
async def mcp_server_lifespan(server: FastMCP) -> AsyncIterator[MCPServerContext]:
    """Initialize shared stores on startup and release them on shutdown."""
    from .shared_storage import (
        close_shared_storage,
        get_shared_notification_log,
        get_shared_relationship_service,
        initialize_shared_storage,
        is_storage_initialized,
    )

    owns_storage = not is_storage_initialized()
    if owns_storage:
        logger.info("No shared storage found, initializing (standalone mode)")
        await initialize_shared_storage()

    try:
        yield MCPServerContext(
            relationship_service=get_shared_relationship_service(),
            notification_log=get_shared_notification_log(),
        )
    finally:
        if owns_storage:
            logger.info("Shutting down Social Graph MCP components...")
            await close_shared_storage()


# Create FastMCP server instance
mcp = FastMCP("Social Graph Service", lifespan=mcp_server_lifespan)


def _service(ctx: Context) -> RelationshipService:
    service = ctx.request_context.lifespan_context.relationship_service
    if service is None:
        raise SocialGraphError("Graph store not available")
    return service


def _log(ctx: Context) -> NotificationLog:
    log = ctx.request_context.lifespan_context.notification_log
    if log is None:
        raise SocialGraphError("Notification log not available")
    return log


# =============================================================================
# PROFILES AND RELATIONSHIPS
# =============================================================================


@mcp.tool()
async def get_profile(user_id: int, ctx: Context) -> dict[str, Any]:
    """Get a user's profile with follower and following counts.

    Args:
        user_id: The user to look up

    Returns:
        {success, user} where user has id, username, name, email, bio,
        joined, followers and following.
    """
    try:
        params = ProfileParams(user_id=user_id)
    except ValidationError as e:
        return {"success": False, "error": str(e)}

    try:
        profile = await _service(ctx).get_profile(params.user_id)
    except SocialGraphError as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "user": profile.to_dict()}


@mcp.tool()
async def follow_user(follower_id: int, followee_id: int, ctx: Context) -> dict[str, Any]:
    """Make one user follow another. Following twice is a no-op.

    Args:
        follower_id: The user who follows
        followee_id: The user being followed

    Returns:
        {success, created, message}; created is false when the follow already existed.
    """
    try:
        params = RelationshipParams(follower_id=follower_id, followee_id=followee_id)
    except ValidationError as e:
        return {"success": False, "error": str(e)}

    try:
        created = await _service(ctx).follow(params.follower_id, params.followee_id)
    except SocialGraphError as e:
        return {"success": False, "error": str(e)}

    message = f"Now following user {params.followee_id}" if created else f"Already following user {params.followee_id}"
    return {"success": True, "created": created, "message": message}


@mcp.tool()
async def unfollow_user(follower_id: int, followee_id: int, ctx: Context) -> dict[str, Any]:
    """Remove a follow. Fails if the follower is not following the followee.

    Args:
        follower_id: The user who stops following
        followee_id: The user being unfollowed

    Returns:
        {success, message} or {success: false, error}.
    """
    try:
        params = RelationshipParams(follower_id=follower_id, followee_id=followee_id)
    except ValidationError as e:
        return {"success": False, "error": str(e)}

    try:
        await _service(ctx).unfollow(params.follower_id, params.followee_id)
    except SocialGraphError as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "message": f"Unfollowed user {params.followee_id}"}


@mcp.tool()
async def list_followers(user_id: int, ctx: Context) -> dict[str, Any]:
    """List the users following a user, ordered by username.

    Returns:
        {success, users, count}
    """
    try:
        params = NeighboursParams(user_id=user_id)
    except ValidationError as e:
        return {"success": False, "error": str(e)}

    try:
        users = await _service(ctx).list_followers(params.user_id)
    except SocialGraphError as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "users": [u.model_dump() for u in users], "count": len(users)}


@mcp.tool()
async def list_following(user_id: int, ctx: Context) -> dict[str, Any]:
    """List the users a user follows, ordered by username.

    Returns:
        {success, users, count}
    """
    try:
        params = NeighboursParams(user_id=user_id)
    except ValidationError as e:
        return {"success": False, "error": str(e)}

    try:
        users = await _service(ctx).list_following(params.user_id)
    except SocialGraphError as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "users": [u.model_dump() for u in users], "count": len(users)}


# =============================================================================
# NOTIFICATIONS
# =============================================================================


@mcp.tool()
async def list_notifications(
    user_id: int,
    ctx: Context,
    unread_only: bool = False,
    limit: int = 50,
) -> dict[str, Any]:
    """List a user's follow/unfollow notifications, newest first.

    Args:
        user_id: Recipient
        unread_only: Only return notifications not yet marked read
        limit: Maximum number of notifications (1-500)

    Returns:
        {success, notifications, unread_count}
    """
    try:
        params = ListNotificationsParams(user_id=user_id, unread_only=unread_only, limit=limit)
    except ValidationError as e:
        return {"success": False, "error": str(e)}

    try:
        log = _log(ctx)
        events = await log.list_for_user(params.user_id)
        unread = await log.unread_count(params.user_id)
    except SocialGraphError as e:
        return {"success": False, "error": str(e)}

    if params.unread_only:
        events = [e for e in events if not e.is_read]

    notifications = []
    for event in events[: params.limit]:
        item = event.to_dict()
        item["created_at_iso"] = event.created_at_iso
        notifications.append(item)

    return {"success": True, "notifications": notifications, "unread_count": unread}


@mcp.tool()
async def mark_notification_read(notification_id: int, ctx: Context) -> dict[str, Any]:
    """Mark a notification as read.

    Returns:
        {success, message} or {success: false, error} if it does not exist.
    """
    try:
        params = MarkReadParams(notification_id=notification_id)
    except ValidationError as e:
        return {"success": False, "error": str(e)}

    try:
        await _log(ctx).mark_read(params.notification_id)
    except SocialGraphError as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "message": "Marked as read"}


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def main():
    """Main entry point for the MCP server."""
    port = int(os.getenv("SOCIAL_MCP_PORT", "8001"))
    host = os.getenv("SOCIAL_MCP_HOST", "0.0.0.0")

    transport_mode = os.getenv("SOCIAL_MCP_TRANSPORT", "http")
    logger.info(f"Starting Social Graph MCP server ({transport_mode})")

    if transport_mode == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport="http", host=host, port=port, stateless_http=True)


if __name__ == "__main__":
    main()
