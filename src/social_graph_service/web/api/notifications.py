# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
Notification API endpoints.

Provides endpoints to:
- Record a follow/unfollow notification (used by remote emitters)
- List a user's notifications, newest first
- Mark a notification read and count unread ones
- Prune read notifications past the retention window

Payloads use camelCase keys.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...config import settings
from ...errors import SocialGraphError
from ...models.notification import NotificationEvent, NotificationKind
from ...storage.notification_log import NotificationLog
from ..dependencies import get_notification_log
from ..errors import to_http_exception

router = APIRouter()
logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NotificationCreateRequest(CamelModel):
    """Request model for recording a notification."""

    recipient_id: int = Field(..., description="User receiving the notification")
    actor_id: int = Field(..., description="User who followed/unfollowed")
    kind: str | None = Field(None, description="'follow' or 'unfollow'")
    actor_username: str = Field("", description="Actor's username at event time")


class NotificationResponse(CamelModel):
    """Response model for a stored notification."""

    id: int
    recipient_id: int
    actor_id: int
    kind: str
    actor_username: str
    created_at: str
    is_read: bool


class UnreadCountResponse(CamelModel):
    unread_count: int


class CleanupResponse(CamelModel):
    deleted_notifications: int


class MarkReadResponse(BaseModel):
    success: bool
    message: str


def event_to_response(event: NotificationEvent) -> NotificationResponse:
    """Convert a NotificationEvent to its HTTP response."""
    return NotificationResponse(
        id=event.id,
        recipient_id=event.recipient_id,
        actor_id=event.actor_id,
        kind=event.kind.value,
        actor_username=event.actor_username,
        created_at=event.created_at_iso,
        is_read=event.is_read,
    )


@router.post("/notifications", response_model=NotificationResponse, tags=["notifications"])
async def create_notification(
    request: NotificationCreateRequest,
    log: NotificationLog = Depends(get_notification_log),
):
    """Record a follow/unfollow notification."""
    if request.kind is None or not request.kind.strip():
        raise HTTPException(status_code=400, detail="kind is required")
    try:
        kind = NotificationKind(request.kind.strip().lower())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Unknown notification kind: {request.kind}") from e

    try:
        event = await log.append(
            NotificationEvent(
                recipient_id=request.recipient_id,
                actor_id=request.actor_id,
                kind=kind,
                actor_username=request.actor_username,
            )
        )
        return event_to_response(event)
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error creating notification: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("/notifications/user/{user_id}", response_model=list[NotificationResponse], tags=["notifications"])
async def list_user_notifications(
    user_id: int,
    log: NotificationLog = Depends(get_notification_log),
):
    """A user's notifications, newest first."""
    try:
        return [event_to_response(e) for e in await log.list_for_user(user_id)]
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error fetching notifications for user {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.put("/notifications/{notification_id}/read", response_model=MarkReadResponse, tags=["notifications"])
async def mark_notification_read(
    notification_id: int,
    log: NotificationLog = Depends(get_notification_log),
):
    """Mark a notification as read."""
    try:
        await log.mark_read(notification_id)
        return MarkReadResponse(success=True, message="Marked as read")
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error marking notification {notification_id} read: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get(
    "/notifications/user/{user_id}/unread-count",
    response_model=UnreadCountResponse,
    tags=["notifications"],
)
async def get_unread_count(
    user_id: int,
    log: NotificationLog = Depends(get_notification_log),
):
    """Number of unread notifications for a user."""
    try:
        return UnreadCountResponse(unread_count=await log.unread_count(user_id))
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error counting unread notifications for user {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.delete("/notifications/cleanup", response_model=CleanupResponse, tags=["notifications"])
async def cleanup_notifications(
    max_age_days: int | None = Query(None, alias="maxAgeDays", ge=0, description="Defaults to the retention setting"),
    log: NotificationLog = Depends(get_notification_log),
):
    """
    Delete read notifications older than the retention window.

    Unread notifications are kept regardless of age.
    """
    days = max_age_days if max_age_days is not None else settings.notifications.retention_days
    try:
        deleted = await log.prune(days)
        return CleanupResponse(deleted_notifications=deleted)
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error cleaning up notifications: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error") from e
