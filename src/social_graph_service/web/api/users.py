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
User and relationship endpoints for the HTTP interface.

Profiles carry follower/following counts derived from live edges. Follow is
idempotent; unfollowing a user that is not followed is a 400.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ...errors import SocialGraphError
from ...models.user import UserProfile, UserSummary
from ...services.relationship_service import RelationshipService
from ..dependencies import get_relationship_service
from ..errors import to_http_exception

router = APIRouter()
logger = logging.getLogger(__name__)


# Request/Response Models
class UserCreateRequest(BaseModel):
    """Request model for registering a user."""

    name: str | None = Field(None, description="Display name")
    username: str | None = Field(None, description="Unique username (case-insensitive)")
    email: str | None = Field(None, description="Contact email")
    password: str | None = Field(None, description="Initial password, handed to the auth service")
    bio: str | None = Field(None, description="Optional biography")


class UserUpdateRequest(BaseModel):
    """Request model for updating a user's profile."""

    name: str | None = Field(None, description="Display name")
    username: str | None = Field(None, description="Unique username (case-insensitive)")
    email: str | None = Field(None, description="Contact email (unchanged when omitted)")
    bio: str | None = Field(None, description="Biography (unchanged when omitted)")


class UserResponse(BaseModel):
    """Response model for a user profile with counts."""

    id: int
    username: str
    name: str
    email: str | None
    bio: str
    joined: str | None
    followers: int
    following: int


class UserSummaryResponse(BaseModel):
    """Response model for follower/following listings."""

    id: int
    username: str
    name: str
    bio: str


class FollowResponse(BaseModel):
    """Response model for follow/unfollow acknowledgements."""

    success: bool
    message: str


class FollowStatusResponse(BaseModel):
    """Response model for follow-edge checks."""

    follower_id: int
    followee_id: int
    following: bool


def profile_to_response(profile: UserProfile) -> UserResponse:
    """Convert a UserProfile to its HTTP response."""
    return UserResponse(
        id=profile.id,
        username=profile.username,
        name=profile.name,
        email=profile.email,
        bio=profile.bio,
        joined=profile.joined_iso,
        followers=profile.followers,
        following=profile.following,
    )


def summary_to_response(summary: UserSummary) -> UserSummaryResponse:
    return UserSummaryResponse(id=summary.id, username=summary.username, name=summary.name, bio=summary.bio)


@router.get("/users", response_model=list[UserResponse], tags=["users"])
async def list_users(service: RelationshipService = Depends(get_relationship_service)):
    """List all users with follower/following counts, ordered by id."""
    try:
        profiles = await service.list_users()
        return [profile_to_response(p) for p in profiles]
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Failed to list users: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to list users. Please try again.") from e


@router.post("/users", response_model=UserResponse, status_code=201, tags=["users"])
async def create_user(
    request: UserCreateRequest,
    service: RelationshipService = Depends(get_relationship_service),
):
    """
    Register a user.

    name, username, email and password are required. The password is
    validated here but credentials are owned by the authentication service.
    """
    if request.password is None or not request.password.strip():
        raise HTTPException(status_code=400, detail="password is required")

    try:
        profile = await service.create_user(
            username=request.username,
            name=request.name,
            email=request.email,
            bio=request.bio,
        )
        return profile_to_response(profile)
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Failed to create user: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create user. Please try again.") from e


@router.get("/users/by-username/{username}", response_model=UserResponse, tags=["users"])
async def get_user_by_username(
    username: str,
    service: RelationshipService = Depends(get_relationship_service),
):
    """Case-insensitive username lookup."""
    try:
        return profile_to_response(await service.get_user_by_username(username))
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get user: {str(e)}") from e


@router.get("/users/{user_id}", response_model=UserResponse, tags=["users"])
async def get_user(
    user_id: int,
    service: RelationshipService = Depends(get_relationship_service),
):
    """Get a user with follower/following counts."""
    try:
        return profile_to_response(await service.get_profile(user_id))
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get user: {str(e)}") from e


@router.put("/users/{user_id}", response_model=UserResponse, tags=["users"])
async def update_user(
    user_id: int,
    request: UserUpdateRequest,
    service: RelationshipService = Depends(get_relationship_service),
):
    """
    Update a user's profile.

    name and username are required; email and bio keep their stored values
    when omitted. Follow relationships are untouched.
    """
    try:
        profile = await service.update_profile(
            user_id,
            username=request.username,
            name=request.name,
            email=request.email,
            bio=request.bio,
        )
        return profile_to_response(profile)
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Failed to update user {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update user. Please try again.") from e


@router.post("/users/{user_id}/follow/{target_id}", response_model=FollowResponse, tags=["relationships"])
async def follow_user(
    user_id: int,
    target_id: int,
    service: RelationshipService = Depends(get_relationship_service),
):
    """
    Follow another user.

    Following a user that is already followed succeeds without change.
    """
    try:
        created = await service.follow(user_id, target_id)
        message = f"Now following user {target_id}" if created else f"Already following user {target_id}"
        return FollowResponse(success=True, message=message)
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Failed to follow user {target_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to follow user. Please try again.") from e


@router.post("/users/{user_id}/unfollow/{target_id}", response_model=FollowResponse, tags=["relationships"])
async def unfollow_user(
    user_id: int,
    target_id: int,
    service: RelationshipService = Depends(get_relationship_service),
):
    """
    Unfollow a user.

    Returns 400 when the user is not currently followed.
    """
    try:
        await service.unfollow(user_id, target_id)
        return FollowResponse(success=True, message=f"Unfollowed user {target_id}")
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Failed to unfollow user {target_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to unfollow user. Please try again.") from e


@router.get("/users/{user_id}/following/{target_id}", response_model=FollowStatusResponse, tags=["relationships"])
async def get_follow_status(
    user_id: int,
    target_id: int,
    service: RelationshipService = Depends(get_relationship_service),
):
    """Check whether ``user_id`` follows ``target_id``."""
    try:
        following = await service.is_following(user_id, target_id)
        return FollowStatusResponse(follower_id=user_id, followee_id=target_id, following=following)
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to check follow status: {str(e)}") from e


@router.get("/users/{user_id}/followers", response_model=list[UserSummaryResponse], tags=["relationships"])
async def list_followers(
    user_id: int,
    service: RelationshipService = Depends(get_relationship_service),
):
    """Users following ``user_id``, ordered by username."""
    try:
        return [summary_to_response(s) for s in await service.list_followers(user_id)]
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list followers: {str(e)}") from e


@router.get("/users/{user_id}/following", response_model=list[UserSummaryResponse], tags=["relationships"])
async def list_following(
    user_id: int,
    service: RelationshipService = Depends(get_relationship_service),
):
    """Users ``user_id`` follows, ordered by username."""
    try:
        return [summary_to_response(s) for s in await service.list_following(user_id)]
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to list following: {str(e)}") from e
