from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from photofeed.schemas.user_schema import (
    UserResponse,
    UserProfileResponse,
    UserSearchResponse,
    UserSyncResponse,
)
from photofeed.services.user_service import UserService
from photofeed.services.follow_service import FollowService
from photofeed.services.auth_service import get_current_user, get_optional_user
from photofeed.api.errors import bad_request, not_found, server_error
from photofeed.db.session import get_db
from photofeed.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/search", response_model=UserSearchResponse)
async def search_users(
    q: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Search users by display name or identity subject"""
    if q is None or not q.strip():
        raise bad_request("A search query is required.")

    try:
        users = await UserService(db).search_users(q)
        return UserSearchResponse(data=[UserResponse.model_validate(user) for user in users])
    except Exception as e:
        logger.error(f"Search users error: {e}")
        raise server_error("Failed to search users.", e)

@router.post("/sync", response_model=UserSyncResponse)
async def sync_user(
    current_user: User = Depends(get_current_user)
):
    """Make sure the caller has a user row; the dependency does the syncing"""
    return UserSyncResponse(user=UserResponse.model_validate(current_user))

@router.get("/{clerk_id}", response_model=UserProfileResponse)
async def get_user_profile(
    clerk_id: str,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a user's profile statistics and the caller's relation to them"""
    try:
        stats = await UserService(db).get_user_stats(clerk_id)
        if not stats:
            raise not_found("User not found.")

        is_following = False
        is_own_profile = False
        if current_user:
            is_own_profile = current_user.id == stats.user_id
            if not is_own_profile:
                is_following = await FollowService(db).is_following(current_user.id, stats.user_id)

        return UserProfileResponse(
            user=stats,
            is_following=is_following,
            is_own_profile=is_own_profile
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get user profile error: {e}")
        raise server_error("Failed to fetch user profile.", e)
