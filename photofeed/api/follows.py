from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from photofeed.schemas.follow_schema import (
    FollowRequest,
    FollowResponse,
    FollowCreateResponse,
    FollowDeleteResponse,
)
from photofeed.services.follow_service import FollowService
from photofeed.services.user_service import UserService
from photofeed.services.auth_service import get_current_user
from photofeed.services.exceptions import DuplicateError
from photofeed.api.errors import bad_request, conflict, not_found, server_error
from photofeed.db.session import get_db
from photofeed.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("", response_model=FollowCreateResponse)
async def follow_user(
    follow_data: FollowRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Follow a user"""
    follower_id = current_user.id

    if follow_data.following_id == follower_id:
        raise bad_request("You cannot follow yourself.")

    try:
        # Check if user exists
        target = await UserService(db).get_user(follow_data.following_id)
        if not target:
            raise not_found("User not found.")

        follow = await FollowService(db).create_follow(follower_id, follow_data.following_id)
        return FollowCreateResponse(follow=FollowResponse.model_validate(follow))
    except DuplicateError:
        raise conflict("You are already following this user.")
    except ValueError as e:
        raise bad_request(str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Follow user error: {e}")
        raise server_error("Failed to follow user.", e)

@router.delete("", response_model=FollowDeleteResponse)
async def unfollow_user(
    follow_data: FollowRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Unfollow a user"""
    try:
        deleted = await FollowService(db).delete_follow(current_user.id, follow_data.following_id)
        if not deleted:
            raise not_found("You are not following this user.")

        return FollowDeleteResponse()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unfollow user error: {e}")
        raise server_error("Failed to unfollow user.", e)
