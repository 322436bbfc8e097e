from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from photofeed.config import settings
from photofeed.schemas.like_schema import LikeRequest, LikeResponse, LikeMutationResponse
from photofeed.schemas.post_schema import LikedPostsResponse, Pagination
from photofeed.services.like_service import LikeService
from photofeed.services.post_service import PostService
from photofeed.services.auth_service import get_current_user
from photofeed.services.exceptions import DuplicateError
from photofeed.api.errors import conflict, not_found, server_error
from photofeed.db.session import get_db
from photofeed.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("", response_model=LikeMutationResponse)
async def like_post(
    like_data: LikeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Like a post"""
    user_id = current_user.id

    try:
        # Check if post exists
        post = await PostService(db).get_post(like_data.post_id)
        if not post:
            raise not_found("Post not found.")

        like = await LikeService(db).create_like(like_data.post_id, user_id)
        return LikeMutationResponse(like=LikeResponse.model_validate(like))
    except DuplicateError:
        raise conflict("You have already liked this post.")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Like post error: {e}")
        raise server_error("Failed to like post.", e)

@router.delete("", response_model=LikeMutationResponse)
async def unlike_post(
    like_data: LikeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Unlike a post"""
    try:
        removed = await LikeService(db).delete_like(like_data.post_id, current_user.id)
        if not removed:
            raise not_found("Like not found.")

        return LikeMutationResponse(like=removed)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unlike post error: {e}")
        raise server_error("Failed to unlike post.", e)

@router.get("/user", response_model=LikedPostsResponse)
async def get_liked_posts(
    limit: int = Query(settings.FEED_DEFAULT_LIMIT, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get posts the current user liked, most recent like first"""
    limit = min(limit, settings.FEED_MAX_LIMIT)

    try:
        posts, total = await PostService(db).list_liked_posts(
            user_id=current_user.id,
            skip=offset,
            limit=limit
        )

        return LikedPostsResponse(
            data=posts,
            pagination=Pagination(
                total=total,
                limit=limit,
                offset=offset,
                has_more=total > offset + limit
            )
        )
    except Exception as e:
        logger.error(f"Get liked posts error: {e}")
        raise server_error("Failed to fetch liked posts.", e)
