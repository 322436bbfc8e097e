from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from photofeed.schemas.comment_schema import (
    CommentCreate,
    CommentDelete,
    CommentWithUser,
    CommentDeleteResponse,
)
from photofeed.services.comment_service import CommentService
from photofeed.services.post_service import PostService
from photofeed.services.auth_service import get_current_user
from photofeed.api.errors import forbidden, not_found, server_error
from photofeed.db.session import get_db
from photofeed.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("", response_model=CommentWithUser)
async def create_comment(
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a new comment on a post"""
    user_id = current_user.id

    try:
        # Check if post exists
        post = await PostService(db).get_post(comment_data.post_id)
        if not post:
            raise not_found("Post not found.")

        return await CommentService(db).create_comment(
            post_id=comment_data.post_id,
            user_id=user_id,
            content=comment_data.content
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create comment error: {e}")
        raise server_error("Failed to create comment.", e)

@router.delete("", response_model=CommentDeleteResponse)
async def delete_comment(
    comment_data: CommentDelete,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a comment"""
    try:
        comment_service = CommentService(db)

        # Check if comment exists and user owns it
        comment = await comment_service.get_comment(comment_data.comment_id)
        if not comment:
            raise not_found("Comment not found.")

        if comment.user_id != current_user.id:
            raise forbidden("You can only delete your own comments.")

        await comment_service.delete_comment(comment)
        return CommentDeleteResponse()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete comment error: {e}")
        raise server_error("Failed to delete comment.", e)
