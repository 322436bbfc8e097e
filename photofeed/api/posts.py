from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from photofeed.config import settings
from photofeed.schemas.post_schema import (
    Pagination,
    PostsResponse,
    PostCreateResponse,
    PostDetailResponse,
    PostDeleteResponse,
    PostInDB,
)
from photofeed.services.post_service import PostService
from photofeed.services.comment_service import CommentService
from photofeed.services.storage_service import StorageService
from photofeed.services.auth_service import get_current_user, get_optional_user
from photofeed.services.exceptions import StorageError
from photofeed.api.errors import bad_request, forbidden, not_found, server_error
from photofeed.db.session import get_db
from photofeed.models.user import User
from photofeed.utils.file_upload import validate_image_upload

logger = logging.getLogger(__name__)

router = APIRouter()

def get_storage() -> StorageService:
    return StorageService()

@router.get("", response_model=PostsResponse)
async def get_posts(
    limit: int = Query(settings.FEED_DEFAULT_LIMIT, ge=1),
    offset: int = Query(0, ge=0),
    user_id: Optional[int] = Query(None, alias="userId"),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a page of the feed, optionally only one user's posts"""
    limit = min(limit, settings.FEED_MAX_LIMIT)

    try:
        post_service = PostService(db)
        viewer_id = current_user.id if current_user else None

        posts, total = await post_service.list_posts(
            viewer_id=viewer_id,
            skip=offset,
            limit=limit,
            user_id=user_id
        )

        return PostsResponse(
            data=posts,
            pagination=Pagination(
                total=total,
                limit=limit,
                offset=offset,
                has_more=total > offset + limit
            )
        )
    except Exception as e:
        logger.error(f"Get posts error: {e}")
        raise server_error("Failed to fetch posts.", e)

@router.post("", response_model=PostCreateResponse)
async def create_post(
    file: Optional[UploadFile] = File(None),
    caption: Optional[str] = Form(None),
    form_user_id: Optional[str] = Form(None, alias="userId"),
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
    db: AsyncSession = Depends(get_db)
):
    """Create a new post: upload the image, then store its metadata"""
    owner_id = current_user.id
    owner = current_user.clerk_id

    if file is None or not file.filename:
        raise bad_request("An image file is required.")

    content = await file.read()
    upload_error = validate_image_upload(file.content_type, len(content))
    if upload_error:
        raise bad_request(upload_error)

    if caption is not None and len(caption) > settings.MAX_CAPTION_LENGTH:
        raise bad_request(f"Captions must be {settings.MAX_CAPTION_LENGTH} characters or fewer.")

    if form_user_id != owner:
        raise forbidden()

    object_path = storage.object_path(owner, file.filename)

    try:
        image_url = await storage.upload(object_path, content)
    except StorageError as e:
        logger.error(f"Storage upload error: {e}")
        raise server_error("Failed to upload the image.", e)

    try:
        post_service = PostService(db)
        post = await post_service.create_post(
            user_id=owner_id,
            image_url=image_url,
            image_path=object_path,
            caption=caption
        )
    except Exception as e:
        logger.error(f"Create post error: {e}")
        # Do not leave an orphaned blob behind
        try:
            await storage.remove(object_path)
        except StorageError as cleanup_error:
            logger.error(f"Failed to clean up {object_path}: {cleanup_error}")
        raise server_error("Failed to create post.", e)

    return PostCreateResponse(post=PostInDB.model_validate(post))

@router.get("/{post_id}", response_model=PostDetailResponse)
async def get_post(
    post_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a post with every comment on it"""
    try:
        post_service = PostService(db)
        viewer_id = current_user.id if current_user else None

        post = await post_service.get_post_with_stats(post_id, viewer_id)
        if not post:
            raise not_found("Post not found.")

        comments = await CommentService(db).get_post_comments(post_id)
        post.recent_comments = comments[:settings.RECENT_COMMENTS_LIMIT]

        return PostDetailResponse(post=post, comments=comments)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get post error: {e}")
        raise server_error("Failed to fetch post.", e)

@router.delete("/{post_id}", response_model=PostDeleteResponse)
async def delete_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
    db: AsyncSession = Depends(get_db)
):
    """Delete a post"""
    try:
        post_service = PostService(db)

        # Check if post exists and user owns it
        post = await post_service.get_post(post_id)
        if not post:
            raise not_found("Post not found.")

        if post.user_id != current_user.id:
            raise forbidden("You can only delete your own posts.")

        if post.image_path:
            try:
                await storage.remove(post.image_path)
            except StorageError as e:
                # The row still goes; a stray blob is preferable to a stuck post
                logger.error(f"Failed to delete image for post {post_id}: {e}")

        await post_service.delete_post(post)
        return PostDeleteResponse(message="Post deleted successfully.")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete post error: {e}")
        raise server_error("Failed to delete post.", e)
