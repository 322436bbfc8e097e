from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, func
import logging

from photofeed.config import settings
from photofeed.models.post import Post
from photofeed.models.like import Like
from photofeed.schemas.post_schema import PostWithUser
from photofeed.services.comment_service import CommentService
from photofeed.services.stats_service import post_stats_query

logger = logging.getLogger(__name__)

class PostService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.comment_service = CommentService(db)

    async def create_post(
        self,
        user_id: int,
        image_url: str,
        image_path: Optional[str] = None,
        caption: Optional[str] = None
    ) -> Post:
        """Create a new post"""
        post = Post(
            user_id=user_id,
            image_url=image_url,
            image_path=image_path,
            caption=caption or None
        )

        self.db.add(post)
        await self.db.commit()
        await self.db.refresh(post)

        logger.info(f"Created post {post.id} for user {user_id}")

        return post

    async def get_post(self, post_id: int) -> Optional[Post]:
        """Get a post by ID"""
        stmt = select(Post).where(Post.id == post_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_post_with_stats(
        self,
        post_id: int,
        viewer_id: Optional[int] = None
    ) -> Optional[PostWithUser]:
        """Get a post with author info, counts and the viewer's like state"""
        stmt = post_stats_query(viewer_id).where(Post.id == post_id)
        result = await self.db.execute(stmt)
        row = result.first()

        if not row:
            return None

        return PostWithUser.model_validate(dict(row._mapping))

    async def list_posts(
        self,
        viewer_id: Optional[int] = None,
        skip: int = 0,
        limit: int = settings.FEED_DEFAULT_LIMIT,
        user_id: Optional[int] = None
    ) -> Tuple[List[PostWithUser], int]:
        """Get a page of posts, newest first, with the latest comments of each"""
        count_stmt = select(func.count(Post.id))
        if user_id is not None:
            count_stmt = count_stmt.where(Post.user_id == user_id)
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = post_stats_query(viewer_id)
        if user_id is not None:
            stmt = stmt.where(Post.user_id == user_id)

        # Ties on created_at are broken by id so consecutive pages never overlap
        stmt = stmt.order_by(
            desc(Post.created_at),
            desc(Post.id)
        ).offset(skip).limit(limit)

        result = await self.db.execute(stmt)
        posts = [PostWithUser.model_validate(dict(row._mapping)) for row in result.all()]

        if posts:
            recent = await self.comment_service.get_recent_comments(
                [post.post_id for post in posts],
                per_post=settings.RECENT_COMMENTS_LIMIT
            )
            for post in posts:
                post.recent_comments = recent.get(post.post_id, [])

        return posts, total

    async def list_liked_posts(
        self,
        user_id: int,
        skip: int = 0,
        limit: int = settings.FEED_DEFAULT_LIMIT
    ) -> Tuple[List[PostWithUser], int]:
        """Get posts a user liked, most recently liked first"""
        count_stmt = select(func.count(Like.id)).where(Like.user_id == user_id)
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = post_stats_query(user_id).join(
            Like, Like.post_id == Post.id
        ).where(
            Like.user_id == user_id
        ).order_by(
            desc(Like.created_at),
            desc(Like.id)
        ).offset(skip).limit(limit)

        result = await self.db.execute(stmt)
        posts = [PostWithUser.model_validate(dict(row._mapping)) for row in result.all()]

        return posts, total

    async def delete_post(self, post: Post) -> None:
        """Delete a post; likes and comments go with it"""
        post_id = post.id

        await self.db.delete(post)
        await self.db.commit()

        logger.info(f"Deleted post {post_id}")
