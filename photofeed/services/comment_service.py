from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, func
import logging

from photofeed.models.comment import Comment
from photofeed.models.user import User
from photofeed.schemas.comment_schema import CommentWithUser

logger = logging.getLogger(__name__)

class CommentService:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _with_author(self):
        return select(
            Comment.id,
            Comment.post_id,
            Comment.user_id,
            Comment.content,
            Comment.created_at,
            Comment.updated_at,
            User.name,
            User.clerk_id,
        ).join(
            User, Comment.user_id == User.id
        )

    async def create_comment(
        self,
        post_id: int,
        user_id: int,
        content: str
    ) -> CommentWithUser:
        """Create a new comment and return it with its author"""
        comment = Comment(
            post_id=post_id,
            user_id=user_id,
            content=content
        )

        self.db.add(comment)
        await self.db.commit()
        await self.db.refresh(comment)

        logger.info(f"Created comment {comment.id} by user {user_id} on post {post_id}")

        return await self.get_comment_with_user(comment.id)

    async def get_comment(self, comment_id: int) -> Optional[Comment]:
        """Get a comment by ID"""
        stmt = select(Comment).where(Comment.id == comment_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_comment_with_user(self, comment_id: int) -> Optional[CommentWithUser]:
        stmt = self._with_author().where(Comment.id == comment_id)
        result = await self.db.execute(stmt)
        row = result.first()
        return CommentWithUser.model_validate(dict(row._mapping)) if row else None

    async def get_post_comments(self, post_id: int) -> List[CommentWithUser]:
        """All comments of a post, newest first"""
        stmt = self._with_author().where(
            Comment.post_id == post_id
        ).order_by(
            desc(Comment.created_at),
            desc(Comment.id)
        )
        result = await self.db.execute(stmt)
        return [CommentWithUser.model_validate(dict(row._mapping)) for row in result.all()]

    async def get_recent_comments(
        self,
        post_ids: List[int],
        per_post: int = 2
    ) -> Dict[int, List[CommentWithUser]]:
        """The newest comments of each post, keyed by post id"""
        if not post_ids:
            return {}

        rank = func.row_number().over(
            partition_by=Comment.post_id,
            order_by=(desc(Comment.created_at), desc(Comment.id))
        ).label("comment_rank")

        ranked = self._with_author().add_columns(rank).where(
            Comment.post_id.in_(post_ids)
        ).subquery()

        stmt = select(ranked).where(
            ranked.c.comment_rank <= per_post
        ).order_by(
            ranked.c.post_id,
            ranked.c.comment_rank
        )

        result = await self.db.execute(stmt)

        grouped: Dict[int, List[CommentWithUser]] = {}
        for row in result.all():
            comment = CommentWithUser.model_validate(dict(row._mapping))
            grouped.setdefault(comment.post_id, []).append(comment)

        return grouped

    async def delete_comment(self, comment: Comment) -> None:
        """Delete a comment"""
        comment_id = comment.id

        await self.db.delete(comment)
        await self.db.commit()

        logger.info(f"Deleted comment {comment_id}")
