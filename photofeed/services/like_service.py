from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
import logging

from photofeed.models.like import Like
from photofeed.schemas.like_schema import LikeResponse
from photofeed.services.exceptions import DuplicateError

logger = logging.getLogger(__name__)

class LikeService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_like(self, post_id: int, user_id: int) -> Like:
        """Create a like; the (post, user) unique constraint rejects duplicates"""
        like = Like(post_id=post_id, user_id=user_id)
        self.db.add(like)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info(f"Duplicate like: user={user_id}, post={post_id}")
            raise DuplicateError("Post already liked") from e

        await self.db.refresh(like)

        logger.info(f"Created like: user={user_id}, post={post_id}")

        return like

    async def get_like(self, post_id: int, user_id: int) -> Optional[Like]:
        stmt = select(Like).where(
            and_(
                Like.post_id == post_id,
                Like.user_id == user_id
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_like(self, post_id: int, user_id: int) -> Optional[LikeResponse]:
        """Delete a like and return what was removed, None when there was nothing to remove"""
        like = await self.get_like(post_id, user_id)

        if not like:
            return None

        removed = LikeResponse.model_validate(like)

        await self.db.delete(like)
        await self.db.commit()

        logger.info(f"Deleted like: user={user_id}, post={post_id}")

        return removed
