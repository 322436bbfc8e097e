from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
import logging

from photofeed.models.follow import Follow
from photofeed.services.exceptions import DuplicateError

logger = logging.getLogger(__name__)

class FollowService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_follow(self, follower_id: int, following_id: int) -> Follow:
        """Create a new follow relationship"""
        if follower_id == following_id:
            raise ValueError("Users cannot follow themselves")

        follow = Follow(
            follower_id=follower_id,
            following_id=following_id
        )
        self.db.add(follow)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info(f"Duplicate follow: {follower_id} -> {following_id}")
            raise DuplicateError("Already following this user") from e

        await self.db.refresh(follow)

        logger.info(f"Created follow: {follower_id} -> {following_id}")

        return follow

    async def get_follow_relationship(
        self,
        follower_id: int,
        following_id: int
    ) -> Optional[Follow]:
        """Get follow relationship between two users"""
        stmt = select(Follow).where(
            and_(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def is_following(self, follower_id: int, following_id: int) -> bool:
        return await self.get_follow_relationship(follower_id, following_id) is not None

    async def delete_follow(self, follower_id: int, following_id: int) -> bool:
        """Delete a follow relationship; False when it did not exist"""
        follow = await self.get_follow_relationship(follower_id, following_id)

        if not follow:
            return False

        await self.db.delete(follow)
        await self.db.commit()

        logger.info(f"Deleted follow: {follower_id} -> {following_id}")

        return True
