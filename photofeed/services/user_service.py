from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, desc
import logging

from photofeed.config import settings
from photofeed.models.user import User
from photofeed.schemas.user_schema import UserStats
from photofeed.services.stats_service import user_stats_query

logger = logging.getLogger(__name__)

class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: int) -> Optional[User]:
        """Get a user by internal ID"""
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_stats(self, clerk_id: str) -> Optional[UserStats]:
        """Get a user's profile statistics by identity-provider subject"""
        stmt = user_stats_query().where(User.clerk_id == clerk_id)
        result = await self.db.execute(stmt)
        row = result.first()

        if not row:
            return None

        return UserStats.model_validate(dict(row._mapping))

    async def search_users(
        self,
        query: str,
        limit: int = settings.USER_SEARCH_LIMIT
    ) -> List[User]:
        """Case-insensitive substring search over display name and subject"""
        term = query.strip()

        stmt = select(User).where(
            or_(
                User.name.icontains(term, autoescape=True),
                User.clerk_id.icontains(term, autoescape=True)
            )
        ).order_by(
            desc(User.created_at)
        ).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
