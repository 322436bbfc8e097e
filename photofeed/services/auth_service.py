from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from photofeed.config import settings
from photofeed.models.user import User
from photofeed.db.session import get_db
from photofeed.api.errors import unauthorized

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

class Identity(BaseModel):
    """Authenticated subject as asserted by the identity provider"""
    subject: str
    name: str

class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    def verify_token(self, token: str) -> Optional[Identity]:
        """Verify a session token issued by the identity provider"""
        try:
            payload = jwt.decode(
                token,
                settings.identity_secret_key,
                algorithms=[settings.IDENTITY_ALGORITHM],
                audience=settings.IDENTITY_AUDIENCE,
                issuer=settings.IDENTITY_ISSUER,
                options={"verify_aud": settings.IDENTITY_AUDIENCE is not None},
            )
        except JWTError as e:
            logger.info(f"Rejected token: {e}")
            return None

        subject = payload.get("sub")
        if not subject:
            return None

        name = (
            payload.get("name")
            or payload.get("username")
            or payload.get("email")
            or subject
        )
        return Identity(subject=subject, name=name)

    async def get_user(self, subject: str) -> Optional[User]:
        stmt = select(User).where(User.clerk_id == subject)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def sync_user(self, identity: Identity) -> User:
        """Create the user row on first sight of an identity, refresh its name afterwards"""
        user = await self.get_user(identity.subject)

        if user is None:
            user = User(clerk_id=identity.subject, name=identity.name)
            self.db.add(user)
            try:
                await self.db.commit()
            except IntegrityError:
                # Another request synced the same identity first
                await self.db.rollback()
                user = await self.get_user(identity.subject)
                if user is None:
                    raise
            else:
                await self.db.refresh(user)
                logger.info(f"Synced new user {user.id} for identity {identity.subject}")
            return user

        if user.name != identity.name:
            user.name = identity.name
            await self.db.commit()
            await self.db.refresh(user)

        return user

async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> Optional[Identity]:
    """Dependency resolving the bearer token, None for anonymous or invalid tokens"""
    if credentials is None or not credentials.credentials:
        return None
    return AuthService(db).verify_token(credentials.credentials)

async def get_current_user(
    identity: Optional[Identity] = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Dependency to get the current authenticated user, syncing it on first use"""
    if identity is None:
        raise unauthorized()
    return await AuthService(db).sync_user(identity)

async def get_optional_user(
    identity: Optional[Identity] = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Dependency for read endpoints that personalise the response when signed in"""
    if identity is None:
        return None
    return await AuthService(db).get_user(identity.subject)
