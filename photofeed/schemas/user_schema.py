from pydantic import BaseModel, ConfigDict, Field
from typing import List
from datetime import datetime

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    clerk_id: str
    name: str
    created_at: datetime

class UserStats(BaseModel):
    """User statistics, recomputed on every read"""
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    clerk_id: str
    name: str
    posts_count: int = 0
    followers_count: int = 0
    following_count: int = 0

class UserProfileResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: UserStats
    is_following: bool = Field(False, alias="isFollowing")
    is_own_profile: bool = Field(False, alias="isOwnProfile")

class UserSearchResponse(BaseModel):
    success: bool = True
    data: List[UserResponse]

class UserSyncResponse(BaseModel):
    success: bool = True
    user: UserResponse
