from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from photofeed.schemas.comment_schema import CommentWithUser

class PostInDB(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    image_url: str
    caption: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class PostWithUser(BaseModel):
    """A post as the feed renders it: stats, author and the viewer's like state"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    post_id: int
    user_id: int
    image_url: str
    caption: Optional[str] = None
    created_at: datetime
    likes_count: int = 0
    comments_count: int = 0
    name: str
    clerk_id: str
    is_liked: bool = Field(False, alias="isLiked")
    recent_comments: List[CommentWithUser] = Field(default_factory=list, alias="recentComments")

class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    limit: int
    offset: int
    has_more: bool = Field(..., alias="hasMore")

class PostsResponse(BaseModel):
    data: List[PostWithUser]
    pagination: Pagination

class LikedPostsResponse(PostsResponse):
    success: bool = True

class PostCreateResponse(BaseModel):
    success: bool = True
    post: PostInDB

class PostDetailResponse(BaseModel):
    post: PostWithUser
    comments: List[CommentWithUser]

class PostDeleteResponse(BaseModel):
    success: bool = True
    message: str
