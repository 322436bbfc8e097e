from pydantic import BaseModel, ConfigDict, field_validator
from datetime import datetime

from photofeed.config import settings

class CommentCreate(BaseModel):
    post_id: int
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, value: str) -> str:
        content = value.strip()
        if not content:
            raise ValueError("post_id and content are required")
        if len(content) > settings.MAX_COMMENT_LENGTH:
            raise ValueError(f"Comments must be {settings.MAX_COMMENT_LENGTH} characters or fewer")
        return content

class CommentDelete(BaseModel):
    comment_id: int

class CommentWithUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    user_id: int
    content: str
    created_at: datetime
    updated_at: datetime
    name: str
    clerk_id: str

class CommentDeleteResponse(BaseModel):
    success: bool = True

