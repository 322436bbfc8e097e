"""
Models package for Photofeed
"""
from photofeed.db.base import Base, BaseModel
from photofeed.models.user import User
from photofeed.models.post import Post
from photofeed.models.comment import Comment
from photofeed.models.like import Like
from photofeed.models.follow import Follow

__all__ = [
    'Base',
    'BaseModel',
    'User',
    'Post',
    'Comment',
    'Like',
    'Follow',
]
