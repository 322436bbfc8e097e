"""
Read-time aggregate views.

Counts are recomputed with correlated subqueries on every read and never
stored, so they cannot drift from the base tables.
"""
from typing import Optional
from sqlalchemy import select, func, and_, literal

from photofeed.models.post import Post
from photofeed.models.user import User
from photofeed.models.like import Like
from photofeed.models.comment import Comment
from photofeed.models.follow import Follow


def post_stats_query(viewer_id: Optional[int] = None):
    """Posts with author info, like/comment counts and the viewer's like state"""
    likes_count = (
        select(func.count(Like.id))
        .where(Like.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )
    comments_count = (
        select(func.count(Comment.id))
        .where(Comment.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )

    if viewer_id is not None:
        is_liked = (
            select(Like.id)
            .where(
                and_(
                    Like.post_id == Post.id,
                    Like.user_id == viewer_id
                )
            )
            .correlate(Post)
            .exists()
        )
    else:
        is_liked = literal(False)

    return select(
        Post.id.label("post_id"),
        Post.user_id,
        Post.image_url,
        Post.caption,
        Post.created_at,
        likes_count.label("likes_count"),
        comments_count.label("comments_count"),
        User.name,
        User.clerk_id,
        is_liked.label("is_liked"),
    ).join(
        User, Post.user_id == User.id
    )


def user_stats_query():
    """Users with post, follower and following counts"""
    posts_count = (
        select(func.count(Post.id))
        .where(Post.user_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    followers_count = (
        select(func.count(Follow.id))
        .where(Follow.following_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    following_count = (
        select(func.count(Follow.id))
        .where(Follow.follower_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )

    return select(
        User.id.label("user_id"),
        User.clerk_id,
        User.name,
        posts_count.label("posts_count"),
        followers_count.label("followers_count"),
        following_count.label("following_count"),
    )
