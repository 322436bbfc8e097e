"""
View models.

Pure functions from application state to plain, render-ready models. Nothing
here talks to the network or mutates the store.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from photofeed.client.store import FeedState
from photofeed.schemas.post_schema import PostWithUser
from photofeed.schemas.user_schema import UserProfileResponse

CAPTION_PREVIEW_LENGTH = 100
GRID_COLUMNS = 3


class FeedStatus(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    READY = "ready"


class CaptionPreview(BaseModel):
    text: str
    truncated: bool
    expandable: bool
    toggle_label: Optional[str] = None


class CommentLine(BaseModel):
    comment_id: int
    author_name: str
    content: str
    can_delete: bool


class PostCard(BaseModel):
    post_id: int
    author_name: str
    author_initial: str
    profile_path: str
    image_url: str
    time_label: str
    is_liked: bool
    like_label: str
    caption: Optional[CaptionPreview] = None
    comments_link: Optional[str] = None
    recent_comments: List[CommentLine] = []
    show_menu: bool = False


class GridTile(BaseModel):
    post_id: int
    image_url: str
    likes_count: int
    comments_count: int


class ProfileHeader(BaseModel):
    name: str
    posts_label: str
    followers_label: str
    following_label: str
    is_own_profile: bool
    show_follow_button: bool
    follow_label: Optional[str] = None


class FeedView(BaseModel):
    status: FeedStatus
    cards: List[PostCard] = []
    message: Optional[str] = None
    show_load_more: bool = False
    show_end_of_feed: bool = False


def _as_utc(moment: datetime) -> datetime:
    # The server stores naive UTC timestamps
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def relative_time(moment: datetime, now: Optional[datetime] = None) -> str:
    moment = _as_utc(moment)
    now = _as_utc(now) if now else datetime.now(timezone.utc)

    minutes = int((now - moment).total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{_plural(minutes, 'minute')} ago"

    hours = minutes // 60
    if hours < 24:
        return f"{_plural(hours, 'hour')} ago"

    days = hours // 24
    if days < 7:
        return f"{_plural(days, 'day')} ago"

    return moment.strftime("%Y-%m-%d")


def caption_preview(caption: str, expanded: bool = False, length: int = CAPTION_PREVIEW_LENGTH) -> CaptionPreview:
    if len(caption) <= length:
        return CaptionPreview(text=caption, truncated=False, expandable=False)

    if expanded:
        return CaptionPreview(text=caption, truncated=False, expandable=True, toggle_label="less")

    return CaptionPreview(
        text=f"{caption[:length]}...",
        truncated=True,
        expandable=True,
        toggle_label="more",
    )


def like_label(count: int) -> str:
    return f"{count:,} like" if count == 1 else f"{count:,} likes"


def comments_link(count: int) -> Optional[str]:
    if count <= 0:
        return None
    if count == 1:
        return "View 1 comment"
    return f"View all {count:,} comments"


def format_count(count: int) -> str:
    """Compact counter: 999, 1.2K, 3.4M"""
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return str(count)


def post_card(
    post: PostWithUser,
    viewer_id: Optional[int] = None,
    caption_expanded: bool = False,
    now: Optional[datetime] = None
) -> PostCard:
    return PostCard(
        post_id=post.post_id,
        author_name=post.name,
        author_initial=post.name[:1].upper(),
        profile_path=f"/profile/{post.clerk_id}",
        image_url=post.image_url,
        time_label=relative_time(post.created_at, now),
        is_liked=post.is_liked,
        like_label=like_label(post.likes_count),
        caption=caption_preview(post.caption, caption_expanded) if post.caption else None,
        comments_link=comments_link(post.comments_count),
        recent_comments=[
            CommentLine(
                comment_id=comment.id,
                author_name=comment.name,
                content=comment.content,
                can_delete=viewer_id is not None and comment.user_id == viewer_id,
            )
            for comment in post.recent_comments
        ],
        show_menu=viewer_id is not None and post.user_id == viewer_id,
    )


def profile_header(profile: UserProfileResponse) -> ProfileHeader:
    user = profile.user
    return ProfileHeader(
        name=user.name,
        posts_label=f"{format_count(user.posts_count)} posts",
        followers_label=f"{format_count(user.followers_count)} followers",
        following_label=f"{format_count(user.following_count)} following",
        is_own_profile=profile.is_own_profile,
        show_follow_button=not profile.is_own_profile,
        follow_label=None if profile.is_own_profile else ("Following" if profile.is_following else "Follow"),
    )


def post_grid(posts: List[PostWithUser], columns: int = GRID_COLUMNS) -> List[List[GridTile]]:
    tiles = [
        GridTile(
            post_id=post.post_id,
            image_url=post.image_url,
            likes_count=post.likes_count,
            comments_count=post.comments_count,
        )
        for post in posts
    ]
    return [tiles[start:start + columns] for start in range(0, len(tiles), columns)]


def empty_message(user_filtered: bool) -> str:
    if user_filtered:
        return "This user hasn't posted anything yet."
    return "Share your first photo."


def feed_status(state: FeedState) -> FeedStatus:
    if state.posts:
        return FeedStatus.READY
    if state.error is not None:
        return FeedStatus.ERROR
    if state.is_loading or not state.loaded:
        return FeedStatus.LOADING
    return FeedStatus.EMPTY


def feed_view(
    state: FeedState,
    viewer_id: Optional[int] = None,
    user_filtered: bool = False,
    now: Optional[datetime] = None
) -> FeedView:
    status = feed_status(state)

    if status == FeedStatus.ERROR:
        return FeedView(status=status, message=state.error.message)
    if status == FeedStatus.LOADING:
        return FeedView(status=status)
    if status == FeedStatus.EMPTY:
        return FeedView(status=status, message=empty_message(user_filtered))

    return FeedView(
        status=status,
        cards=[post_card(post, viewer_id, now=now) for post in state.posts],
        message=state.error.message if state.error else None,
        show_load_more=state.has_more and not state.is_loading,
        show_end_of_feed=not state.has_more and state.error is None,
    )
