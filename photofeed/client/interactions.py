"""
Optimistic interactions.

Every mutation runs the same protocol: snapshot the affected entity, apply
the change locally through the store, send the request, then either reconcile
with the server's answer or revert its own change and surface the error.
Reverting touches only the fields the mutation changed, on the post as it is
now, so concurrent interactions on the same post keep their effects.
A second invocation on the same control while the first is outstanding is
dropped, never queued.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Hashable, List, Optional, Set
import asyncio
import itertools
import logging

from pydantic import BaseModel, ConfigDict

from photofeed.config import settings
from photofeed.client.errors import (
    ApiClientError,
    DEFAULT_MESSAGES,
    ErrorInfo,
    ErrorKind,
    log_error,
)
from photofeed.client.feed import FeedPaginator
from photofeed.client.navigator import PostDetailNavigator
from photofeed.client.store import (
    CloseDetail,
    InsertPost,
    ProfileLoaded,
    RemovePost,
    ReplacePost,
    SetDetailComments,
    ShowNotice,
    Store,
)
from photofeed.client.transport import ApiClient
from photofeed.schemas.comment_schema import CommentWithUser
from photofeed.schemas.post_schema import PostDetailResponse, PostInDB, PostWithUser
from photofeed.schemas.user_schema import UserProfileResponse, UserResponse
from photofeed.utils.file_upload import validate_image_upload

logger = logging.getLogger(__name__)


class InteractionState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Interaction:
    """One optimistic mutation and where it is in its lifecycle"""

    def __init__(self, key: Hashable):
        self.key = key
        self.state = InteractionState.IDLE
        self.snapshot: Any = None
        self.error: Optional[ErrorInfo] = None

    def begin(self, snapshot: Any) -> None:
        self._transition(InteractionState.IDLE, InteractionState.PENDING)
        self.snapshot = snapshot

    def commit(self) -> None:
        self._transition(InteractionState.PENDING, InteractionState.COMMITTED)

    def roll_back(self, error: Optional[ErrorInfo] = None) -> None:
        self._transition(InteractionState.PENDING, InteractionState.ROLLED_BACK)
        self.error = error

    def _transition(self, expected: InteractionState, target: InteractionState) -> None:
        if self.state != expected:
            raise RuntimeError(f"Interaction {self.key} cannot go from {self.state.value} to {target.value}")
        self.state = target


class PostSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    post: PostWithUser
    detail: Optional[PostDetailResponse] = None


def _bump(count: int, step: int) -> int:
    return max(0, count + step)


def _newest_first(comments: List[CommentWithUser]) -> List[CommentWithUser]:
    # Unsaved placeholders first, newest first; saved comments by descending id
    return sorted(comments, key=lambda comment: (comment.id < 0, abs(comment.id)), reverse=True)


class InteractionController:
    def __init__(
        self,
        store: Store,
        api: ApiClient,
        viewer: Optional[UserResponse] = None,
        navigator: Optional[PostDetailNavigator] = None
    ):
        self.store = store
        self.api = api
        self.viewer = viewer
        self.navigator = navigator
        self._in_flight: Set[Hashable] = set()
        self._temp_ids = itertools.count(1)

    def is_in_flight(self, key: Hashable) -> bool:
        return key in self._in_flight

    async def _run(
        self,
        key: Hashable,
        context: str,
        snapshot: Callable[[], Any],
        apply: Callable[[Any], None],
        send: Callable[[], Awaitable[Any]],
        reconcile: Callable[[Any, Any], None],
        restore: Callable[[Any], None]
    ) -> Optional[Interaction]:
        if key in self._in_flight:
            logger.debug(f"Dropped {context}: {key} is already in flight")
            return None

        interaction = Interaction(key)
        self._in_flight.add(key)
        try:
            interaction.begin(snapshot())
            apply(interaction.snapshot)

            try:
                result = await send()
            except asyncio.CancelledError:
                restore(interaction.snapshot)
                interaction.roll_back()
                raise
            except ApiClientError as e:
                restore(interaction.snapshot)
                interaction.roll_back(e.info)
                self._notify(e.info, context)
                return interaction

            reconcile(interaction.snapshot, result)
            interaction.commit()
            return interaction
        finally:
            self._in_flight.discard(key)

    # Post snapshots

    def _post_snapshot(self, post_id: int) -> Optional[PostSnapshot]:
        state = self.store.state
        index = state.index_of(post_id)
        if index is None:
            return None
        detail = state.detail if state.detail and state.detail.post.post_id == post_id else None
        return PostSnapshot(index=index, post=state.posts[index], detail=detail)

    def _current_post(self, post_id: int) -> Optional[PostWithUser]:
        return self.store.state.get_post(post_id)

    def _detail_comments(self, post_id: int) -> Optional[List[CommentWithUser]]:
        detail = self.store.state.detail
        if detail is None or detail.post.post_id != post_id:
            return None
        return list(detail.comments)

    def _update_post(self, post_id: int, **changes: Callable[[PostWithUser], Any]) -> None:
        """Rewrite fields of the post as it is now, leaving everything else alone"""
        current = self._current_post(post_id)
        if current is None:
            return
        self.store.dispatch(ReplacePost(post=current.model_copy(update={
            field: change(current) for field, change in changes.items()
        })))

    # Likes

    async def toggle_like(self, post_id: int) -> Optional[Interaction]:
        snapshot = self._post_snapshot(post_id)
        if snapshot is None:
            logger.debug(f"Ignored like toggle for unknown post {post_id}")
            return None

        liking = not snapshot.post.is_liked
        delta = _bump(snapshot.post.likes_count, 1 if liking else -1) - snapshot.post.likes_count

        def apply(snap: PostSnapshot) -> None:
            self._update_post(
                post_id,
                is_liked=lambda post: liking,
                likes_count=lambda post: post.likes_count + delta,
            )

        async def send():
            if liking:
                return await self.api.like(post_id)
            return await self.api.unlike(post_id)

        def reconcile(snap: PostSnapshot, result) -> None:
            current = self._current_post(post_id)
            if current is not None and current.is_liked != liking:
                self.store.dispatch(ReplacePost(post=current.model_copy(update={"is_liked": liking})))

        def restore(snap: PostSnapshot) -> None:
            self._update_post(
                post_id,
                is_liked=lambda post: snap.post.is_liked,
                likes_count=lambda post: _bump(post.likes_count, -delta),
            )

        return await self._run(
            ("like", post_id), "toggle like",
            lambda: snapshot, apply, send, reconcile, restore
        )

    # Comments

    def _placeholder_comment(self, post_id: int, content: str) -> CommentWithUser:
        # Naive UTC, like the server's timestamps
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        return CommentWithUser(
            id=-next(self._temp_ids),
            post_id=post_id,
            user_id=self.viewer.id if self.viewer else 0,
            content=content,
            created_at=now,
            updated_at=now,
            name=self.viewer.name if self.viewer else "",
            clerk_id=self.viewer.clerk_id if self.viewer else "",
        )

    async def create_comment(self, post_id: int, content: str) -> Optional[Interaction]:
        content = content.strip()
        if not content:
            return None

        snapshot = self._post_snapshot(post_id)
        if snapshot is None:
            logger.debug(f"Ignored comment for unknown post {post_id}")
            return None

        placeholder = self._placeholder_comment(post_id, content)
        limit = settings.RECENT_COMMENTS_LIMIT

        def apply(snap: PostSnapshot) -> None:
            self._update_post(
                post_id,
                comments_count=lambda post: post.comments_count + 1,
                recent_comments=lambda post: ([placeholder] + list(post.recent_comments))[:limit],
            )
            comments = self._detail_comments(post_id)
            if comments is not None:
                self.store.dispatch(SetDetailComments(post_id=post_id, comments=[placeholder] + comments))

        def swap(comments: List[CommentWithUser], saved: CommentWithUser) -> List[CommentWithUser]:
            return [saved if comment.id == placeholder.id else comment for comment in comments]

        def reconcile(snap: PostSnapshot, saved: CommentWithUser) -> None:
            self._update_post(post_id, recent_comments=lambda post: swap(post.recent_comments, saved))
            comments = self._detail_comments(post_id)
            if comments is not None:
                self.store.dispatch(SetDetailComments(post_id=post_id, comments=swap(comments, saved)))

        def without_placeholder(post: PostWithUser) -> List[CommentWithUser]:
            comments = self._detail_comments(post_id)
            if comments is not None:
                return comments[:limit]
            recent = [comment for comment in post.recent_comments if comment.id != placeholder.id]
            # Bring back the comment the placeholder pushed out of the preview
            known = {comment.id for comment in recent}
            pushed_out = [
                comment for comment in snapshot.post.recent_comments[limit - 1:limit]
                if comment.id not in known
            ]
            return _newest_first(recent + pushed_out)[:limit]

        def restore(snap: PostSnapshot) -> None:
            comments = self._detail_comments(post_id)
            if comments is not None:
                self.store.dispatch(SetDetailComments(
                    post_id=post_id,
                    comments=[comment for comment in comments if comment.id != placeholder.id]
                ))
            self._update_post(
                post_id,
                comments_count=lambda post: _bump(post.comments_count, -1),
                recent_comments=without_placeholder,
            )

        return await self._run(
            ("comment", post_id), "create comment",
            lambda: snapshot, apply,
            lambda: self.api.create_comment(post_id, content),
            reconcile, restore
        )

    async def delete_comment(self, post_id: int, comment_id: int) -> Optional[Interaction]:
        if comment_id < 0:
            logger.debug(f"Ignored delete of unsaved comment {comment_id}")
            return None

        snapshot = self._post_snapshot(post_id)
        if snapshot is None:
            logger.debug(f"Ignored comment delete on unknown post {post_id}")
            return None

        limit = settings.RECENT_COMMENTS_LIMIT
        delta = snapshot.post.comments_count - _bump(snapshot.post.comments_count, -1)
        known = list(snapshot.detail.comments) if snapshot.detail else []
        removed = next(
            (comment for comment in known + list(snapshot.post.recent_comments) if comment.id == comment_id),
            None
        )
        was_recent = any(comment.id == comment_id for comment in snapshot.post.recent_comments)

        def apply(snap: PostSnapshot) -> None:
            comments = self._detail_comments(post_id)
            if comments is not None:
                comments = [comment for comment in comments if comment.id != comment_id]
                self.store.dispatch(SetDetailComments(post_id=post_id, comments=comments))

            def recent(post: PostWithUser) -> List[CommentWithUser]:
                if comments is not None:
                    return comments[:limit]
                return [comment for comment in post.recent_comments if comment.id != comment_id]

            self._update_post(
                post_id,
                comments_count=lambda post: post.comments_count - delta,
                recent_comments=recent,
            )

        def restore(snap: PostSnapshot) -> None:
            comments = self._detail_comments(post_id)
            if comments is not None and removed is not None:
                if all(comment.id != comment_id for comment in comments):
                    comments = _newest_first(comments + [removed])
                    self.store.dispatch(SetDetailComments(post_id=post_id, comments=comments))

            def recent(post: PostWithUser) -> List[CommentWithUser]:
                if comments is not None:
                    return comments[:limit]
                current = list(post.recent_comments)
                if removed is None or not was_recent or any(comment.id == comment_id for comment in current):
                    return current
                return _newest_first(current + [removed])[:limit]

            self._update_post(
                post_id,
                comments_count=lambda post: post.comments_count + delta,
                recent_comments=recent,
            )

        return await self._run(
            ("delete_comment", comment_id), "delete comment",
            lambda: snapshot, apply,
            lambda: self.api.delete_comment(comment_id),
            lambda snap, result: None,
            restore
        )

    # Posts

    async def delete_post(self, post_id: int) -> Optional[Interaction]:
        snapshot = self._post_snapshot(post_id)
        if snapshot is None:
            logger.debug(f"Ignored delete of unknown post {post_id}")
            return None

        def apply(snap: PostSnapshot) -> None:
            if self.store.state.selected_post_id == post_id:
                if self.navigator is not None:
                    self.navigator.close()
                else:
                    self.store.dispatch(CloseDetail())
            self.store.dispatch(RemovePost(post_id=post_id))

        def restore(snap: PostSnapshot) -> None:
            self.store.dispatch(InsertPost(post=snap.post, index=snap.index))

        return await self._run(
            ("delete_post", post_id), "delete post",
            lambda: snapshot, apply,
            lambda: self.api.delete_post(post_id),
            lambda snap, result: None,
            restore
        )

    async def create_post(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        caption: Optional[str],
        paginator: FeedPaginator
    ) -> Optional[PostInDB]:
        """Upload a new post, then refresh the feed so it shows up at the top"""
        key = ("create_post",)
        if key in self._in_flight:
            logger.debug("Dropped create post: an upload is already in flight")
            return None

        problem = validate_image_upload(content_type, len(content))
        if problem is None and caption and len(caption) > settings.MAX_CAPTION_LENGTH:
            problem = f"Captions must be {settings.MAX_CAPTION_LENGTH} characters or fewer."
        if problem is None and self.viewer is None:
            self._notify(ErrorInfo(kind=ErrorKind.UNAUTHORIZED, message=DEFAULT_MESSAGES[ErrorKind.UNAUTHORIZED]), "create post")
            return None
        if problem is not None:
            self._notify(ErrorInfo(kind=ErrorKind.BAD_REQUEST, message=problem), "create post")
            return None

        self._in_flight.add(key)
        try:
            created = await self.api.create_post(
                content=content,
                filename=filename,
                content_type=content_type,
                user_id=self.viewer.clerk_id,
                caption=caption,
            )
        except ApiClientError as e:
            self._notify(e.info, "create post")
            return None
        finally:
            self._in_flight.discard(key)

        await paginator.refresh()
        return created.post

    # Follows

    async def toggle_follow(self) -> Optional[Interaction]:
        profile = self.store.state.profile
        if profile is None or profile.is_own_profile:
            return None

        target_id = profile.user.user_id
        following = not profile.is_following

        def apply(snap: UserProfileResponse) -> None:
            self.store.dispatch(ProfileLoaded(profile=snap.model_copy(update={
                "is_following": following,
                "user": snap.user.model_copy(update={
                    "followers_count": _bump(snap.user.followers_count, 1 if following else -1)
                }),
            })))

        async def send():
            if following:
                return await self.api.follow(target_id)
            return await self.api.unfollow(target_id)

        def restore(snap: UserProfileResponse) -> None:
            current = self.store.state.profile
            if current is not None and current.user.user_id == target_id:
                self.store.dispatch(ProfileLoaded(profile=snap))

        return await self._run(
            ("follow", target_id), "toggle follow",
            lambda: profile, apply, send,
            lambda snap, result: None,
            restore
        )

    def _notify(self, info: ErrorInfo, context: str) -> None:
        log_error(info, context)
        self.store.dispatch(ShowNotice(error=info))
