"""
Application state for the client.

``FeedState`` is immutable; the only way to change it is
``Store.dispatch(action)``, which runs the pure ``reduce`` function and then
notifies subscribers.
"""
from typing import Callable, Dict, List, Optional, Tuple, Type
import logging

from pydantic import BaseModel, ConfigDict

from photofeed.client.errors import ErrorInfo
from photofeed.schemas.comment_schema import CommentWithUser
from photofeed.schemas.post_schema import PostDetailResponse, PostWithUser
from photofeed.schemas.user_schema import UserProfileResponse

logger = logging.getLogger(__name__)


class FeedState(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    # Feed
    posts: Tuple[PostWithUser, ...] = ()
    offset: int = 0
    has_more: bool = True
    is_loading: bool = False
    loaded: bool = False
    error: Optional[ErrorInfo] = None

    # Profile being viewed
    profile: Optional[UserProfileResponse] = None

    # Detail view
    selected_post_id: Optional[int] = None
    selected_index: Optional[int] = None
    detail: Optional[PostDetailResponse] = None
    detail_error: Optional[ErrorInfo] = None

    # Last failed interaction, shown as a toast
    notice: Optional[ErrorInfo] = None

    def index_of(self, post_id: int) -> Optional[int]:
        for index, post in enumerate(self.posts):
            if post.post_id == post_id:
                return index
        return None

    def get_post(self, post_id: int) -> Optional[PostWithUser]:
        index = self.index_of(post_id)
        return self.posts[index] if index is not None else None


# Actions

class Action(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class FeedLoadStarted(Action):
    pass


class FeedPageLoaded(Action):
    posts: List[PostWithUser]
    has_more: bool
    replace: bool = False


class FeedLoadFailed(Action):
    error: ErrorInfo


class ReplacePost(Action):
    post: PostWithUser


class RemovePost(Action):
    post_id: int


class InsertPost(Action):
    post: PostWithUser
    index: int


class SelectPost(Action):
    post_id: int


class MoveSelection(Action):
    step: int


class CloseDetail(Action):
    pass


class DetailLoaded(Action):
    detail: PostDetailResponse


class DetailLoadFailed(Action):
    post_id: int
    error: ErrorInfo


class SetDetailComments(Action):
    post_id: int
    comments: List[CommentWithUser]


class ProfileLoaded(Action):
    profile: Optional[UserProfileResponse]


class ShowNotice(Action):
    error: Optional[ErrorInfo]


Reducer = Callable[[FeedState, Action], FeedState]

_REDUCERS: Dict[Type[Action], Reducer] = {}


def reducer(action_type: Type[Action]):
    def register(func: Reducer) -> Reducer:
        _REDUCERS[action_type] = func
        return func
    return register


def reduce(state: FeedState, action: Action) -> FeedState:
    handler = _REDUCERS.get(type(action))
    if handler is None:
        raise TypeError(f"No reducer for {type(action).__name__}")
    return handler(state, action)


def _follow_selection(state: FeedState, posts: Tuple[PostWithUser, ...]) -> dict:
    """Selection fields after the post list changed; the cursor follows the selected id"""
    if state.selected_post_id is None:
        return {"posts": posts}

    for index, post in enumerate(posts):
        if post.post_id == state.selected_post_id:
            return {"posts": posts, "selected_index": index}

    return {
        "posts": posts,
        "selected_post_id": None,
        "selected_index": None,
        "detail": None,
        "detail_error": None,
    }


@reducer(FeedLoadStarted)
def _load_started(state: FeedState, action: FeedLoadStarted) -> FeedState:
    return state.model_copy(update={"is_loading": True, "error": None})


@reducer(FeedPageLoaded)
def _page_loaded(state: FeedState, action: FeedPageLoaded) -> FeedState:
    if action.replace:
        posts = tuple(action.posts)
        offset = len(action.posts)
    else:
        seen = {post.post_id for post in state.posts}
        posts = state.posts + tuple(post for post in action.posts if post.post_id not in seen)
        offset = state.offset + len(action.posts)

    update = _follow_selection(state, posts)
    update.update({
        "offset": offset,
        "has_more": action.has_more,
        "is_loading": False,
        "loaded": True,
        "error": None,
    })
    return state.model_copy(update=update)


@reducer(FeedLoadFailed)
def _load_failed(state: FeedState, action: FeedLoadFailed) -> FeedState:
    return state.model_copy(update={
        "is_loading": False,
        "loaded": True,
        "has_more": False,
        "error": action.error,
    })


@reducer(ReplacePost)
def _replace_post(state: FeedState, action: ReplacePost) -> FeedState:
    post_id = action.post.post_id
    update = {
        "posts": tuple(action.post if post.post_id == post_id else post for post in state.posts)
    }
    if state.detail is not None and state.detail.post.post_id == post_id:
        update["detail"] = state.detail.model_copy(update={"post": action.post})
    return state.model_copy(update=update)


@reducer(RemovePost)
def _remove_post(state: FeedState, action: RemovePost) -> FeedState:
    posts = tuple(post for post in state.posts if post.post_id != action.post_id)
    return state.model_copy(update=_follow_selection(state, posts))


@reducer(InsertPost)
def _insert_post(state: FeedState, action: InsertPost) -> FeedState:
    if state.index_of(action.post.post_id) is not None:
        return state
    index = max(0, min(action.index, len(state.posts)))
    posts = state.posts[:index] + (action.post,) + state.posts[index:]
    return state.model_copy(update=_follow_selection(state, posts))


@reducer(SelectPost)
def _select_post(state: FeedState, action: SelectPost) -> FeedState:
    index = state.index_of(action.post_id)
    if index is None:
        return state
    return state.model_copy(update={
        "selected_post_id": action.post_id,
        "selected_index": index,
        "detail": None,
        "detail_error": None,
    })


@reducer(MoveSelection)
def _move_selection(state: FeedState, action: MoveSelection) -> FeedState:
    if state.selected_index is None:
        return state
    index = state.selected_index + action.step
    if index < 0 or index >= len(state.posts):
        return state
    return state.model_copy(update={
        "selected_post_id": state.posts[index].post_id,
        "selected_index": index,
        "detail": None,
        "detail_error": None,
    })


@reducer(CloseDetail)
def _close_detail(state: FeedState, action: CloseDetail) -> FeedState:
    return state.model_copy(update={
        "selected_post_id": None,
        "selected_index": None,
        "detail": None,
        "detail_error": None,
    })


@reducer(DetailLoaded)
def _detail_loaded(state: FeedState, action: DetailLoaded) -> FeedState:
    if state.selected_post_id != action.detail.post.post_id:
        return state
    return state.model_copy(update={"detail": action.detail, "detail_error": None})


@reducer(DetailLoadFailed)
def _detail_failed(state: FeedState, action: DetailLoadFailed) -> FeedState:
    if state.selected_post_id != action.post_id:
        return state
    return state.model_copy(update={"detail_error": action.error})


@reducer(SetDetailComments)
def _set_detail_comments(state: FeedState, action: SetDetailComments) -> FeedState:
    if state.detail is None or state.detail.post.post_id != action.post_id:
        return state
    return state.model_copy(update={
        "detail": state.detail.model_copy(update={"comments": list(action.comments)})
    })


@reducer(ProfileLoaded)
def _profile_loaded(state: FeedState, action: ProfileLoaded) -> FeedState:
    return state.model_copy(update={"profile": action.profile})


@reducer(ShowNotice)
def _show_notice(state: FeedState, action: ShowNotice) -> FeedState:
    return state.model_copy(update={"notice": action.error})


Subscriber = Callable[[FeedState], None]


class Store:
    def __init__(self, state: Optional[FeedState] = None):
        self._state = state or FeedState()
        self._subscribers: List[Subscriber] = []

    @property
    def state(self) -> FeedState:
        return self._state

    def dispatch(self, action: Action) -> FeedState:
        self._state = reduce(self._state, action)
        for subscriber in list(self._subscribers):
            subscriber(self._state)
        return self._state

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a listener; returns a function that removes it"""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe
