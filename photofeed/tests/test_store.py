import pytest

from photofeed.client.errors import ErrorInfo, ErrorKind
from photofeed.client.store import (
    Action,
    CloseDetail,
    FeedLoadFailed,
    FeedLoadStarted,
    FeedPageLoaded,
    FeedState,
    InsertPost,
    MoveSelection,
    RemovePost,
    ReplacePost,
    SelectPost,
    Store,
    reduce,
)
from photofeed.schemas.post_schema import PostWithUser


def posts(post_payload, *ids):
    return [PostWithUser.model_validate(post_payload(post_id)) for post_id in ids]


def test_reduce_is_pure(post_payload):
    state = FeedState()
    after = reduce(state, FeedPageLoaded(posts=posts(post_payload, 1, 2), has_more=True, replace=True))

    assert state.posts == ()
    assert [post.post_id for post in after.posts] == [1, 2]
    assert after.offset == 2
    assert after.loaded is True


def test_append_skips_duplicates_and_advances_by_received(post_payload):
    state = reduce(FeedState(), FeedPageLoaded(posts=posts(post_payload, 3, 2), has_more=True, replace=True))
    state = reduce(state, FeedPageLoaded(posts=posts(post_payload, 2, 1), has_more=False))

    assert [post.post_id for post in state.posts] == [3, 2, 1]
    assert state.offset == 4
    assert state.has_more is False


def test_failure_forces_has_more_off():
    error = ErrorInfo(kind=ErrorKind.NETWORK_ERROR, message="offline")
    state = reduce(FeedState(), FeedLoadStarted())
    assert state.is_loading is True

    state = reduce(state, FeedLoadFailed(error=error))
    assert state.is_loading is False
    assert state.has_more is False
    assert state.error == error

    assert reduce(state, FeedLoadStarted()).error is None


def test_cursor_follows_selected_post(post_payload):
    """Test removing and inserting posts keeps the selection on the same post"""
    state = FeedState(posts=tuple(posts(post_payload, 1, 2, 3)))
    state = reduce(state, SelectPost(post_id=3))
    assert state.selected_index == 2

    state = reduce(state, RemovePost(post_id=1))
    assert state.selected_post_id == 3
    assert state.selected_index == 1

    state = reduce(state, InsertPost(post=posts(post_payload, 1)[0], index=0))
    assert state.selected_index == 2

    state = reduce(state, RemovePost(post_id=3))
    assert state.selected_post_id is None
    assert state.selected_index is None


def test_selection_moves_within_bounds(post_payload):
    state = reduce(FeedState(posts=tuple(posts(post_payload, 1, 2))), SelectPost(post_id=1))

    assert reduce(state, MoveSelection(step=-1)) == state
    moved = reduce(state, MoveSelection(step=1))
    assert moved.selected_post_id == 2
    assert reduce(moved, MoveSelection(step=1)) == moved
    assert reduce(moved, CloseDetail()).selected_post_id is None


def test_replace_post(post_payload):
    state = FeedState(posts=tuple(posts(post_payload, 1, 2)))
    updated = state.posts[1].model_copy(update={"likes_count": 7})

    state = reduce(state, ReplacePost(post=updated))

    assert state.posts[1].likes_count == 7
    assert state.posts[0].likes_count == 0


def test_store_notifies_subscribers(post_payload):
    store = Store()
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.dispatch(FeedLoadStarted())
    unsubscribe()
    store.dispatch(FeedPageLoaded(posts=posts(post_payload, 1), has_more=False, replace=True))

    assert len(seen) == 1
    assert seen[0].is_loading is True
    assert store.state.posts[0].post_id == 1


def test_unknown_action_is_rejected():
    class Bogus(Action):
        pass

    with pytest.raises(TypeError):
        reduce(FeedState(), Bogus())
