from typing import Optional
import asyncio
import logging

from photofeed.client.errors import ApiClientError, log_error
from photofeed.client.scope import ViewScope
from photofeed.client.store import (
    CloseDetail,
    DetailLoaded,
    DetailLoadFailed,
    MoveSelection,
    SelectPost,
    Store,
)
from photofeed.client.transport import ApiClient

logger = logging.getLogger(__name__)


class PostDetailNavigator:
    """
    Cursor over the loaded feed for the post detail view.

    Navigation never fetches another feed page; it only moves within the
    posts already in the store. Each shown post gets its own ``ViewScope`` so
    a slow detail load can never overwrite a newer selection.
    """

    def __init__(self, store: Store, api: ApiClient):
        self.store = store
        self.api = api
        self._scope: Optional[ViewScope] = None

    @property
    def has_previous(self) -> bool:
        index = self.store.state.selected_index
        return index is not None and index > 0

    @property
    def has_next(self) -> bool:
        state = self.store.state
        return state.selected_index is not None and state.selected_index < len(state.posts) - 1

    def show(self, post_id: int) -> Optional[asyncio.Task]:
        if self.store.state.index_of(post_id) is None:
            return None
        self.store.dispatch(SelectPost(post_id=post_id))
        return self._load_selected()

    def previous(self) -> Optional[asyncio.Task]:
        if not self.has_previous:
            return None
        self.store.dispatch(MoveSelection(step=-1))
        return self._load_selected()

    def next(self) -> Optional[asyncio.Task]:
        if not self.has_next:
            return None
        self.store.dispatch(MoveSelection(step=1))
        return self._load_selected()

    def close(self) -> None:
        self._close_scope()
        self.store.dispatch(CloseDetail())

    def _close_scope(self) -> None:
        if self._scope is not None:
            self._scope.close()
            self._scope = None

    def _load_selected(self) -> Optional[asyncio.Task]:
        self._close_scope()

        post_id = self.store.state.selected_post_id
        if post_id is None:
            return None

        self._scope = ViewScope(f"post-{post_id}")
        return self._scope.spawn(self._load_detail(post_id, self._scope))

    async def _load_detail(self, post_id: int, scope: ViewScope) -> None:
        try:
            detail = await self.api.get_post(post_id)
        except ApiClientError as e:
            if scope.closed:
                return
            log_error(e.info, f"load post {post_id}")
            self.store.dispatch(DetailLoadFailed(post_id=post_id, error=e.info))
            return

        if scope.closed:
            logger.debug(f"Discarded detail for post {post_id}: view already closed")
            return

        self.store.dispatch(DetailLoaded(detail=detail))
