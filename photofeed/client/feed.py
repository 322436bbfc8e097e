from typing import Optional
import asyncio
import logging

from photofeed.config import settings
from photofeed.client.errors import ApiClientError, log_error
from photofeed.client.store import FeedLoadFailed, FeedLoadStarted, FeedPageLoaded, Store
from photofeed.client.transport import ApiClient

logger = logging.getLogger(__name__)


class FeedPaginator:
    """
    Offset pagination over ``GET /posts``.

    Results land in the store; failures halt pagination and are recorded as
    the feed error instead of being raised. A ``load_more`` issued while a
    fetch is running is dropped; a ``refresh`` waits for it and then runs.
    """

    def __init__(
        self,
        store: Store,
        api: ApiClient,
        page_size: int = settings.FEED_DEFAULT_LIMIT,
        user_id: Optional[int] = None
    ):
        self.store = store
        self.api = api
        self.page_size = min(page_size, settings.FEED_MAX_LIMIT)
        self.user_id = user_id
        self._running: Optional[asyncio.Event] = None

    @property
    def is_fetching(self) -> bool:
        return self._running is not None

    async def refresh(self) -> bool:
        """Reload from the first page, replacing whatever is loaded"""
        while self._running is not None:
            await self._running.wait()
        return await self._fetch(offset=0, replace=True)

    async def load_more(self) -> bool:
        """Append the next page; no-op when there is nothing more to load"""
        state = self.store.state
        if state.loaded and not state.has_more:
            return False
        return await self._fetch(offset=state.offset, replace=False)

    async def _fetch(self, offset: int, replace: bool) -> bool:
        if self._running is not None:
            logger.debug(f"Dropped feed request at offset {offset}: a fetch is already running")
            return False

        running = self._running = asyncio.Event()
        self.store.dispatch(FeedLoadStarted())

        try:
            page = await self.api.list_posts(
                limit=self.page_size,
                offset=offset,
                user_id=self.user_id
            )
        except ApiClientError as e:
            log_error(e.info, "load feed")
            self.store.dispatch(FeedLoadFailed(error=e.info))
            return False
        else:
            self.store.dispatch(FeedPageLoaded(
                posts=page.data,
                has_more=page.pagination.has_more,
                replace=replace
            ))
            return True
        finally:
            self._running = None
            running.set()
