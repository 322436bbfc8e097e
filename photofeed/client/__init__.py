from photofeed.client.errors import ApiClientError, ErrorInfo, ErrorKind
from photofeed.client.transport import ApiClient
from photofeed.client.store import FeedState, Store
from photofeed.client.feed import FeedPaginator
from photofeed.client.interactions import InteractionController, InteractionState
from photofeed.client.navigator import PostDetailNavigator
from photofeed.client.scope import ViewScope

__all__ = [
    "ApiClient",
    "ApiClientError",
    "ErrorInfo",
    "ErrorKind",
    "FeedPaginator",
    "FeedState",
    "InteractionController",
    "InteractionState",
    "PostDetailNavigator",
    "Store",
    "ViewScope",
]
