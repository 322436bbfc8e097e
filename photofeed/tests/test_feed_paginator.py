import asyncio

import httpx
import pytest

from photofeed.client.errors import ErrorKind
from photofeed.client.feed import FeedPaginator
from photofeed.client.store import FeedState, Store
from photofeed.client.transport import ApiClient
from photofeed.client.views import FeedStatus, feed_status
from photofeed.schemas.post_schema import PostWithUser


@pytest.mark.asyncio
async def test_refresh_then_load_more(api_client, create_user, create_post):
    """Test paging the feed into the store until it runs out"""
    alice = await create_user("user_alice")
    created = [(await create_post(alice, f"Post {i}")).id for i in range(25)]

    store = Store()
    paginator = FeedPaginator(store, api_client("user_bob"), page_size=10)

    assert await paginator.refresh() is True
    assert len(store.state.posts) == 10
    assert store.state.offset == 10
    assert store.state.has_more is True

    while store.state.has_more:
        assert await paginator.load_more() is True

    assert [post.post_id for post in store.state.posts] == sorted(created, reverse=True)
    assert store.state.offset == 25
    assert await paginator.load_more() is False


@pytest.mark.asyncio
async def test_refresh_replaces_loaded_posts(api_client, create_user, create_post):
    """Test refresh starts over at offset 0"""
    alice = await create_user("user_alice")
    for i in range(12):
        await create_post(alice)

    store = Store()
    paginator = FeedPaginator(store, api_client(), page_size=5)
    await paginator.refresh()
    await paginator.load_more()
    assert len(store.state.posts) == 10

    newest = await create_post(alice, "newest")
    await paginator.refresh()

    assert len(store.state.posts) == 5
    assert store.state.offset == 5
    assert store.state.posts[0].post_id == newest.id


@pytest.mark.asyncio
async def test_load_more_skips_posts_already_loaded(api_client, create_user, create_post):
    """Test a post inserted between pages does not show up twice"""
    alice = await create_user("user_alice")
    for i in range(20):
        await create_post(alice)

    store = Store()
    paginator = FeedPaginator(store, api_client(), page_size=10)
    await paginator.refresh()

    # Shifts every later page down by one
    await create_post(alice, "late arrival")
    await paginator.load_more()

    ids = [post.post_id for post in store.state.posts]
    assert len(ids) == len(set(ids)) == 19
    assert store.state.offset == 20


@pytest.mark.asyncio
async def test_user_filter(api_client, create_user, create_post):
    """Test a profile paginator only loads that user's posts"""
    alice = await create_user("user_alice")
    bob = await create_user("user_bob")
    await create_post(alice)
    await create_post(bob)

    store = Store()
    await FeedPaginator(store, api_client(), user_id=bob.id).refresh()

    assert [post.clerk_id for post in store.state.posts] == ["user_bob"]


@pytest.mark.asyncio
async def test_empty_feed_is_not_an_error(api_client):
    """Test an empty first page is the empty state"""
    store = Store()
    assert await FeedPaginator(store, api_client()).refresh() is True

    assert store.state.posts == ()
    assert store.state.error is None
    assert feed_status(store.state) == FeedStatus.EMPTY


@pytest.mark.asyncio
async def test_failure_halts_pagination():
    """Test a failed page stores the classified error and stops paging"""
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "Failed to fetch posts."}))
    store = Store()
    paginator = FeedPaginator(store, ApiClient(base_url="http://testserver", transport=transport))

    assert await paginator.refresh() is False

    assert store.state.error.kind == ErrorKind.SERVER_ERROR
    assert store.state.error.message == "Failed to fetch posts."
    assert store.state.has_more is False
    assert store.state.is_loading is False
    assert paginator.is_fetching is False
    assert feed_status(store.state) == FeedStatus.ERROR

    assert await paginator.load_more() is False


@pytest.mark.asyncio
async def test_network_failure_is_recorded():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    store = Store()
    paginator = FeedPaginator(store, ApiClient(base_url="http://testserver", transport=httpx.MockTransport(refuse)))

    await paginator.refresh()

    assert store.state.error.kind == ErrorKind.NETWORK_ERROR


@pytest.mark.asyncio
async def test_overlapping_requests_are_dropped(post_payload):
    """Test a page requested while a fetch is running is ignored"""
    gate = asyncio.Event()
    requests = []

    async def handler(request):
        requests.append(request)
        await gate.wait()
        return httpx.Response(200, json={
            "data": [post_payload(1), post_payload(2)],
            "pagination": {"total": 2, "limit": 10, "offset": 0, "hasMore": False},
        })

    store = Store()
    paginator = FeedPaginator(store, ApiClient(base_url="http://testserver", transport=httpx.MockTransport(handler)))

    first = asyncio.create_task(paginator.refresh())
    await asyncio.sleep(0)
    assert paginator.is_fetching is True
    assert store.state.is_loading is True

    assert await paginator.load_more() is False

    gate.set()
    assert await first is True
    assert len(requests) == 1
    assert [post.post_id for post in store.state.posts] == [1, 2]
    assert store.state.has_more is False


@pytest.mark.asyncio
async def test_refresh_waits_for_running_page(post_payload):
    """Test a refresh issued while a page is loading runs after it instead of being dropped"""
    gate = asyncio.Event()
    offsets = []

    async def handler(request):
        offset = int(request.url.params["offset"])
        offsets.append(offset)
        if offset > 0:
            await gate.wait()
            return httpx.Response(200, json={
                "data": [],
                "pagination": {"total": 1, "limit": 10, "offset": offset, "hasMore": False},
            })
        return httpx.Response(200, json={
            "data": [post_payload(99), post_payload(1)],
            "pagination": {"total": 2, "limit": 10, "offset": 0, "hasMore": False},
        })

    store = Store(FeedState(
        posts=(PostWithUser.model_validate(post_payload(1)),),
        offset=1,
        has_more=True,
        loaded=True,
    ))
    paginator = FeedPaginator(store, ApiClient(base_url="http://testserver", transport=httpx.MockTransport(handler)))

    page = asyncio.create_task(paginator.load_more())
    await asyncio.sleep(0)
    refresh = asyncio.create_task(paginator.refresh())
    await asyncio.sleep(0)
    assert not refresh.done()

    gate.set()
    assert await page is True
    assert await refresh is True

    assert offsets == [1, 0]
    assert [post.post_id for post in store.state.posts] == [99, 1]
    assert paginator.is_fetching is False
