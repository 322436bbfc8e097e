import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_sync_creates_then_refreshes_user(test_client: AsyncClient, auth_headers):
    """Test the first sync creates the user and later syncs refresh the name"""
    created = await test_client.post("/users/sync", headers=auth_headers("user_alice", "Alice"))
    assert created.status_code == 200
    user = created.json()["user"]
    assert user["clerk_id"] == "user_alice"
    assert user["name"] == "Alice"

    renamed = await test_client.post("/users/sync", headers=auth_headers("user_alice", "Alice Smith"))
    assert renamed.json()["user"]["id"] == user["id"]
    assert renamed.json()["user"]["name"] == "Alice Smith"


@pytest.mark.asyncio
async def test_sync_requires_auth(test_client: AsyncClient):
    """Test syncing anonymously"""
    response = await test_client.post("/users/sync")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_user_profile(test_client: AsyncClient, auth_headers, create_user, create_post):
    """Test profile statistics and the caller's relation to the user"""
    alice = await create_user("user_alice", "Alice")
    bob = await create_user("user_bob", "Bob")
    await create_post(alice)
    await create_post(alice)
    await test_client.post("/follows", json={"following_id": bob.id}, headers=auth_headers("user_alice"))

    own = (await test_client.get("/users/user_alice", headers=auth_headers("user_alice"))).json()
    assert own["user"]["posts_count"] == 2
    assert own["user"]["following_count"] == 1
    assert own["user"]["followers_count"] == 0
    assert own["isOwnProfile"] is True
    assert own["isFollowing"] is False

    anonymous = (await test_client.get("/users/user_bob")).json()
    assert anonymous["user"]["name"] == "Bob"
    assert anonymous["user"]["followers_count"] == 1
    assert anonymous["isOwnProfile"] is False
    assert anonymous["isFollowing"] is False


@pytest.mark.asyncio
async def test_missing_profile(test_client: AsyncClient):
    """Test an unknown subject is a 404"""
    response = await test_client.get("/users/user_nobody")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_search_users(test_client: AsyncClient, auth_headers, create_user):
    """Test searching by name or subject, case-insensitively"""
    await create_user("user_alice", "Alice Liddell")
    await create_user("user_bob", "Bob")
    await create_user("user_carol", "Carol")
    headers = auth_headers("user_bob", "Bob")

    by_name = (await test_client.get("/users/search", params={"q": "ALICE"}, headers=headers)).json()
    assert by_name["success"] is True
    assert [user["clerk_id"] for user in by_name["data"]] == ["user_alice"]

    by_subject = (await test_client.get("/users/search", params={"q": "user_car"}, headers=headers)).json()
    assert [user["name"] for user in by_subject["data"]] == ["Carol"]

    wildcard = (await test_client.get("/users/search", params={"q": "%"}, headers=headers)).json()
    assert wildcard["data"] == []


@pytest.mark.asyncio
async def test_search_validation(test_client: AsyncClient, auth_headers):
    """Test search needs a query and a signed-in caller"""
    blank = await test_client.get("/users/search", params={"q": "   "}, headers=auth_headers("user_bob"))
    assert blank.status_code == 400

    missing = await test_client.get("/users/search", headers=auth_headers("user_bob"))
    assert missing.status_code == 400

    anonymous = await test_client.get("/users/search", params={"q": "bob"})
    assert anonymous.status_code == 401


@pytest.mark.asyncio
async def test_search_is_capped(test_client: AsyncClient, auth_headers, create_user):
    """Test at most 20 users come back"""
    for i in range(25):
        await create_user(f"user_{i:02d}", f"Member {i}")

    response = await test_client.get("/users/search", params={"q": "member"}, headers=auth_headers("user_00"))
    assert len(response.json()["data"]) == 20


@pytest.mark.asyncio
async def test_root_and_health(test_client: AsyncClient):
    """Test the informational endpoints"""
    root = await test_client.get("/")
    assert root.status_code == 200
    assert root.json()["message"] == "Welcome to Photofeed API"

    health = await test_client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_body(test_client: AsyncClient):
    """Test routing errors use the same error body"""
    response = await test_client.get("/nope")

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"
    assert "error" in response.json()
