import logging

import httpx
import pytest

from photofeed.config import settings
from photofeed.client.errors import (
    ApiClientError,
    DEFAULT_MESSAGES,
    ErrorInfo,
    ErrorKind,
    classify_exception,
    classify_response,
    kind_from_status,
    log_error,
)
from photofeed.client.transport import ApiClient


@pytest.mark.parametrize("status_code, kind", [
    (400, ErrorKind.BAD_REQUEST),
    (401, ErrorKind.UNAUTHORIZED),
    (403, ErrorKind.FORBIDDEN),
    (404, ErrorKind.NOT_FOUND),
    (409, ErrorKind.CONFLICT),
    (500, ErrorKind.SERVER_ERROR),
    (503, ErrorKind.SERVER_ERROR),
    (599, ErrorKind.SERVER_ERROR),
    (418, ErrorKind.UNKNOWN_ERROR),
    (302, ErrorKind.UNKNOWN_ERROR),
])
def test_kind_from_status(status_code, kind):
    assert kind_from_status(status_code) == kind


def test_message_comes_from_error_body():
    info = classify_response(httpx.Response(404, json={"error": "Post not found."}))

    assert info.kind == ErrorKind.NOT_FOUND
    assert info.message == "Post not found."
    assert info.status_code == 404


@pytest.mark.parametrize("response", [
    httpx.Response(500, text="<html>Bad gateway</html>"),
    httpx.Response(500, json={"error": ""}),
    httpx.Response(500, json={"error": {"nested": True}}),
    httpx.Response(500, json=["not", "an", "object"]),
])
def test_falls_back_to_default_message(response):
    info = classify_response(response)

    assert info.kind == ErrorKind.SERVER_ERROR
    assert info.message == DEFAULT_MESSAGES[ErrorKind.SERVER_ERROR]


def test_transport_failures_are_network_errors():
    for exc in (httpx.ConnectError("refused"), httpx.ReadTimeout("slow")):
        info = classify_exception(exc)
        assert info.kind == ErrorKind.NETWORK_ERROR
        assert info.message == DEFAULT_MESSAGES[ErrorKind.NETWORK_ERROR]
        assert info.cause is exc


def test_other_exceptions_are_unknown():
    info = classify_exception(RuntimeError("boom"))
    assert info.kind == ErrorKind.UNKNOWN_ERROR


def test_api_client_error_keeps_its_descriptor():
    original = ErrorInfo(kind=ErrorKind.CONFLICT, message="Already liked", status_code=409)
    assert classify_exception(ApiClientError(original)) is original


@pytest.mark.asyncio
async def test_client_raises_classified_http_errors():
    """Test an error response surfaces as ApiClientError with the server's message"""
    transport = httpx.MockTransport(
        lambda request: httpx.Response(403, json={"error": "You can only delete your own posts."})
    )
    async with ApiClient(base_url="http://testserver", token="t", transport=transport) as api:
        with pytest.raises(ApiClientError) as caught:
            await api.delete_post(1)

    assert caught.value.kind == ErrorKind.FORBIDDEN
    assert str(caught.value) == "You can only delete your own posts."


@pytest.mark.asyncio
async def test_client_raises_network_errors():
    """Test connection failures become NETWORK_ERROR"""
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with ApiClient(base_url="http://testserver", transport=httpx.MockTransport(refuse)) as api:
        with pytest.raises(ApiClientError) as caught:
            await api.list_posts()

    assert caught.value.kind == ErrorKind.NETWORK_ERROR


@pytest.mark.asyncio
async def test_client_rejects_malformed_bodies():
    """Test a 200 that doesn't match the expected shape fails closed"""
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"unexpected": True}))
    async with ApiClient(base_url="http://testserver", transport=transport) as api:
        with pytest.raises(ApiClientError) as caught:
            await api.list_posts()

    assert caught.value.kind == ErrorKind.UNKNOWN_ERROR
    assert caught.value.info.status_code == 200


@pytest.mark.asyncio
async def test_client_sends_bearer_token():
    seen = {}

    def handler(request):
        seen["authorization"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"success": True, "user": {
            "id": 1, "clerk_id": "user_alice", "name": "Alice", "created_at": "2024-01-01T00:00:00",
        }})

    async with ApiClient(base_url="http://testserver", token="abc", transport=httpx.MockTransport(handler)) as api:
        result = await api.sync_user()

    assert seen["authorization"] == "Bearer abc"
    assert result.user.clerk_id == "user_alice"


def test_log_error_detail_depends_on_environment(monkeypatch, caplog):
    info = ErrorInfo(kind=ErrorKind.SERVER_ERROR, message="Failed", status_code=500, cause=RuntimeError("db down"))

    monkeypatch.setattr(settings, "ENVIRONMENT", "development")
    with caplog.at_level(logging.ERROR, logger="photofeed.client.errors"):
        log_error(info, "load feed")
    assert "status=500" in caplog.text
    assert "db down" in caplog.text
    assert "load feed" in caplog.text

    caplog.clear()
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    with caplog.at_level(logging.ERROR, logger="photofeed.client.errors"):
        log_error(info, "load feed")
    assert "[SERVER_ERROR] Failed" in caplog.text
    assert "db down" not in caplog.text
