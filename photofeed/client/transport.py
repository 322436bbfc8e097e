"""
Async HTTP client for the photofeed API.

Responses are validated against the same pydantic schemas the server
serializes with; anything that does not fit is treated as an unknown error
rather than passed on half-parsed.
"""
from typing import Any, Optional, Type, TypeVar
import logging

import httpx
from pydantic import BaseModel, ValidationError

from photofeed.config import settings
from photofeed.client.errors import (
    ApiClientError,
    DEFAULT_MESSAGES,
    ErrorInfo,
    ErrorKind,
    classify_exception,
    classify_response,
)
from photofeed.schemas.comment_schema import CommentWithUser, CommentDeleteResponse
from photofeed.schemas.follow_schema import FollowCreateResponse, FollowDeleteResponse
from photofeed.schemas.like_schema import LikeMutationResponse
from photofeed.schemas.post_schema import (
    LikedPostsResponse,
    PostsResponse,
    PostCreateResponse,
    PostDetailResponse,
    PostDeleteResponse,
)
from photofeed.schemas.user_schema import UserProfileResponse, UserSearchResponse, UserSyncResponse

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout if timeout is not None else settings.CLIENT_TIMEOUT,
            transport=transport,
        )
        self.token = token

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def _request(
        self,
        method: str,
        url: str,
        response_model: Type[ResponseT],
        **kwargs: Any
    ) -> ResponseT:
        try:
            response = await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            raise ApiClientError(classify_exception(e)) from e

        if response.is_error:
            raise ApiClientError(classify_response(response))

        try:
            return response_model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"Unexpected response body from {method} {url}: {e}")
            raise ApiClientError(ErrorInfo(
                kind=ErrorKind.UNKNOWN_ERROR,
                message=DEFAULT_MESSAGES[ErrorKind.UNKNOWN_ERROR],
                status_code=response.status_code,
                cause=e,
            )) from e

    # Posts

    async def list_posts(
        self,
        limit: int = settings.FEED_DEFAULT_LIMIT,
        offset: int = 0,
        user_id: Optional[int] = None
    ) -> PostsResponse:
        params = {"limit": limit, "offset": offset}
        if user_id is not None:
            params["userId"] = user_id
        return await self._request("GET", "/posts", PostsResponse, params=params)

    async def get_post(self, post_id: int) -> PostDetailResponse:
        return await self._request("GET", f"/posts/{post_id}", PostDetailResponse)

    async def create_post(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        user_id: str,
        caption: Optional[str] = None
    ) -> PostCreateResponse:
        data = {"userId": user_id}
        if caption:
            data["caption"] = caption
        return await self._request(
            "POST",
            "/posts",
            PostCreateResponse,
            files={"file": (filename, content, content_type)},
            data=data,
        )

    async def delete_post(self, post_id: int) -> PostDeleteResponse:
        return await self._request("DELETE", f"/posts/{post_id}", PostDeleteResponse)

    # Likes

    async def like(self, post_id: int) -> LikeMutationResponse:
        return await self._request("POST", "/likes", LikeMutationResponse, json={"post_id": post_id})

    async def unlike(self, post_id: int) -> LikeMutationResponse:
        return await self._request("DELETE", "/likes", LikeMutationResponse, json={"post_id": post_id})

    async def liked_posts(self, limit: int = settings.FEED_DEFAULT_LIMIT, offset: int = 0) -> LikedPostsResponse:
        return await self._request(
            "GET", "/likes/user", LikedPostsResponse, params={"limit": limit, "offset": offset}
        )

    # Comments

    async def create_comment(self, post_id: int, content: str) -> CommentWithUser:
        return await self._request(
            "POST", "/comments", CommentWithUser, json={"post_id": post_id, "content": content}
        )

    async def delete_comment(self, comment_id: int) -> CommentDeleteResponse:
        return await self._request(
            "DELETE", "/comments", CommentDeleteResponse, json={"comment_id": comment_id}
        )

    # Follows

    async def follow(self, following_id: int) -> FollowCreateResponse:
        return await self._request(
            "POST", "/follows", FollowCreateResponse, json={"following_id": following_id}
        )

    async def unfollow(self, following_id: int) -> FollowDeleteResponse:
        return await self._request(
            "DELETE", "/follows", FollowDeleteResponse, json={"following_id": following_id}
        )

    # Users

    async def get_user(self, clerk_id: str) -> UserProfileResponse:
        return await self._request("GET", f"/users/{clerk_id}", UserProfileResponse)

    async def search_users(self, query: str) -> UserSearchResponse:
        return await self._request("GET", "/users/search", UserSearchResponse, params={"q": query})

    async def sync_user(self) -> UserSyncResponse:
        return await self._request("POST", "/users/sync", UserSyncResponse)
