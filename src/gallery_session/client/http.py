"""HTTP image service client built on httpx.

Talks to the gallery backend's JSON/multipart API. Authentication is a
``token`` cookie issued by the login endpoint; any 401 from an image, tag
or upload endpoint surfaces as :class:`SessionExpiredError`.
"""

from collections.abc import Callable
from typing import Any, TypeVar

import httpx
from loguru import logger
from pydantic import ValidationError

from ..catalog.base import Image, Quality, SearchPage, UploadFile
from .base import GalleryServiceError, ImageService, ServiceUnavailableError, SessionExpiredError

TOKEN_COOKIE = "token"

T = TypeVar("T")


class HttpImageService(ImageService):
    """Image service reached over HTTP.

    A single ``httpx.AsyncClient`` is shared by every call so connections
    are pooled; call :meth:`close` when the session ends.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Root URL of the service, e.g. ``http://localhost:3000``
            token: Session token sent as the ``token`` cookie
            timeout: Per-request timeout in seconds; expiry counts as a failure
            transport: Optional transport override

        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        cookies = {TOKEN_COOKIE: token} if token else None
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            cookies=cookies,
            transport=transport,
        )
        logger.debug("HttpImageService initialized: base_url={}, timeout={}s", self.base_url, timeout)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("{} {} failed: {}", method, path, e)
            raise ServiceUnavailableError(f"{method} {path} failed: {e}") from e

        if response.status_code == 401:
            logger.info("{} {} returned 401, session expired", method, path)
            raise SessionExpiredError()
        if response.is_error:
            logger.warning("{} {} returned {}", method, path, response.status_code)
            raise GalleryServiceError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def _decode(self, response: httpx.Response, parse: Callable[[Any], T]) -> T:
        """Parse a JSON body, reporting undecodable or invalid payloads as service errors."""
        try:
            return parse(response.json())
        except (ValueError, TypeError, ValidationError) as e:
            request = response.request
            logger.warning("{} {} returned a malformed body: {}", request.method, request.url.path, e)
            raise GalleryServiceError(
                f"{request.method} {request.url.path} returned a malformed body",
                status_code=response.status_code,
            ) from e

    async def list_images(self) -> list[Image]:
        response = await self._request("GET", "/api/images")
        images = self._decode(response, _parse_listing)
        logger.debug("Listed {} images", len(images))
        return images

    async def search(self, query: str, page: int, limit: int) -> SearchPage:
        logger.debug("Searching '{}' page={} limit={}", query[:50], page, limit)
        response = await self._request(
            "POST",
            "/api/images/search",
            json={"query": query, "page": page, "limit": limit},
        )
        return self._decode(response, _parse_page)

    async def upload(self, file: UploadFile) -> None:
        await self._request(
            "POST",
            "/api/images",
            data={"filename": file.filename, "last_modified": str(file.last_modified)},
            files={"data": (file.filename, file.data, "application/octet-stream")},
        )
        logger.debug("Uploaded {} ({} bytes)", file.filename, len(file.data))

    async def add_tags(self, image_ids: list[str], tags: list[str]) -> None:
        await self._request("POST", "/api/tags", json={"image_ids": image_ids, "tags": tags})

    async def remove_tags(self, image_ids: list[str], tags: list[str]) -> None:
        await self._request("DELETE", "/api/tags", json={"image_ids": image_ids, "tags": tags})

    async def fetch_image(self, image_id: str, quality: Quality) -> bytes:
        response = await self._request(
            "GET",
            f"/api/images/{image_id}",
            params={"quality": Quality(quality).value},
            follow_redirects=True,
        )
        return response.content

    def image_url(self, image_id: str, quality: Quality) -> str:
        return f"{self.base_url}/api/images/{image_id}?quality={Quality(quality).value}"

    async def login(self, username: str, password: str) -> str:
        """Log in and return the issued session token.

        The token cookie is also kept on this client for later calls.

        Raises:
            ValueError: If username or password is empty
            GalleryServiceError: If the credentials are rejected

        """
        await self._authenticate("/api/auth/login", username, password)
        token = self.client.cookies.get(TOKEN_COOKIE) or ""
        if not token:
            logger.warning("Login succeeded but no {} cookie was set", TOKEN_COOKIE)
        return token

    async def signup(self, username: str, password: str) -> None:
        """Create an account."""
        await self._authenticate("/api/auth/signup", username, password)

    async def _authenticate(self, path: str, username: str, password: str) -> None:
        if not username or not password:
            raise ValueError("Username and password are required")
        try:
            response = await self.client.post(path, json={"username": username, "password": password})
        except httpx.HTTPError as e:
            raise ServiceUnavailableError(f"POST {path} failed: {e}") from e
        if response.is_error:
            # 401 here means bad credentials, not an expired session
            raise GalleryServiceError(
                f"POST {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        logger.info("Authenticated as {}", username)

    async def close(self) -> None:
        await self.client.aclose()


def _parse_listing(body: Any) -> list[Image]:
    if isinstance(body, dict):
        body = body.get("images", [])
    return [Image.model_validate(item) for item in body]


def _parse_page(body: Any) -> SearchPage:
    if isinstance(body, list):
        return SearchPage(images=body)
    return SearchPage.model_validate(body)
