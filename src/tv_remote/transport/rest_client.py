"""JSON-over-HTTP client shared by the Android bridge and the LG proxy backend."""

from __future__ import annotations

import time
from typing import Any

import aiohttp

from tv_remote.const import HTTP_TIMEOUT
from tv_remote.logging_abstraction import get_logger
from tv_remote.transport.exceptions import TransportError

logger = get_logger(__name__)


class RestClient:
    """Lazily-created aiohttp session bound to one base URL.

    Non-2xx answers are returned to the caller with their status; only network
    failures and timeouts raise. Callers decide what a bad status means.
    """

    def __init__(self, base_url: str, *, timeout: float = HTTP_TIMEOUT) -> None:
        self.base_url: str = base_url.rstrip("/")
        self.timeout: float = timeout
        self.http_session: aiohttp.ClientSession | None = None

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _check_session(self) -> aiohttp.ClientSession:
        if self.http_session is None or self.http_session.closed:
            logger.debug("Creating aiohttp ClientSession", extra={"base_url": self.base_url})
            self.http_session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self.http_session

    async def close(self) -> None:
        if self.http_session is not None and not self.http_session.closed:
            logger.debug("Closing aiohttp ClientSession", extra={"base_url": self.base_url})
            await self.http_session.close()
        self.http_session = None

    async def get_json(self, path: str) -> tuple[int, Any]:
        return await self._request("GET", path)

    async def post_json(self, path: str, payload: dict[str, Any]) -> tuple[int, Any]:
        return await self._request("POST", path, payload)

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> tuple[int, Any]:
        """
        Perform one request and decode the JSON body.

        Returns:
            (status, body) where body is None when the response is not JSON

        Raises:
            TransportError: Network failure or timeout
        """
        url = self.url(path)
        session = await self._check_session()
        start_time = time.perf_counter()
        try:
            async with session.request(method, url, json=payload) as resp:
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None
                status = resp.status
        except TimeoutError as e:
            raise TransportError(f"{method} {url} timed out after {self.timeout}s", url=url) from e
        except (aiohttp.ClientError, OSError) as e:
            raise TransportError(f"{method} {url} failed: {e}", url=url) from e

        logger.debug(
            "%s %s -> %s in %.1fms",
            method,
            url,
            status,
            (time.perf_counter() - start_time) * 1000,
            extra={"status": status},
        )
        return status, body

    async def __aenter__(self) -> RestClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


def is_success(status: int) -> bool:
    return 200 <= status < 300


__all__ = ["RestClient", "is_success"]
