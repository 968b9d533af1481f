"""
Shared async HTTP plumbing for services that fetch remote media.
"""

import httpx
from typing import Dict, Optional, Tuple

from config import settings
from utils.logging import get_logger
from utils.retry import async_retry, is_retryable_status, RetryableError

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "ffmpeg-audio-nodes/1.0",
    "Accept": "*/*",
}


class ResponseTooLargeError(Exception):
    """The response body exceeded the configured size cap."""
    pass


class BaseService:
    """
    Owns one httpx.AsyncClient per service instance.

    The client is created on first use and released by close() or by
    leaving an `async with` block.

    Usage:
        async with MyService() as service:
            response, body = await service._get_bytes("https://cdn.example.com/a.mp3")
    """

    def __init__(self, timeout: Optional[float] = None, headers: Optional[Dict[str, str]] = None):
        self._timeout = settings.DOWNLOAD_TIMEOUT if timeout is None else timeout
        self._headers = {**DEFAULT_HEADERS, **(headers or {})}
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                follow_redirects=True,
            )
        return self._client

    async def close(self):
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @async_retry(max_attempts=settings.DOWNLOAD_MAX_RETRIES, min_wait=2, max_wait=10)
    async def _get_bytes(
        self,
        url: str,
        timeout: Optional[float] = None,
        max_bytes: Optional[int] = None,
    ) -> Tuple[httpx.Response, bytes]:
        """
        Stream a GET response into memory.

        Args:
            url: Request URL (redirects are followed)
            timeout: Optional timeout override
            max_bytes: Abort once the body grows past this many bytes

        Returns:
            (response, body) - the response is closed, headers stay readable

        Raises:
            httpx.HTTPStatusError: On a final error status
            ResponseTooLargeError: If max_bytes is exceeded
        """
        logger.info(f"HTTP GET {url}")
        extra = {} if timeout is None else {"timeout": timeout}

        async with self.client.stream("GET", url, **extra) as response:
            if is_retryable_status(response.status_code):
                raise RetryableError(f"HTTP {response.status_code} from {url}")
            response.raise_for_status()

            chunks = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if max_bytes and received > max_bytes:
                    raise ResponseTooLargeError(
                        f"Response from {url} exceeds {max_bytes} bytes"
                    )
                chunks.append(chunk)

        return response, b"".join(chunks)
