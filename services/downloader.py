"""
Download service: fetch a remote file into memory.
Backs the URL to Binary node.
"""

from typing import Optional
from pydantic import BaseModel

from config import settings
from .base import BaseService
from utils.logging import get_logger

logger = get_logger(__name__)


class DownloadResult(BaseModel):
    """Downloaded file contents plus what the server said about them."""
    url: str
    content: bytes
    content_type: Optional[str] = None
    size_bytes: int


class DownloadService(BaseService):
    """Service for downloading files over HTTP(S)."""

    async def download(self, url: str, timeout: Optional[float] = None) -> DownloadResult:
        """
        Download a file.

        Args:
            url: File URL
            timeout: Optional timeout override

        Returns:
            DownloadResult with the raw bytes
        """
        if not url:
            raise ValueError("URL is required")

        response, content = await self._get_bytes(
            url,
            timeout=timeout,
            max_bytes=settings.DOWNLOAD_MAX_BYTES or None,
        )

        content_type = response.headers.get("content-type")
        if content_type:
            # Drop parameters such as "; charset=binary"
            content_type = content_type.split(";")[0].strip() or None

        result = DownloadResult(
            url=url,
            content=content,
            content_type=content_type,
            size_bytes=len(content),
        )

        logger.info(f"Downloaded {url}: {result.size_bytes} bytes ({content_type or 'unknown type'})")
        return result
