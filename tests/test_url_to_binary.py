"""
Tests for DownloadService and the URL to Binary node - mocked HTTP, no network.
"""

import base64

import httpx
import pytest
from unittest.mock import AsyncMock
from tenacity import wait_none

from config import settings
from nodes import NodeOperationError, UrlToBinaryNode
from schemas import NodeExecutionRequest
from services.base import BaseService, ResponseTooLargeError
from services.downloader import DownloadResult, DownloadService
from utils.retry import RetryableError, is_retryable_status, is_transient


def mock_service(handler):
    """DownloadService whose client is served by `handler`."""
    service = DownloadService()
    service._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return service


class TestDownloadService:
    """Test DownloadService."""

    @pytest.mark.asyncio
    async def test_download(self):
        """Test content and content type are returned."""
        def handler(request):
            return httpx.Response(
                200, content=b"ID3 audio", headers={"content-type": "audio/mpeg; charset=binary"}
            )

        service = mock_service(handler)
        result = await service.download("https://cdn.example.com/track.mp3")
        await service.close()

        assert result.content == b"ID3 audio"
        assert result.content_type == "audio/mpeg"
        assert result.size_bytes == 9

    @pytest.mark.asyncio
    async def test_download_without_content_type(self):
        service = mock_service(lambda request: httpx.Response(200, content=b"abc"))
        result = await service.download("https://cdn.example.com/file")
        await service.close()

        assert result.content_type is None

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        """Test 4xx raises immediately."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        service = mock_service(handler)
        with pytest.raises(httpx.HTTPStatusError):
            await service.download("https://cdn.example.com/missing.mp3")
        await service.close()

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_retried(self, monkeypatch):
        """Test 5xx is retried before succeeding."""
        monkeypatch.setattr(BaseService._get_bytes.retry, "wait", wait_none())
        responses = [httpx.Response(503), httpx.Response(200, content=b"ok")]

        service = mock_service(lambda request: responses.pop(0))
        result = await service.download("https://cdn.example.com/track.mp3")
        await service.close()

        assert result.content == b"ok"
        assert responses == []

    @pytest.mark.asyncio
    async def test_rate_limit_retried(self, monkeypatch):
        monkeypatch.setattr(BaseService._get_bytes.retry, "wait", wait_none())
        responses = [httpx.Response(429), httpx.Response(200, content=b"ok")]

        service = mock_service(lambda request: responses.pop(0))
        result = await service.download("https://cdn.example.com/track.mp3")
        await service.close()

        assert result.content == b"ok"

    @pytest.mark.asyncio
    async def test_size_limit(self, monkeypatch):
        """Test bodies over DOWNLOAD_MAX_BYTES are rejected without retrying."""
        monkeypatch.setattr(settings, "DOWNLOAD_MAX_BYTES", 4)
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, content=b"too many bytes")

        service = mock_service(handler)
        with pytest.raises(ResponseTooLargeError):
            await service.download("https://cdn.example.com/huge.wav")
        await service.close()

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_empty_url(self):
        service = DownloadService()
        with pytest.raises(ValueError):
            await service.download("")


class TestRetryPolicy:
    """Test which failures count as transient."""

    @pytest.mark.parametrize("status,expected", [
        (404, False), (403, False), (429, True), (500, True), (503, True),
    ])
    def test_retryable_status(self, status, expected):
        assert is_retryable_status(status) is expected

    def test_transient_errors(self):
        assert is_transient(httpx.ConnectError("refused"))
        assert is_transient(httpx.ReadTimeout("slow"))
        assert is_transient(RetryableError("HTTP 503"))
        assert not is_transient(ValueError("URL is required"))

    def test_protocol_errors_not_transient(self):
        assert not is_transient(httpx.UnsupportedProtocol("Request URL has an unsupported protocol 'ftp://'."))
        assert not is_transient(httpx.LocalProtocolError("Illegal header value"))

    @pytest.mark.asyncio
    async def test_unsupported_scheme_attempted_once(self, monkeypatch):
        """Test an ftp:// URL fails on the first attempt instead of backing off."""
        monkeypatch.setattr(BaseService._get_bytes.retry, "wait", wait_none())
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.UnsupportedProtocol("Request URL has an unsupported protocol 'ftp://'.")

        service = mock_service(handler)
        with pytest.raises(httpx.UnsupportedProtocol):
            await service.download("ftp://example.com/a.mp3")
        await service.close()

        assert len(calls) == 1


class TestUrlToBinaryNode:
    """Test the URL to Binary node with a mocked downloader."""

    def make_node(self, content=b"ID3 audio", content_type="audio/mpeg"):
        downloader = AsyncMock(spec=DownloadService)
        downloader.download.return_value = DownloadResult(
            url="https://cdn.example.com/track.mp3",
            content=content,
            content_type=content_type,
            size_bytes=len(content),
        )
        return UrlToBinaryNode(downloader=downloader), downloader

    @pytest.mark.asyncio
    async def test_download_to_binary(self):
        """Test file name from URL and type from the response."""
        node, downloader = self.make_node()
        request = NodeExecutionRequest(parameters={"url": "https://cdn.example.com/track.mp3"})

        items = await node.execute(request)

        item = items[0]
        assert item.json_data == {
            "url": "https://cdn.example.com/track.mp3",
            "fileName": "track.mp3",
            "fileSize": 9,
            "mimeType": "audio/mpeg",
        }
        binary = item.binary["data"]
        assert base64.b64decode(binary.data) == b"ID3 audio"
        assert binary.file_extension == "mp3"
        downloader.download.assert_awaited_once_with("https://cdn.example.com/track.mp3")
        downloader.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_option_overrides(self):
        """Test fileName and mimeType options win."""
        node, _ = self.make_node()
        request = NodeExecutionRequest(parameters={
            "url": "https://cdn.example.com/track.mp3",
            "outputBinaryPropertyName": "bgm",
            "options": {"fileName": "music.ogg", "mimeType": "audio/ogg"},
        })

        items = await node.execute(request)

        binary = items[0].binary["bgm"]
        assert binary.file_name == "music.ogg"
        assert binary.mime_type == "audio/ogg"

    @pytest.mark.asyncio
    async def test_type_guessed_from_name(self):
        """Test missing content type falls back to the file name."""
        node, _ = self.make_node(content_type=None)
        request = NodeExecutionRequest(parameters={"url": "https://cdn.example.com/track.wav"})

        items = await node.execute(request)

        assert items[0].json_data["mimeType"] == "audio/wav"

    @pytest.mark.asyncio
    async def test_download_failure(self):
        """Test download errors are wrapped and the client is closed."""
        node, downloader = self.make_node()
        downloader.download.side_effect = httpx.ConnectError("connection refused")
        request = NodeExecutionRequest(parameters={"url": "https://cdn.example.com/track.mp3"})

        with pytest.raises(NodeOperationError) as exc_info:
            await node.execute(request)

        assert exc_info.value.message == "Failed to download from URL: connection refused"
        assert exc_info.value.item_index == 0
        downloader.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_download_failure_continue_on_fail(self):
        node, downloader = self.make_node()
        downloader.download.side_effect = httpx.ConnectError("connection refused")
        request = NodeExecutionRequest(
            parameters={"url": "https://cdn.example.com/track.mp3"},
            continue_on_fail=True,
        )

        items = await node.execute(request)

        assert items[0].json_data == {"error": "Failed to download from URL: connection refused"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
