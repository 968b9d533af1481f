"""
URL to Binary node: download a file and hand it on as binary data.
"""

from typing import List, Optional

from schemas import NodeDescription, NodeExecutionRequest, NodeItem
from services.downloader import DownloadService
from utils.media import file_name_from_url, guess_mime_type

from .base import BaseNode, NodeExecutionContext

p = BaseNode.parameter


class UrlToBinaryNode(BaseNode):
    """Node downloading a URL into a binary property."""

    description = NodeDescription(
        display_name="URL to Binary",
        name="urlToBinary",
        group=["input"],
        version=1,
        description="Download a file from URL and output as binary data",
        defaults={"name": "URL to Binary"},
        properties=[
            p("URL", "url", "string", "",
              required=True,
              placeholder="https://example.com/audio.mp3",
              description="URL of the file to download"),
            p("Output Binary Property", "outputBinaryPropertyName", "string", "data",
              description="Name of the binary property for the downloaded file"),
            p("Options", "options", "collection", {},
              placeholder="Add Option",
              options=[
                  p("File Name", "fileName", "string", "",
                    description="Override the file name (derived from URL by default)"),
                  p("MIME Type", "mimeType", "string", "",
                    description="Override the MIME type (auto-detected by default)"),
              ]),
        ],
    )

    def __init__(self, downloader: Optional[DownloadService] = None):
        self.downloader = downloader or DownloadService()

    async def execute(self, request: NodeExecutionRequest) -> List[NodeItem]:
        try:
            return await super().execute(request)
        finally:
            await self.downloader.close()

    async def execute_item(self, ctx: NodeExecutionContext, i: int) -> NodeItem:
        url = ctx.get_node_parameter("url", i)
        output_property = ctx.get_node_parameter("outputBinaryPropertyName", i)
        options = ctx.get_node_parameter("options", i, {}) or {}

        try:
            result = await self.downloader.download(url)
        except Exception as e:
            raise self.operation_error(f"Failed to download from URL: {e}", i) from e

        file_name = options.get("fileName") or file_name_from_url(url)
        mime_type = (
            options.get("mimeType")
            or result.content_type
            or guess_mime_type(file_name)
        )

        binary_data = ctx.prepare_binary_data(result.content, file_name, mime_type)

        return NodeItem(
            json={
                "url": url,
                "fileName": file_name,
                "fileSize": result.size_bytes,
                "mimeType": binary_data.mime_type,
            },
            binary={output_property: binary_data},
        )
