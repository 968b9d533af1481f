"""
Node runtime: the execution context handed to nodes and the item loop.

Mirrors the host's node contract: a node declares a description (its
parameters) and processes every input item, pairing each output item with
the input it came from.
"""

import base64
import binascii
import logging
from pathlib import Path
from typing import Any, List, Optional

from schemas import (
    BinaryData,
    NodeDescription,
    NodeExecutionRequest,
    NodeItem,
    NodeProperty,
    PairedItem,
)
from utils.logging import get_logger, log_with_context
from utils.media import MIME_EXTENSIONS, guess_mime_type
from utils.tempfiles import TempFileSet

logger = get_logger(__name__)

_MISSING = object()


class NodeOperationError(Exception):
    """A node could not process an item; carries the failing item index."""

    def __init__(self, node: str, message: str, item_index: Optional[int] = None):
        # Keep all fields in args so the error survives a round trip through
        # the Celery result backend
        super().__init__(node, message, item_index)
        self.node = node
        self.message = message
        self.item_index = item_index

    def __str__(self) -> str:
        if self.item_index is None:
            return self.message
        return f"{self.message} [item {self.item_index}]"


class NodeExecutionContext:
    """
    Access to input items and parameters for a single node execution.

    Usage:
        ctx = NodeExecutionContext(node.description, request)
        bitrate = ctx.get_node_parameter("bitrate", 0)
    """

    def __init__(self, description: NodeDescription, request: NodeExecutionRequest):
        self.description = description
        self.request = request
        self._defaults = {p.name: p.default for p in description.properties}

    @property
    def node_name(self) -> str:
        return self.description.name

    def get_input_data(self) -> List[NodeItem]:
        return self.request.items

    def get_node_parameter(self, name: str, item_index: int, default: Any = _MISSING) -> Any:
        """
        Resolve a parameter for one item.

        Lookup order: per-item override, shared parameters, the caller's
        default, the default declared in the node description.
        """
        overrides = self.request.item_parameters or []
        if item_index < len(overrides) and name in (overrides[item_index] or {}):
            return overrides[item_index][name]

        if name in self.request.parameters:
            return self.request.parameters[name]

        if default is not _MISSING:
            return default

        if name in self._defaults:
            declared = self._defaults[name]
            # Collections are handed out as fresh dicts
            return dict(declared) if isinstance(declared, dict) else declared

        raise NodeOperationError(
            self.node_name, f'Could not get parameter "{name}"', item_index
        )

    def assert_binary_data(self, item_index: int, property_name: str) -> BinaryData:
        """Binary payload of an item, or a NodeOperationError if it is absent."""
        item = self.request.items[item_index]
        binary = item.binary.get(property_name)
        if binary is None:
            raise NodeOperationError(
                self.node_name,
                f"This operation expects the node's input data to contain a binary "
                f"file '{property_name}', but none was found",
                item_index,
            )
        return binary

    def get_binary_data_buffer(self, item_index: int, property_name: str) -> bytes:
        binary = self.assert_binary_data(item_index, property_name)
        try:
            return base64.b64decode(binary.data, validate=True)
        except (binascii.Error, ValueError):
            raise NodeOperationError(
                self.node_name,
                f"Binary property '{property_name}' is not valid base64 data",
                item_index,
            )

    def prepare_binary_data(
        self,
        buffer: bytes,
        file_name: str,
        mime_type: Optional[str] = None,
    ) -> BinaryData:
        """Wrap raw bytes as an output binary payload."""
        mime_type = mime_type or guess_mime_type(file_name)

        if "." in file_name.lstrip("."):
            file_extension = file_name.rsplit(".", 1)[-1].lower()
        else:
            file_extension = MIME_EXTENSIONS.get(mime_type)

        return BinaryData(
            data=base64.b64encode(buffer).decode("ascii"),
            mime_type=mime_type,
            file_name=file_name,
            file_extension=file_extension,
            file_size=len(buffer),
        )


class BaseNode:
    """
    Base class for all nodes.

    Subclasses set `description` and implement `execute_item`, which returns
    the output item for one input item. The base loop takes care of item
    pairing, error wrapping and continue-on-fail.
    """

    description: NodeDescription

    @property
    def name(self) -> str:
        return self.description.name

    @staticmethod
    def parameter(display_name: str, name: str, type: str, default: Any, **kwargs) -> NodeProperty:
        """Shorthand for declaring a node parameter."""
        return NodeProperty(display_name=display_name, name=name, type=type, default=default, **kwargs)

    async def execute_item(self, ctx: NodeExecutionContext, item_index: int) -> NodeItem:
        raise NotImplementedError

    async def execute(self, request: NodeExecutionRequest) -> List[NodeItem]:
        """
        Run the node over every input item.

        Args:
            request: Items plus parameters

        Returns:
            Output items, one per input item, in input order

        Raises:
            NodeOperationError: On the first failing item unless
                continue_on_fail is set
        """
        ctx = NodeExecutionContext(self.description, request)
        return_data: List[NodeItem] = []

        for i in range(len(ctx.get_input_data())):
            try:
                item = await self.execute_item(ctx, i)
            except Exception as e:
                error = self._as_operation_error(e, i)
                if not request.continue_on_fail:
                    log_with_context(logger, logging.ERROR, "Item failed", node=self.name, item=i, error=error.message)
                    if error is e:
                        raise
                    raise error from e

                log_with_context(logger, logging.WARNING, "Item failed, continuing", node=self.name, item=i, error=error.message)
                return_data.append(NodeItem(
                    json={"error": error.message},
                    paired_item=PairedItem(item=i),
                ))
                continue

            item.paired_item = PairedItem(item=i)
            return_data.append(item)
            log_with_context(logger, logging.INFO, "Item processed", node=self.name, item=i)

        return return_data

    def _as_operation_error(self, exc: Exception, item_index: int) -> NodeOperationError:
        if isinstance(exc, NodeOperationError):
            if exc.item_index is None:
                return NodeOperationError(exc.node, exc.message, item_index)
            return exc
        return NodeOperationError(self.name, str(exc), item_index)

    def operation_error(self, message: str, item_index: int) -> NodeOperationError:
        return NodeOperationError(self.name, message, item_index)

    def read_output(self, files: TempFileSet, path: Path, item_index: int) -> bytes:
        """Read what ffmpeg wrote; a zero exit with no file is still a failure."""
        try:
            return files.read(path)
        except FileNotFoundError as e:
            raise self.operation_error("FFmpeg failed: no output file was written", item_index) from e
