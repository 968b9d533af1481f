"""Node implementations and the registry the HTTP layer looks them up in."""

from typing import Dict, List, Type

from schemas import NodeDescription

from .base import BaseNode, NodeExecutionContext, NodeOperationError
from .ffmpeg import FfmpegNode
from .audio_convert import AudioConvertNode
from .url_to_binary import UrlToBinaryNode

NODE_TYPES: Dict[str, Type[BaseNode]] = {
    node.description.name: node
    for node in (FfmpegNode, AudioConvertNode, UrlToBinaryNode)
}


def get_node(name: str) -> BaseNode:
    """
    Instantiate a node by its internal name.

    Raises:
        KeyError: If no node is registered under that name
    """
    try:
        node_class = NODE_TYPES[name]
    except KeyError:
        raise KeyError(f"Unknown node: {name}")
    return node_class()


def list_descriptions() -> List[NodeDescription]:
    return [node.description for node in NODE_TYPES.values()]


__all__ = [
    "BaseNode",
    "NodeExecutionContext",
    "NodeOperationError",
    "FfmpegNode",
    "AudioConvertNode",
    "UrlToBinaryNode",
    "NODE_TYPES",
    "get_node",
    "list_descriptions",
]
