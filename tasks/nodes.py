"""
Node execution Celery tasks.
Runs long node executions (mixes, large conversions) off the request path.
"""

import asyncio
from typing import Any, Dict

from celery.utils.log import get_task_logger

from celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(bind=True)
def execute_node(self, node_name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute a node in a worker.

    Args:
        node_name: Registered node name, e.g. "ffmpeg"
        payload: NodeExecutionRequest as JSON (camelCase)

    Returns:
        NodeExecutionResponse as JSON (camelCase)
    """
    logger.info(f"Executing node {node_name} (task {self.request.id})")
    return asyncio.run(_execute_node_async(node_name, payload))


async def _execute_node_async(node_name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Async implementation of node execution."""
    from nodes import get_node
    from schemas import NodeExecutionRequest, NodeExecutionResponse

    node = get_node(node_name)
    request = NodeExecutionRequest.model_validate(payload)
    items = await node.execute(request)

    response = NodeExecutionResponse(node=node_name, items=items)
    return response.model_dump(by_alias=True, exclude_none=True)
