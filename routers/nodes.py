"""
Node API endpoints - describe, execute and queue nodes.
Stands in for the host's node registration and execution interface.
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from typing import List

from nodes import get_node, list_descriptions, NodeOperationError
from schemas import (
    ExecutionStatusResponse,
    NodeDescription,
    NodeErrorResponse,
    NodeExecutionRequest,
    NodeExecutionResponse,
    QueuedExecutionResponse,
)
from utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/nodes", tags=["nodes"])


def _load_node(name: str):
    try:
        return get_node(name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown node: {name}")


@router.get("", response_model=List[NodeDescription], response_model_exclude_none=True)
async def list_nodes():
    """List the descriptions of every registered node."""
    return list_descriptions()


@router.get("/status/{task_id}", response_model=ExecutionStatusResponse)
async def get_execution_status(task_id: str):
    """
    Get status of a queued node execution.

    Args:
        task_id: Celery task ID from the queue response
    """
    from celery.result import AsyncResult
    from celery_app import celery_app

    result = AsyncResult(task_id, app=celery_app)

    response = ExecutionStatusResponse(
        task_id=task_id,
        status=result.status
    )

    if result.ready():
        if result.successful():
            response.result = result.get()
        else:
            response.error = str(result.result)

    return response


@router.get("/{name}", response_model=NodeDescription, response_model_exclude_none=True)
async def describe_node(name: str):
    """Get the description (parameters, defaults) of one node."""
    return _load_node(name).description


@router.post(
    "/{name}/execute",
    response_model=NodeExecutionResponse,
    response_model_exclude_none=True,
    responses={422: {"model": NodeErrorResponse}},
)
async def execute_node(name: str, request: NodeExecutionRequest):
    """
    Execute a node over the given items and return its output items.

    A failing item aborts the run with 422 unless continueOnFail is set,
    in which case the error is reported on that item instead.
    """
    node = _load_node(name)

    try:
        items = await node.execute(request)
    except NodeOperationError as e:
        error = NodeErrorResponse(message=e.message, item_index=e.item_index)
        return JSONResponse(status_code=422, content=error.model_dump(by_alias=True))

    return NodeExecutionResponse(node=name, items=items)


@router.post("/{name}/queue", response_model=QueuedExecutionResponse)
async def queue_node(name: str, request: NodeExecutionRequest):
    """
    Queue a node execution on a Celery worker.

    Use for long-running work such as narration/BGM mixes; poll
    /api/nodes/status/{task_id} for the result.
    """
    from tasks import execute_node as execute_node_task

    _load_node(name)
    payload = request.model_dump(by_alias=True, exclude_none=True)
    task = execute_node_task.delay(name, payload)

    logger.info(f"Queued node {name} as task {task.id}")
    return QueuedExecutionResponse(
        task_id=task.id,
        node=name,
        message="Node execution queued for processing"
    )
