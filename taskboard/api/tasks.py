"""
Task API Routes - CRUD endpoints for tasks.

Every write keeps the assigned user's pendingTasks list in step with the
task's assignment and completion state (see services.task_service).
"""

from fastapi import APIRouter, Depends, Response, status

from taskboard.dependencies import get_select, get_task_list_query
from taskboard.exceptions import ServerError, TaskboardError
from taskboard.schemas import ApiResponse, TaskPayload, serialize_task
from taskboard.services.query_builder import ListQuery, apply_projection
from taskboard.services.task_service import TaskService
from taskboard.utils.logger import setup_logger

logger = setup_logger("api.tasks")

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


@router.get("", response_model=ApiResponse)
async def list_tasks(
    query: ListQuery = Depends(get_task_list_query),
    task_service: TaskService = Depends(),
):
    """List tasks, or count them with `count=true`."""
    try:
        result = await task_service.list_tasks(query)
    except TaskboardError:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch tasks. Error: {e}", exc_info=True)
        raise ServerError() from e

    if query.count:
        return ApiResponse(message="OK", data=result)
    return ApiResponse(
        message="OK",
        data=[apply_projection(serialize_task(t), query.select) for t in result],
    )


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskPayload,
    task_service: TaskService = Depends(),
):
    """Create a task. An assigned user must exist; its name is copied onto the task."""
    try:
        task = await task_service.create_task(payload)
    except TaskboardError:
        raise
    except Exception as e:
        logger.error(f"Error creating task: {e}", exc_info=True)
        raise ServerError() from e
    return ApiResponse(message="Task created", data=serialize_task(task))


@router.get("/{task_id}", response_model=ApiResponse)
async def get_task(
    task_id: str,
    select: dict | None = Depends(get_select),
    task_service: TaskService = Depends(),
):
    try:
        task = await task_service.get_task(task_id)
    except TaskboardError:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch task {task_id}: {e}", exc_info=True)
        raise ServerError() from e
    return ApiResponse(message="OK", data=apply_projection(serialize_task(task), select))


@router.put("/{task_id}", response_model=ApiResponse)
async def replace_task(
    task_id: str,
    payload: TaskPayload,
    task_service: TaskService = Depends(),
):
    """Replace a task (PUT semantics: omitted fields fall back to their defaults)."""
    try:
        task = await task_service.replace_task(task_id, payload)
    except TaskboardError:
        raise
    except Exception as e:
        logger.error(f"Error replacing task {task_id}: {e}", exc_info=True)
        raise ServerError() from e
    return ApiResponse(message="OK", data=serialize_task(task))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    task_service: TaskService = Depends(),
):
    try:
        await task_service.delete_task(task_id)
    except TaskboardError:
        raise
    except Exception as e:
        logger.error(f"Error deleting task {task_id}: {e}", exc_info=True)
        raise ServerError() from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
