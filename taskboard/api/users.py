"""
User API Routes - CRUD endpoints for users.

POST can hand a batch of existing tasks to the new user atomically; PUT with
pendingTasks points the listed tasks at the user; DELETE unassigns the
user's tasks.
"""

from fastapi import APIRouter, Depends, Response, status

from taskboard.dependencies import get_select, get_user_list_query
from taskboard.exceptions import ServerError, TaskboardError
from taskboard.schemas import ApiResponse, UserPayload, serialize_user
from taskboard.services.query_builder import ListQuery, apply_projection
from taskboard.services.user_service import UserService
from taskboard.utils.logger import setup_logger

logger = setup_logger("api.users")

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("", response_model=ApiResponse)
async def list_users(
    query: ListQuery = Depends(get_user_list_query),
    user_service: UserService = Depends(),
):
    """List users, or count them with `count=true`."""
    try:
        result = await user_service.list_users(query)
    except TaskboardError:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch users. Error: {e}", exc_info=True)
        raise ServerError() from e

    if query.count:
        return ApiResponse(message="OK", data=result)
    return ApiResponse(
        message="OK",
        data=[apply_projection(serialize_user(u), query.select) for u in result],
    )


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserPayload,
    user_service: UserService = Depends(),
):
    """
    Create a user.

    With `pendingTasks`, the listed tasks are taken over by the new user in
    the same transaction: every id must exist and none may be completed, or
    nothing is created.
    """
    try:
        user = await user_service.create_user(payload)
    except TaskboardError:
        raise
    except Exception as e:
        logger.error(f"Error creating user: {e}", exc_info=True)
        raise ServerError() from e
    return ApiResponse(message="User created", data=serialize_user(user))


@router.get("/{user_id}", response_model=ApiResponse)
async def get_user(
    user_id: str,
    select: dict | None = Depends(get_select),
    user_service: UserService = Depends(),
):
    try:
        user = await user_service.get_user(user_id)
    except TaskboardError:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch user {user_id}: {e}", exc_info=True)
        raise ServerError() from e
    return ApiResponse(message="OK", data=apply_projection(serialize_user(user), select))


@router.put("/{user_id}", response_model=ApiResponse)
async def update_user(
    user_id: str,
    payload: UserPayload,
    user_service: UserService = Depends(),
):
    try:
        user = await user_service.update_user(user_id, payload)
    except TaskboardError:
        raise
    except Exception as e:
        logger.error(f"Error updating user {user_id}: {e}", exc_info=True)
        raise ServerError() from e
    return ApiResponse(message="User updated", data=serialize_user(user))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    user_service: UserService = Depends(),
):
    try:
        await user_service.delete_user(user_id)
    except TaskboardError:
        raise
    except Exception as e:
        logger.error(f"Error deleting user {user_id}: {e}", exc_info=True)
        raise ServerError() from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
