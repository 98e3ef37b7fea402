from taskboard.dependencies.query import (
    get_select,
    get_task_list_query,
    get_user_list_query,
)

__all__ = [
    "get_select",
    "get_task_list_query",
    "get_user_list_query",
]
