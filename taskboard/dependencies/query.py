from fastapi import Query

from taskboard.config import settings
from taskboard.services.query_builder import ListQuery, parse_list_query


async def get_task_list_query(
    where: str | None = Query(None, description="JSON filter document"),
    sort: str | None = Query(None, description='JSON sort document, e.g. {"deadline": 1}'),
    select: str | None = Query(None, description="JSON projection"),
    skip: str | None = Query(None, description="Number of tasks to skip"),
    limit: str | None = Query(None, description="Maximum number of tasks"),
    count: str | None = Query(None, description="Return only the number of matches"),
) -> ListQuery:
    """List parameters for GET /tasks; the limit defaults to DEFAULT_TASK_LIMIT."""
    return parse_list_query(
        where=where,
        sort=sort,
        select=select,
        skip=skip,
        limit=limit,
        count=count,
        default_limit=settings.default_task_limit,
    )


async def get_user_list_query(
    where: str | None = Query(None, description="JSON filter document"),
    sort: str | None = Query(None, description='JSON sort document, e.g. {"name": 1}'),
    select: str | None = Query(None, description="JSON projection"),
    skip: str | None = Query(None, description="Number of users to skip"),
    limit: str | None = Query(None, description="Maximum number of users"),
    count: str | None = Query(None, description="Return only the number of matches"),
) -> ListQuery:
    """List parameters for GET /users; unbounded unless a limit is given."""
    return parse_list_query(
        where=where, sort=sort, select=select, skip=skip, limit=limit, count=count
    )


async def get_select(
    select: str | None = Query(None, description="JSON projection"),
) -> dict | None:
    """Projection for single-record GET routes."""
    return parse_list_query(select=select).select
