"""
Translation of the list-endpoint query string into SQLAlchemy clauses.

GET /tasks and GET /users accept JSON-encoded `where`, `sort` and `select`
parameters written in the familiar document-store dialect, for example::

    ?where={"completed": false, "_id": {"$in": ["…", "…"]}}
    &sort={"deadline": 1}&select={"name": 1}&skip=20&limit=10

Only a small subset of that dialect is understood: field equality, the
comparison operators in `_OPERATORS`, and top-level `$and` / `$or`. Anything
else is rejected with a ValidationError instead of being silently ignored.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Boolean, DateTime, String, Uuid, and_, false, or_, true
from sqlalchemy.sql.elements import ColumnElement

from taskboard.exceptions import ValidationError
from taskboard.models import Task, User
from taskboard.models.base import as_utc

INVALID_JSON_MESSAGE = "Invalid JSON in query parameters"

# JSON field name -> model attribute name, for every filterable/sortable field
TASK_FIELDS = {
    "_id": "id",
    "name": "name",
    "description": "description",
    "deadline": "deadline",
    "completed": "completed",
    "assignedUser": "assigned_user",
    "assignedUserName": "assigned_user_name",
    "dateCreated": "date_created",
}

USER_FIELDS = {
    "_id": "id",
    "name": "name",
    "email": "email",
    "dateCreated": "date_created",
}

FIELD_MAPS = {Task: TASK_FIELDS, User: USER_FIELDS}

_datetime_adapter = TypeAdapter(datetime)

_INVALID = object()


@dataclass
class ListQuery:
    """Parsed list parameters, ready to be handed to a DB handler."""

    where: dict[str, Any] = field(default_factory=dict)
    sort: dict[str, Any] | None = None
    select: dict[str, Any] | None = None
    skip: int = 0
    limit: int | None = None
    count: bool = False


def parse_json_param(raw: str | None, fallback: Any = None) -> Any:
    """Decode one JSON-encoded query parameter; a missing parameter yields `fallback`."""
    if raw is None or raw == "":
        return fallback
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(INVALID_JSON_MESSAGE) from e


def _parse_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def parse_list_query(
    *,
    where: str | None = None,
    sort: str | None = None,
    select: str | None = None,
    skip: str | None = None,
    limit: str | None = None,
    count: str | None = None,
    default_limit: int | None = None,
) -> ListQuery:
    """
    Build a ListQuery from raw query-string values.

    `default_limit` applies when `limit` is missing, unparsable or zero; with
    no default the listing is unbounded unless the caller asks for a limit.
    """
    where_value = parse_json_param(where, {})
    sort_value = parse_json_param(sort)
    select_value = parse_json_param(select)
    count_value = parse_json_param(count, False)

    if where_value is None:
        where_value = {}
    if not isinstance(where_value, dict):
        raise ValidationError("where must be a JSON object")
    if sort_value is not None and not isinstance(sort_value, dict):
        raise ValidationError("sort must be a JSON object")
    if select_value is not None:
        if not isinstance(select_value, dict):
            raise ValidationError("select must be a JSON object")
        validate_projection(select_value)

    skip_value = max(0, _parse_int(skip) or 0)

    limit_value = _parse_int(limit)
    if default_limit is not None:
        limit_value = max(1, limit_value or default_limit)
    elif limit_value is not None and limit_value <= 0:
        limit_value = None

    return ListQuery(
        where=where_value,
        sort=sort_value or None,
        select=select_value or None,
        skip=skip_value,
        limit=limit_value,
        count=count_value is True,
    )


def _column(model, json_name: str):
    fields = FIELD_MAPS[model]
    if json_name not in fields:
        raise ValidationError(f"Unsupported field in query: {json_name}")
    return getattr(model, fields[json_name])


def _coerce(column, value: Any) -> Any:
    """Convert a JSON value to what the column stores; `_INVALID` if it cannot match."""
    if value is None:
        return None
    column_type = column.type
    if isinstance(column_type, Uuid):
        try:
            return uuid.UUID(str(value))
        except ValueError:
            return _INVALID
    if isinstance(column_type, DateTime):
        try:
            return as_utc(_datetime_adapter.validate_python(value))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid date value in query: {value!r}") from e
    if isinstance(column_type, Boolean) and not isinstance(value, bool):
        raise ValidationError(f"Invalid boolean value in query: {value!r}")
    if isinstance(column_type, String) and not isinstance(value, str):
        raise ValidationError(f"Invalid string value in query: {value!r}")
    return value


def _equals(column, value: Any) -> ColumnElement:
    if isinstance(value, (list, dict)):
        raise ValidationError("Array and document matching are not supported")
    coerced = _coerce(column, value)
    if coerced is _INVALID:
        return false()
    if coerced is None:
        return column.is_(None)
    return column == coerced


def _membership(column, values: Any, negate: bool) -> ColumnElement:
    if not isinstance(values, list):
        raise ValidationError("$in and $nin expect an array")
    coerced = [_coerce(column, v) for v in values]
    coerced = [v for v in coerced if v is not _INVALID]
    if not coerced:
        return true() if negate else false()
    return column.not_in(coerced) if negate else column.in_(coerced)


def _compare(operator: str):
    def build(column, value: Any) -> ColumnElement:
        coerced = _coerce(column, value)
        if coerced is _INVALID or coerced is None:
            return false()
        return getattr(column, operator)(coerced)

    return build


_OPERATORS = {
    "$eq": _equals,
    "$ne": lambda column, value: ~_equals(column, value),
    "$in": lambda column, value: _membership(column, value, negate=False),
    "$nin": lambda column, value: _membership(column, value, negate=True),
    "$gt": _compare("__gt__"),
    "$gte": _compare("__ge__"),
    "$lt": _compare("__lt__"),
    "$lte": _compare("__le__"),
}


def _field_condition(column, criteria: Any) -> ColumnElement:
    if isinstance(criteria, dict) and criteria and all(k.startswith("$") for k in criteria):
        clauses = []
        for operator, operand in criteria.items():
            if operator not in _OPERATORS:
                raise ValidationError(f"Unsupported query operator: {operator}")
            clauses.append(_OPERATORS[operator](column, operand))
        return and_(*clauses)
    return _equals(column, criteria)


def build_conditions(model, where: dict[str, Any]) -> list[ColumnElement]:
    """Translate a `where` document into a list of AND-ed SQLAlchemy conditions."""
    conditions = []
    for key, criteria in where.items():
        if key in ("$and", "$or"):
            if not isinstance(criteria, list) or not all(isinstance(s, dict) for s in criteria):
                raise ValidationError(f"{key} expects an array of objects")
            branches = [and_(true(), *build_conditions(model, s)) for s in criteria]
            if not branches:
                raise ValidationError(f"{key} expects a non-empty array")
            conditions.append(and_(*branches) if key == "$and" else or_(*branches))
        elif key.startswith("$"):
            raise ValidationError(f"Unsupported query operator: {key}")
        else:
            conditions.append(_field_condition(_column(model, key), criteria))
    return conditions


def build_order_by(model, sort: dict[str, Any] | None) -> list:
    if not sort:
        return []
    clauses = []
    for key, direction in sort.items():
        column = _column(model, key)
        if direction in (1, "1", "asc", "ascending"):
            clauses.append(column.asc())
        elif direction in (-1, "-1", "desc", "descending"):
            clauses.append(column.desc())
        else:
            raise ValidationError(f"Invalid sort direction for {key}: {direction!r}")
    return clauses


def validate_projection(select: dict[str, Any]) -> None:
    """Reject projections that mix inclusion and exclusion (except for `_id`)."""
    modes = {bool(v) for k, v in select.items() if k != "_id"}
    if len(modes) > 1:
        raise ValidationError("select cannot mix inclusion and exclusion")


def apply_projection(record: dict[str, Any], select: dict[str, Any] | None) -> dict:
    """Apply an inclusion or exclusion projection to one serialized record."""
    if not select:
        return record

    keep_id = bool(select.get("_id", True))
    others = {k: bool(v) for k, v in select.items() if k != "_id"}

    if (others and all(others.values())) or (not others and keep_id):
        projected = {k: record[k] for k in others if k in record}
        if keep_id and "_id" in record:
            projected = {"_id": record["_id"], **projected}
        return projected

    excluded = {k for k, v in others.items() if not v}
    if not keep_id:
        excluded.add("_id")
    return {k: v for k, v in record.items() if k not in excluded}
