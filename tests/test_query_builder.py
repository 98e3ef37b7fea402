"""Unit tests for the list query translation. No database involved."""

import uuid

import pytest
from sqlalchemy.dialects import sqlite

from taskboard.exceptions import ValidationError
from taskboard.models import Task, User
from taskboard.services.query_builder import (
    apply_projection,
    build_conditions,
    build_order_by,
    parse_list_query,
)


def compile_clause(clause) -> str:
    return str(clause.compile(dialect=sqlite.dialect()))


class TestParseListQuery:
    def test_defaults_without_parameters(self):
        query = parse_list_query()
        assert query.where == {}
        assert query.sort is None
        assert query.select is None
        assert query.skip == 0
        assert query.limit is None
        assert query.count is False

    def test_task_limit_defaults_and_floors(self):
        assert parse_list_query(default_limit=100).limit == 100
        assert parse_list_query(limit="20", default_limit=100).limit == 20
        # zero or garbage falls back to the default, negatives clamp to 1
        assert parse_list_query(limit="0", default_limit=100).limit == 100
        assert parse_list_query(limit="abc", default_limit=100).limit == 100
        assert parse_list_query(limit="-5", default_limit=100).limit == 1

    def test_user_limit_is_unbounded_by_default(self):
        assert parse_list_query(limit="0").limit is None
        assert parse_list_query(limit="7").limit == 7

    def test_skip_never_negative(self):
        assert parse_list_query(skip="-3").skip == 0
        assert parse_list_query(skip="60").skip == 60

    def test_count_must_be_json_true(self):
        assert parse_list_query(count="true").count is True
        assert parse_list_query(count="false").count is False

    @pytest.mark.parametrize("param", ["where", "sort", "select", "count"])
    def test_malformed_json_is_rejected(self, param):
        with pytest.raises(ValidationError, match="Invalid JSON"):
            parse_list_query(**{param: "{not json"})

    def test_mixed_projection_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_list_query(select='{"name": 1, "email": 0}')

    def test_excluding_id_alongside_inclusion_is_allowed(self):
        query = parse_list_query(select='{"_id": 0, "name": 1}')
        assert query.select == {"_id": 0, "name": 1}


class TestBuildConditions:
    def test_equality_on_boolean(self):
        (clause,) = build_conditions(Task, {"completed": True})
        assert "tasks.completed" in compile_clause(clause)

    def test_in_on_id_skips_malformed_ids(self):
        good = str(uuid.uuid4())
        (clause,) = build_conditions(Task, {"_id": {"$in": [good, "nope"]}})
        sql = compile_clause(clause)
        assert "tasks.id IN" in sql

    def test_malformed_id_matches_nothing(self):
        (clause,) = build_conditions(User, {"_id": "not-a-uuid"})
        assert compile_clause(clause) in ("0", "0 = 1", "false")

    def test_or_branches(self):
        (clause,) = build_conditions(
            Task, {"$or": [{"completed": True}, {"assignedUser": ""}]}
        )
        assert " OR " in compile_clause(clause)

    def test_comparison_operators_on_dates(self):
        conditions = build_conditions(
            Task, {"deadline": {"$gte": "2030-01-01T00:00:00Z", "$lt": "2031-01-01"}}
        )
        sql = compile_clause(conditions[0])
        assert ">=" in sql and "<" in sql

    @pytest.mark.parametrize(
        "where",
        [
            {"pendingTasks": "abc"},
            {"unknown": 1},
            {"name": {"$regex": "^a"}},
            {"$where": "1"},
            {"completed": "yes"},
            {"name": ["a", "b"]},
            {"deadline": "not a date"},
        ],
    )
    def test_unsupported_filters_are_rejected(self, where):
        with pytest.raises(ValidationError):
            build_conditions(Task, where)

    @pytest.mark.parametrize(
        "where",
        [
            {"name": 5},
            {"assignedUser": {"$in": [1]}},
            {"description": {"$gt": 3}},
            {"assignedUserName": {"$ne": True}},
        ],
    )
    def test_non_string_values_on_text_columns_are_rejected(self, where):
        with pytest.raises(ValidationError, match="Invalid string value"):
            build_conditions(Task, where)


class TestOrderBy:
    def test_directions(self):
        clauses = build_order_by(User, {"name": 1, "dateCreated": -1})
        rendered = [compile_clause(c) for c in clauses]
        assert rendered == ["users.name ASC", "users.date_created DESC"]

    def test_invalid_direction(self):
        with pytest.raises(ValidationError):
            build_order_by(User, {"name": 2})


class TestProjection:
    record = {"_id": "1", "name": "n", "email": "e", "pendingTasks": []}

    def test_inclusion_keeps_id(self):
        assert apply_projection(self.record, {"name": 1}) == {"_id": "1", "name": "n"}

    def test_inclusion_without_id(self):
        assert apply_projection(self.record, {"_id": 0, "name": 1}) == {"name": "n"}

    def test_exclusion(self):
        assert apply_projection(self.record, {"pendingTasks": 0}) == {
            "_id": "1",
            "name": "n",
            "email": "e",
        }

    def test_only_id_excluded(self):
        assert "_id" not in apply_projection(self.record, {"_id": 0})

    def test_only_id_included(self):
        assert apply_projection(self.record, {"_id": 1}) == {"_id": "1"}
