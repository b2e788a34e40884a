"""Unit tests for FirestoreQueryBuilder."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest
from google.cloud.firestore_v1.base_query import FieldFilter

from firestore_collections.exceptions import UnorderedCursorError
from firestore_collections.filters import (
    ArrayContains,
    ArrayContainsAny,
    Equals,
    GreaterOrEqual,
    GreaterThan,
    InSet,
    IsNull,
    LessOrEqual,
    LessThan,
)
from firestore_collections.query import CollectionQuery, Cursor
from firestore_collections.query_builder import FirestoreQueryBuilder, compile_filter


_NULL_CHECKS = {"IS_NULL": "==", "IS_NOT_NULL": "!="}


def _as_tuple(field_filter: FieldFilter) -> tuple:
    op = field_filter.op_string
    if not isinstance(op, str):
        # Newer clients store null checks as a unary operator enum.
        op = _NULL_CHECKS[op.name]
    return (field_filter.field_path, op, field_filter.value)


class TestCompileFilter:
    @pytest.mark.parametrize(
        "flt,expected",
        [
            (Equals("status", "active"), ("status", "==", "active")),
            (LessThan("priority", 3), ("priority", "<", 3)),
            (LessOrEqual("priority", 3), ("priority", "<=", 3)),
            (GreaterThan("priority", 3), ("priority", ">", 3)),
            (GreaterOrEqual("priority", 3), ("priority", ">=", 3)),
            (ArrayContains("tags", "x"), ("tags", "array_contains", "x")),
            (ArrayContainsAny("tags", ("x", "y")), ("tags", "array_contains_any", ["x", "y"])),
            (InSet("status", ("a", "b")), ("status", "in", ["a", "b"])),
            (IsNull("owner"), ("owner", "==", None)),
            (IsNull("owner", False), ("owner", "!=", None)),
        ],
    )
    def test_compile(self, flt, expected):
        assert _as_tuple(compile_filter(flt)) == expected


class TestBuild:
    """The builder chains calls on whatever reference it is given."""

    def _ref(self) -> MagicMock:
        ref = MagicMock(name="collection")
        # Every chained call returns the same mock so the call order is visible.
        for method in ("where", "order_by", "limit", "start_at", "start_after", "end_at", "end_before"):
            getattr(ref, method).return_value = ref
        return ref

    def test_empty_query_returns_reference(self):
        ref = self._ref()

        assert FirestoreQueryBuilder().build(ref, CollectionQuery()) is ref
        assert ref.method_calls == []

    def test_call_order(self):
        ref = self._ref()
        criteria = CollectionQuery.build(
            filters=[Equals("status", "active"), GreaterThan("priority", 1)],
            order_by=["-createdAt", "title"],
            limit=5,
            cursors=[Cursor.start_after("x"), Cursor.end_before("y")],
        )

        FirestoreQueryBuilder().build(ref, criteria)

        names = [c[0] for c in ref.method_calls]
        assert names == [
            "where",
            "where",
            "order_by",
            "order_by",
            "limit",
            "start_after",
            "end_before",
        ]
        assert ref.order_by.call_args_list[0].args == ("createdAt",)
        assert ref.order_by.call_args_list[0].kwargs == {"direction": "DESCENDING"}
        assert ref.order_by.call_args_list[1].kwargs == {"direction": "ASCENDING"}
        ref.limit.assert_called_once_with(5)
        ref.start_after.assert_called_once_with(["x"])
        ref.end_before.assert_called_once_with(["y"])

    def test_where_uses_field_filter(self):
        ref = self._ref()

        FirestoreQueryBuilder().build(ref, CollectionQuery.build(filters=[Equals("a", 1)]))

        passed = ref.where.call_args.kwargs["filter"]
        assert isinstance(passed, FieldFilter)
        assert _as_tuple(passed) == ("a", "==", 1)

    def test_all_cursor_bounds(self):
        ref = self._ref()
        criteria = CollectionQuery.build(
            order_by="n",
            cursors=[Cursor.start_at(1), Cursor.end_at(9)],
        )

        FirestoreQueryBuilder().build(ref, criteria)

        ref.start_at.assert_called_once_with([1])
        ref.end_at.assert_called_once_with([9])

    def test_unordered_cursor_is_dropped_with_warning(self, caplog):
        ref = self._ref()
        criteria = CollectionQuery.build(cursors=Cursor.start_after("x"))

        with caplog.at_level(logging.WARNING, logger="firestore_collections.query_builder"):
            FirestoreQueryBuilder().build(ref, criteria)

        ref.start_after.assert_not_called()
        assert "Ignoring cursor" in caplog.text

    def test_unordered_cursor_rejected_in_strict_mode(self):
        builder = FirestoreQueryBuilder(strict_cursors=True)
        criteria = CollectionQuery.build(cursors=[Cursor.start_at(1), Cursor.end_at(2)])

        with pytest.raises(UnorderedCursorError) as exc_info:
            builder.build(self._ref(), criteria)

        assert exc_info.value.bounds == ["start_at", "end_at"]

    def test_validate_passes_when_ordered(self):
        builder = FirestoreQueryBuilder(strict_cursors=True)

        builder.validate(CollectionQuery.build(order_by="a", cursors=Cursor.start_at(1)))
