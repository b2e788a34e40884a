"""Firestore query builder from filter/order/cursor descriptors."""

from __future__ import annotations

import logging
from typing import Any

from google.cloud.firestore_v1.base_query import FieldFilter

from .exceptions import UnorderedCursorError
from .filters import Filter, FilterOperator, IsNull
from .query import CollectionQuery, CursorBound

logger = logging.getLogger(__name__)

_FIRESTORE_OP_MAP: dict[FilterOperator, str] = {
    FilterOperator.EQUALS: "==",
    FilterOperator.LESS_THAN: "<",
    FilterOperator.LESS_OR_EQUAL: "<=",
    FilterOperator.GREATER_THAN: ">",
    FilterOperator.GREATER_OR_EQUAL: ">=",
    FilterOperator.ARRAY_CONTAINS: "array_contains",
    FilterOperator.ARRAY_CONTAINS_ANY: "array_contains_any",
    FilterOperator.IN: "in",
}


def compile_filter(flt: Filter) -> FieldFilter:
    """Compile a filter descriptor to a Firestore ``FieldFilter``."""
    if isinstance(flt, IsNull):
        return FieldFilter(flt.field, "==" if flt.is_null else "!=", None)
    op_string = _FIRESTORE_OP_MAP[flt.operator]
    operand = flt.operand
    if isinstance(operand, tuple):
        operand = list(operand)
    return FieldFilter(flt.field, op_string, operand)


class FirestoreQueryBuilder:
    """Applies a :class:`CollectionQuery` to a Firestore collection reference.

    Works with both the async and the sync client: only the chainable
    ``where``/``order_by``/``limit``/cursor methods shared by their query
    classes are used.
    """

    def __init__(self, *, strict_cursors: bool = False) -> None:
        self._strict_cursors = strict_cursors

    @property
    def strict_cursors(self) -> bool:
        return self._strict_cursors

    def build(self, ref: Any, criteria: CollectionQuery) -> Any:
        """Return ``ref`` narrowed by ``criteria``.

        Filters are applied first, then orderings in sequence, then the
        limit, then cursors.
        """
        query = ref
        for flt in criteria.filters:
            query = query.where(filter=compile_filter(flt))
        for order in criteria.order_by:
            query = query.order_by(order.field, direction=order.direction.value)
        if criteria.limit is not None:
            query = query.limit(criteria.limit)
        return self.apply_cursors(query, criteria)

    def validate(self, criteria: CollectionQuery) -> None:
        """Raise :class:`UnorderedCursorError` for unordered cursors in strict mode."""
        if self._strict_cursors and criteria.cursors and not criteria.is_ordered:
            raise UnorderedCursorError([c.bound.value for c in criteria.cursors])

    def apply_cursors(self, query: Any, criteria: CollectionQuery) -> Any:
        if not criteria.cursors:
            return query
        self.validate(criteria)
        if not criteria.is_ordered:
            bounds = [c.bound.value for c in criteria.cursors]
            logger.warning(
                "Ignoring cursor bound(s) %s on a query without ordering", bounds
            )
            return query
        for cursor in criteria.cursors:
            values = list(cursor.values)
            if cursor.bound is CursorBound.START_AT:
                query = query.start_at(values)
            elif cursor.bound is CursorBound.START_AFTER:
                query = query.start_after(values)
            elif cursor.bound is CursorBound.END_AT:
                query = query.end_at(values)
            else:
                query = query.end_before(values)
        return query
