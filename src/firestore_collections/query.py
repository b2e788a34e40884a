"""
Ordering, pagination cursors and the immutable query container.

``CollectionQuery`` bundles filters with result-shaping parameters. The
filters define *what* to match; ordering, limit and cursors define *how*
results are returned::

    criteria = CollectionQuery.build(
        filters=[Equals("status", "active")],
        order_by=["-createdAt"],
        limit=20,
    ).with_cursor(Cursor.start_after(last_seen))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from .exceptions import FirestoreQueryError
from .filters import Filter, coerce_filters

if TYPE_CHECKING:
    from collections.abc import Iterable

_DIRECTION_WORDS = {"asc", "ascending", "desc", "descending"}


class Direction(str, Enum):
    """Sort direction. Values match ``google.cloud.firestore.Query`` constants."""

    ASCENDING = "ASCENDING"
    DESCENDING = "DESCENDING"


@dataclass(frozen=True)
class OrderBy:
    """Order descriptor: a field and its direction (ascending by default)."""

    field: str
    direction: Direction = Direction.ASCENDING

    @property
    def descending(self) -> bool:
        return self.direction is Direction.DESCENDING

    @classmethod
    def parse(cls, item: OrderLike) -> OrderBy:
        """Accept ``OrderBy``, ``"field"``, ``"-field"`` or ``(field, "asc"|"desc")``."""
        if isinstance(item, OrderBy):
            return item
        if isinstance(item, tuple):
            name, direction = item[0], str(item[1]).lower()
            if direction in {"desc", "descending"}:
                return cls(name, Direction.DESCENDING)
            return cls(name)
        if isinstance(item, str):
            if item.startswith("-"):
                return cls(item[1:], Direction.DESCENDING)
            return cls(item)
        raise TypeError(f"Cannot interpret {item!r} as an ordering")

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "direction": self.direction.value}


OrderLike = Union[OrderBy, str, tuple[str, str]]


class CursorBound(str, Enum):
    """Which side of the result window a cursor value bounds."""

    START_AT = "start_at"
    START_AFTER = "start_after"
    END_AT = "end_at"
    END_BEFORE = "end_before"


@dataclass(frozen=True)
class Cursor:
    """Pagination boundary; one value per ordering field."""

    bound: CursorBound
    values: tuple[Any, ...]

    def __post_init__(self) -> None:
        if not self.values:
            raise FirestoreQueryError(f"{self.bound.value} cursor requires a value")
        object.__setattr__(self, "values", tuple(self.values))

    @classmethod
    def start_at(cls, *values: Any) -> Cursor:
        return cls(CursorBound.START_AT, values)

    @classmethod
    def start_after(cls, *values: Any) -> Cursor:
        return cls(CursorBound.START_AFTER, values)

    @classmethod
    def end_at(cls, *values: Any) -> Cursor:
        return cls(CursorBound.END_AT, values)

    @classmethod
    def end_before(cls, *values: Any) -> Cursor:
        return cls(CursorBound.END_BEFORE, values)

    def to_dict(self) -> dict[str, Any]:
        return {"bound": self.bound.value, "values": list(self.values)}


@dataclass(frozen=True)
class CollectionQuery:
    """
    Immutable query over a single collection.

    Attributes:
        filters: Conjunctive filter descriptors.
        order_by: Orderings, applied in sequence.
        limit: Maximum number of results.
        cursors: Pagination bounds. Ignored (or rejected, in strict mode)
            when ``order_by`` is empty.
    """

    filters: tuple[Filter, ...] = ()
    order_by: tuple[OrderBy, ...] = ()
    limit: int | None = None
    cursors: tuple[Cursor, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit <= 0:
            raise FirestoreQueryError(f"limit must be positive, got {self.limit}")

    @classmethod
    def build(
        cls,
        filters: Any = (),
        order_by: Iterable[OrderLike] | OrderLike = (),
        limit: int | None = None,
        cursors: Iterable[Cursor] | Cursor = (),
    ) -> CollectionQuery:
        """Normalise loose inputs into a ``CollectionQuery``."""
        if isinstance(order_by, (str, OrderBy)):
            order_by = [order_by]
        elif (
            isinstance(order_by, tuple)
            and len(order_by) == 2
            and str(order_by[1]).lower() in _DIRECTION_WORDS
        ):
            # A bare ("field", "desc") pair.
            order_by = [order_by]  # type: ignore[list-item]
        if isinstance(cursors, Cursor):
            cursors = [cursors]
        return cls(
            filters=coerce_filters(filters),
            order_by=tuple(OrderBy.parse(o) for o in order_by),  # type: ignore[union-attr]
            limit=limit,
            cursors=tuple(cursors),
        )

    @property
    def is_ordered(self) -> bool:
        return bool(self.order_by)

    def with_filters(self, *filters: Any) -> CollectionQuery:
        """Return a copy with additional filters appended."""
        return CollectionQuery(
            filters=self.filters + coerce_filters(filters),
            order_by=self.order_by,
            limit=self.limit,
            cursors=self.cursors,
        )

    def with_ordering(self, *order_by: OrderLike) -> CollectionQuery:
        """Return a copy with the ordering replaced."""
        return CollectionQuery(
            filters=self.filters,
            order_by=tuple(OrderBy.parse(o) for o in order_by),
            limit=self.limit,
            cursors=self.cursors,
        )

    def with_limit(self, limit: int | None) -> CollectionQuery:
        return CollectionQuery(
            filters=self.filters,
            order_by=self.order_by,
            limit=limit,
            cursors=self.cursors,
        )

    def with_cursor(self, *cursors: Cursor) -> CollectionQuery:
        """Return a copy with the cursors replaced."""
        return CollectionQuery(
            filters=self.filters,
            order_by=self.order_by,
            limit=self.limit,
            cursors=tuple(cursors),
        )

    def merge(self, other: CollectionQuery) -> CollectionQuery:
        """
        Merge two queries.

        - Filters and orderings are concatenated (``other`` appended).
        - ``other``'s limit overrides ``self``'s if set.
        - ``other``'s cursors replace ``self``'s if any are set.
        """
        return CollectionQuery(
            filters=self.filters + other.filters,
            order_by=self.order_by + other.order_by,
            limit=other.limit if other.limit is not None else self.limit,
            cursors=other.cursors or self.cursors,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-compatible dictionary (used for logging)."""
        result: dict[str, Any] = {}
        if self.filters:
            result["filters"] = [f.to_dict() for f in self.filters]
        if self.order_by:
            result["order_by"] = [o.to_dict() for o in self.order_by]
        if self.limit is not None:
            result["limit"] = self.limit
        if self.cursors:
            result["cursors"] = [c.to_dict() for c in self.cursors]
        return result
