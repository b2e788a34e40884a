"""
Filter descriptors.

Every operator Firestore accepts in this package has its own frozen dataclass
carrying only the operand that operator needs::

    Equals("status", "active")
    GreaterOrEqual("createdAt", since)
    ArrayContainsAny("tags", ["urgent", "billing"])
    IsNull("deletedAt")

Loose inputs (``(field, op, operand)`` tuples and ``{field: value}`` mappings)
are normalised by :func:`coerce_filters`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from .exceptions import InvalidFilterError, OperatorNotFoundError


class FilterOperator(str, Enum):
    """Supported filter operators."""

    EQUALS = "=="
    LESS_THAN = "<"
    LESS_OR_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_OR_EQUAL = ">="
    ARRAY_CONTAINS = "array_contains"
    ARRAY_CONTAINS_ANY = "array_contains_any"
    IN = "in"
    IS_NULL = "is_null"


@dataclass(frozen=True)
class Filter:
    """Base class for filter descriptors."""

    operator: ClassVar[FilterOperator]

    field: str

    @property
    def operand(self) -> Any:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        operand = self.operand
        return {
            "field": self.field,
            "op": self.operator.value,
            "operand": list(operand) if isinstance(operand, tuple) else operand,
        }


@dataclass(frozen=True)
class _ValueFilter(Filter):
    value: Any

    @property
    def operand(self) -> Any:
        return self.value


@dataclass(frozen=True)
class _SetFilter(Filter):
    values: tuple[Any, ...]

    def __post_init__(self) -> None:
        if isinstance(self.values, (str, bytes, Mapping)) or not isinstance(
            self.values, Iterable
        ):
            raise InvalidFilterError(
                self.field, f"{self.operator.value} requires a sequence of values"
            )
        values = tuple(self.values)
        if not values:
            raise InvalidFilterError(
                self.field, f"{self.operator.value} requires at least one value"
            )
        object.__setattr__(self, "values", values)

    @property
    def operand(self) -> tuple[Any, ...]:
        return self.values


@dataclass(frozen=True)
class Equals(_ValueFilter):
    operator: ClassVar[FilterOperator] = FilterOperator.EQUALS


@dataclass(frozen=True)
class LessThan(_ValueFilter):
    operator: ClassVar[FilterOperator] = FilterOperator.LESS_THAN


@dataclass(frozen=True)
class LessOrEqual(_ValueFilter):
    operator: ClassVar[FilterOperator] = FilterOperator.LESS_OR_EQUAL


@dataclass(frozen=True)
class GreaterThan(_ValueFilter):
    operator: ClassVar[FilterOperator] = FilterOperator.GREATER_THAN


@dataclass(frozen=True)
class GreaterOrEqual(_ValueFilter):
    operator: ClassVar[FilterOperator] = FilterOperator.GREATER_OR_EQUAL


@dataclass(frozen=True)
class ArrayContains(_ValueFilter):
    operator: ClassVar[FilterOperator] = FilterOperator.ARRAY_CONTAINS


@dataclass(frozen=True)
class ArrayContainsAny(_SetFilter):
    operator: ClassVar[FilterOperator] = FilterOperator.ARRAY_CONTAINS_ANY


@dataclass(frozen=True)
class InSet(_SetFilter):
    operator: ClassVar[FilterOperator] = FilterOperator.IN


@dataclass(frozen=True)
class IsNull(Filter):
    operator: ClassVar[FilterOperator] = FilterOperator.IS_NULL

    is_null: bool = True

    @property
    def operand(self) -> bool:
        return self.is_null


_VARIANTS: dict[FilterOperator, type[Filter]] = {
    FilterOperator.EQUALS: Equals,
    FilterOperator.LESS_THAN: LessThan,
    FilterOperator.LESS_OR_EQUAL: LessOrEqual,
    FilterOperator.GREATER_THAN: GreaterThan,
    FilterOperator.GREATER_OR_EQUAL: GreaterOrEqual,
    FilterOperator.ARRAY_CONTAINS: ArrayContains,
    FilterOperator.ARRAY_CONTAINS_ANY: ArrayContainsAny,
    FilterOperator.IN: InSet,
    FilterOperator.IS_NULL: IsNull,
}

# Spellings accepted in addition to the enum values.
_ALIASES: dict[str, FilterOperator] = {
    "=": FilterOperator.EQUALS,
    "eq": FilterOperator.EQUALS,
    "lt": FilterOperator.LESS_THAN,
    "le": FilterOperator.LESS_OR_EQUAL,
    "lte": FilterOperator.LESS_OR_EQUAL,
    "gt": FilterOperator.GREATER_THAN,
    "ge": FilterOperator.GREATER_OR_EQUAL,
    "gte": FilterOperator.GREATER_OR_EQUAL,
    "array-contains": FilterOperator.ARRAY_CONTAINS,
    "array-contains-any": FilterOperator.ARRAY_CONTAINS_ANY,
}

FilterLike = Union[Filter, Mapping[str, Any], tuple[str, Any, Any]]


def _resolve_operator(op: FilterOperator | str) -> FilterOperator:
    if isinstance(op, FilterOperator):
        return op
    key = str(op).strip().lower()
    try:
        return FilterOperator(key)
    except ValueError:
        pass
    if key in _ALIASES:
        return _ALIASES[key]
    valid = [o.value for o in FilterOperator] + list(_ALIASES)
    raise OperatorNotFoundError(str(op), valid)


def field_filter(field: str, op: FilterOperator | str, operand: Any = True) -> Filter:
    """Build the filter variant for ``op`` on ``field``.

    ``operand`` defaults to ``True`` so that ``field_filter("x", "is_null")``
    reads naturally.
    """
    variant = _VARIANTS[_resolve_operator(op)]
    return variant(field, operand)  # type: ignore[call-arg]


def _is_filter_triple(item: Any) -> bool:
    # ("status", "==", "x"): a field path and an operator, not three filters.
    return (
        isinstance(item, tuple)
        and len(item) == 3
        and isinstance(item[0], str)
        and isinstance(item[1], (str, FilterOperator))
    )


def coerce_filters(items: Any) -> tuple[Filter, ...]:
    """Normalise filter-like inputs to a tuple of :class:`Filter` variants."""
    if items is None:
        return ()
    if isinstance(items, (Filter, Mapping)) or _is_filter_triple(items):
        items = [items]
    result: list[Filter] = []
    for item in items:
        if isinstance(item, Filter):
            result.append(item)
        elif isinstance(item, Mapping):
            result.extend(Equals(str(k), v) for k, v in item.items())
        elif isinstance(item, tuple) and len(item) == 3:
            result.append(field_filter(item[0], item[1], item[2]))
        else:
            raise TypeError(f"Cannot interpret {item!r} as a filter")
    return tuple(result)
