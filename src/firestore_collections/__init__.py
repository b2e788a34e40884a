"""Typed collection access for Google Cloud Firestore.

A ``Collection[T]`` maps documents of one collection to domain objects and
offers CRUD, a constrained query builder and live subscriptions.
"""

from __future__ import annotations

from .collection import Collection
from .config import FirestoreSettings
from .connection import FirestoreConnectionManager
from .exceptions import (
    FirestoreCollectionError,
    FirestoreConnectionError,
    FirestoreQueryError,
    InvalidFilterError,
    OperatorNotFoundError,
    UnorderedCursorError,
)
from .filters import (
    ArrayContains,
    ArrayContainsAny,
    Equals,
    Filter,
    FilterOperator,
    GreaterOrEqual,
    GreaterThan,
    InSet,
    IsNull,
    LessOrEqual,
    LessThan,
    coerce_filters,
    field_filter,
)
from .instrumentation import (
    FirestoreOperation,
    HookRegistration,
    HookRegistry,
    InstrumentationHook,
    get_hook_registry,
    set_hook_registry,
)
from .live import LiveQuery, Subscription
from .mapper import ModelMapper
from .query import CollectionQuery, Cursor, CursorBound, Direction, OrderBy
from .query_builder import FirestoreQueryBuilder, compile_filter

__all__ = [
    # Core
    "Collection",
    "FirestoreConnectionManager",
    "FirestoreSettings",
    "ModelMapper",
    # Queries
    "CollectionQuery",
    "Cursor",
    "CursorBound",
    "Direction",
    "OrderBy",
    "FirestoreQueryBuilder",
    "compile_filter",
    # Filters
    "Filter",
    "FilterOperator",
    "Equals",
    "LessThan",
    "LessOrEqual",
    "GreaterThan",
    "GreaterOrEqual",
    "ArrayContains",
    "ArrayContainsAny",
    "InSet",
    "IsNull",
    "field_filter",
    "coerce_filters",
    # Live
    "LiveQuery",
    "Subscription",
    # Instrumentation
    "FirestoreOperation",
    "HookRegistration",
    "HookRegistry",
    "InstrumentationHook",
    "get_hook_registry",
    "set_hook_registry",
    # Exceptions
    "FirestoreCollectionError",
    "FirestoreConnectionError",
    "FirestoreQueryError",
    "InvalidFilterError",
    "OperatorNotFoundError",
    "UnorderedCursorError",
]
