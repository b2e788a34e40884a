"""Exception hierarchy for firestore-collections.

Faults raised by Firestore itself (``google.api_core.exceptions``) are never
wrapped; only mistakes detected locally, before a request is sent, raise the
errors below.
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import Any


class FirestoreCollectionError(Exception):
    """Root exception for the package."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class FirestoreConnectionError(FirestoreCollectionError):
    """Raised when a Firestore client cannot be created or is not connected."""


class FirestoreQueryError(FirestoreCollectionError):
    """Raised when a query cannot be built."""


class InvalidFilterError(FirestoreQueryError):
    """A filter was constructed with an unusable operand."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"Invalid filter on '{field}': {message}")


class OperatorNotFoundError(FirestoreQueryError):
    """
    Unknown filter operator.

    Provides fuzzy-matched suggestions for likely intended operators.
    """

    def __init__(self, operator: str, valid_operators: list[str]) -> None:
        self.operator = operator
        self.valid_operators = valid_operators
        self.suggestions = get_close_matches(operator, valid_operators, n=3, cutoff=0.6)

        message = f"Unknown operator: '{operator}'."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        message += f" Valid operators: {', '.join(sorted(valid_operators))}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "OPERATOR_NOT_FOUND",
            "operator": self.operator,
            "suggestions": self.suggestions,
            "valid_operators": sorted(self.valid_operators),
        }


class UnorderedCursorError(FirestoreQueryError):
    """A pagination cursor was supplied to a query without any ordering."""

    def __init__(self, bounds: list[str]) -> None:
        self.bounds = bounds
        super().__init__(
            f"Cursor bound(s) {', '.join(bounds)} require at least one order_by field"
        )
