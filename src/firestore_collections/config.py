"""Connection and query settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class FirestoreSettings:
    """Configuration for :class:`~firestore_collections.FirestoreConnectionManager`.

    Attributes:
        project: GCP project id. ``None`` lets the client library resolve it
            from application default credentials.
        database: Firestore database id.
        emulator_host: ``host:port`` of a local Firestore emulator.
        strict_cursors: Raise :class:`UnorderedCursorError` instead of dropping
            cursors on queries without ordering.
    """

    project: str | None = None
    database: str = "(default)"
    emulator_host: str | None = None
    strict_cursors: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> FirestoreSettings:
        """Build settings from environment variables.

        Reads ``GOOGLE_CLOUD_PROJECT``, ``FIRESTORE_DATABASE``,
        ``FIRESTORE_EMULATOR_HOST`` and ``FIRESTORE_STRICT_CURSORS``.
        """
        env = os.environ if environ is None else environ
        return cls(
            project=env.get("GOOGLE_CLOUD_PROJECT") or None,
            database=env.get("FIRESTORE_DATABASE") or "(default)",
            emulator_host=env.get("FIRESTORE_EMULATOR_HOST") or None,
            strict_cursors=env.get("FIRESTORE_STRICT_CURSORS", "").lower() in _TRUTHY,
        )
