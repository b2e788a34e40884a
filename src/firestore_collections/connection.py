"""FirestoreConnectionManager: client lifecycle and health check."""

from __future__ import annotations

import inspect
import logging
import os
from typing import Any

from .config import FirestoreSettings
from .exceptions import FirestoreConnectionError

logger = logging.getLogger(__name__)


class FirestoreConnectionManager:
    """Own the Firestore clients used by collections.

    One-shot operations run on ``google.cloud.firestore.AsyncClient``.
    Snapshot listeners are only offered by the synchronous
    ``google.cloud.firestore.Client``, which is created lazily the first time
    a live subscription is opened. Either client can be injected, e.g. an
    emulator-backed or fake client in tests.
    """

    def __init__(
        self,
        settings: FirestoreSettings | None = None,
        *,
        client: Any = None,
        watch_client: Any = None,
    ) -> None:
        self._settings = settings or FirestoreSettings()
        self._client = client
        self._watch_client = watch_client

    @property
    def settings(self) -> FirestoreSettings:
        return self._settings

    def _client_kwargs(self) -> dict[str, Any]:
        if self._settings.emulator_host:
            # The client library reads the emulator address from the environment.
            os.environ["FIRESTORE_EMULATOR_HOST"] = self._settings.emulator_host
        kwargs: dict[str, Any] = {"database": self._settings.database}
        if self._settings.project:
            kwargs["project"] = self._settings.project
        return kwargs

    async def connect(self) -> Any:
        """Create and cache the async client. Idempotent."""
        if self._client is not None:
            return self._client
        from google.cloud import firestore

        try:
            self._client = firestore.AsyncClient(**self._client_kwargs())
        except Exception as e:
            raise FirestoreConnectionError(str(e)) from e
        logger.debug(
            "Connected Firestore async client (project=%s, database=%s)",
            self._settings.project,
            self._settings.database,
        )
        return self._client

    @property
    def client(self) -> Any:
        """Return the async client; raises if not connected."""
        if self._client is None:
            raise FirestoreConnectionError("Not connected; call connect() first")
        return self._client

    @property
    def watch_client(self) -> Any:
        """Return the sync client used for snapshot listeners, creating it on demand."""
        if self._watch_client is None:
            from google.cloud import firestore

            try:
                self._watch_client = firestore.Client(**self._client_kwargs())
            except Exception as e:
                raise FirestoreConnectionError(str(e)) from e
            logger.debug("Created Firestore listener client")
        return self._watch_client

    async def close(self) -> None:
        """Close both clients, if they were created."""
        client, self._client = self._client, None
        watch_client, self._watch_client = self._watch_client, None
        for c in (client, watch_client):
            close = getattr(c, "close", None)
            if close is None:
                continue
            result = close()
            if inspect.isawaitable(result):
                await result

    async def health_check(self) -> bool:
        """Issue a cheap read; return True if Firestore is reachable."""
        if self._client is None:
            return False
        try:
            async for _ in self._client.collections():
                break
            return True
        except Exception:  # noqa: BLE001
            logger.debug("Firestore health check failed", exc_info=True)
            return False
