"""Hooks wrapping Firestore operations (tracing, metrics, auditing).

Every one-shot ``Collection`` call runs through :meth:`HookRegistry.execute_all`
under a :class:`FirestoreOperation` name such as ``firestore.get``, with
attributes describing the target::

    {"firestore.collection": "notes", "firestore.document_id": "n1"}

Listener registration and release are reported fire-and-forget, since they
happen in synchronous code and nobody awaits their hooks.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from contextvars import ContextVar
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

logger = logging.getLogger(__name__)

COLLECTION_ATTRIBUTE = "firestore.collection"


class FirestoreOperation(str, Enum):
    """Operation names reported to hooks."""

    GET = "firestore.get"
    LIST_ALL = "firestore.list_all"
    QUERY = "firestore.query"
    CREATE = "firestore.create"
    UPDATE = "firestore.update"
    DELETE = "firestore.delete"
    LISTEN = "firestore.listen"
    UNLISTEN = "firestore.unlisten"


@runtime_checkable
class InstrumentationHook(Protocol):
    """Protocol for instrumentation hooks."""

    async def __call__(
        self,
        operation: str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Wrap an operation; must await ``next_handler`` exactly once."""
        ...


class HookRegistration:
    """A hook plus the operations and collections it applies to.

    ``operations`` are glob patterns over operation names
    (``"firestore.*"``, ``"firestore.listen"``); ``collections`` are exact
    collection names. Empty means "all".
    """

    def __init__(
        self,
        hook: InstrumentationHook,
        *,
        priority: int = 0,
        operations: Iterable[str] | None = None,
        collections: Iterable[str] | None = None,
        enabled: bool = True,
    ) -> None:
        self.hook = hook
        self.priority = priority
        self.operations = tuple(_operation_name(o) for o in operations or ())
        self.collections = frozenset(collections or ())
        self.enabled = enabled

    def matches(self, operation: str, attributes: dict[str, Any]) -> bool:
        if not self.enabled:
            return False
        if self.collections and attributes.get(COLLECTION_ATTRIBUTE) not in self.collections:
            return False
        if not self.operations:
            return True
        return any(fnmatch.fnmatchcase(operation, pattern) for pattern in self.operations)


def _operation_name(operation: FirestoreOperation | str) -> str:
    return operation.value if isinstance(operation, FirestoreOperation) else operation


class HookRegistry:
    """Ordered set of hooks, executed as a pipeline around each operation."""

    def __init__(self) -> None:
        self._registrations: list[HookRegistration] = []

    @property
    def registrations(self) -> tuple[HookRegistration, ...]:
        return tuple(self._registrations)

    def register(
        self,
        hook: InstrumentationHook,
        *,
        priority: int = 0,
        operations: Iterable[FirestoreOperation | str] | None = None,
        collections: Iterable[str] | None = None,
        enabled: bool = True,
    ) -> HookRegistration:
        """Register a hook. Lower priorities run first (outermost)."""
        registration = HookRegistration(
            hook,
            priority=priority,
            operations=[_operation_name(o) for o in operations or ()],
            collections=collections,
            enabled=enabled,
        )
        self._registrations.append(registration)
        self._registrations.sort(key=lambda r: r.priority)
        return registration

    def unregister(self, registration: HookRegistration) -> None:
        """Remove a registration; unknown registrations are ignored."""
        if registration in self._registrations:
            self._registrations.remove(registration)

    async def execute_all(
        self,
        operation: FirestoreOperation | str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run ``next_handler`` inside every hook matching ``operation``."""
        name = _operation_name(operation)
        matching = [r for r in self._registrations if r.matches(name, attributes)]
        if not matching:
            return await next_handler()

        async def pipeline(index: int = 0) -> Any:
            if index == len(matching):
                return await next_handler()
            return await matching[index].hook(
                name, attributes, lambda: pipeline(index + 1)
            )

        return await pipeline()

    def notify(
        self,
        operation: FirestoreOperation | str,
        attributes: dict[str, Any],
    ) -> asyncio.Task[Any] | None:
        """Report an operation that already happened, without waiting for hooks.

        Hooks see a no-op ``next_handler``. Returns the scheduled task, or
        ``None`` when no hook matches or no event loop is running on this
        thread. Hook failures are logged, never raised to the caller.
        """
        name = _operation_name(operation)
        if not any(r.matches(name, attributes) for r in self._registrations):
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None

        async def done() -> None:
            return None

        task = loop.create_task(self.execute_all(name, attributes, done))
        task.add_done_callback(_log_notify_failure)
        return task

    def clear(self) -> None:
        self._registrations.clear()


def _log_notify_failure(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Instrumentation hook failed: %s", exc, exc_info=exc)


_hook_registry_var: ContextVar[HookRegistry | None] = ContextVar(
    "firestore_hook_registry", default=None
)


def get_hook_registry() -> HookRegistry:
    """Return the registry bound to the current context, creating it on first use."""
    registry = _hook_registry_var.get()
    if registry is None:
        registry = HookRegistry()
        _hook_registry_var.set(registry)
    return registry


def set_hook_registry(registry: HookRegistry) -> None:
    _hook_registry_var.set(registry)
