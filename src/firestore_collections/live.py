"""
Live subscriptions over Firestore snapshot listeners.

``LiveQuery`` is lazy: nothing is registered with Firestore until the caller
either ``listen()``s or iterates it. Each iteration opens its own listener,
so the same ``LiveQuery`` can be iterated again after a previous loop ended::

    # Callback mode: the caller owns the handle
    sub = notes.watch_all().listen(render)
    ...
    sub.unsubscribe()

    # Async iteration: the listener lives as long as the loop
    async for note in notes.watch(note_id):
        if note is None:
            break

Opening and closing a listener on the real client blocks (the stream is
started, and stopping it joins the consumer thread), so async iteration does
both in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .instrumentation import FirestoreOperation, get_hook_registry

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator, Callable

logger = logging.getLogger(__name__)

R = TypeVar("R")

DEFAULT_MAX_PENDING = 16


class Subscription(Generic[R]):
    """Handle for a registered snapshot listener.

    ``unsubscribe()`` is idempotent, and no callback is delivered after it
    returns. It may be called from inside the callback itself; the listener
    is then released on a separate thread, because the client's consumer
    thread cannot stop itself.
    """

    def __init__(self, description: str, attributes: dict[str, Any] | None = None) -> None:
        self._description = description
        self._attributes = attributes or {}
        self._watch: Any = None
        self._lock = threading.RLock()
        self._active = True
        self._delivering: int | None = None

    @property
    def active(self) -> bool:
        return self._active

    def _attach(self, watch: Any) -> None:
        with self._lock:
            self._watch = watch

    def _guard(self, on_next: Callable[[R], None]) -> Callable[[R], None]:
        def deliver(value: R) -> None:
            with self._lock:
                if not self._active:
                    return
                self._delivering = threading.get_ident()
                try:
                    on_next(value)
                finally:
                    self._delivering = None

        return deliver

    def unsubscribe(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            watch = self._watch
            in_callback = self._delivering == threading.get_ident()
        if watch is not None:
            self._release(watch, in_callback=in_callback)

    def _release(self, watch: Any, *, in_callback: bool) -> None:
        if in_callback:
            threading.Thread(
                target=watch.unsubscribe,
                name=f"firestore-unsubscribe-{self._description}",
                daemon=True,
            ).start()
        else:
            watch.unsubscribe()
        logger.debug("Released listener on %s", self._description)
        get_hook_registry().notify(FirestoreOperation.UNLISTEN, self._attributes)

    def __enter__(self) -> Subscription[R]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unsubscribe()


class LiveQuery(Generic[R]):
    """A restartable sequence of decoded snapshot values.

    Parameters
    ----------
    register:
        Callable receiving a ``(value) -> None`` callback; registers a
        Firestore listener that feeds decoded values to it and returns the
        listener's watch handle (anything with ``unsubscribe()``).
    description:
        Human-readable target, used in log records.
    attributes:
        Instrumentation attributes reported with ``firestore.listen`` and
        ``firestore.unlisten``.
    max_pending:
        Snapshots buffered for a slow ``async for`` consumer. Each snapshot is
        a complete result, so when the buffer is full the oldest is dropped.
    """

    __slots__ = ("_register", "_description", "_attributes", "_max_pending")

    def __init__(
        self,
        register: Callable[[Callable[[R], None]], Any],
        *,
        description: str,
        attributes: dict[str, Any] | None = None,
        max_pending: int = DEFAULT_MAX_PENDING,
    ) -> None:
        if max_pending < 1:
            raise ValueError("max_pending must be at least 1")
        self._register = register
        self._description = description
        self._attributes = dict(attributes or {})
        self._max_pending = max_pending

    def listen(self, on_next: Callable[[R], None]) -> Subscription[R]:
        """Register ``on_next`` for every snapshot until unsubscribed.

        ``on_next`` runs on the client's listener thread.
        """
        subscription: Subscription[R] = Subscription(self._description, self._attributes)
        subscription._attach(self._register(subscription._guard(on_next)))
        logger.debug("Registered listener on %s", self._description)
        get_hook_registry().notify(FirestoreOperation.LISTEN, self._attributes)
        return subscription

    def __aiter__(self) -> AsyncIterator[R]:
        return self._iterate()

    async def _iterate(self) -> AsyncGenerator[R, None]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[R] = asyncio.Queue(maxsize=self._max_pending)

        def put_latest(value: R) -> None:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(value)

        def enqueue(value: R) -> None:
            if loop.is_closed():
                return
            try:
                loop.call_soon_threadsafe(put_latest, value)
            except RuntimeError:
                # The loop closed after the check above.
                logger.debug("Dropped snapshot for %s: event loop closed", self._description)

        subscription = await asyncio.to_thread(self.listen, enqueue)
        get_hook_registry().notify(FirestoreOperation.LISTEN, self._attributes)
        try:
            while True:
                yield await queue.get()
        finally:
            await asyncio.to_thread(subscription.unsubscribe)
            get_hook_registry().notify(FirestoreOperation.UNLISTEN, self._attributes)

    async def first(self) -> R:
        """Wait for the first snapshot, then release the listener."""
        iterator = self._iterate()
        try:
            return await iterator.__anext__()
        finally:
            await iterator.aclose()
