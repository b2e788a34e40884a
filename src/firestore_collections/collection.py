"""Collection[T]: typed accessor over a single Firestore collection."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel

from .exceptions import FirestoreCollectionError
from .filters import coerce_filters
from .instrumentation import COLLECTION_ATTRIBUTE, FirestoreOperation, get_hook_registry
from .live import LiveQuery
from .mapper import ModelMapper
from .query import CollectionQuery, Cursor, Direction, OrderBy
from .query_builder import FirestoreQueryBuilder

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from .connection import FirestoreConnectionManager
    from .filters import FilterLike
    from .query import OrderLike

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class Collection(Generic[T]):
    """Typed CRUD and query access to one collection.

    Documents are decoded with ``from_doc(doc_id, data)`` and encoded with
    ``to_doc(entity)``. Reads of a missing document return ``None``; every
    other fault raised by Firestore reaches the caller unchanged::

        notes = Collection(connection, "notes", from_doc=Note.from_doc, to_doc=Note.to_doc)
        recent = await notes.query(
            Equals("status", "active"), order_by=["-createdAt"], limit=20
        )
    """

    def __init__(
        self,
        connection: FirestoreConnectionManager,
        name: str,
        *,
        from_doc: Callable[[str, dict[str, Any]], T],
        to_doc: Callable[[T], dict[str, Any]],
        id_of: Callable[[T], str | None] | None = None,
        query_builder: FirestoreQueryBuilder | None = None,
        strict_cursors: bool | None = None,
    ) -> None:
        if not name:
            raise FirestoreCollectionError("Collection name must not be empty")
        self._connection = connection
        self._name = name
        self._from_doc = from_doc
        self._to_doc = to_doc
        self._id_of = id_of
        if query_builder is None:
            if strict_cursors is None:
                strict_cursors = connection.settings.strict_cursors
            query_builder = FirestoreQueryBuilder(strict_cursors=strict_cursors)
        self._query_builder = query_builder

    @classmethod
    def for_model(
        cls,
        connection: FirestoreConnectionManager,
        name: str,
        model_cls: type[M],
        *,
        id_field: str = "id",
        **kwargs: Any,
    ) -> Collection[M]:
        """Build a collection whose codec is a pydantic :class:`ModelMapper`."""
        mapper = ModelMapper(model_cls, id_field=id_field)
        return Collection(
            connection,
            name,
            from_doc=mapper.from_doc,
            to_doc=mapper.to_doc,
            id_of=mapper.doc_id,
            **kwargs,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def client(self) -> Any:
        """The async Firestore client this collection talks to."""
        return self._connection.client

    def reference(self) -> Any:
        """Async collection reference."""
        return self._connection.client.collection(self._name)

    def _watch_reference(self) -> Any:
        return self._connection.watch_client.collection(self._name)

    def _decode(self, snapshot: Any) -> T:
        return self._from_doc(snapshot.id, snapshot.to_dict() or {})

    def _decode_optional(self, snapshot: Any) -> T | None:
        if snapshot is None or not snapshot.exists:
            return None
        return self._decode(snapshot)

    def _encode(self, data: T | Mapping[str, Any]) -> dict[str, Any]:
        if isinstance(data, Mapping):
            return dict(data)
        return self._to_doc(data)

    async def _run(
        self,
        operation: FirestoreOperation,
        handler: Callable[[], Awaitable[Any]],
        **attributes: Any,
    ) -> Any:
        return await get_hook_registry().execute_all(
            operation, self._attributes(**attributes), handler
        )

    def _attributes(self, **attributes: Any) -> dict[str, Any]:
        attrs: dict[str, Any] = {COLLECTION_ATTRIBUTE: self._name}
        attrs.update({f"firestore.{k}": v for k, v in attributes.items()})
        return attrs

    # -- reads ---------------------------------------------------------------

    async def get(self, doc_id: str) -> T | None:
        """Fetch one document; ``None`` if it does not exist."""

        async def handler() -> T | None:
            snapshot = await self.reference().document(doc_id).get()
            return self._decode_optional(snapshot)

        return await self._run(FirestoreOperation.GET, handler, document_id=doc_id)

    async def list_all(self) -> list[T]:
        """Every document in the collection."""

        async def handler() -> list[T]:
            return [self._decode(snap) async for snap in self.reference().stream()]

        return await self._run(FirestoreOperation.LIST_ALL, handler)

    async def query(
        self,
        *filters: FilterLike,
        order_by: Iterable[OrderLike] | OrderLike = (),
        limit: int | None = None,
        cursors: Iterable[Cursor] | Cursor = (),
    ) -> list[T]:
        """Run a one-shot query.

        Filters are conjunctive. Cursors only take effect when at least one
        ordering is given; otherwise they are dropped with a warning (or
        rejected when the collection uses strict cursors).
        """
        criteria = CollectionQuery.build(
            filters=filters, order_by=order_by, limit=limit, cursors=cursors
        )
        return await self.search(criteria)

    async def search(self, criteria: CollectionQuery) -> list[T]:
        """Run a one-shot query from a prepared :class:`CollectionQuery`."""

        async def handler() -> list[T]:
            query = self._query_builder.build(self.reference(), criteria)
            logger.debug("Querying %s: %s", self._name, criteria.to_dict())
            return [self._decode(snap) async for snap in query.stream()]

        return await self._run(FirestoreOperation.QUERY, handler, query=criteria.to_dict())

    def _date_range(
        self,
        field: str,
        start: Any,
        end: Any,
        filters: Iterable[FilterLike],
        *,
        descending: bool,
    ) -> CollectionQuery:
        # Both bounds are inclusive whatever the direction.
        if descending:
            order = OrderBy(field, Direction.DESCENDING)
            cursors = (Cursor.start_at(end), Cursor.end_at(start))
        else:
            order = OrderBy(field)
            cursors = (Cursor.start_at(start), Cursor.end_at(end))
        return CollectionQuery(
            filters=coerce_filters(list(filters)),
            order_by=(order,),
            cursors=cursors,
        )

    async def list_by_date_range(
        self,
        field: str,
        start: Any,
        end: Any,
        *filters: FilterLike,
        descending: bool = False,
    ) -> list[T]:
        """Documents whose ``field`` lies in ``[start, end]``, ordered by ``field``."""
        return await self.search(
            self._date_range(field, start, end, filters, descending=descending)
        )

    # -- live subscriptions --------------------------------------------------

    def watch(self, doc_id: str) -> LiveQuery[T | None]:
        """Live view of one document; emits ``None`` while it does not exist."""

        def register(on_next: Callable[[T | None], None]) -> Any:
            def on_snapshot(docs: list[Any], _changes: Any, _read_time: Any) -> None:
                on_next(self._decode_optional(docs[0] if docs else None))

            ref = self._watch_reference().document(doc_id)
            return ref.on_snapshot(on_snapshot)

        return LiveQuery(
            register,
            description=f"{self._name}/{doc_id}",
            attributes=self._attributes(document_id=doc_id),
        )

    def watch_all(self) -> LiveQuery[list[T]]:
        """Live view of the whole collection."""
        return self._watch(CollectionQuery(), description=self._name)

    def watch_query(
        self,
        *filters: FilterLike,
        order_by: Iterable[OrderLike] | OrderLike = (),
        limit: int | None = None,
        cursors: Iterable[Cursor] | Cursor = (),
    ) -> LiveQuery[list[T]]:
        """Live form of :meth:`query`."""
        criteria = CollectionQuery.build(
            filters=filters, order_by=order_by, limit=limit, cursors=cursors
        )
        return self.watch_search(criteria)

    def watch_search(self, criteria: CollectionQuery) -> LiveQuery[list[T]]:
        """Live form of :meth:`search`."""
        self._query_builder.validate(criteria)
        return self._watch(criteria, description=f"{self._name} {criteria.to_dict()}")

    def watch_by_date_range(
        self,
        field: str,
        start: Any,
        end: Any,
        *filters: FilterLike,
        descending: bool = True,
    ) -> LiveQuery[list[T]]:
        """Live form of :meth:`list_by_date_range`, newest first by default."""
        return self.watch_search(
            self._date_range(field, start, end, filters, descending=descending)
        )

    def _watch(self, criteria: CollectionQuery, *, description: str) -> LiveQuery[list[T]]:
        def register(on_next: Callable[[list[T]], None]) -> Any:
            def on_snapshot(docs: list[Any], _changes: Any, _read_time: Any) -> None:
                on_next([self._decode(doc) for doc in docs])

            query = self._query_builder.build(self._watch_reference(), criteria)
            return query.on_snapshot(on_snapshot)

        return LiveQuery(
            register,
            description=description,
            attributes=self._attributes(query=criteria.to_dict()),
        )

    # -- writes --------------------------------------------------------------

    async def create(
        self, data: T | Mapping[str, Any], *, doc_id: str | None = None
    ) -> str:
        """Create a document and return its id.

        With an explicit ``doc_id`` (or an entity carrying one) the document
        is set at that id, overwriting any existing one; otherwise Firestore
        assigns an id.
        """
        if doc_id is None and self._id_of is not None and not isinstance(data, Mapping):
            doc_id = self._id_of(data)
        fields = self._encode(data)

        async def handler() -> str:
            ref = self.reference()
            if doc_id is not None:
                await ref.document(doc_id).set(fields)
                return doc_id
            _update_time, doc_ref = await ref.add(fields)
            return str(doc_ref.id)

        new_id: str = await self._run(FirestoreOperation.CREATE, handler, document_id=doc_id)
        logger.debug("Created %s/%s", self._name, new_id)
        return new_id

    async def update(
        self,
        doc_id: str,
        changes: T | Mapping[str, Any],
        *,
        fields: Iterable[str] | None = None,
    ) -> None:
        """Merge ``changes`` into an existing document.

        ``fields`` restricts the update to the named fields of the encoded
        ``changes``, which makes a full entity usable as a partial patch.
        Firestore raises ``NotFound`` when the document does not exist.
        """
        data = self._encode(changes)
        if fields is not None:
            wanted = list(fields)
            unknown = [f for f in wanted if f not in data]
            if unknown:
                raise FirestoreCollectionError(
                    f"Fields not present in the encoded update: {', '.join(unknown)}"
                )
            data = {f: data[f] for f in wanted}

        async def handler() -> None:
            await self.reference().document(doc_id).update(data)

        await self._run(FirestoreOperation.UPDATE, handler, document_id=doc_id)

    async def delete(self, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is not an error."""

        async def handler() -> None:
            await self.reference().document(doc_id).delete()

        await self._run(FirestoreOperation.DELETE, handler, document_id=doc_id)
