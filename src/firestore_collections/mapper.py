"""Pydantic model <-> Firestore field-map mapper."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T_Model = TypeVar("T_Model", bound=BaseModel)


class ModelMapper(Generic[T_Model]):
    """
    Firestore-specific model <-> document mapper.

    The document id lives outside the field map in Firestore; ``from_doc``
    injects it into ``id_field`` and ``to_doc`` strips it again. Values are
    dumped with ``model_dump(mode="python")`` so that ``datetime`` and other
    native types reach the client library untouched.
    """

    def __init__(
        self,
        model_cls: type[T_Model],
        *,
        id_field: str = "id",
        exclude_fields: set[str] | None = None,
    ) -> None:
        self.model_cls = model_cls
        self._id_field = id_field
        self._exclude_fields = exclude_fields or set()

    @property
    def id_field(self) -> str:
        return self._id_field

    def from_doc(self, doc_id: str, data: dict[str, Any]) -> T_Model:
        """Convert a document id and field map to a model instance."""
        payload = dict(data)
        if self._id_field in self.model_cls.model_fields:
            payload[self._id_field] = doc_id
        return self.model_cls.model_validate(payload)

    def to_doc(self, entity: T_Model) -> dict[str, Any]:
        """Convert a model instance to a field map (without the id)."""
        return entity.model_dump(
            mode="python", exclude={self._id_field, *self._exclude_fields}
        )

    def doc_id(self, entity: T_Model) -> str | None:
        """Return the entity's id, if it carries one."""
        value = getattr(entity, self._id_field, None)
        return str(value) if value is not None else None
