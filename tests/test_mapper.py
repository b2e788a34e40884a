"""Unit tests for ModelMapper."""

from __future__ import annotations

import datetime

from pydantic import BaseModel

from conftest import SampleTask, day
from firestore_collections.mapper import ModelMapper


class Reading(BaseModel):
    """Model keyed by a custom id field."""

    sensor: str
    value: float
    taken_at: datetime.datetime
    note: str | None = None


class Keyed(BaseModel):
    key: str
    label: str


def test_from_doc_injects_id() -> None:
    mapper = ModelMapper(SampleTask)

    task = mapper.from_doc("abc", {"title": "T", "createdAt": day(2)})

    assert task.id == "abc"
    assert task.createdAt == day(2)


def test_from_doc_without_id_field_on_model() -> None:
    mapper = ModelMapper(Reading)

    reading = mapper.from_doc("r1", {"sensor": "s", "value": 1.5, "taken_at": day(1)})

    assert reading == Reading(sensor="s", value=1.5, taken_at=day(1))


def test_to_doc_strips_id_and_keeps_native_types() -> None:
    mapper = ModelMapper(SampleTask)

    doc = mapper.to_doc(SampleTask(id="abc", title="T", createdAt=day(2)))

    assert "id" not in doc
    assert doc["createdAt"] == day(2)
    assert doc["tags"] == []


def test_custom_id_field() -> None:
    mapper = ModelMapper(Keyed, id_field="key")

    entity = mapper.from_doc("k1", {"label": "one"})

    assert entity.key == "k1"
    assert mapper.to_doc(entity) == {"label": "one"}
    assert mapper.doc_id(entity) == "k1"
    assert mapper.id_field == "key"


def test_exclude_fields() -> None:
    mapper = ModelMapper(Reading, exclude_fields={"note"})

    doc = mapper.to_doc(Reading(sensor="s", value=2.0, taken_at=day(1), note="x"))

    assert doc == {"sensor": "s", "value": 2.0, "taken_at": day(1)}


def test_doc_id_none_when_unset() -> None:
    assert ModelMapper(SampleTask).doc_id(SampleTask(title="T")) is None
