"""Test configuration for firestore-collections."""

from __future__ import annotations

import datetime
from typing import Any

import pytest
from pydantic import BaseModel, Field

from fake_firestore import FakeFirestore
from firestore_collections import (
    Collection,
    FirestoreConnectionManager,
    FirestoreSettings,
    HookRegistry,
    set_hook_registry,
)

pytest_plugins = ["pytest_asyncio"]


# Sample model (name avoids pytest collecting it as a test class)
class SampleTask(BaseModel):
    """Simple domain record for collection tests."""

    id: str | None = None
    title: str
    status: str = "active"
    tags: list[str] = Field(default_factory=list)
    createdAt: datetime.datetime | None = None  # noqa: N815
    priority: int = 0


def day(n: int) -> datetime.datetime:
    return datetime.datetime(2024, 1, n, tzinfo=datetime.timezone.utc)


@pytest.fixture(autouse=True)
def hook_registry() -> HookRegistry:
    """Give every test a fresh instrumentation registry."""
    registry = HookRegistry()
    set_hook_registry(registry)
    return registry


@pytest.fixture
def fake_db() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def connection(fake_db: FakeFirestore) -> FirestoreConnectionManager:
    return FirestoreConnectionManager(
        FirestoreSettings(project="test-project"),
        client=fake_db,
        watch_client=fake_db,
    )


@pytest.fixture
def tasks(connection: FirestoreConnectionManager) -> Collection[SampleTask]:
    return Collection.for_model(connection, "tasks", SampleTask)


@pytest.fixture
def seeded(fake_db: FakeFirestore) -> dict[str, dict[str, Any]]:
    docs = {
        "t1": {"title": "Write docs", "status": "active", "tags": ["docs"], "createdAt": day(3), "priority": 2},
        "t2": {"title": "Fix bug", "status": "done", "tags": ["bug", "urgent"], "createdAt": day(1), "priority": 5},
        "t3": {"title": "Review PR", "status": "active", "tags": ["review"], "createdAt": day(2), "priority": 1},
        "t4": {"title": "Plan sprint", "status": "active", "tags": [], "createdAt": day(5), "priority": 3},
        "t5": {"title": "Archive", "status": "archived", "tags": ["urgent"], "createdAt": day(4), "priority": 0, "owner": None},
    }
    fake_db.seed("tasks", docs)
    return docs
