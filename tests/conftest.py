"""
Shared fixtures for aship tests.
"""

from pathlib import Path

import pytest

from aship.config.settings import DirectoryLayout
from aship.hosts.cache import HostCache
from aship.hosts.store import HostStore


class FakeClock:
    """Deterministic, strictly increasing ISO-8601 timestamps."""

    def __init__(self) -> None:
        self.ticks = 0

    def __call__(self) -> str:
        self.ticks += 1
        return f"2024-01-01T00:{self.ticks // 60:02d}:{self.ticks % 60:02d}.000Z"


@pytest.fixture
def layout(tmp_path: Path) -> DirectoryLayout:
    """A fresh global directory under tmp_path."""
    layout = DirectoryLayout(tmp_path / "aship-home")
    layout.initialize()
    return layout


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(layout: DirectoryLayout, clock: FakeClock) -> HostStore:
    return HostStore(layout, HostCache(), clock=clock)


@pytest.fixture
def populated_store(store: HostStore) -> HostStore:
    """Store with web-1, web-2 (manual) and db-1 (imported)."""
    store.add({"hostname": "10.0.0.1", "user": "admin"}, "web-1")
    store.add({"hostname": "10.0.0.2", "user": "admin", "port": 2222}, "web-2")
    store.add(
        {
            "hostname": "db.internal",
            "user": "postgres",
            "identity_file": "/keys/db",
            "source": "imported",
        },
        "db-1",
    )
    return store
