"""Shared test fixtures."""

import pytest

from project_tree.core.tree.store import TreeStore
from project_tree.workspace import Workspace
from tests.unit.fakes import FakeClock, FakeRemoteStore, MemoryStorage, SequentialIds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(100)


@pytest.fixture
def store(clock: FakeClock) -> TreeStore:
    """Return a store holding a small nested tree.

    n1 Work/
      n2 Alpha
    n3 Personal/
      n4 Hobbies/
        n5 Beta
    n6 Loose
    """
    s = TreeStore(clock=clock, id_factory=SequentialIds())
    work = s.add_folder("Work")
    s.add_project("Alpha", work)
    personal = s.add_folder("Personal")
    hobbies = s.add_folder("Hobbies", personal)
    s.add_project("Beta", hobbies)
    s.add_project("Loose")
    return s


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def workspace(storage: MemoryStorage, clock: FakeClock) -> Workspace:
    """Workspace over empty storage, so it starts from the seeded tree."""
    return Workspace(storage, clock=clock)
