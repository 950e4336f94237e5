"""Test fixtures."""

from collections.abc import Iterator

import pytest

from cache_debugger import (
    ALL_KINDS,
    CacheDebugger,
    InMemorySink,
    MemoryStore,
    Notifier,
    configure,
    reset_configuration,
    uninstall,
)


@pytest.fixture(autouse=True)
def reset_debugger_state() -> Iterator[None]:
    """Every test starts from the default configuration and no global subscriber."""
    reset_configuration()
    uninstall()
    yield
    uninstall()
    reset_configuration()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def sink() -> InMemorySink:
    return InMemorySink()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def debugger(store: MemoryStore, notifier: Notifier, sink: InMemorySink) -> CacheDebugger:
    """Debugger on an isolated notifier delivering to the in-memory sink."""
    configure(sink=sink)
    return CacheDebugger(store, notifier=notifier)


@pytest.fixture
def observe_all(sink: InMemorySink) -> None:
    """Observe every event kind."""
    configure(sink=sink, observed_kinds=ALL_KINDS)
