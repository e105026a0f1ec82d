"""Shared fixtures for tv_remote tests.

Adapter tests run against FakeConnection (tests/helpers/fakes.py) so they can
drive inbound frames and peer closes without a network. Transport, bridge and
proxy tests use real aiohttp servers.
"""

from __future__ import annotations

import pytest

from tests.helpers.fakes import CallbackRecorder, FakeConnectionFactory
from tv_remote.storage import MemoryConfigStore


@pytest.fixture
def connection_factory() -> FakeConnectionFactory:
    return FakeConnectionFactory()


@pytest.fixture
def memory_store() -> MemoryConfigStore:
    return MemoryConfigStore()


@pytest.fixture
def callbacks() -> CallbackRecorder:
    return CallbackRecorder()
