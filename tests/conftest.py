"""
Pytest configuration and shared fixtures.

This file adds the project root to the Python path so that tests can import
from the domain, repositories and services modules, and provides an
in-memory packet store driven by a controllable clock.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from repositories.memory_store import InMemoryPacketStore  # noqa: E402
from repositories.packet_store import CLAIM_SCRIPT, PacketKeys  # noqa: E402
from services.claim_script import claim_packet_atomic  # noqa: E402


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def memory_store(clock: FakeClock) -> InMemoryPacketStore:
    store = InMemoryPacketStore(scripts={CLAIM_SCRIPT: claim_packet_atomic}, clock=clock)
    yield store
    store.close()


@pytest.fixture
def keys() -> PacketKeys:
    return PacketKeys()
