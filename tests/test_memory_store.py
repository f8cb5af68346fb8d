"""
Tests for `repositories/memory_store.py`.

Covers:
- put/get with expiry (expired keys read as absent).
- Values are copied in and out (no shared mutable state).
- Lease lock: exclusive take, token-guarded release, lease expiry.
- run_atomic: unknown script, rollback when a script raises, closed store.
"""

from __future__ import annotations

import pytest

from domain.errors import StoreError, StoreUnavailable
from repositories.memory_store import InMemoryPacketStore


def test_put_and_get_until_expiry(memory_store: InMemoryPacketStore, clock) -> None:
    memory_store.put_with_expiry("k", {"a": 1}, ttl_seconds=60)

    assert memory_store.get("k") == {"a": 1}

    clock.advance(seconds=59)
    assert memory_store.get("k") == {"a": 1}

    clock.advance(seconds=1)
    assert memory_store.get("k") is None


def test_get_missing_key_returns_none(memory_store: InMemoryPacketStore) -> None:
    assert memory_store.get("nope") is None


def test_values_are_copied(memory_store: InMemoryPacketStore) -> None:
    value = {"items": [1, 2]}
    memory_store.put_with_expiry("k", value, ttl_seconds=60)
    value["items"].append(3)

    loaded = memory_store.get("k")
    loaded["items"].append(4)

    assert memory_store.get("k") == {"items": [1, 2]}


def test_put_rejects_non_positive_ttl(memory_store: InMemoryPacketStore) -> None:
    with pytest.raises(ValueError):
        memory_store.put_with_expiry("k", 1, ttl_seconds=0)


def test_lock_take_is_exclusive_until_released(memory_store: InMemoryPacketStore) -> None:
    assert memory_store.lock_take("lock", "t1", lease_seconds=10) is True
    assert memory_store.lock_take("lock", "t2", lease_seconds=10) is False

    # Wrong token cannot release someone else's lock.
    assert memory_store.lock_release("lock", "t2") is False
    assert memory_store.lock_take("lock", "t2", lease_seconds=10) is False

    assert memory_store.lock_release("lock", "t1") is True
    assert memory_store.lock_take("lock", "t2", lease_seconds=10) is True


def test_expired_lease_can_be_taken_and_old_holder_cannot_release(
    memory_store: InMemoryPacketStore, clock
) -> None:
    assert memory_store.lock_take("lock", "old", lease_seconds=10)

    clock.advance(seconds=11)
    assert memory_store.lock_take("lock", "new", lease_seconds=10)

    assert memory_store.lock_release("lock", "old") is False
    assert memory_store.lock_release("lock", "new") is True


def test_run_atomic_unknown_script(memory_store: InMemoryPacketStore) -> None:
    with pytest.raises(StoreError):
        memory_store.run_atomic("does_not_exist", [], {})


def test_run_atomic_rolls_back_when_script_raises(memory_store: InMemoryPacketStore) -> None:
    """Verify a failing script leaves no partial writes behind."""

    memory_store.put_with_expiry("a", 1, ttl_seconds=60)

    def broken(tx, keys, args):
        tx.set("a", 2, keep_ttl=True)
        tx.set("b", 3)
        raise RuntimeError("boom")

    memory_store.register_script("broken", broken)

    with pytest.raises(RuntimeError):
        memory_store.run_atomic("broken", ["a", "b"], {})

    assert memory_store.get("a") == 1
    assert memory_store.get("b") is None


def test_run_atomic_keep_ttl_preserves_expiry(memory_store: InMemoryPacketStore, clock) -> None:
    memory_store.put_with_expiry("a", 1, ttl_seconds=60)

    def bump(tx, keys, args):
        tx.set(keys[0], tx.get(keys[0]) + args["by"], keep_ttl=True)
        return {"value": tx.get(keys[0])}

    memory_store.register_script("bump", bump)
    assert memory_store.run_atomic("bump", ["a"], {"by": 5}) == {"value": 6}

    clock.advance(seconds=60)
    assert memory_store.get("a") is None


def test_closed_store_is_unavailable(clock) -> None:
    store = InMemoryPacketStore(clock=clock)
    store.close()

    with pytest.raises(StoreUnavailable):
        store.get("k")
    with pytest.raises(StoreUnavailable):
        store.lock_take("k", "t", lease_seconds=1)
