"""
In-memory packet store.

Single-process stand-in for the Supabase backend, used by the test suite, the
simulation script and `PACKET_STORE_BACKEND=memory`. One `threading.Lock`
guards the whole keyspace, so a script registered here runs as one
indivisible unit with respect to every other store operation.

Values are stored as JSON text, so callers always get fresh copies back and
never share mutable state with the store.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from domain.errors import StoreError, StoreUnavailable
from domain.time import Clock, require_utc_timestamp, utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Entry:
    text: str
    expire_at: Optional[datetime]


class StoreTransaction:
    """
    View of the keyspace handed to a script while the store lock is held.

    Only valid for the duration of the script call.
    """

    def __init__(self, store: "InMemoryPacketStore", now: datetime) -> None:
        self._store = store
        self.now = now

    def get(self, key: str) -> Optional[Any]:
        entry = self._store._live_entry(key, self.now)
        return json.loads(entry.text) if entry is not None else None

    def exists(self, key: str) -> bool:
        return self._store._live_entry(key, self.now) is not None

    def expire_at(self, key: str) -> Optional[datetime]:
        entry = self._store._live_entry(key, self.now)
        return entry.expire_at if entry is not None else None

    def set(
        self,
        key: str,
        value: Any,
        *,
        expire_at: Optional[datetime] = None,
        keep_ttl: bool = False,
    ) -> None:
        """Write a value. With keep_ttl the existing expiry is preserved."""

        if keep_ttl:
            expire_at = self.expire_at(key)
        self._store._entries[key] = _Entry(text=json.dumps(value), expire_at=expire_at)


# A script receives the transaction view, the key list and the argument map.
AtomicScript = Callable[[StoreTransaction, Sequence[str], Mapping[str, Any]], Mapping[str, Any]]


class InMemoryPacketStore:
    """
    Thread-safe dict-backed implementation of `PacketStore`.

    Args:
        scripts: Named scripts available to `run_atomic`
        clock: Source of "now" for expiry checks
    """

    def __init__(
        self,
        scripts: Optional[Mapping[str, AtomicScript]] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, _Entry] = {}
        self._scripts: Dict[str, AtomicScript] = dict(scripts or {})
        self._clock = clock or utc_now
        self._closed = False

    def register_script(self, name: str, script: AtomicScript) -> None:
        with self._lock:
            self._scripts[name] = script

    def _now(self) -> datetime:
        now = self._clock()
        require_utc_timestamp("now", now)
        return now

    def _check_open(self) -> None:
        if self._closed:
            raise StoreUnavailable("In-memory packet store is closed")

    def _live_entry(self, key: str, now: datetime) -> Optional[_Entry]:
        """Return the entry if present and not expired; expired entries are evicted."""

        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expire_at is not None and now >= entry.expire_at:
            del self._entries[key]
            return None
        return entry

    def put_with_expiry(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        with self._lock:
            self._check_open()
            now = self._now()
            self._entries[key] = _Entry(
                text=json.dumps(value),
                expire_at=now + timedelta(seconds=ttl_seconds),
            )

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            self._check_open()
            entry = self._live_entry(key, self._now())
            return json.loads(entry.text) if entry is not None else None

    def run_atomic(
        self, script: str, keys: Sequence[str], args: Mapping[str, Any]
    ) -> Mapping[str, Any]:
        with self._lock:
            self._check_open()
            fn = self._scripts.get(script)
            if fn is None:
                raise StoreError(f"Unknown atomic script: {script}")

            # Scripts write straight into the keyspace; snapshot it so a
            # script that raises leaves no partial writes behind.
            snapshot = dict(self._entries)
            try:
                result = fn(StoreTransaction(self, self._now()), list(keys), dict(args))
            except Exception:
                self._entries = snapshot
                logger.exception(f"Atomic script '{script}' failed; changes rolled back")
                raise
            return json.loads(json.dumps(result))

    def lock_take(self, key: str, token: str, lease_seconds: float) -> bool:
        """Set key to token if absent (or lease expired). Returns True on success."""

        if lease_seconds <= 0:
            raise ValueError("lease_seconds must be > 0")
        with self._lock:
            self._check_open()
            now = self._now()
            if self._live_entry(key, now) is not None:
                return False
            self._entries[key] = _Entry(
                text=json.dumps(token),
                expire_at=now + timedelta(seconds=lease_seconds),
            )
            return True

    def lock_release(self, key: str, token: str) -> bool:
        """Delete key only if it still holds `token`."""

        with self._lock:
            self._check_open()
            entry = self._live_entry(key, self._now())
            if entry is None or json.loads(entry.text) != token:
                return False
            del self._entries[key]
            return True

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._entries.clear()


__all__ = ["AtomicScript", "InMemoryPacketStore", "StoreTransaction"]
