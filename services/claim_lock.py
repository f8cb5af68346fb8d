"""
Per-claimant claim lock.

A short lease lock on (packet_id, claimant_id) that throttles duplicate
in-flight attempts from the same claimant. It is not what makes claims
exactly-once; the atomic claim script checks for an existing record itself.

Usage:
    with ClaimLock(store, key, lease_seconds=10):
        ...  # lock held; released on every exit path

Acquisition never blocks longer than `wait_seconds`; failing to acquire raises
AlreadyInProgress.
"""

from __future__ import annotations

import logging
import time
from types import TracebackType
from typing import Optional, Type
from uuid import uuid4

from domain.errors import AlreadyInProgress, PacketError
from repositories.packet_store import PacketStore

logger = logging.getLogger(__name__)

# Delay between acquisition attempts while waiting.
_POLL_INTERVAL_SECONDS = 0.05


class ClaimLock:
    def __init__(
        self,
        store: PacketStore,
        key: str,
        *,
        lease_seconds: float = 10.0,
        wait_seconds: float = 0.0,
    ) -> None:
        if lease_seconds <= 0:
            raise ValueError("lease_seconds must be > 0")
        if wait_seconds < 0:
            raise ValueError("wait_seconds must be >= 0")
        self._store = store
        self.key = key
        self.token = uuid4().hex
        self._lease_seconds = lease_seconds
        self._wait_seconds = wait_seconds
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        deadline = time.monotonic() + self._wait_seconds

        while True:
            if self._store.lock_take(self.key, self.token, self._lease_seconds):
                self._held = True
                return

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(
                    f"Claim lock busy: {self.key}",
                    extra={"lock_key": self.key, "waited_seconds": self._wait_seconds},
                )
                raise AlreadyInProgress(
                    "A claim for this packet by this claimant is already in progress"
                )
            time.sleep(min(_POLL_INTERVAL_SECONDS, remaining))

    def release(self) -> bool:
        """
        Release the lock if this instance still owns it.

        Release failures are logged, never raised: the lease expires on its own
        and the claim outcome must not be replaced by a cleanup error.
        """

        if not self._held:
            return False
        self._held = False

        try:
            released = self._store.lock_release(self.key, self.token)
        except PacketError as e:
            logger.warning(
                f"Failed to release claim lock {self.key}; it will expire with its lease",
                extra={"lock_key": self.key, "error": str(e)},
            )
            return False

        if not released:
            # Lease ran out and someone else may hold the key now.
            logger.warning(
                f"Claim lock {self.key} was no longer held by this attempt",
                extra={"lock_key": self.key},
            )
        return released

    def __enter__(self) -> "ClaimLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()


__all__ = ["ClaimLock"]
