"""
Packet store contract (persistence).

A packet store is a key/value store with three capabilities:
- put a JSON value with an expiry
- get a value (expired keys read as absent)
- run a named script atomically against a set of keys

plus a token-guarded lease lock used by the claim path to throttle duplicate
attempts. Backends:
- repositories.supabase_store.SupabasePacketStore (Postgres functions via RPC)
- repositories.memory_store.InMemoryPacketStore (single process, tests and demos)

This module also owns the key layout, so both backends and the SQL functions
agree on where packets, share lists, claim records and locks live.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

# Default key namespace. Keep this aligned with sql/packet_store.sql.
DEFAULT_KEY_PREFIX: str = "redpacket"

# Name of the atomic claim script in both backends.
CLAIM_SCRIPT: str = "claim_packet_atomic"


class PacketStore(Protocol):
    """Operations the packet and claim services rely on."""

    def put_with_expiry(self, key: str, value: Any, ttl_seconds: int) -> None:
        ...

    def get(self, key: str) -> Optional[Any]:
        ...

    def run_atomic(
        self, script: str, keys: Sequence[str], args: Mapping[str, Any]
    ) -> Mapping[str, Any]:
        ...

    def lock_take(self, key: str, token: str, lease_seconds: float) -> bool:
        ...

    def lock_release(self, key: str, token: str) -> bool:
        ...

    def close(self) -> None:
        ...


class PacketKeys:
    """Key layout for one namespace prefix."""

    def __init__(self, prefix: str = DEFAULT_KEY_PREFIX) -> None:
        if not prefix or ":" in prefix:
            raise ValueError("key prefix must be non-empty and must not contain ':'")
        self.prefix = prefix

    def packet(self, packet_id: str) -> str:
        return f"{self.prefix}:{packet_id}"

    def shares(self, packet_id: str) -> str:
        return f"{self.prefix}:{packet_id}:shares"

    def claim(self, packet_id: str, claimant_id: str) -> str:
        return f"{self.prefix}:record:{packet_id}:{claimant_id}"

    def lock(self, packet_id: str, claimant_id: str) -> str:
        return f"{self.prefix}:lock:{packet_id}:{claimant_id}"


__all__ = [
    "CLAIM_SCRIPT",
    "DEFAULT_KEY_PREFIX",
    "PacketKeys",
    "PacketStore",
]
