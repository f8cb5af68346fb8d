"""
Packet repository (persistence).

This module provides *only* persistence operations for the Packet, share list
and ClaimRecord entities on top of a packet store. It does not enforce claim
rules; claims are written exclusively by the atomic claim script.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from domain.packet import ClaimRecord, Packet
from repositories.packet_store import PacketKeys, PacketStore


def save_packet(
    store: PacketStore,
    keys: PacketKeys,
    packet: Packet,
    shares: Sequence[int],
    ttl_seconds: int,
) -> None:
    """
    Persist a new packet and its share list under the same expiry.

    The share list is written first: a packet key never exists without its
    shares, so a claim can never observe a half-created packet.
    """

    if len(shares) != packet.total_count or sum(shares) != packet.total_amount:
        raise ValueError("share list does not match packet totals")

    store.put_with_expiry(keys.shares(packet.packet_id), list(shares), ttl_seconds)
    store.put_with_expiry(keys.packet(packet.packet_id), packet.to_payload(), ttl_seconds)


def load_packet(store: PacketStore, keys: PacketKeys, packet_id: str) -> Optional[Packet]:
    payload = store.get(keys.packet(packet_id))
    if payload is None:
        return None
    return Packet.from_payload(payload)


def load_shares(store: PacketStore, keys: PacketKeys, packet_id: str) -> Optional[List[int]]:
    payload = store.get(keys.shares(packet_id))
    if payload is None:
        return None
    return [int(v) for v in payload]


def load_claim(
    store: PacketStore, keys: PacketKeys, packet_id: str, claimant_id: str
) -> Optional[ClaimRecord]:
    payload = store.get(keys.claim(packet_id, claimant_id))
    if payload is None:
        return None
    return ClaimRecord.from_payload(payload)


__all__ = [
    "save_packet",
    "load_packet",
    "load_shares",
    "load_claim",
]
