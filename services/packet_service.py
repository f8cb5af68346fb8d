"""
Packet service for creating packets and reading their state.

Handles:
- Validation of creation requests
- One-time share allocation (two-times-the-mean) at creation
- Persisting packet + share list under a shared expiry
- Status lookups (packet snapshot, per-claimant claim record)
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from uuid import uuid4

from domain.allocation import allocate_shares, validate_allocation
from domain.errors import InvalidArgument
from domain.packet import ClaimRecord, Packet, format_amount
from domain.time import Clock, utc_now
from repositories.packet_repository import load_claim, load_packet, save_packet
from repositories.packet_store import PacketKeys, PacketStore

logger = logging.getLogger(__name__)

DEFAULT_EXPIRE_MINUTES: int = 24 * 60

# Packets stay readable this long after their deadline, so late claims get
# PacketExpired rather than PacketNotFound.
DEFAULT_EXPIRED_RETENTION_SECONDS: int = 10 * 60


@dataclass(frozen=True, slots=True)
class CreatePacketRequest:
    """
    Request to create a packet.

    total_amount is in minor units (e.g. cents).
    """
    total_amount: int
    total_count: int
    creator_id: str
    expire_minutes: int = DEFAULT_EXPIRE_MINUTES


def validate_identifier(name: str, value: object, *, allow_colon: bool = True) -> str:
    """Identifiers are opaque non-empty strings; packet ids may not contain ':'."""

    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{name} must be a non-empty string")
    if not allow_colon and ":" in value:
        raise InvalidArgument(f"{name} must not contain ':'")
    return value


def create_packet(
    store: PacketStore,
    request: CreatePacketRequest,
    *,
    keys: Optional[PacketKeys] = None,
    rng: Optional[random.Random] = None,
    clock: Optional[Clock] = None,
    retention_seconds: int = DEFAULT_EXPIRED_RETENTION_SECONDS,
) -> str:
    """
    Create a packet and pre-compute its shares.

    Process:
    1. Validate amount, count, creator and expiry
    2. Generate a fresh packet_id
    3. Allocate the share list (once; claims only consume it)
    4. Build the Packet with remain == total
    5. Write share list, then packet, both kept in the store for
       expire_minutes plus the retention window

    Args:
        store: Packet store
        request: CreatePacketRequest
        keys: Key layout (defaults to the standard prefix)
        rng: Random source for allocation (seed it for reproducible shares)
        clock: Source of created_at
        retention_seconds: How long the packet stays readable after expire_at

    Returns:
        The new packet_id

    Raises:
        InvalidArgument: if the request is malformed
    """
    validate_allocation(request.total_amount, request.total_count)
    creator_id = validate_identifier("creator_id", request.creator_id)

    expire_minutes = request.expire_minutes
    if isinstance(expire_minutes, bool) or not isinstance(expire_minutes, int) or expire_minutes <= 0:
        raise InvalidArgument("expire_minutes must be a positive integer")
    if retention_seconds < 0:
        raise InvalidArgument("retention_seconds must be >= 0")

    keys = keys or PacketKeys()
    now = (clock or utc_now)()

    packet_id = uuid4().hex
    shares = allocate_shares(request.total_amount, request.total_count, rng=rng)

    packet = Packet(
        packet_id=packet_id,
        total_amount=request.total_amount,
        total_count=request.total_count,
        remain_amount=request.total_amount,
        remain_count=request.total_count,
        creator_id=creator_id,
        created_at=now,
        expire_at=now + timedelta(minutes=expire_minutes),
    )

    save_packet(store, keys, packet, shares, ttl_seconds=expire_minutes * 60 + retention_seconds)

    logger.info(
        f"Packet {packet_id} created by {creator_id}: "
        f"{format_amount(packet.total_amount)} in {packet.total_count} shares, "
        f"expires {packet.expire_at.isoformat()}",
        extra={
            "packet_id": packet_id,
            "creator_id": creator_id,
            "total_amount": packet.total_amount,
            "total_count": packet.total_count,
        },
    )
    return packet_id


def get_packet(
    store: PacketStore, packet_id: str, *, keys: Optional[PacketKeys] = None
) -> Optional[Packet]:
    """
    Get a packet snapshot by ID.

    Returns:
        Packet or None if it does not exist (or has expired out of the store)
    """
    validate_identifier("packet_id", packet_id)
    if ":" in packet_id:
        # Never issued, so it cannot exist.
        return None
    return load_packet(store, keys or PacketKeys(), packet_id)


def get_claim(
    store: PacketStore,
    packet_id: str,
    claimant_id: str,
    *,
    keys: Optional[PacketKeys] = None,
) -> Optional[ClaimRecord]:
    """
    Get one claimant's claim record for a packet.

    Returns:
        ClaimRecord or None if the claimant has not claimed this packet
    """
    validate_identifier("packet_id", packet_id)
    validate_identifier("claimant_id", claimant_id)
    if ":" in packet_id:
        return None
    return load_claim(store, keys or PacketKeys(), packet_id, claimant_id)


__all__ = [
    "CreatePacketRequest",
    "DEFAULT_EXPIRED_RETENTION_SECONDS",
    "DEFAULT_EXPIRE_MINUTES",
    "create_packet",
    "get_claim",
    "get_packet",
    "validate_identifier",
]
