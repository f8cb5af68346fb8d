"""
Atomic claim script (in-process rendition).

The same steps exist as the PL/pgSQL function `claim_packet_atomic` in
sql/packet_store.sql. Both must stay behaviorally identical:

Keys:  [packet_key, shares_key, claim_key]
Args:  {"claimant_id", "claim_id", "now_utc"}

Steps, in order, all inside one store transaction:
  a. load packet                       -> RED_PACKET_NOT_FOUND
     (malformed packet payload         -> STORE_ERROR)
  b. claim record already exists       -> ALREADY_GRABBED
  c. remain_count <= 0                 -> RED_PACKET_EMPTY
  d. now > expire_at                   -> RED_PACKET_EXPIRED
  e. load share list                   -> AMOUNTS_NOT_FOUND
  f. index = total_count - remain_count + 1; missing or invalid share
                                       -> AMOUNTS_NOT_FOUND
  g. write packet with decremented remainders (expiry unchanged)
  h. write claim record expiring with the packet

Failures are returned, not raised, so the transaction commits nothing and the
caller maps the code back to an exception.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Sequence, Type

from domain.errors import (
    AlreadyClaimed,
    PacketError,
    PacketExhausted,
    PacketExpired,
    PacketNotFound,
    SharesNotFound,
    StoreError,
)
from domain.packet import ClaimRecord, Packet
from domain.time import parse_utc_datetime
from repositories.memory_store import StoreTransaction


def _failure(error: Type[PacketError], message: str) -> Dict[str, Any]:
    return {"success": False, "error": error.code, "message": message}


def claim_packet_atomic(
    tx: StoreTransaction, keys: Sequence[str], args: Mapping[str, Any]
) -> Dict[str, Any]:
    packet_key, shares_key, claim_key = keys
    claimant_id = str(args["claimant_id"])
    now = parse_utc_datetime(args["now_utc"])

    payload = tx.get(packet_key)
    if payload is None:
        return _failure(PacketNotFound, "Packet does not exist")

    if tx.exists(claim_key):
        return _failure(AlreadyClaimed, "Claimant has already claimed this packet")

    try:
        packet = Packet.from_payload(payload)
    except (KeyError, TypeError, ValueError) as e:
        return _failure(StoreError, f"Stored packet is malformed: {e}")

    if packet.is_exhausted:
        return _failure(PacketExhausted, "Packet has been fully claimed")

    if packet.is_expired(now):
        return _failure(PacketExpired, "Packet has expired")

    shares = tx.get(shares_key)
    if shares is None:
        return _failure(SharesNotFound, "Share list does not exist")
    if not isinstance(shares, list):
        return _failure(SharesNotFound, "Share list is not a list")

    index = packet.next_share_index
    if index > len(shares):
        return _failure(SharesNotFound, f"Share list has no entry at position {index}")

    try:
        amount = int(shares[index - 1])
    except (TypeError, ValueError):
        return _failure(SharesNotFound, f"Share at position {index} is not an integer amount")
    if amount <= 0 or amount > packet.remain_amount:
        return _failure(SharesNotFound, f"Share at position {index} is inconsistent with the packet")

    updated = packet.after_claim(amount)
    tx.set(packet_key, updated.to_payload(), keep_ttl=True)

    record = ClaimRecord(
        claim_id=str(args["claim_id"]),
        packet_id=packet.packet_id,
        claimant_id=claimant_id,
        amount=amount,
        claimed_at=now,
        share_index=index,
        remain_count=updated.remain_count,
        remain_amount=updated.remain_amount,
    )
    tx.set(claim_key, record.to_payload(), expire_at=tx.expire_at(packet_key) or packet.expire_at)

    return {"success": True, "claim": record.to_payload()}


__all__ = ["claim_packet_atomic"]
