"""
Claim service for drawing one share from a packet.

Handles:
- Per-claimant lock (duplicate suppression, bounded wait)
- Integration with the claim_packet_atomic() store script
- Translation of script outcomes into ClaimRecord or a named PacketError

The atomic script is the single source of truth: it alone reads and writes
packet state and claim records. This module never writes to the store except
through the lock and the script.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from uuid import uuid4

from domain.errors import PacketError, StoreError, error_for_code
from domain.packet import ClaimRecord, format_amount
from domain.time import Clock, to_iso_utc, utc_now
from repositories.packet_store import CLAIM_SCRIPT, PacketKeys, PacketStore
from services.claim_lock import ClaimLock
from services.packet_service import validate_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClaimRequest:
    """
    Request to draw one share.
    """
    packet_id: str
    claimant_id: str


def _interpret_result(result: Mapping[str, Any]) -> ClaimRecord:
    """Map the script's structured result to a ClaimRecord or raise."""

    if result.get("success") is True:
        claim = result.get("claim")
        if not isinstance(claim, Mapping):
            raise StoreError("Claim script reported success without a claim record")
        try:
            return ClaimRecord.from_payload(claim)
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Claim script returned a malformed claim record: {e}") from e

    raise error_for_code(result.get("error"), result.get("message"))


def claim_packet(
    store: PacketStore,
    request: ClaimRequest,
    *,
    keys: Optional[PacketKeys] = None,
    lease_seconds: float = 10.0,
    lock_wait_seconds: float = 0.0,
    clock: Optional[Clock] = None,
) -> ClaimRecord:
    """
    Claim exactly one share of a packet for one claimant.

    Process:
    1. Acquire the (packet_id, claimant_id) lock, or fail with AlreadyInProgress
    2. Run claim_packet_atomic() which, as one transaction:
       - loads the packet and checks for an existing claim record
       - rejects exhausted or expired packets
       - takes share number (total_count - remain_count + 1)
       - decrements the packet and writes the claim record
    3. Release the lock (always, including on errors)
    4. Return the ClaimRecord or raise the matching PacketError

    Args:
        store: Packet store
        request: ClaimRequest with packet_id and claimant_id
        keys: Key layout (defaults to the standard prefix)
        lease_seconds: Lock lease; an abandoned lock frees itself after this
        lock_wait_seconds: How long to wait for a busy lock before giving up
        clock: Source of "now" for the expiry check and claim timestamp

    Returns:
        ClaimRecord for the share that was drawn

    Raises:
        PacketNotFound, AlreadyClaimed, PacketExhausted, PacketExpired,
        SharesNotFound, AlreadyInProgress, StoreUnavailable, StoreTimeout,
        StoreError

    Example:
        record = claim_packet(store, ClaimRequest(packet_id=pid, claimant_id="u-42"))
        print(f"Drew {record.amount} (share #{record.share_index})")
    """
    packet_id = validate_identifier("packet_id", request.packet_id, allow_colon=False)
    claimant_id = validate_identifier("claimant_id", request.claimant_id)
    keys = keys or PacketKeys()
    clock = clock or utc_now

    log_context = {"packet_id": packet_id, "claimant_id": claimant_id}

    with ClaimLock(
        store,
        keys.lock(packet_id, claimant_id),
        lease_seconds=lease_seconds,
        wait_seconds=lock_wait_seconds,
    ):
        try:
            result = store.run_atomic(
                CLAIM_SCRIPT,
                [
                    keys.packet(packet_id),
                    keys.shares(packet_id),
                    keys.claim(packet_id, claimant_id),
                ],
                {
                    "claimant_id": claimant_id,
                    "claim_id": uuid4().hex,
                    "now_utc": to_iso_utc(clock(), name="now"),
                },
            )
            record = _interpret_result(result)
        except PacketError as e:
            level = logging.ERROR if isinstance(e, StoreError) else logging.INFO
            logger.log(
                level,
                f"Claim rejected for {claimant_id} on packet {packet_id}: {e.code}",
                extra={**log_context, "error_code": e.code},
            )
            raise

    logger.info(
        f"Claimant {claimant_id} drew {format_amount(record.amount)} from packet {packet_id}, "
        f"remaining: {record.remain_count} shares, {format_amount(record.remain_amount or 0)}",
        extra={**log_context, "amount": record.amount, "share_index": record.share_index},
    )
    return record


__all__ = [
    "ClaimRequest",
    "claim_packet",
]
