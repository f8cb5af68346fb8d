"""
Tests for `domain/packet.py` and `domain/errors.py`.

Covers:
- Packet invariants (positive totals, bounded remainders, UTC timestamps, expiry after creation).
- after_claim returns a new snapshot and leaves the original unchanged.
- next_share_index follows total_count - remain_count + 1.
- Payload round trip preserves every field.
- Error codes map back to the right exception.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone

import pytest

from domain.errors import (
    AlreadyClaimed,
    AlreadyInProgress,
    PacketExhausted,
    PacketNotFound,
    SharesNotFound,
    StoreError,
    error_for_code,
)
from domain.packet import ClaimRecord, Packet, format_amount

CREATED = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


def _packet(**overrides) -> Packet:
    fields = dict(
        packet_id="p1",
        total_amount=100,
        total_count=3,
        remain_amount=100,
        remain_count=3,
        creator_id="creator",
        created_at=CREATED,
        expire_at=CREATED + timedelta(days=1),
    )
    fields.update(overrides)
    return Packet(**fields)


def test_packet_requires_utc_timestamps() -> None:
    with pytest.raises(ValueError):
        _packet(created_at=datetime(2025, 1, 1), expire_at=datetime(2025, 1, 2))

    with pytest.raises(ValueError):
        _packet(expire_at=datetime(2025, 1, 2, tzinfo=timezone(timedelta(hours=8))))


@pytest.mark.parametrize(
    "overrides",
    [
        {"total_amount": 0},
        {"total_count": 0},
        {"remain_count": 4},
        {"remain_count": -1},
        {"remain_amount": 101},
        {"remain_amount": -1},
        {"expire_at": CREATED},
    ],
)
def test_packet_rejects_invalid_state(overrides) -> None:
    with pytest.raises(ValueError):
        _packet(**overrides)


def test_after_claim_returns_new_snapshot() -> None:
    """Verify a claim decrements both remainders on a copy only."""

    packet = _packet()
    updated = packet.after_claim(40)

    assert (updated.remain_count, updated.remain_amount) == (2, 60)
    assert (packet.remain_count, packet.remain_amount) == (3, 100)
    assert updated.claimed_count == 1
    assert updated.claimed_amount == 40

    with pytest.raises(FrozenInstanceError):
        packet.remain_count = 0  # type: ignore[misc]


def test_after_claim_rejects_impossible_amounts() -> None:
    packet = _packet(remain_amount=10, remain_count=1)

    with pytest.raises(ValueError):
        packet.after_claim(11)
    with pytest.raises(ValueError):
        packet.after_claim(0)
    with pytest.raises(ValueError):
        packet.after_claim(10).after_claim(1)


def test_next_share_index_and_exhaustion() -> None:
    packet = _packet()
    assert packet.next_share_index == 1

    packet = packet.after_claim(10)
    assert packet.next_share_index == 2

    packet = packet.after_claim(10).after_claim(80)
    assert packet.is_exhausted
    assert packet.remain_amount == 0


def test_is_expired_is_strictly_after_deadline() -> None:
    packet = _packet()

    assert not packet.is_expired(packet.expire_at)
    assert packet.is_expired(packet.expire_at + timedelta(microseconds=1))


def test_packet_payload_round_trip() -> None:
    packet = _packet(remain_amount=55, remain_count=2)
    payload = packet.to_payload()

    assert payload["expire_at_utc"].endswith("+00:00")
    assert Packet.from_payload(payload) == packet


def test_claim_record_payload_round_trip_and_validation() -> None:
    record = ClaimRecord(
        claim_id="c1",
        packet_id="p1",
        claimant_id="u1",
        amount=25,
        claimed_at=CREATED,
        share_index=1,
        remain_count=2,
        remain_amount=75,
    )
    assert ClaimRecord.from_payload(record.to_payload()) == record

    with pytest.raises(ValueError):
        ClaimRecord(claim_id="c", packet_id="p", claimant_id="u", amount=0, claimed_at=CREATED, share_index=1)
    with pytest.raises(ValueError):
        ClaimRecord(claim_id="c", packet_id="p", claimant_id="u", amount=1, claimed_at=CREATED, share_index=0)


def test_format_amount() -> None:
    assert format_amount(0) == "0.00"
    assert format_amount(5) == "0.05"
    assert format_amount(12345) == "123.45"
    assert format_amount(-150) == "-1.50"


def test_error_for_code_maps_known_codes() -> None:
    assert isinstance(error_for_code("RED_PACKET_NOT_FOUND"), PacketNotFound)
    assert isinstance(error_for_code("ALREADY_GRABBED"), AlreadyClaimed)
    assert isinstance(error_for_code("RED_PACKET_EMPTY"), PacketExhausted)
    assert isinstance(error_for_code("AMOUNTS_NOT_FOUND"), SharesNotFound)

    err = error_for_code("ALREADY_GRABBED", "custom message")
    assert str(err) == "custom message"


def test_error_for_code_unknown_becomes_store_error() -> None:
    err = error_for_code("SOMETHING_NEW", "details")

    assert type(err) is StoreError
    assert "SOMETHING_NEW" in str(err)
    assert isinstance(error_for_code(None), StoreError)


def test_retryable_flags() -> None:
    assert AlreadyInProgress.retryable is True
    assert AlreadyClaimed.retryable is False
    assert PacketExhausted.retryable is False
