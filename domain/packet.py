"""
Domain: packets and claim records.

Contract excerpts implemented here:
- A Packet's totals are immutable; remain_amount / remain_count only go down.
- 0 <= remain_count <= total_count and 0 <= remain_amount <= total_amount.
- The n-th successful claim consumes share n (1-based):
  share_index = total_count - remain_count + 1.
- A ClaimRecord is immutable and exists at most once per (packet_id, claimant_id).

This module contains only pure domain entities: no I/O, no store, no frameworks.
All timestamps must be passed explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from .time import parse_utc_datetime, require_utc_timestamp, to_iso_utc


@dataclass(frozen=True, slots=True)
class Packet:
    """
    Immutable snapshot of one allocation event.

    Snapshots are produced by deserializing store payloads. A claim never
    mutates a snapshot; `after_claim` returns the next one.
    """

    packet_id: str
    total_amount: int
    total_count: int
    remain_amount: int
    remain_count: int
    creator_id: str
    created_at: datetime
    expire_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("expire_at", self.expire_at)

        if self.total_amount <= 0 or self.total_count <= 0:
            raise ValueError("total_amount and total_count must be > 0")
        if not 0 <= self.remain_count <= self.total_count:
            raise ValueError("remain_count must be within [0, total_count]")
        if not 0 <= self.remain_amount <= self.total_amount:
            raise ValueError("remain_amount must be within [0, total_amount]")
        if self.expire_at <= self.created_at:
            raise ValueError("expire_at must be after created_at")

    @property
    def claimed_count(self) -> int:
        return self.total_count - self.remain_count

    @property
    def claimed_amount(self) -> int:
        return self.total_amount - self.remain_amount

    @property
    def is_exhausted(self) -> bool:
        return self.remain_count <= 0

    @property
    def next_share_index(self) -> int:
        """1-based position in the share list consumed by the next claim."""

        return self.total_count - self.remain_count + 1

    def is_expired(self, now: datetime) -> bool:
        """A packet is expired strictly after expire_at."""

        require_utc_timestamp("now", now)
        return now > self.expire_at

    def after_claim(self, amount: int) -> "Packet":
        """Return the snapshot following one claim of `amount`."""

        if self.is_exhausted:
            raise ValueError("Packet has no remaining shares")
        if amount <= 0 or amount > self.remain_amount:
            raise ValueError("Claimed amount must be within [1, remain_amount]")
        return replace(
            self,
            remain_count=self.remain_count - 1,
            remain_amount=self.remain_amount - amount,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON shape stored under the packet key."""

        return {
            "packet_id": self.packet_id,
            "total_amount": self.total_amount,
            "total_count": self.total_count,
            "remain_amount": self.remain_amount,
            "remain_count": self.remain_count,
            "creator_id": self.creator_id,
            "created_at_utc": to_iso_utc(self.created_at, name="created_at"),
            "expire_at_utc": to_iso_utc(self.expire_at, name="expire_at"),
        }

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> "Packet":
        return Packet(
            packet_id=str(payload["packet_id"]),
            total_amount=int(payload["total_amount"]),
            total_count=int(payload["total_count"]),
            remain_amount=int(payload["remain_amount"]),
            remain_count=int(payload["remain_count"]),
            creator_id=str(payload["creator_id"]),
            created_at=parse_utc_datetime(payload["created_at_utc"]),
            expire_at=parse_utc_datetime(payload["expire_at_utc"]),
        )


@dataclass(frozen=True, slots=True)
class ClaimRecord:
    """
    Immutable record of one successful claim.

    remain_count / remain_amount are the packet totals right after this claim
    committed; they are informational and never used for accounting.
    """

    claim_id: str
    packet_id: str
    claimant_id: str
    amount: int
    claimed_at: datetime
    share_index: int
    remain_count: Optional[int] = None
    remain_amount: Optional[int] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("claimed_at", self.claimed_at)
        if self.amount <= 0:
            raise ValueError("amount must be > 0")
        if self.share_index <= 0:
            raise ValueError("share_index is 1-based and must be > 0")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "packet_id": self.packet_id,
            "claimant_id": self.claimant_id,
            "amount": self.amount,
            "claimed_at_utc": to_iso_utc(self.claimed_at, name="claimed_at"),
            "share_index": self.share_index,
            "remain_count": self.remain_count,
            "remain_amount": self.remain_amount,
        }

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> "ClaimRecord":
        remain_count = payload.get("remain_count")
        remain_amount = payload.get("remain_amount")
        return ClaimRecord(
            claim_id=str(payload["claim_id"]),
            packet_id=str(payload["packet_id"]),
            claimant_id=str(payload["claimant_id"]),
            amount=int(payload["amount"]),
            claimed_at=parse_utc_datetime(payload["claimed_at_utc"]),
            share_index=int(payload["share_index"]),
            remain_count=int(remain_count) if remain_count is not None else None,
            remain_amount=int(remain_amount) if remain_amount is not None else None,
        )


def format_amount(minor_units: int) -> str:
    """Render minor units as a two-decimal major-unit string (1234 -> '12.34')."""

    sign = "-" if minor_units < 0 else ""
    major, minor = divmod(abs(minor_units), 100)
    return f"{sign}{major}.{minor:02d}"


__all__ = ["Packet", "ClaimRecord", "format_amount"]
