"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Amounts are integer minor units (e.g. cents).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from domain.packet import ClaimRecord, Packet


# ============================================================================
# Packet Models
# ============================================================================

class CreatePacketBody(BaseModel):
    """Request to create a packet."""
    total_amount: int = Field(..., description="Total amount in minor units")
    total_count: int = Field(..., description="Number of shares")
    creator_id: str = Field(..., description="Creator user ID")
    expire_minutes: Optional[int] = Field(
        None, description="Minutes until the packet expires (server default: 1440)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "total_amount": 10000,
                "total_count": 10,
                "creator_id": "user-1",
                "expire_minutes": 1440
            }
        }


class CreatePacketResponse(BaseModel):
    """Response after creating a packet."""
    success: bool
    packet_id: str


class PacketResponse(BaseModel):
    """Packet status snapshot."""
    packet_id: str
    total_amount: int
    total_count: int
    remain_amount: int
    remain_count: int
    creator_id: str
    created_at: datetime
    expire_at: datetime

    @classmethod
    def from_packet(cls, packet: Packet) -> "PacketResponse":
        return cls(
            packet_id=packet.packet_id,
            total_amount=packet.total_amount,
            total_count=packet.total_count,
            remain_amount=packet.remain_amount,
            remain_count=packet.remain_count,
            creator_id=packet.creator_id,
            created_at=packet.created_at,
            expire_at=packet.expire_at,
        )


# ============================================================================
# Claim Models
# ============================================================================

class ClaimBody(BaseModel):
    """Request to claim one share of a packet."""
    claimant_id: str = Field(..., min_length=1, description="Claiming user ID")

    class Config:
        json_schema_extra = {
            "example": {
                "claimant_id": "user-42"
            }
        }


class ClaimResponse(BaseModel):
    """Response after a successful claim."""
    success: bool
    amount: int
    remain_count: Optional[int] = None
    remain_amount: Optional[int] = None
    claimed_at: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "amount": 1234,
                "remain_count": 9,
                "remain_amount": 8766,
                "claimed_at": "2025-01-01T12:00:00Z"
            }
        }


class ClaimRecordResponse(BaseModel):
    """Stored claim record for one claimant."""
    claim_id: str
    packet_id: str
    claimant_id: str
    amount: int
    share_index: int
    claimed_at: datetime

    @classmethod
    def from_record(cls, record: ClaimRecord) -> "ClaimRecordResponse":
        return cls(
            claim_id=record.claim_id,
            packet_id=record.packet_id,
            claimant_id=record.claimant_id,
            amount=record.amount,
            share_index=record.share_index,
            claimed_at=record.claimed_at,
        )
