"""
Packets API Endpoints.

Endpoints for creating packets, claiming shares and reading status.
"""

from typing import Dict, Type

from fastapi import APIRouter, HTTPException

from api.models import (
    ClaimBody,
    ClaimRecordResponse,
    ClaimResponse,
    CreatePacketBody,
    CreatePacketResponse,
    PacketResponse,
)
from domain.errors import (
    AlreadyClaimed,
    AlreadyInProgress,
    InvalidArgument,
    PacketError,
    PacketExhausted,
    PacketExpired,
    PacketNotFound,
    SharesNotFound,
    StoreTimeout,
    StoreUnavailable,
)
from services.claim_service import ClaimRequest, claim_packet
from services.packet_service import CreatePacketRequest, create_packet, get_claim, get_packet
from services.runtime import get_keys, get_settings, get_store

router = APIRouter()

# Most specific class first; the first isinstance match wins.
_STATUS_BY_ERROR: Dict[Type[PacketError], int] = {
    InvalidArgument: 400,
    PacketNotFound: 404,
    AlreadyClaimed: 409,
    PacketExhausted: 409,
    AlreadyInProgress: 409,
    PacketExpired: 410,
    SharesNotFound: 500,
    StoreTimeout: 503,
    StoreUnavailable: 503,
}


def _http_error(e: PacketError) -> HTTPException:
    status_code = next(
        (status for cls, status in _STATUS_BY_ERROR.items() if isinstance(e, cls)),
        500,
    )
    headers = {"Retry-After": "1"} if e.retryable else None
    return HTTPException(
        status_code=status_code,
        detail={"success": False, "error": e.code, "message": str(e)},
        headers=headers,
    )


@router.post(
    "/packets",
    response_model=CreatePacketResponse,
    summary="Create Packet",
    description="Split an amount into randomized shares that claimants can draw once each."
)
def create(body: CreatePacketBody):
    """
    Create a packet.

    Shares are computed once at creation with the two-times-the-mean method
    and shuffled; claims consume them in list order.

    **Example request:**
    ```json
    {
      "total_amount": 10000,
      "total_count": 10,
      "creator_id": "user-1",
      "expire_minutes": 1440
    }
    ```
    """
    settings = get_settings()
    try:
        packet_id = create_packet(
            get_store(),
            CreatePacketRequest(
                total_amount=body.total_amount,
                total_count=body.total_count,
                creator_id=body.creator_id,
                expire_minutes=(
                    body.expire_minutes
                    if body.expire_minutes is not None
                    else settings.default_expire_minutes
                ),
            ),
            keys=get_keys(),
            retention_seconds=settings.expired_retention_seconds,
        )
    except PacketError as e:
        raise _http_error(e)

    return CreatePacketResponse(success=True, packet_id=packet_id)


@router.post(
    "/packets/{packet_id}/claims",
    response_model=ClaimResponse,
    summary="Claim Share",
    description="Draw one share from a packet. Each claimant can succeed at most once per packet."
)
def claim(packet_id: str, body: ClaimBody):
    """
    Claim one share.

    **Failure responses:**
    - 404 packet not found
    - 409 already claimed, packet exhausted, or a concurrent attempt in progress
      (the last one is retryable, see Retry-After)
    - 410 packet expired
    - 503 store unavailable (retryable)
    """
    settings = get_settings()
    try:
        record = claim_packet(
            get_store(),
            ClaimRequest(packet_id=packet_id, claimant_id=body.claimant_id),
            keys=get_keys(),
            lease_seconds=settings.lock_lease_seconds,
            lock_wait_seconds=settings.lock_wait_seconds,
        )
    except PacketError as e:
        raise _http_error(e)

    return ClaimResponse(
        success=True,
        amount=record.amount,
        remain_count=record.remain_count,
        remain_amount=record.remain_amount,
        claimed_at=record.claimed_at,
    )


@router.get(
    "/packets/{packet_id}",
    response_model=PacketResponse,
    summary="Get Packet",
)
def read_packet(packet_id: str):
    try:
        packet = get_packet(get_store(), packet_id, keys=get_keys())
    except PacketError as e:
        raise _http_error(e)

    if packet is None:
        raise HTTPException(
            status_code=404,
            detail={"success": False, "error": PacketNotFound.code, "message": "Packet not found"},
        )
    return PacketResponse.from_packet(packet)


@router.get(
    "/packets/{packet_id}/claims/{claimant_id}",
    response_model=ClaimRecordResponse,
    summary="Get Claim Record",
)
def read_claim(packet_id: str, claimant_id: str):
    try:
        record = get_claim(get_store(), packet_id, claimant_id, keys=get_keys())
    except PacketError as e:
        raise _http_error(e)

    if record is None:
        raise HTTPException(
            status_code=404,
            detail={"success": False, "error": "CLAIM_NOT_FOUND", "message": "Claim record not found"},
        )
    return ClaimRecordResponse.from_record(record)
