"""
Domain: packet error taxonomy.

Every failure of a create or claim operation maps to exactly one of these
exceptions. The `code` values are shared with the atomic claim script (both
the Python and the PL/pgSQL renditions), which reports failures as
`{"success": false, "error": CODE}` instead of raising.

Retry guidance is carried on the class:
- business outcomes of a race (already claimed, exhausted, expired) are final
- lock contention and infrastructure failures may be retried by the caller
"""

from __future__ import annotations

from typing import Dict, Optional, Type


class PacketError(Exception):
    """Base class for all packet failures."""

    code: str = "PACKET_ERROR"
    retryable: bool = False

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.code)


class InvalidArgument(PacketError):
    """Malformed creation request. The caller must fix its input."""

    code = "INVALID_ARGUMENT"


class PacketNotFound(PacketError):
    """Packet does not exist or has expired out of the store."""

    code = "RED_PACKET_NOT_FOUND"


class SharesNotFound(PacketError):
    """Share list is missing or shorter than the packet claims (data integrity)."""

    code = "AMOUNTS_NOT_FOUND"


class AlreadyClaimed(PacketError):
    code = "ALREADY_GRABBED"


class PacketExhausted(PacketError):
    code = "RED_PACKET_EMPTY"


class PacketExpired(PacketError):
    code = "RED_PACKET_EXPIRED"


class AlreadyInProgress(PacketError):
    """Another attempt from the same claimant holds the claim lock."""

    code = "ALREADY_IN_PROGRESS"
    retryable = True


class StoreError(PacketError):
    """The store returned something the caller cannot interpret."""

    code = "STORE_ERROR"


class StoreUnavailable(StoreError):
    code = "STORE_UNAVAILABLE"
    retryable = True


class StoreTimeout(StoreError):
    code = "STORE_TIMEOUT"
    retryable = True


_ERRORS_BY_CODE: Dict[str, Type[PacketError]] = {
    cls.code: cls
    for cls in (
        InvalidArgument,
        PacketNotFound,
        SharesNotFound,
        AlreadyClaimed,
        PacketExhausted,
        PacketExpired,
        AlreadyInProgress,
        StoreError,
        StoreUnavailable,
        StoreTimeout,
    )
}


def error_for_code(code: Optional[str], message: Optional[str] = None) -> PacketError:
    """
    Build the exception matching a script error code.

    Unknown codes become a StoreError so that no failure is silently dropped.
    """

    cls = _ERRORS_BY_CODE.get(code or "")
    if cls is None:
        detail = f" ({message})" if message else ""
        return StoreError(f"Unexpected claim result: {code}{detail}")
    return cls(message)


__all__ = [
    "PacketError",
    "InvalidArgument",
    "PacketNotFound",
    "SharesNotFound",
    "AlreadyClaimed",
    "PacketExhausted",
    "PacketExpired",
    "AlreadyInProgress",
    "StoreError",
    "StoreUnavailable",
    "StoreTimeout",
    "error_for_code",
]
