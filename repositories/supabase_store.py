"""
Supabase packet store (persistence).

Backs the packet store contract with one Postgres key/value table and a set of
PL/pgSQL functions (see sql/packet_store.sql):
- plain reads and writes go through the table API
- locks and the claim script go through `supabase.rpc(...)`, so each runs as
  a single Postgres transaction on the server

This module translates transport failures into the packet error taxonomy; it
does not interpret packet data.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Callable, Mapping, Optional, Sequence, TypeVar

import httpx
from postgrest.exceptions import APIError
from supabase import Client  # type: ignore[import-not-found]

from domain.errors import StoreError, StoreTimeout, StoreUnavailable
from domain.time import Clock, to_iso_utc, utc_now
from repositories.client import reset_supabase

logger = logging.getLogger(__name__)

# Supabase table backing the keyspace.
# Keep this aligned with your database schema.
DEFAULT_KV_TABLE: str = "packet_store"

T = TypeVar("T")


def _call(action: str, fn: Callable[[], T]) -> T:
    """Run one client call, mapping connectivity failures to store errors."""

    try:
        return fn()
    except httpx.TimeoutException as e:
        logger.error(f"Packet store timed out during {action}", extra={"action": action})
        raise StoreTimeout(f"Timed out during {action}: {e}") from e
    except httpx.TransportError as e:
        logger.error(f"Packet store unreachable during {action}", extra={"action": action})
        raise StoreUnavailable(f"Store unavailable during {action}: {e}") from e


def _api_error_payload(e: APIError) -> dict[str, Any]:
    try:
        data = e.json() if callable(getattr(e, "json", None)) else {}
    except (TypeError, ValueError):
        data = {}
    return data if isinstance(data, dict) else {}


class SupabasePacketStore:
    """
    `PacketStore` implementation on top of a Supabase (Postgres) project.

    Args:
        client: Supabase client (normally the shared one from repositories.client)
        table: Key/value table name
        clock: Source of "now" for expiry on writes and reads
        owns_client: When True, `close()` also drops the shared client
    """

    def __init__(
        self,
        client: Client,
        table: str = DEFAULT_KV_TABLE,
        clock: Optional[Clock] = None,
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self._table = table
        self._clock = clock or utc_now
        self._owns_client = owns_client

    def put_with_expiry(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")

        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        payload: dict[str, Any] = {
            "key": key,
            "value": value,
            "expires_at": to_iso_utc(expires_at, name="expires_at"),
        }

        try:
            response = _call(
                "put",
                lambda: self._client.table(self._table).upsert(payload).execute(),
            )
        except APIError as e:
            raise StoreError(f"Failed to store key {key}: {e}") from e
        error = getattr(response, "error", None)
        if error:
            raise StoreError(f"Failed to store key {key}: {error}")

    def get(self, key: str) -> Optional[Any]:
        now_iso = to_iso_utc(self._clock(), name="now")

        try:
            response = _call(
                "get",
                lambda: (
                    self._client.table(self._table)
                    .select("value")
                    .eq("key", key)
                    .gt("expires_at", now_iso)
                    .limit(1)
                    .execute()
                ),
            )
        except APIError as e:
            raise StoreError(f"Failed to read key {key}: {e}") from e
        error = getattr(response, "error", None)
        if error:
            raise StoreError(f"Failed to read key {key}: {error}")

        rows = getattr(response, "data", None) or []
        if not rows:
            return None
        return rows[0]["value"]

    def run_atomic(
        self, script: str, keys: Sequence[str], args: Mapping[str, Any]
    ) -> Mapping[str, Any]:
        """
        Invoke a Postgres function as one transaction.

        The function receives `p_keys text[]` and `p_args jsonb` and returns a
        jsonb object.
        """

        params = {"p_keys": list(keys), "p_args": dict(args)}

        try:
            response = _call(
                script,
                lambda: self._client.rpc(script, params).execute(),
            )
        except APIError as e:
            # supabase-py may raise APIError for a function returning JSON,
            # even when that JSON is a regular result.
            data = _api_error_payload(e)
            if "success" in data:
                return data
            logger.error(
                f"Atomic script '{script}' failed",
                extra={"script": script, "error_code": getattr(e, "code", None)},
            )
            raise StoreError(f"Atomic script '{script}' failed: {e}") from e

        error = getattr(response, "error", None)
        if error:
            raise StoreError(f"Atomic script '{script}' failed: {error}")

        result = getattr(response, "data", None)
        if not isinstance(result, dict):
            raise StoreError(f"Atomic script '{script}' returned {type(result).__name__}, expected object")
        return result

    def _rpc_bool(self, function: str, params: dict[str, Any]) -> bool:
        try:
            response = _call(function, lambda: self._client.rpc(function, params).execute())
        except APIError as e:
            raise StoreError(f"{function} failed: {e}") from e

        error = getattr(response, "error", None)
        if error:
            raise StoreError(f"{function} failed: {error}")
        return bool(getattr(response, "data", False))

    def lock_take(self, key: str, token: str, lease_seconds: float) -> bool:
        if lease_seconds <= 0:
            raise ValueError("lease_seconds must be > 0")
        return self._rpc_bool(
            "packet_lock_take",
            {"p_key": key, "p_token": token, "p_lease_ms": int(lease_seconds * 1000)},
        )

    def lock_release(self, key: str, token: str) -> bool:
        return self._rpc_bool("packet_lock_release", {"p_key": key, "p_token": token})

    def purge_expired(self) -> int:
        """Delete expired rows. Returns the number removed."""

        try:
            response = _call(
                "purge",
                lambda: self._client.rpc("packet_store_purge_expired", {}).execute(),
            )
        except APIError as e:
            raise StoreError(f"packet_store_purge_expired failed: {e}") from e
        return int(getattr(response, "data", 0) or 0)

    def close(self) -> None:
        if self._owns_client:
            reset_supabase()


__all__ = ["DEFAULT_KV_TABLE", "SupabasePacketStore"]
