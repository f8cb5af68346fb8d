"""
Process-wide packet store handle.

Initialized once at startup, shared by reference across all requests and
closed on shutdown. Nothing request-scoped lives here.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from repositories.client import get_supabase
from repositories.memory_store import InMemoryPacketStore
from repositories.packet_store import CLAIM_SCRIPT, PacketKeys, PacketStore
from repositories.supabase_store import SupabasePacketStore
from services.claim_script import claim_packet_atomic
from services.settings import PacketSettings

logger = logging.getLogger(__name__)

_store: Optional[PacketStore] = None
_settings: Optional[PacketSettings] = None
_lock = threading.Lock()


def build_memory_store() -> InMemoryPacketStore:
    """In-memory store with the claim script registered."""

    return InMemoryPacketStore(scripts={CLAIM_SCRIPT: claim_packet_atomic})


def build_store(settings: PacketSettings) -> PacketStore:
    if settings.backend == "memory":
        return build_memory_store()

    client = get_supabase(settings.supabase_url, settings.supabase_key)
    return SupabasePacketStore(client, table=settings.kv_table, owns_client=True)


def init_store(
    settings: Optional[PacketSettings] = None,
    store: Optional[PacketStore] = None,
) -> PacketStore:
    """
    Install the process-wide store. Idempotent: a second call returns the
    existing handle.

    Args:
        settings: Runtime settings (read from the environment if omitted)
        store: Pre-built store to install instead of building one
    """

    global _store, _settings

    with _lock:
        if _store is not None:
            return _store

        _settings = settings or PacketSettings.from_env()
        _store = store or build_store(_settings)
        logger.info(
            f"Packet store initialized ({_settings.backend})",
            extra={"backend": _settings.backend, "key_prefix": _settings.key_prefix},
        )
        return _store


def get_store() -> PacketStore:
    if _store is None:
        raise RuntimeError("Packet store is not initialized; call init_store() at startup")
    return _store


def get_settings() -> PacketSettings:
    if _settings is None:
        raise RuntimeError("Packet store is not initialized; call init_store() at startup")
    return _settings


def get_keys() -> PacketKeys:
    return PacketKeys(get_settings().key_prefix)


def close_store() -> None:
    global _store, _settings

    with _lock:
        if _store is None:
            return
        try:
            _store.close()
        finally:
            logger.info("Packet store closed")
            _store = None
            _settings = None


__all__ = [
    "build_memory_store",
    "build_store",
    "close_store",
    "get_keys",
    "get_settings",
    "get_store",
    "init_store",
]
