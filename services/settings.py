"""
Runtime settings.

Read once from the environment (and a local .env file, if present).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from repositories.packet_store import DEFAULT_KEY_PREFIX
from repositories.supabase_store import DEFAULT_KV_TABLE

# Look for .env in the project root
_ENV_PATH = Path(__file__).parent.parent / ".env"

BACKENDS = ("supabase", "memory")


def _env_number(name: str, default: float, *, minimum: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"Invalid {name}: {raw!r} is not a number") from None
    if value < minimum:
        raise RuntimeError(f"Invalid {name}: must be >= {minimum}")
    return value


@dataclass(frozen=True)
class PacketSettings:
    backend: str = "supabase"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    kv_table: str = DEFAULT_KV_TABLE
    key_prefix: str = DEFAULT_KEY_PREFIX
    lock_lease_seconds: float = 10.0
    lock_wait_seconds: float = 0.0
    default_expire_minutes: int = 24 * 60
    expired_retention_seconds: int = 10 * 60

    @staticmethod
    def from_env(load_env_file: bool = True) -> "PacketSettings":
        if load_env_file:
            load_dotenv(dotenv_path=_ENV_PATH)

        backend = os.getenv("PACKET_STORE_BACKEND", "supabase").strip().lower()
        if backend not in BACKENDS:
            raise RuntimeError(
                f"Invalid PACKET_STORE_BACKEND: {backend!r}. Expected one of {', '.join(BACKENDS)}."
            )

        settings = PacketSettings(
            backend=backend,
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_key=os.getenv("SUPABASE_KEY") or None,
            kv_table=os.getenv("SUPABASE_KV_TABLE", "").strip() or DEFAULT_KV_TABLE,
            key_prefix=os.getenv("PACKET_KEY_PREFIX", "").strip() or DEFAULT_KEY_PREFIX,
            lock_lease_seconds=_env_number("PACKET_LOCK_LEASE_SECONDS", 10.0, minimum=0.001),
            lock_wait_seconds=_env_number("PACKET_LOCK_WAIT_SECONDS", 0.0, minimum=0.0),
            default_expire_minutes=int(
                _env_number("PACKET_DEFAULT_EXPIRE_MINUTES", 24 * 60, minimum=1)
            ),
            expired_retention_seconds=int(
                _env_number("PACKET_EXPIRED_RETENTION_SECONDS", 10 * 60, minimum=0)
            ),
        )

        # Same failure mode as the client module: refuse to start half-configured.
        if settings.backend == "supabase":
            if not settings.supabase_url:
                raise RuntimeError(
                    "Missing environment variable: SUPABASE_URL. "
                    "Set SUPABASE_URL to your Supabase project URL."
                )
            if not settings.supabase_key:
                raise RuntimeError(
                    "Missing environment variable: SUPABASE_KEY. "
                    "Set SUPABASE_KEY to your Supabase API key."
                )

        return settings


__all__ = ["PacketSettings"]
