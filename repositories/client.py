"""
Supabase client initialization.

This module contains *only* the database connection setup. It owns the single
process-wide `Client` used by the Supabase packet store: created on first use,
shared by every request, dropped on shutdown.

Environment variables required (see services.settings):
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

import threading
from typing import Optional

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

_client: Optional[Client] = None
_client_lock = threading.Lock()


def get_supabase(url: Optional[str], key: Optional[str]) -> Client:
    """
    Return the process-wide Supabase client, creating it on first call.

    Raises:
        RuntimeError: if credentials are missing on first initialization
    """

    global _client

    with _client_lock:
        if _client is not None:
            return _client

        if not url:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_URL. "
                "Set SUPABASE_URL to your Supabase project URL."
            )

        if not key:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_KEY. "
                "Set SUPABASE_KEY to your Supabase API key."
            )

        _client = create_client(url, key)
        return _client


def reset_supabase() -> None:
    """Forget the shared client (shutdown, or tests that swap credentials)."""

    global _client

    with _client_lock:
        _client = None


__all__ = ["get_supabase", "reset_supabase"]
