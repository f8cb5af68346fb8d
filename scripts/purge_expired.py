#!/usr/bin/env python3
"""
Expired Row Purge Script

Physically deletes expired packets, share lists, claim records and claim locks
from the Supabase packet store. Reads already ignore expired rows; this only
reclaims space. Run it from cron (or schedule packet_store_purge_expired()
with pg_cron instead).

Usage:
    python scripts/purge_expired.py
    python scripts/purge_expired.py --repeat 3600
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.errors import PacketError
from repositories.supabase_store import SupabasePacketStore
from services.runtime import build_store
from services.settings import PacketSettings

logger = logging.getLogger(__name__)


def purge_once(store: SupabasePacketStore) -> int:
    """Run one purge pass. Returns the number of rows deleted."""

    deleted = store.purge_expired()
    logger.info(f"Purged {deleted} expired rows", extra={"deleted": deleted})
    return deleted


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Delete expired rows from the Supabase packet store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One pass, then exit
  python scripts/purge_expired.py

  # Keep running, one pass every hour
  python scripts/purge_expired.py --repeat 3600
        """
    )

    parser.add_argument(
        "--repeat",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Run repeatedly with this many seconds between passes"
    )

    parser.add_argument("--verbose", "-v", action="store_true", help="Show store logs")

    args = parser.parse_args(argv)
    if args.repeat is not None and args.repeat <= 0:
        parser.error("--repeat must be > 0")

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        settings = PacketSettings.from_env()
    except RuntimeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if settings.backend != "supabase":
        print(
            f"ERROR: nothing to purge for the '{settings.backend}' backend "
            "(set PACKET_STORE_BACKEND=supabase)",
            file=sys.stderr,
        )
        return 1

    store = build_store(settings)
    try:
        while True:
            deleted = purge_once(store)
            print(f"Purged {deleted} expired rows from {settings.kv_table}")
            if args.repeat is None:
                return 0
            time.sleep(args.repeat)

    except KeyboardInterrupt:
        print("\n\nPurge interrupted by user")
        return 130

    except PacketError as e:
        print(f"\nERROR: {e.code}: {e}", file=sys.stderr)
        return 1

    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
