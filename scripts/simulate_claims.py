#!/usr/bin/env python3
"""
Simulate a burst of concurrent claims against one packet.

Creates a packet, then fires one claim per claimant from a thread pool
(optionally with duplicate attempts per claimant) and prints the outcome
table plus the conservation check:

    remain_count + successful claims == total_count
    remain_amount + sum(amounts)     == total_amount

Uses the in-memory store unless --backend supabase is given (which reads
SUPABASE_URL / SUPABASE_KEY from the environment or .env).
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Tuple

# Add parent directory to path so we can import from services
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.errors import PacketError
from domain.packet import ClaimRecord, format_amount
from repositories.packet_store import PacketKeys
from services.claim_service import ClaimRequest, claim_packet
from services.packet_service import CreatePacketRequest, create_packet, get_packet
from services.runtime import build_memory_store, build_store
from services.settings import PacketSettings


def print_section(title: str) -> None:
    """Print a section header."""
    print()
    print("=" * 80)
    print(title)
    print("=" * 80)


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Fire concurrent claims at a freshly created packet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 10 claimants racing for 3 shares of 1.00
  python scripts/simulate_claims.py --amount 100 --count 3 --claimants 10

  # Every claimant double-clicks
  python scripts/simulate_claims.py --claimants 20 --attempts 2
        """,
    )
    parser.add_argument("--amount", type=int, default=100, help="Total amount in minor units")
    parser.add_argument("--count", type=int, default=3, help="Number of shares")
    parser.add_argument("--claimants", type=int, default=10, help="Number of distinct claimants")
    parser.add_argument("--attempts", type=int, default=1, help="Attempts per claimant")
    parser.add_argument("--workers", type=int, default=16, help="Thread pool size")
    parser.add_argument("--seed", type=int, default=None, help="Seed for share allocation")
    parser.add_argument(
        "--backend",
        choices=["memory", "supabase"],
        default="memory",
        help="Packet store backend (default: memory)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show service logs")

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    if args.backend == "memory":
        store = build_memory_store()
        keys = PacketKeys()
    else:
        settings = PacketSettings.from_env()
        store = build_store(settings)
        keys = PacketKeys(settings.key_prefix)

    try:
        print_section("CREATE PACKET")
        rng = random.Random(args.seed) if args.seed is not None else None
        packet_id = create_packet(
            store,
            CreatePacketRequest(
                total_amount=args.amount,
                total_count=args.count,
                creator_id="simulator",
            ),
            keys=keys,
            rng=rng,
        )
    except PacketError as e:
        print(f"[ERROR] {e.code}: {e}")
        store.close()
        return 1

    print(f"  Packet ID: {packet_id}")
    print(f"  Amount:    {format_amount(args.amount)} in {args.count} shares")

    def attempt(claimant_id: str) -> Tuple[str, ClaimRecord | None, str | None]:
        try:
            record = claim_packet(store, ClaimRequest(packet_id=packet_id, claimant_id=claimant_id), keys=keys)
            return claimant_id, record, None
        except PacketError as e:
            return claimant_id, None, e.code

    claimants: List[str] = [
        f"user-{i:03d}" for i in range(args.claimants) for _ in range(args.attempts)
    ]
    random.shuffle(claimants)

    print_section(f"CLAIMS ({len(claimants)} attempts, {args.workers} workers)")
    with ThreadPoolExecutor(max_workers=args.workers) as pool:
        outcomes = list(pool.map(attempt, claimants))

    winners = [(c, r) for c, r, _ in outcomes if r is not None]
    failures = Counter(code for _, r, code in outcomes if r is None)

    for claimant_id, record in sorted(winners, key=lambda w: w[1].share_index):
        print(f"  share #{record.share_index:<3} {claimant_id:<10} {format_amount(record.amount):>10}")
    for code, n in failures.most_common():
        print(f"  {code:<24} x{n}")

    print_section("CONSERVATION CHECK")
    packet = get_packet(store, packet_id, keys=keys)
    store.close()
    if packet is None:
        print("[ERROR] Packet disappeared")
        return 1

    claimed = sum(r.amount for _, r in winners)
    count_ok = packet.remain_count + len(winners) == packet.total_count
    amount_ok = packet.remain_amount + claimed == packet.total_amount
    print(f"  remain_count {packet.remain_count} + claims {len(winners)} == {packet.total_count}: {count_ok}")
    print(f"  remain_amount {packet.remain_amount} + claimed {claimed} == {packet.total_amount}: {amount_ok}")

    return 0 if count_ok and amount_ok else 1


if __name__ == "__main__":
    sys.exit(main())
