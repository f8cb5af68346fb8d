"""
Domain: share allocation ("two times the mean" method).

Pure function, no I/O. Given a total amount (integer minor units) and a count,
produce `count` positive integer shares that sum exactly to the total.

Algorithm:
- For the first count-1 shares, draw uniformly from
  [1, max(1, floor(remain_amount / remain_count) * 2)].
- The last share takes whatever is left, so the sum is always exact.
- Shuffle the result so position in the list says nothing about draw order.

The random source is injectable; a seeded `random.Random` makes the output
deterministic for tests.
"""

from __future__ import annotations

import random
from typing import List, Optional

from .errors import InvalidArgument


def validate_allocation(total_amount: int, total_count: int) -> None:
    """
    Reject inputs that cannot be split into positive shares.

    Raises:
        InvalidArgument: non-integer or non-positive values, or fewer minor
            units than shares (every share must be >= 1).
    """

    for name, value in (("total_amount", total_amount), ("total_count", total_count)):
        # bool is an int subclass; True is not a valid amount
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidArgument(f"{name} must be an integer")
        if value <= 0:
            raise InvalidArgument(f"{name} must be greater than 0")

    if total_amount < total_count:
        raise InvalidArgument(
            f"total_amount ({total_amount}) must be >= total_count ({total_count}) "
            "so that every share is at least 1"
        )


def allocate_shares(
    total_amount: int,
    total_count: int,
    rng: Optional[random.Random] = None,
) -> List[int]:
    """
    Split `total_amount` into `total_count` randomized positive shares.

    Args:
        total_amount: Pool size in minor units (e.g. cents)
        total_count: Number of shares
        rng: Random source; defaults to a fresh `random.Random()`

    Returns:
        Shuffled list of `total_count` integers, each >= 1, summing to `total_amount`

    Example:
        shares = allocate_shares(100, 3, rng=random.Random(7))
        assert sum(shares) == 100 and len(shares) == 3
    """

    validate_allocation(total_amount, total_count)
    rng = rng or random.Random()

    shares: List[int] = []
    remain_amount = total_amount
    remain_count = total_count

    for _ in range(total_count - 1):
        upper = max(1, (remain_amount // remain_count) * 2)
        # Leave at least 1 for each share still to be drawn.
        upper = min(upper, remain_amount - (remain_count - 1))
        amount = rng.randint(1, upper)
        shares.append(amount)

        remain_amount -= amount
        remain_count -= 1

    shares.append(remain_amount)

    rng.shuffle(shares)
    return shares


__all__ = ["allocate_shares", "validate_allocation"]
