"""
Tests for `domain/allocation.py`.

Covers:
- Shares are positive, count == total_count, sum == total_amount.
- A single share takes the whole amount.
- Seeded random sources make allocation reproducible.
- Invalid inputs are rejected with InvalidArgument.
"""

from __future__ import annotations

import random

import pytest

from domain.allocation import allocate_shares
from domain.errors import InvalidArgument


@pytest.mark.parametrize(
    "total_amount,total_count",
    [(1, 1), (2, 2), (3, 2), (100, 3), (100, 100), (101, 100), (10000, 7), (5, 4), (999_999, 1000)],
)
def test_shares_are_positive_and_conserve_total(total_amount: int, total_count: int) -> None:
    """Verify every share is >= 1 and the list sums exactly to the total."""

    for seed in range(25):
        shares = allocate_shares(total_amount, total_count, rng=random.Random(seed))

        assert len(shares) == total_count
        assert sum(shares) == total_amount
        assert all(isinstance(s, int) and s >= 1 for s in shares)


def test_amount_equal_to_count_gives_all_ones() -> None:
    """Verify the tightest valid input yields one unit per share."""

    assert allocate_shares(50, 50, rng=random.Random(3)) == [1] * 50


def test_single_share_takes_everything() -> None:
    assert allocate_shares(4321, 1, rng=random.Random(0)) == [4321]


def test_draw_upper_bound_is_inclusive_and_capped() -> None:
    """
    5 into 2: the first draw covers [1, 4] inclusive, so both splits occur.
    4 into 2: twice the mean is 4 but the cap of 3 keeps the second share >= 1.
    """

    five = {tuple(sorted(allocate_shares(5, 2, rng=random.Random(seed)))) for seed in range(200)}
    assert five == {(1, 4), (2, 3)}

    four = {tuple(sorted(allocate_shares(4, 2, rng=random.Random(seed)))) for seed in range(200)}
    assert four == {(1, 3), (2, 2)}


def test_seeded_allocation_is_deterministic() -> None:
    """Verify the same seed produces the same list, and different seeds usually differ."""

    a = allocate_shares(10000, 10, rng=random.Random(42))
    b = allocate_shares(10000, 10, rng=random.Random(42))
    assert a == b

    variants = {tuple(allocate_shares(10000, 10, rng=random.Random(seed))) for seed in range(10)}
    assert len(variants) > 1


@pytest.mark.parametrize(
    "total_amount,total_count",
    [(0, 1), (-5, 1), (10, 0), (10, -1), (3, 4), (1.5, 1), (10, 2.0), (True, 1), ("10", 1)],
)
def test_invalid_inputs_are_rejected(total_amount, total_count) -> None:
    with pytest.raises(InvalidArgument):
        allocate_shares(total_amount, total_count)
