"""Tests for order identifier generation."""

import random
import re
from datetime import datetime

import pytest

from checkout_demo.session.order_ids import OrderIdGenerator


FIXED_TIME = datetime(2026, 10, 19, 14, 30, 5)


def test_order_id_format():
    """Test ids carry prefix, wall-clock second and a ten character suffix."""
    generator = OrderIdGenerator(prefix="demo", clock=lambda: FIXED_TIME)

    order_id = generator.next()

    assert re.fullmatch(r"demo_20261019143005_[0-9a-z]{10}", order_id)


def test_order_id_length_is_stable():
    """Test every id from one generator has the advertised length."""
    generator = OrderIdGenerator(prefix="shop")

    ids = [generator.next() for _ in range(50)]

    assert {len(order_id) for order_id in ids} == {generator.length}


def test_order_ids_unique_within_same_second():
    """Test ids never collide when the wall clock and monotonic clock stand still."""
    generator = OrderIdGenerator(
        clock=lambda: FIXED_TIME,
        monotonic_ns=lambda: 1_000_000,
        rng=random.Random(0),
    )

    ids = [generator.next() for _ in range(10_000)]

    assert len(set(ids)) == len(ids)


def test_tick_is_strictly_increasing_with_frozen_clock():
    """Test the tick segment increases even if the monotonic clock repeats."""
    generator = OrderIdGenerator(
        clock=lambda: FIXED_TIME,
        monotonic_ns=lambda: 5_000_000_000,
        rng=random.Random(1),
    )

    ticks = [int(generator.next().split("_")[-1][:6], 36) for _ in range(5)]

    assert ticks == sorted(ticks)
    assert len(set(ticks)) == 5


def test_consecutive_ids_differ():
    """Test two immediate calls return different ids."""
    generator = OrderIdGenerator()

    assert generator.next() != generator.next()


@pytest.mark.parametrize("prefix", ["", "demo_", "de-mo", "demo order"])
def test_non_alphanumeric_prefix_rejected(prefix):
    """Test prefixes that would break the id layout are rejected."""
    with pytest.raises(ValueError):
        OrderIdGenerator(prefix=prefix)
