"""Order identifier generation."""

import random
import string
import time
from datetime import datetime
from typing import Callable, Optional

ALPHABET = string.digits + string.ascii_lowercase
TICK_WIDTH = 6
RANDOM_WIDTH = 4
TICK_MODULUS = len(ALPHABET) ** TICK_WIDTH


def _base36(value: int, width: int) -> str:
    digits = []
    for _ in range(width):
        value, remainder = divmod(value, len(ALPHABET))
        digits.append(ALPHABET[remainder])
    return "".join(reversed(digits))


class OrderIdGenerator:
    """
    Produces order ids like ``demo_20261019143005_0k3x9fab7q``.

    Layout: prefix, wall-clock second, a six-character base-36 monotonic tick in
    microseconds and four random characters. The tick is forced strictly
    increasing, so ids from one generator never collide within a wall-clock
    second. Unique per process, not across processes.
    """

    def __init__(
        self,
        prefix: str = "demo",
        clock: Callable[[], datetime] = datetime.now,
        monotonic_ns: Callable[[], int] = time.monotonic_ns,
        rng: Optional[random.Random] = None,
    ):
        if not prefix.isalnum():
            raise ValueError("prefix must be alphanumeric")
        self.prefix = prefix
        self.clock = clock
        self.monotonic_ns = monotonic_ns
        self.rng = rng or random.SystemRandom()
        self._last_tick = -1

    @property
    def length(self) -> int:
        """Length of every id produced by this generator."""
        return len(self.prefix) + 1 + 14 + 1 + TICK_WIDTH + RANDOM_WIDTH

    def _tick(self) -> int:
        tick = self.monotonic_ns() // 1000
        if tick <= self._last_tick:
            tick = self._last_tick + 1
        self._last_tick = tick
        return tick

    def next(self) -> str:
        """Return a new order id."""
        wall = self.clock().strftime("%Y%m%d%H%M%S")
        tick = _base36(self._tick() % TICK_MODULUS, TICK_WIDTH)
        noise = "".join(self.rng.choice(ALPHABET) for _ in range(RANDOM_WIDTH))
        return f"{self.prefix}_{wall}_{tick}{noise}"
