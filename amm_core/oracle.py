"""
Cumulative price accounting and a time-weighted average price observer.

A pair accumulates, per second, the UQ112x112 price of each token in terms of
the other. Accumulators wrap modulo 2**256 and timestamps are stored modulo
2**32; consumers recover an average price by diffing two readings.
"""
import logging
from dataclasses import dataclass

from amm_core.errors import ValidationError
from amm_core.fixed_point import RESOLUTION, encode, uqdiv
from amm_core.uint import UINT32_MODULUS, UINT256_MODULUS, wrapping_add

logger = logging.getLogger(__name__)

TWAP_WINDOW = 3600  # 1 hour


def block_timestamp_32(timestamp: int) -> int:
    return timestamp % UINT32_MODULUS


def elapsed_since(last: int, now: int) -> int:
    """Seconds between two 32-bit timestamps, modulo 2**32."""
    return (now - last) % UINT32_MODULUS


def accumulate(price0_cumulative: int, price1_cumulative: int,
               reserve0: int, reserve1: int, elapsed: int) -> tuple[int, int]:
    """
    Advance both accumulators by `elapsed` seconds at the price implied by
    the given reserves. No-op when no time passed or a reserve is empty.
    """
    if elapsed > 0 and reserve0 != 0 and reserve1 != 0:
        price0_cumulative = wrapping_add(
            price0_cumulative, uqdiv(encode(reserve1), reserve0) * elapsed)
        price1_cumulative = wrapping_add(
            price1_cumulative, uqdiv(encode(reserve0), reserve1) * elapsed)
    return price0_cumulative, price1_cumulative


def current_cumulative_prices(pair, timestamp: int) -> tuple[int, int, int]:
    """
    Cumulative prices of `pair` as of `timestamp`, including the
    accumulation the pair will record on its next update.
    """
    now = block_timestamp_32(timestamp)
    reserve0, reserve1, last = pair.get_reserves()
    price0, price1 = accumulate(
        pair.price0_cumulative_last, pair.price1_cumulative_last,
        reserve0, reserve1, elapsed_since(last, now))
    return price0, price1, now


@dataclass(frozen=True)
class Observation:
    timestamp: int
    price0_cumulative: int
    price1_cumulative: int


class TWAPOracle:
    """Time-Weighted Average Price over a sliding window for one pair."""

    def __init__(self, pair, window: int = TWAP_WINDOW):
        self.pair = pair
        self.window = window
        self.observations: list[Observation] = []

    def update(self, current_time: int):
        """Record a new observation and drop those outside the window."""
        if self.observations and self.observations[-1].timestamp == current_time:
            return
        price0, price1, _ = current_cumulative_prices(self.pair, current_time)
        self.observations.append(Observation(current_time, price0, price1))

        cutoff = current_time - self.window
        # keep the newest observation at or before the cutoff as the window start
        while len(self.observations) > 1 and self.observations[1].timestamp <= cutoff:
            self.observations.pop(0)

    def average_prices(self, current_time: int) -> tuple[int, int]:
        """UQ112x112 average prices (token0 in token1, token1 in token0)."""
        if not self.observations:
            raise ValidationError("MISSING_OBSERVATION")
        first = self.observations[0]
        elapsed = current_time - first.timestamp
        if elapsed <= 0:
            raise ValidationError("PERIOD_NOT_ELAPSED")
        price0, price1, _ = current_cumulative_prices(self.pair, current_time)
        price0_average = ((price0 - first.price0_cumulative) % UINT256_MODULUS) // elapsed
        price1_average = ((price1 - first.price1_cumulative) % UINT256_MODULUS) // elapsed
        return price0_average, price1_average

    def consult(self, token: bytes, amount_in: int, current_time: int) -> int:
        """Amount of the other token worth `amount_in` of `token` at the TWAP."""
        price0_average, price1_average = self.average_prices(current_time)
        if token == self.pair.token0:
            return (price0_average * amount_in) >> RESOLUTION
        if token == self.pair.token1:
            return (price1_average * amount_in) >> RESOLUTION
        raise ValidationError("INVALID_TOKEN")
