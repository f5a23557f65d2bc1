"""
Station generation for the market simulation.

A station is one simulated inventory slot (e.g. a TV outlet airing a
half-hour spot).  Its cost and response parameters are drawn once, when
the station is first tested, and stay fixed for its 12-month lifetime.

Response is modelled as an underlying orders-per-dollar rate rather than
a fixed pull ratio, so changing the product price changes sales:

  - the response ratio is drawn at a reference price of 59.95
  - orders_per_dollar = response_ratio / 59.95
  - upsell rate is correlated with where the ratio sits in its category
    range, plus +/-10 points of jitter, clamped to [0.10, 0.90]
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

import numpy as np

from z3d.core.numeric import (
    ZERO,
    ONE,
    EPSILON,
    clamp,
    decimal_pow,
    round2,
    uniform,
)


REFERENCE_MONTHLY_PRICE = Decimal("59.95")
STATION_LIFETIME_MONTHS = 12

MIN_UPSELL_RATE = Decimal("0.10")
MAX_UPSELL_RATE = Decimal("0.90")
UPSELL_SPAN = Decimal("0.80")
# norm ** 1.4150375 == 0.375 at norm = 0.5, so the base upsell median is 40%
UPSELL_EXPONENT = Decimal("1.4150375")
UPSELL_JITTER = Decimal("0.10")

MIN_SPOT_COST = Decimal("20")
MAX_SPOT_COST = Decimal("200")


class ShowCategory(str, Enum):
    """Show type, each with its own response-ratio range."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"

    @classmethod
    def parse(cls, value: Any) -> "ShowCategory":
        """Read a category from user input; anything unrecognised is C."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        if not text:
            return cls.C
        try:
            return cls(text[0].upper())
        except ValueError:
            return cls.C

    @property
    def response_range(self) -> tuple[Decimal, Decimal]:
        return _RESPONSE_RANGES[self]


_RESPONSE_RANGES = {
    ShowCategory.A: (Decimal("0"), Decimal("2")),
    ShowCategory.B: (Decimal("4"), Decimal("12")),
    ShowCategory.C: (Decimal("12"), Decimal("60")),
    ShowCategory.D: (Decimal("60"), Decimal("100")),
}


@dataclass(frozen=True)
class Station:
    """A tested station with fixed-for-life parameters."""

    station_id: int
    spot_cost: Decimal
    response_ratio: Decimal
    orders_per_dollar: Decimal
    upsell_rate: Decimal
    first_month: int
    last_active_month: int

    def is_active(self, month: int) -> bool:
        return self.first_month <= month <= self.last_active_month

    def to_dict(self) -> dict[str, Any]:
        return {
            "station_id": self.station_id,
            "spot_cost": self.spot_cost,
            "response_ratio": self.response_ratio,
            "orders_per_dollar": self.orders_per_dollar,
            "upsell_rate": self.upsell_rate,
            "first_month": self.first_month,
            "last_active_month": self.last_active_month,
        }


def base_upsell_fraction(normalized_ratio: Decimal) -> Decimal:
    """Upsell fraction before jitter for a ratio normalised into [0, 1]."""
    norm = clamp(normalized_ratio, ZERO, ONE)
    return MIN_UPSELL_RATE + UPSELL_SPAN * decimal_pow(norm, UPSELL_EXPONENT)


class StationGenerator:
    """
    Draw new stations for one show category.

    The random source is supplied by the caller, so a generator never
    shares state with another simulation run.

    Usage::

        gen = StationGenerator(ShowCategory.C, np.random.default_rng(7))
        station = gen.generate(station_id=1, month=1)
    """

    def __init__(self, category: ShowCategory | str, rng: np.random.Generator):
        self.category = ShowCategory.parse(category)
        self.rng = rng

    def draw_response_ratio(self) -> Decimal:
        low, high = self.category.response_range
        return round2(uniform(self.rng, low, high))

    def draw_upsell_rate(self, response_ratio: Decimal) -> Decimal:
        low, high = self.category.response_range
        span = high - low
        if span <= ZERO:
            span = ONE
        base = base_upsell_fraction((response_ratio - low) / span)
        jitter = uniform(self.rng, -UPSELL_JITTER, UPSELL_JITTER)
        return clamp(base + jitter, MIN_UPSELL_RATE, MAX_UPSELL_RATE)

    def draw_spot_cost(self) -> Decimal:
        return round2(uniform(self.rng, MIN_SPOT_COST, MAX_SPOT_COST))

    def generate(self, station_id: int, month: int) -> Station:
        """Create one station first aired in ``month``."""
        ratio = self.draw_response_ratio()
        orders_per_dollar = max(EPSILON, ratio / REFERENCE_MONTHLY_PRICE)
        upsell_rate = self.draw_upsell_rate(ratio)
        spot_cost = self.draw_spot_cost()

        return Station(
            station_id=station_id,
            spot_cost=spot_cost,
            response_ratio=ratio,
            orders_per_dollar=orders_per_dollar,
            upsell_rate=upsell_rate,
            first_month=month,
            last_active_month=month + STATION_LIFETIME_MONTHS - 1,
        )
