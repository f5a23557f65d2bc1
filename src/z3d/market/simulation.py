"""
Multi-month market simulation with compounding budget.

Each month:
  1. New stations are tested and join the pool for 12 months
  2. A weight vector over the active stations is smoothed towards their
     total-sales-per-dollar ranking (``converge_weights``)
  3. Cash is spent in two passes, proportional then greedy fill, under a
     per-station inventory cap (``execute_spend``)
  4. ending = starting - spend + sales, which funds the next month

The weighting step is a smoothing heuristic over a myopic ranking.  It
makes no optimality claim.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Sequence

import numpy as np
import pandas as pd
from loguru import logger

from z3d.core.numeric import ZERO, ONE, CENT, EPSILON, clamp, to_decimal
from z3d.market.stations import ShowCategory, Station, StationGenerator
from z3d.optimization.allocator import AllocationResult


MAX_UNITS_PER_STATION = 4
WEIGHT_SMOOTHING = Decimal("0.35")
MIN_WEIGHT_STEPS = 1
MAX_WEIGHT_STEPS = 64
MONTHS_PER_YEAR = Decimal("12")


@dataclass(frozen=True)
class MonthlySnapshot:
    """Budget movement for one simulated month."""

    period_index: int
    starting_budget: Decimal
    total_spend: Decimal
    total_sales: Decimal
    ending_budget: Decimal
    channel_allocations: tuple[AllocationResult, ...] = ()
    active_stations: int = 0
    units_purchased: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "period_index": self.period_index,
            "starting_budget": self.starting_budget,
            "total_spend": self.total_spend,
            "total_sales": self.total_sales,
            "ending_budget": self.ending_budget,
            "channel_allocations": [a.to_dict() for a in self.channel_allocations],
            "active_stations": self.active_stations,
            "units_purchased": self.units_purchased,
        }


@dataclass(frozen=True)
class SpendOutcome:
    """Result of spending one month's cash."""

    total_spend: Decimal = ZERO
    total_sales: Decimal = ZERO
    remaining_cash: Decimal = ZERO
    units: dict[int, int] = field(default_factory=dict)

    @property
    def units_purchased(self) -> int:
        return sum(self.units.values())


# ---------------------------------------------------------------------------
# Sales per dollar
# ---------------------------------------------------------------------------

def monthly_upsell_value(yearly_price: Decimal) -> Decimal:
    """Yearly upsell price amortised over 12 months."""
    return yearly_price / MONTHS_PER_YEAR if yearly_price > ZERO else ZERO


def sales_per_dollar(
    station: Station,
    monthly_price: Decimal,
    yearly_price: Decimal,
) -> Decimal:
    """
    Expected total sales per dollar of media for a station.

    Front-end sales are ``orders_per_dollar * monthly_price``; upsell
    sales are ``orders_per_dollar * upsell_rate * yearly_price / 12``.
    Both terms and their sum are floored at 1e-7.
    """
    opd = max(EPSILON, station.orders_per_dollar)

    front_end = opd * monthly_price if monthly_price > ZERO else ZERO
    front_end = max(EPSILON, front_end)

    upsell_value = monthly_upsell_value(yearly_price)
    upsell = (
        opd * station.upsell_rate * upsell_value
        if upsell_value > ZERO and station.upsell_rate > ZERO
        else ZERO
    )
    upsell = max(EPSILON, upsell)

    return max(EPSILON, front_end + upsell)


def gross_sales(
    station: Station,
    spend: Decimal,
    monthly_price: Decimal,
    yearly_price: Decimal,
) -> Decimal:
    """Front-end plus upsell sales generated by ``spend`` on a station."""
    orders = spend * station.orders_per_dollar
    front_end = orders * monthly_price if monthly_price > ZERO else ZERO

    upsell_value = monthly_upsell_value(yearly_price)
    upsell = (
        orders * station.upsell_rate * upsell_value
        if upsell_value > ZERO and station.upsell_rate > ZERO
        else ZERO
    )
    return front_end + upsell


# ---------------------------------------------------------------------------
# Weighting and spend
# ---------------------------------------------------------------------------

def converge_weights(
    candidates: Sequence[Station],
    monthly_price: Decimal,
    yearly_price: Decimal,
    steps: int,
) -> list[Decimal]:
    """
    Smooth a uniform weight vector towards the sales-per-dollar ranking.

    Each step blends ``q <- 0.65 * q + 0.35 * target`` where target is
    the normalised score vector, then renormalises ``q`` to sum to 1.

    Args:
        candidates: Active stations
        monthly_price: Front-end product price
        yearly_price: Upsell product price
        steps: Number of smoothing steps

    Returns:
        Weights aligned with ``candidates``
    """
    n = len(candidates)
    if n == 0:
        return []

    q = [ONE / n] * n
    keep = ONE - WEIGHT_SMOOTHING

    for _ in range(steps):
        scores = [sales_per_dollar(s, monthly_price, yearly_price) for s in candidates]
        score_sum = sum(scores, ZERO)
        if score_sum <= ZERO:
            break

        q = [keep * qi + WEIGHT_SMOOTHING * (score / score_sum) for qi, score in zip(q, scores)]

        q_sum = sum(q, ZERO)
        if q_sum > ZERO:
            q = [qi / q_sum for qi in q]

    return q


def execute_spend(
    candidates: Sequence[Station],
    weights: Sequence[Decimal],
    cash: Decimal,
    realized_factor: Decimal,
    monthly_price: Decimal,
    yearly_price: Decimal,
    unit_cap: int = MAX_UNITS_PER_STATION,
) -> SpendOutcome:
    """
    Spend one month's cash across ranked stations.

    Stations are ranked by weight, then by sales per dollar.  Pass 1
    buys ``floor(cash * weight / spot_cost)`` units per station, limited
    by what is affordable and by ``unit_cap``.  Pass 2 then buys single
    units in ranked order while the cheapest realized unit is still
    affordable, stopping once a full scan buys nothing.

    Only ``realized_factor`` of each unit's cost is paid (the rest is
    cancelled before airing), and sales accrue on the paid amount.

    Args:
        candidates: Active stations
        weights: Weights aligned with ``candidates``
        cash: Budget available this month
        realized_factor: 1 - cancellation rate
        monthly_price: Front-end product price
        yearly_price: Upsell product price
        unit_cap: Maximum units per station per month

    Returns:
        SpendOutcome with totals and units bought per station id
    """
    ranked = sorted(
        (
            (station, weight, sales_per_dollar(station, monthly_price, yearly_price))
            for station, weight in zip(candidates, weights)
        ),
        key=lambda item: (item[1], item[2]),
        reverse=True,
    )

    remaining = cash
    total_spend = ZERO
    total_sales = ZERO
    units = {station.station_id: 0 for station, _, _ in ranked}

    def buy(station: Station, count: int) -> None:
        nonlocal remaining, total_spend, total_sales
        spend = count * station.spot_cost * realized_factor
        total_spend += spend
        total_sales += gross_sales(station, spend, monthly_price, yearly_price)
        remaining -= spend
        units[station.station_id] += count

    # Pass 1: proportional to weight
    for station, weight, _ in ranked:
        if remaining <= CENT:
            break

        unit_cost = station.spot_cost * realized_factor
        if station.spot_cost <= ZERO or unit_cost <= ZERO:
            continue

        cap_left = unit_cap - units[station.station_id]
        if cap_left <= 0:
            continue

        target_spend = cash * weight
        if target_spend <= ZERO:
            continue

        desired = int(target_spend // station.spot_cost)
        affordable = int(remaining // unit_cost)
        count = min(desired, affordable, cap_left)
        if count <= 0:
            continue

        buy(station, count)

    # Pass 2: greedy single-unit fill
    if remaining > CENT:
        unit_costs = [
            station.spot_cost * realized_factor
            for station, _, _ in ranked
            if station.spot_cost * realized_factor > ZERO
        ]
        cheapest = min(unit_costs) if unit_costs else ZERO

        while cheapest > ZERO and remaining >= cheapest:
            bought = False

            for station, _, _ in ranked:
                if remaining <= CENT:
                    break

                unit_cost = station.spot_cost * realized_factor
                if station.spot_cost <= ZERO or unit_cost <= ZERO:
                    continue
                if units[station.station_id] >= unit_cap:
                    continue
                if remaining < unit_cost:
                    continue

                buy(station, 1)
                bought = True

                if remaining < cheapest:
                    break

            if not bought:
                break

    return SpendOutcome(
        total_spend=total_spend,
        total_sales=total_sales,
        remaining_cash=remaining,
        units=units,
    )


# ---------------------------------------------------------------------------
# Simulator
# ---------------------------------------------------------------------------

class MarketSimulator:
    """
    Month-by-month station buying with profit rollover.

    Example:
        >>> sim = MarketSimulator(
        ...     initial_budget=1000,
        ...     months=12,
        ...     new_units_per_month=40,
        ...     cancellation_rate=0.06,
        ...     category="C",
        ...     monthly_price=59.95,
        ...     yearly_price=499,
        ...     weight_steps=64,
        ... )
        >>> timeline = sim.run(np.random.default_rng(42))
    """

    def __init__(
        self,
        initial_budget: Decimal | float | int | str,
        months: int,
        new_units_per_month: int,
        cancellation_rate: Decimal | float | int | str,
        category: ShowCategory | str,
        monthly_price: Decimal | float | int | str,
        yearly_price: Decimal | float | int | str,
        weight_steps: int,
        unit_cap: int = MAX_UNITS_PER_STATION,
    ):
        self.initial_budget = to_decimal(initial_budget)
        self.months = int(months)
        self.new_units_per_month = int(new_units_per_month)
        self.category = ShowCategory.parse(category)
        self.monthly_price = to_decimal(monthly_price)
        self.yearly_price = to_decimal(yearly_price)
        self.unit_cap = unit_cap

        rate = to_decimal(cancellation_rate)
        self.cancellation_rate = clamp(rate, ZERO, ONE)
        if self.cancellation_rate != rate:
            logger.warning(f"Cancellation rate {rate} clamped to {self.cancellation_rate}")

        steps = int(weight_steps)
        self.weight_steps = min(MAX_WEIGHT_STEPS, max(MIN_WEIGHT_STEPS, steps))
        if self.weight_steps != steps:
            logger.warning(f"Weight steps {steps} clamped to {self.weight_steps}")

    def run(self, rng: np.random.Generator) -> list[MonthlySnapshot]:
        """
        Simulate every month.

        Args:
            rng: Random source for station draws, owned by this run

        Returns:
            One MonthlySnapshot per month; empty for degenerate input
        """
        timeline: list[MonthlySnapshot] = []

        if self.initial_budget <= ZERO or self.months <= 0 or self.new_units_per_month <= 0:
            return timeline

        logger.info(
            f"Simulating {self.months} months: budget={self.initial_budget}, "
            f"{self.new_units_per_month} new stations/month, category {self.category.value}"
        )

        generator = StationGenerator(self.category, rng)
        realized_factor = ONE - self.cancellation_rate
        pool: list[Station] = []
        next_id = 1
        budget = self.initial_budget

        for month in range(1, self.months + 1):
            starting = budget

            for _ in range(self.new_units_per_month):
                pool.append(generator.generate(station_id=next_id, month=month))
                next_id += 1

            pool = [s for s in pool if month <= s.last_active_month]
            candidates = [s for s in pool if s.is_active(month)]

            if not candidates or budget <= ZERO:
                timeline.append(MonthlySnapshot(
                    period_index=month,
                    starting_budget=starting,
                    total_spend=ZERO,
                    total_sales=ZERO,
                    ending_budget=starting,
                    active_stations=len(candidates),
                ))
                continue

            weights = converge_weights(
                candidates, self.monthly_price, self.yearly_price, self.weight_steps,
            )
            outcome = execute_spend(
                candidates,
                weights,
                cash=budget,
                realized_factor=realized_factor,
                monthly_price=self.monthly_price,
                yearly_price=self.yearly_price,
                unit_cap=self.unit_cap,
            )

            budget = starting - outcome.total_spend + outcome.total_sales

            timeline.append(MonthlySnapshot(
                period_index=month,
                starting_budget=starting,
                total_spend=outcome.total_spend,
                total_sales=outcome.total_sales,
                ending_budget=budget,
                active_stations=len(candidates),
                units_purchased=outcome.units_purchased,
            ))

            logger.debug(
                f"Month {month}: {len(candidates)} stations, "
                f"{outcome.units_purchased} units, spend={outcome.total_spend:.2f}, "
                f"sales={outcome.total_sales:.2f}"
            )

        logger.info(f"Simulation complete. Ending budget: {budget:.2f}")
        return timeline


def run_market_simulation(
    initial_budget: Decimal | float | int | str,
    months: int,
    new_units_per_month: int,
    cancellation_rate: Decimal | float | int | str,
    category: ShowCategory | str,
    monthly_price: Decimal | float | int | str,
    yearly_price: Decimal | float | int | str,
    weight_steps: int,
    *,
    seed: int | None = None,
    rng: np.random.Generator | None = None,
) -> list[MonthlySnapshot]:
    """
    Convenience function for a single market simulation.

    Pass ``rng`` to control the random source directly, or ``seed`` to
    get a fresh generator for this call.  With neither, the run draws
    from fresh OS entropy.

    Returns:
        List of MonthlySnapshot, empty for degenerate input
    """
    if rng is None:
        rng = np.random.default_rng(seed)

    simulator = MarketSimulator(
        initial_budget=initial_budget,
        months=months,
        new_units_per_month=new_units_per_month,
        cancellation_rate=cancellation_rate,
        category=category,
        monthly_price=monthly_price,
        yearly_price=yearly_price,
        weight_steps=weight_steps,
    )
    return simulator.run(rng)


def timeline_frame(timeline: Sequence[MonthlySnapshot]) -> pd.DataFrame:
    """Monthly timeline as a table (money columns as floats)."""
    columns = [
        "period_index", "starting_budget", "total_spend", "total_sales",
        "ending_budget", "active_stations", "units_purchased",
    ]
    records = [
        {
            "period_index": s.period_index,
            "starting_budget": float(s.starting_budget),
            "total_spend": float(s.total_spend),
            "total_sales": float(s.total_sales),
            "ending_budget": float(s.ending_budget),
            "active_stations": s.active_stations,
            "units_purchased": s.units_purchased,
        }
        for s in timeline
    ]
    return pd.DataFrame(records, columns=columns)
