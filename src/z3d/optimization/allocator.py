"""
Greedy budget allocator with diminishing returns.

Distributes a fixed budget across channels in up to 32 proportional
rounds.  Each round scores the still-open channels by risk-adjusted ROI,
discounted as a channel fills towards its maximum, and hands out the
remaining budget in proportion to those scores.  Channels whose capacity
is exhausted drop out of the active set.

Bad inputs are corrected, never rejected: see ``sanitize_channels``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

import pandas as pd
from loguru import logger
from pydantic import BaseModel, ConfigDict, field_validator

from z3d.core.numeric import ZERO, ONE, CENT, clamp, round2, to_decimal


MAX_ROUNDS = 32
MIN_RETURN_MULTIPLE = Decimal("0.01")
MIN_UTILITY = Decimal("0.0001")
RISK_PENALTY = Decimal("0.7")
SATURATION_PENALTY = Decimal("0.5")


class Channel(BaseModel):
    """One media channel offered to the allocator."""

    model_config = ConfigDict(frozen=True)

    name: str
    min_spend: Decimal = ZERO
    max_spend: Decimal = ZERO
    expected_return_multiple: Decimal = ONE
    risk_weight: Decimal = ZERO

    @field_validator(
        "min_spend", "max_spend", "expected_return_multiple", "risk_weight",
        mode="before",
    )
    @classmethod
    def _coerce_decimal(cls, v: Any) -> Decimal:
        return to_decimal(v)


@dataclass(frozen=True)
class AllocationResult:
    """Allocated spend for one channel."""

    name: str
    min_spend: Decimal
    max_spend: Decimal
    expected_return_multiple: Decimal
    risk_weight: Decimal
    allocated_spend: Decimal
    allocation_percent: Decimal

    @property
    def expected_gross_return(self) -> Decimal:
        return round2(self.allocated_spend * self.expected_return_multiple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "min_spend": self.min_spend,
            "max_spend": self.max_spend,
            "expected_return_multiple": self.expected_return_multiple,
            "risk_weight": self.risk_weight,
            "allocated_spend": self.allocated_spend,
            "allocation_percent": self.allocation_percent,
            "expected_gross_return": self.expected_gross_return,
        }


def sanitize_channels(
    channels: Iterable[Channel],
    total_budget: Decimal,
) -> list[Channel]:
    """
    Normalise raw channel bounds.

    Clamps min/max to be non-negative with ``max >= min``, floors the
    return multiple at 0.01 and clamps risk into [0, 1].  When the
    minimums alone exceed the budget, every min and max is scaled by
    ``total_budget / sum(min)`` (rounded to cents) so the minimums fit.

    Args:
        channels: Raw channel inputs
        total_budget: Budget the minimums must fit into

    Returns:
        New list of sanitized channels in input order
    """
    total_budget = to_decimal(total_budget)

    sanitized = []
    for c in channels:
        low = max(ZERO, c.min_spend)
        high = max(low, max(ZERO, c.max_spend))
        sanitized.append(Channel(
            name=c.name,
            min_spend=low,
            max_spend=high,
            expected_return_multiple=max(MIN_RETURN_MULTIPLE, c.expected_return_multiple),
            risk_weight=clamp(c.risk_weight, ZERO, ONE),
        ))

    sum_min = sum((c.min_spend for c in sanitized), ZERO)
    if sum_min > total_budget:
        scale = total_budget / sum_min
        logger.warning(
            f"Channel minimums ({sum_min}) exceed budget ({total_budget}); "
            f"scaling bounds by {scale:.4f}"
        )
        sanitized = [
            c.model_copy(update={
                "min_spend": round2(c.min_spend * scale),
                "max_spend": round2(c.max_spend * scale),
            })
            for c in sanitized
        ]

    return sanitized


class BudgetAllocator:
    """
    Allocate a fixed budget across channels.

    Example:
        >>> allocator = BudgetAllocator(
        ...     total_budget=10000,
        ...     channels=[
        ...         Channel(name="tv", min_spend=1000, max_spend=6000,
        ...                 expected_return_multiple=2.5, risk_weight=0.3),
        ...         Channel(name="radio", max_spend=4000,
        ...                 expected_return_multiple=1.6, risk_weight=0.1),
        ...     ],
        ... )
        >>> results = allocator.optimize()
    """

    def __init__(
        self,
        total_budget: Decimal | float | int | str,
        channels: Iterable[Channel] | None = None,
    ):
        self.total_budget = to_decimal(total_budget)
        self.channels = list(channels or [])

    def _utility(self, channel: Channel, current: Decimal) -> Decimal:
        risk_factor = ONE - RISK_PENALTY * channel.risk_weight
        saturation = current / (channel.max_spend + ONE)
        diminishing = ONE - SATURATION_PENALTY * clamp(saturation, ZERO, ONE)
        utility = channel.expected_return_multiple * risk_factor * diminishing
        return max(MIN_UTILITY, utility)

    def optimize(self) -> list[AllocationResult]:
        """
        Run the proportional rounds.

        Returns:
            One AllocationResult per channel, in input order; empty when
            the budget is not positive or there are no channels.
        """
        total = self.total_budget
        if total <= ZERO or not self.channels:
            return []

        logger.info(f"Allocating {total} across {len(self.channels)} channels...")

        channels = sanitize_channels(self.channels, total)
        allocations = [c.min_spend for c in channels]
        remaining = total - sum(allocations, ZERO)
        active = set(range(len(channels)))

        rounds = 0
        while rounds < MAX_ROUNDS and remaining > CENT and active:
            rounds += 1
            order = sorted(active)
            utilities = {i: self._utility(channels[i], allocations[i]) for i in order}
            utility_sum = sum(utilities.values(), ZERO)
            if utility_sum <= ZERO:
                break

            changed = False
            for i in order:
                if remaining <= CENT:
                    break

                desired = round2(remaining * utilities[i] / utility_sum)
                if desired <= ZERO:
                    continue

                capacity = channels[i].max_spend - allocations[i]
                if capacity <= CENT:
                    active.discard(i)
                    continue

                increment = min(capacity, desired, remaining)
                if increment <= ZERO:
                    continue

                allocations[i] += increment
                remaining -= increment
                changed = True

            if not changed:
                break

        results = []
        for channel, allocated in zip(channels, allocations):
            allocated = round2(allocated)
            results.append(AllocationResult(
                name=channel.name,
                min_spend=round2(channel.min_spend),
                max_spend=round2(channel.max_spend),
                expected_return_multiple=round2(channel.expected_return_multiple),
                risk_weight=round2(channel.risk_weight),
                allocated_spend=allocated,
                allocation_percent=round2(allocated / total * 100),
            ))

        logger.info(
            f"Allocation complete after {rounds} rounds. "
            f"Allocated: {total_allocated(results)}, unallocated: {round2(remaining)}"
        )
        return results


def optimize_budget(
    total_budget: Decimal | float | int | str,
    channels: Iterable[Channel],
) -> list[AllocationResult]:
    """
    Convenience function for a single allocation.

    Args:
        total_budget: Total budget to allocate
        channels: Channel inputs (sanitized internally)

    Returns:
        List of AllocationResult, empty for degenerate input
    """
    return BudgetAllocator(total_budget=total_budget, channels=channels).optimize()


def total_allocated(results: Iterable[AllocationResult]) -> Decimal:
    return round2(sum((r.allocated_spend for r in results), ZERO))


def total_expected_gross_return(results: Iterable[AllocationResult]) -> Decimal:
    return round2(sum((r.expected_gross_return for r in results), ZERO))


def allocation_frame(results: Iterable[AllocationResult]) -> pd.DataFrame:
    """Per-channel allocation table (money columns as floats)."""
    records = []
    for r in results:
        records.append({
            "channel": r.name,
            "min_spend": float(r.min_spend),
            "max_spend": float(r.max_spend),
            "expected_return_multiple": float(r.expected_return_multiple),
            "risk_weight": float(r.risk_weight),
            "allocated_spend": float(r.allocated_spend),
            "allocation_percent": float(r.allocation_percent),
            "expected_gross_return": float(r.expected_gross_return),
        })
    columns = [
        "channel", "min_spend", "max_spend", "expected_return_multiple",
        "risk_weight", "allocated_spend", "allocation_percent",
        "expected_gross_return",
    ]
    return pd.DataFrame(records, columns=columns)
