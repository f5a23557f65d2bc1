"""
Scenario planning utilities for budget allocation.

Run the allocator at several budget levels and compare the outcomes
side by side for what-if analysis.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

import pandas as pd
from loguru import logger

from z3d.core.numeric import ZERO, round2, to_decimal
from z3d.optimization.allocator import (
    AllocationResult,
    Channel,
    optimize_budget,
    total_allocated,
    total_expected_gross_return,
)


@dataclass(frozen=True)
class BudgetScenario:
    """
    One allocation run at a given budget level.
    """

    name: str
    description: str
    total_budget: Decimal
    results: tuple[AllocationResult, ...]

    @property
    def allocated(self) -> Decimal:
        return total_allocated(self.results)

    @property
    def expected_gross_return(self) -> Decimal:
        return total_expected_gross_return(self.results)

    @property
    def expected_roi(self) -> Decimal:
        if self.allocated <= ZERO:
            return ZERO
        return round2(self.expected_gross_return / self.allocated)

    @property
    def allocation(self) -> dict[str, Decimal]:
        return {r.name: r.allocated_spend for r in self.results}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "total_budget": self.total_budget,
            "allocated": self.allocated,
            "expected_gross_return": self.expected_gross_return,
            "expected_roi": self.expected_roi,
            "allocation": self.allocation,
        }


def create_budget_scenarios(
    channels: Iterable[Channel],
    base_budget: Decimal | float | int | str,
    budget_multipliers: list[float] | None = None,
) -> list[BudgetScenario]:
    """
    Allocate the same channel set at several budget levels.

    Args:
        channels: Channel inputs shared by every scenario
        base_budget: Base budget level
        budget_multipliers: Multipliers of the base (e.g. [0.8, 1.0, 1.2])

    Returns:
        List of BudgetScenario objects, one per multiplier
    """
    if budget_multipliers is None:
        budget_multipliers = [0.7, 0.85, 1.0, 1.15, 1.3]

    channels = list(channels)
    base = to_decimal(base_budget)

    scenarios = []
    for mult in budget_multipliers:
        budget = round2(base * to_decimal(mult))
        results = optimize_budget(budget, channels)

        scenarios.append(BudgetScenario(
            name=f"Allocated ({mult:.0%})",
            description=f"Allocation at {mult:.0%} of base budget",
            total_budget=budget,
            results=tuple(results),
        ))

    logger.info(f"Built {len(scenarios)} budget scenarios around {base}")
    return scenarios


def compare_scenarios(
    scenarios: list[BudgetScenario],
) -> pd.DataFrame:
    """
    Create a comparison table of scenarios.

    Args:
        scenarios: List of BudgetScenario objects

    Returns:
        DataFrame with one row per scenario and one spend column per channel
    """
    records = []

    all_channels = set()
    for s in scenarios:
        all_channels.update(s.allocation.keys())

    for scenario in scenarios:
        record = {
            "scenario": scenario.name,
            "description": scenario.description,
            "total_budget": float(scenario.total_budget),
            "allocated": float(scenario.allocated),
            "expected_gross_return": float(scenario.expected_gross_return),
            "expected_roi": float(scenario.expected_roi),
        }

        for channel in sorted(all_channels):
            record[f"{channel}_spend"] = float(scenario.allocation.get(channel, ZERO))

        records.append(record)

    df = pd.DataFrame(records)

    if len(df) > 0:
        base_return = df["expected_gross_return"].iloc[0]
        if base_return > 0:
            df["return_vs_base"] = (
                (df["expected_gross_return"] - base_return) / base_return * 100
            )
        else:
            df["return_vs_base"] = 0.0

    return df
