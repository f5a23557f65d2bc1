"""
Market simulation layer for Z3D.

Generates stations per show category and simulates monthly buying with
profit rollover.
"""

from z3d.market.stations import (
    ShowCategory,
    Station,
    StationGenerator,
    base_upsell_fraction,
    REFERENCE_MONTHLY_PRICE,
)
from z3d.market.simulation import (
    MonthlySnapshot,
    SpendOutcome,
    MarketSimulator,
    converge_weights,
    execute_spend,
    sales_per_dollar,
    gross_sales,
    run_market_simulation,
    timeline_frame,
)

__all__ = [
    "ShowCategory",
    "Station",
    "StationGenerator",
    "base_upsell_fraction",
    "REFERENCE_MONTHLY_PRICE",
    "MonthlySnapshot",
    "SpendOutcome",
    "MarketSimulator",
    "converge_weights",
    "execute_spend",
    "sales_per_dollar",
    "gross_sales",
    "run_market_simulation",
    "timeline_frame",
]
