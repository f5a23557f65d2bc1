"""
Request contracts for the Z3D API.

Requests are permissive: non-positive or blank values are replaced by
the configured fallbacks (``with_defaults``) instead of being rejected,
so a half-filled form still produces a run.  The only hard failure is a
non-positive budget, which the endpoints report as a 400.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from z3d.attitude.dynamics import AttitudeState, EnvironmentParameters
from z3d.config import AttitudeConfig, MarketConfig
from z3d.core.numeric import ZERO, ONE, clamp, to_decimal
from z3d.market.stations import ShowCategory
from z3d.optimization.allocator import Channel


class OptimizeRequest(BaseModel):
    """Single-shot allocation request."""

    total_budget: Decimal
    channels: list[Channel] = Field(default_factory=list)

    @field_validator("total_budget", mode="before")
    @classmethod
    def _coerce_decimal(cls, v: Any) -> Decimal:
        return to_decimal(v)


class MarketRequest(BaseModel):
    """Market simulation request; zero means "use the default"."""

    total_budget: Decimal
    months: int = 0
    new_units_per_month: int = 0
    cancellation_rate: Decimal = Decimal("0.06")
    show_type: str = ""
    monthly_price: Decimal = ZERO
    yearly_price: Decimal = ZERO
    weight_steps: int = 64
    seed: int | None = None

    @field_validator(
        "total_budget", "cancellation_rate", "monthly_price", "yearly_price",
        mode="before",
    )
    @classmethod
    def _coerce_decimal(cls, v: Any) -> Decimal:
        return to_decimal(v)

    def with_defaults(self, defaults: MarketConfig) -> "MarketRequest":
        """Fill blank fields from ``defaults`` and clamp the cancellation rate."""
        return self.model_copy(update={
            "months": self.months if self.months > 0 else defaults.months,
            "new_units_per_month": (
                self.new_units_per_month if self.new_units_per_month > 0
                else defaults.new_units_per_month
            ),
            "cancellation_rate": clamp(self.cancellation_rate, ZERO, ONE),
            "show_type": ShowCategory.parse(self.show_type or defaults.category).value,
            "monthly_price": (
                self.monthly_price if self.monthly_price > ZERO else defaults.monthly_price
            ),
            "yearly_price": (
                self.yearly_price if self.yearly_price > ZERO else defaults.yearly_price
            ),
            "seed": self.seed if self.seed is not None else defaults.seed,
        })


class AttitudeRequest(BaseModel):
    """Hover simulation request."""

    initial_state: AttitudeState = Field(default_factory=AttitudeState)
    environment: EnvironmentParameters = Field(default_factory=EnvironmentParameters)
    time_steps: int = 0
    dt: Decimal = ZERO

    @field_validator("dt", mode="before")
    @classmethod
    def _coerce_decimal(cls, v: Any) -> Decimal:
        return to_decimal(v)

    def with_defaults(self, defaults: AttitudeConfig) -> "AttitudeRequest":
        """Fill blank step settings and pull the blast window into range."""
        start, end = self.environment.blast_window()
        return self.model_copy(update={
            "time_steps": self.time_steps if self.time_steps > 0 else defaults.time_steps,
            "dt": self.dt if self.dt > ZERO else defaults.dt,
            "environment": self.environment.model_copy(update={
                "blast_start_step": start,
                "blast_end_step": end,
            }),
        })
