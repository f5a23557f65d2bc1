"""
Configuration management for Z3D.

Centralised configuration with YAML loading and sensible defaults.  The
engines themselves are pure and take explicit arguments; the config
supplies the fallback values used by the CLI and the API when a caller
leaves a field blank or non-positive.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from z3d.attitude.dynamics import AttitudeState, EnvironmentParameters
from z3d.core.exceptions import ConfigurationError
from z3d.optimization.allocator import Channel


# ---------------------------------------------------------------------------
# Section configs
# ---------------------------------------------------------------------------

def _default_channels() -> list[Channel]:
    return [
        Channel(name="tv", min_spend=100, max_spend=600,
                expected_return_multiple=2.4, risk_weight=0.35),
        Channel(name="radio", min_spend=50, max_spend=300,
                expected_return_multiple=1.8, risk_weight=0.2),
        Channel(name="search", min_spend=0, max_spend=400,
                expected_return_multiple=3.1, risk_weight=0.5),
    ]


class AllocatorConfig(BaseModel):
    """Defaults for the single-shot allocator."""

    total_budget: Decimal = Field(default=Decimal("1000"))
    channels: list[Channel] = Field(default_factory=_default_channels)
    scenario_multipliers: list[float] = Field(
        default_factory=lambda: [0.7, 0.85, 1.0, 1.15, 1.3],
    )


class MarketConfig(BaseModel):
    """Fallback values for the market simulation."""

    initial_budget: Decimal = Field(default=Decimal("1000"))
    months: int = Field(default=12, description="Months to simulate")
    new_units_per_month: int = Field(default=40, description="Stations tested per month")
    cancellation_rate: Decimal = Field(default=Decimal("0.06"))
    category: str = Field(default="C", description="Show type: A, B, C or D")
    monthly_price: Decimal = Field(default=Decimal("59.95"))
    yearly_price: Decimal = Field(default=Decimal("499.00"))
    weight_steps: int = Field(default=64)
    seed: int | None = Field(default=None, description="Random seed; None for fresh entropy")


def _default_initial_state() -> AttitudeState:
    return AttitudeState(roll=Decimal("0.15"), pitch=Decimal("0.05"))


def _default_environment() -> EnvironmentParameters:
    return EnvironmentParameters(
        stiffness_roll=Decimal("2.5"),
        stiffness_pitch=Decimal("2.5"),
        stiffness_yaw=Decimal("1.0"),
        blast_start_step=20,
        blast_end_step=40,
        blast_disturbance_roll=Decimal("0.6"),
    )


class AttitudeConfig(BaseModel):
    """Fallback values for the hover simulation."""

    time_steps: int = Field(default=120)
    dt: Decimal = Field(default=Decimal("0.05"))
    initial_state: AttitudeState = Field(default_factory=_default_initial_state)
    environment: EnvironmentParameters = Field(default_factory=_default_environment)


class ServerConfig(BaseModel):
    """API server settings."""

    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=8000)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class OutputConfig(BaseModel):
    """Where the CLI writes results."""

    outputs_path: Path = Field(default=Path("data/outputs"))


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

class Z3DConfig(BaseModel):
    """Root configuration for Z3D."""

    project_name: str = Field(default="Z3D")
    environment: str = Field(default="development")

    allocator: AllocatorConfig = Field(default_factory=AllocatorConfig)
    market: MarketConfig = Field(default_factory=MarketConfig)
    attitude: AttitudeConfig = Field(default_factory=AttitudeConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Z3DConfig":
        """Load config from a YAML file."""
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read config {path}: {e}", path=str(path)) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config {path} must be a mapping", path=str(path))

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid config {path}: {e}", path=str(path)) from e

    def to_yaml(self, path: Path | str) -> None:
        """Write config to a YAML file."""
        with open(Path(path), "w") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)

    def to_flat_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def ensure_directories(self) -> None:
        """Create the output directory."""
        self.output.outputs_path.mkdir(parents=True, exist_ok=True)


# ---------------------------------------------------------------------------
# Global singleton
# ---------------------------------------------------------------------------

_config: Z3DConfig | None = None


def get_config() -> Z3DConfig:
    """Return the global config instance (creates default if needed)."""
    global _config
    if _config is None:
        _config = Z3DConfig()
    return _config


def set_config(config: Z3DConfig) -> None:
    """Override the global config instance."""
    global _config
    _config = config


def load_config(path: Path | str | None = None) -> Z3DConfig:
    """
    Load config from file, falling back to standard locations, then defaults.
    """
    global _config

    if path is not None:
        _config = Z3DConfig.from_yaml(path)
    else:
        for candidate in [Path("config.yaml"), Path("config/config.yaml")]:
            if candidate.exists():
                _config = Z3DConfig.from_yaml(candidate)
                break
        else:
            _config = Z3DConfig()

    return _config
