"""
Command-line interface for Z3D.

Provides commands for:
  - One-shot budget allocation and budget scenarios
  - Monthly market simulation with compounding
  - Hover attitude simulation
  - Starting the API server
  - Writing a default config file
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import typer
from loguru import logger

from z3d.core.exceptions import Z3DError

app = typer.Typer(
    name="z3d",
    help="Z3D -- budget allocation, market and attitude engines",
    add_completion=False,
)


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(payload, f, indent=2, default=str)
    logger.info(f"Wrote {path}")


def _load_config(config_path: Optional[Path]):
    from z3d.config import load_config

    try:
        return load_config(config_path)
    except Z3DError as e:
        logger.error(str(e))
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# optimize
# ---------------------------------------------------------------------------

@app.command()
def optimize(
    budget: Optional[float] = typer.Option(
        None, "--budget", "-b", help="Total budget (default from config)",
    ),
    channels_path: Optional[Path] = typer.Option(
        None, "--channels", help="Channel file (.csv, .json, .yaml)",
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config.yaml",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output JSON file",
    ),
):
    """Allocate a budget across channels in one shot."""
    from z3d.optimization import (
        allocation_frame,
        load_channels,
        optimize_budget,
        total_allocated,
        total_expected_gross_return,
    )

    cfg = _load_config(config_path)
    total = Decimal(str(budget)) if budget is not None else cfg.allocator.total_budget

    try:
        channels = load_channels(channels_path) if channels_path else cfg.allocator.channels
    except Z3DError as e:
        logger.error(str(e))
        raise typer.Exit(1)

    results = optimize_budget(total, channels)
    if not results:
        logger.error("Nothing to allocate: budget must be positive and channels non-empty")
        raise typer.Exit(1)

    for row in allocation_frame(results).itertuples(index=False):
        logger.info(
            f"  {row.channel:<12} ${row.allocated_spend:>12,.2f}  "
            f"({row.allocation_percent:5.1f}%)  gross ${row.expected_gross_return:,.2f}"
        )
    logger.info(f"Allocated ${total_allocated(results):,.2f} of ${total:,.2f}")

    out = output or cfg.output.outputs_path / "allocation.json"
    _write_json(out, {
        "total_budget": total,
        "total_allocated": total_allocated(results),
        "total_expected_gross_return": total_expected_gross_return(results),
        "results": [r.to_dict() for r in results],
    })


# ---------------------------------------------------------------------------
# scenarios
# ---------------------------------------------------------------------------

@app.command()
def scenarios(
    budget: Optional[float] = typer.Option(
        None, "--budget", "-b", help="Base budget (default from config)",
    ),
    channels_path: Optional[Path] = typer.Option(
        None, "--channels", help="Channel file (.csv, .json, .yaml)",
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config.yaml",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output CSV file",
    ),
):
    """Compare allocations across budget levels."""
    from z3d.optimization import compare_scenarios, create_budget_scenarios, load_channels

    cfg = _load_config(config_path)
    base = Decimal(str(budget)) if budget is not None else cfg.allocator.total_budget

    try:
        channels = load_channels(channels_path) if channels_path else cfg.allocator.channels
    except Z3DError as e:
        logger.error(str(e))
        raise typer.Exit(1)

    table = compare_scenarios(
        create_budget_scenarios(channels, base, cfg.allocator.scenario_multipliers)
    )
    for row in table.itertuples(index=False):
        logger.info(
            f"  {row.scenario:<18} budget ${row.total_budget:>12,.2f}  "
            f"gross ${row.expected_gross_return:>12,.2f}  ROI {row.expected_roi:.2f}"
        )

    out = output or cfg.output.outputs_path / "scenarios.csv"
    out.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(out, index=False)
    logger.info(f"Wrote {out}")


# ---------------------------------------------------------------------------
# simulate-market
# ---------------------------------------------------------------------------

@app.command("simulate-market")
def simulate_market(
    budget: Optional[float] = typer.Option(None, "--budget", "-b", help="Starting budget"),
    months: Optional[int] = typer.Option(None, "--months", "-m", help="Months to simulate"),
    new_units: Optional[int] = typer.Option(None, "--new-units", help="Stations tested per month"),
    cancellation: Optional[float] = typer.Option(None, "--cancellation", help="Cancellation rate 0-1"),
    show_type: Optional[str] = typer.Option(None, "--show-type", help="Show type A, B, C or D"),
    monthly_price: Optional[float] = typer.Option(None, "--monthly-price"),
    yearly_price: Optional[float] = typer.Option(None, "--yearly-price"),
    weight_steps: Optional[int] = typer.Option(None, "--weight-steps", help="Weight smoothing steps (1-64)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output CSV file"),
):
    """Simulate monthly station buying with profit rollover."""
    from z3d.api.schemas import MarketRequest
    from z3d.market import run_market_simulation, timeline_frame

    cfg = _load_config(config_path)
    m = cfg.market

    req = MarketRequest(
        total_budget=budget if budget is not None else m.initial_budget,
        months=months or 0,
        new_units_per_month=new_units or 0,
        cancellation_rate=cancellation if cancellation is not None else m.cancellation_rate,
        show_type=show_type or "",
        monthly_price=monthly_price or 0,
        yearly_price=yearly_price or 0,
        weight_steps=weight_steps if weight_steps is not None else m.weight_steps,
        seed=seed,
    ).with_defaults(m)

    if req.total_budget <= 0:
        logger.error("Please provide a total budget greater than zero.")
        raise typer.Exit(1)

    timeline = run_market_simulation(
        initial_budget=req.total_budget,
        months=req.months,
        new_units_per_month=req.new_units_per_month,
        cancellation_rate=req.cancellation_rate,
        category=req.show_type,
        monthly_price=req.monthly_price,
        yearly_price=req.yearly_price,
        weight_steps=req.weight_steps,
        seed=req.seed,
    )

    table = timeline_frame(timeline)
    for row in table.itertuples(index=False):
        logger.info(
            f"  month {row.period_index:>3}: start ${row.starting_budget:>14,.2f}  "
            f"spend ${row.total_spend:>12,.2f}  sales ${row.total_sales:>14,.2f}  "
            f"end ${row.ending_budget:>14,.2f}"
        )

    out = output or cfg.output.outputs_path / "market_timeline.csv"
    out.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(out, index=False)
    logger.info(f"Wrote {out}")


# ---------------------------------------------------------------------------
# simulate-attitude
# ---------------------------------------------------------------------------

@app.command("simulate-attitude")
def simulate_attitude_cmd(
    steps: Optional[int] = typer.Option(None, "--steps", "-n", help="Integration steps"),
    dt: Optional[float] = typer.Option(None, "--dt", help="Step size"),
    blast_start: Optional[int] = typer.Option(None, "--blast-start", help="First disturbed step"),
    blast_end: Optional[int] = typer.Option(None, "--blast-end", help="Last disturbed step"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output CSV file"),
):
    """Run the hover model from the configured state and environment."""
    from z3d.api.schemas import AttitudeRequest
    from z3d.attitude import simulate_attitude, trajectory_frame

    cfg = _load_config(config_path)
    a = cfg.attitude

    env_update = {}
    if blast_start is not None:
        env_update["blast_start_step"] = blast_start
    if blast_end is not None:
        env_update["blast_end_step"] = blast_end

    req = AttitudeRequest(
        initial_state=a.initial_state,
        environment=a.environment.model_copy(update=env_update),
        time_steps=steps or 0,
        dt=dt or 0,
    ).with_defaults(a)

    snapshots = simulate_attitude(req.initial_state, req.environment, req.time_steps, req.dt)
    table = trajectory_frame(snapshots)

    start, end = req.environment.blast_window()
    logger.info(
        f"Hover run: {req.time_steps} steps of {req.dt}, disturbance on steps {start}-{end}"
    )
    logger.info(
        f"  energy {table['energy'].iloc[0]:.6f} -> {table['energy'].iloc[-1]:.6f}, "
        f"max |roll| {table['roll'].abs().max():.4f}"
    )

    out = output or cfg.output.outputs_path / "attitude_trajectory.csv"
    out.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(out, index=False)
    logger.info(f"Wrote {out}")


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------

@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h"),
    port: Optional[int] = typer.Option(None, "--port", "-p"),
    reload: bool = typer.Option(False, "--reload"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
):
    """Start the REST API server."""
    cfg = _load_config(config_path)
    from z3d.api.app import run_server
    run_server(
        host=host or cfg.server.api_host,
        port=port or cfg.server.api_port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# init-config
# ---------------------------------------------------------------------------

@app.command("init-config")
def init_config(
    path: Path = typer.Option(Path("config.yaml"), "--path", "-p", help="Where to write"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Write the default configuration to a YAML file."""
    from z3d.config import Z3DConfig

    if path.exists() and not force:
        logger.error(f"{path} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    Z3DConfig().to_yaml(path)
    logger.info(f"Wrote default config to {path}")


if __name__ == "__main__":
    app()
