"""
FastAPI application for Z3D.

Design principles:
  - Stateless: every request runs an engine and returns its result;
    nothing is stored between calls.
  - Forgiving: blank form values fall back to config defaults.
  - CORS-open by default for local dashboards.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from z3d import __version__
from z3d.api.schemas import AttitudeRequest, MarketRequest, OptimizeRequest
from z3d.attitude import simulate_attitude
from z3d.config import Z3DConfig, get_config
from z3d.core.numeric import ZERO
from z3d.market import run_market_simulation
from z3d.optimization import (
    optimize_budget,
    total_allocated,
    total_expected_gross_return,
)


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(config: Z3DConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    cfg = config or get_config()

    application = FastAPI(
        title="Z3D API",
        description=(
            "Budget allocation, market compounding and attitude dynamics "
            "engines behind a JSON API."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    @application.get("/health")
    def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "version": __version__,
        }

    @application.get("/")
    def root():
        return {
            "name": "Z3D API",
            "version": __version__,
            "docs": "/docs",
        }

    # ------------------------------------------------------------------
    # Budget
    # ------------------------------------------------------------------

    @application.post("/api/v1/budget/optimize")
    def optimize(request: OptimizeRequest):
        """Allocate a budget across channels in one shot."""
        results = optimize_budget(request.total_budget, request.channels)
        return {
            "total_budget": request.total_budget,
            "total_allocated": total_allocated(results),
            "total_expected_gross_return": total_expected_gross_return(results),
            "results": [r.to_dict() for r in results],
        }

    @application.post("/api/v1/budget/simulate")
    def simulate_market(request: MarketRequest):
        """Simulate monthly station buying with profit rollover."""
        if request.total_budget <= ZERO:
            raise HTTPException(400, "Please provide a total budget greater than zero.")

        req = request.with_defaults(cfg.market)
        logger.info(
            f"Market simulation requested: budget={req.total_budget}, "
            f"months={req.months}, show type {req.show_type}"
        )

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
        return {
            "request": req.model_dump(),
            "timeline": [s.to_dict() for s in timeline],
        }

    # ------------------------------------------------------------------
    # Attitude
    # ------------------------------------------------------------------

    def _run_attitude(req: AttitudeRequest) -> dict:
        snapshots = simulate_attitude(
            req.initial_state, req.environment, req.time_steps, req.dt,
        )
        return {
            "request": req.model_dump(),
            "timeline": [s.to_dict() for s in snapshots],
        }

    @application.get("/api/v1/attitude/default")
    def attitude_default():
        """Hover run with the configured default state and environment."""
        req = AttitudeRequest(
            initial_state=cfg.attitude.initial_state,
            environment=cfg.attitude.environment,
            time_steps=cfg.attitude.time_steps,
            dt=cfg.attitude.dt,
        )
        return _run_attitude(req)

    @application.post("/api/v1/attitude/simulate")
    def attitude_simulate(request: AttitudeRequest):
        """Hover run for a caller-supplied state and environment."""
        return _run_attitude(request.with_defaults(cfg.attitude))

    return application


def run_server(host: str = "127.0.0.1", port: int = 8000, reload: bool = False) -> None:
    """Start the API server."""
    import uvicorn
    logger.info(f"Starting Z3D API on {host}:{port}")
    uvicorn.run("z3d.api.app:app", host=host, port=port, reload=reload)


# Default instance for ``uvicorn z3d.api.app:app``
app = create_app()
