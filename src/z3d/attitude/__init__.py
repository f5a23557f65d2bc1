"""
Attitude dynamics layer for Z3D.

Decoupled per-axis hover model integrated with explicit Euler under a
time-windowed disturbance.
"""

from z3d.attitude.dynamics import (
    AXES,
    AttitudeState,
    EnvironmentParameters,
    SimulationSnapshot,
    simulate_attitude,
    trajectory_frame,
)

__all__ = [
    "AXES",
    "AttitudeState",
    "EnvironmentParameters",
    "SimulationSnapshot",
    "simulate_attitude",
    "trajectory_frame",
]
