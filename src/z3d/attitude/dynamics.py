"""
Energy-based hover model for roll, pitch and yaw.

Each axis is an independent, externally driven spring-inertia pair with
generalized coordinate q (the angle) and conjugate momentum p = I * rate.
The energy is

    E = sum_i [ p_i^2 / (2 I_i) + k_i q_i^2 / 2 ]

and the state advances by explicit (forward) Euler:

    dq/dt =  p / I
    dp/dt = -k q + baseline + blast   (blast only inside the window)

Forward Euler grows the energy of an undamped oscillator by a factor of
(1 + k dt^2 / I) per step.  That drift is part of the reported
trajectory.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Sequence

import pandas as pd
from loguru import logger
from pydantic import BaseModel, field_validator

from z3d.core.numeric import ZERO, to_decimal


AXES = ("roll", "pitch", "yaw")
HALF = Decimal("0.5")


class AttitudeState(BaseModel):
    """Roll/pitch/yaw angles and their rates."""

    roll: Decimal = ZERO
    pitch: Decimal = ZERO
    yaw: Decimal = ZERO
    roll_rate: Decimal = ZERO
    pitch_rate: Decimal = ZERO
    yaw_rate: Decimal = ZERO

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_decimal(cls, v: Any) -> Decimal:
        return to_decimal(v)


class EnvironmentParameters(BaseModel):
    """
    Inertias, stiffness and disturbances for the hover model.

    Blast disturbance is applied on steps ``blast_start_step`` through
    ``blast_end_step`` inclusive.
    """

    inertia_roll: Decimal = Decimal("1.0")
    inertia_pitch: Decimal = Decimal("1.0")
    inertia_yaw: Decimal = Decimal("1.0")

    stiffness_roll: Decimal = Decimal("2.0")
    stiffness_pitch: Decimal = Decimal("2.0")
    stiffness_yaw: Decimal = Decimal("1.0")

    baseline_disturbance_roll: Decimal = ZERO
    baseline_disturbance_pitch: Decimal = ZERO
    baseline_disturbance_yaw: Decimal = ZERO

    blast_start_step: int = 20
    blast_end_step: int = 40

    blast_disturbance_roll: Decimal = Decimal("0.5")
    blast_disturbance_pitch: Decimal = ZERO
    blast_disturbance_yaw: Decimal = ZERO

    @field_validator(
        "inertia_roll", "inertia_pitch", "inertia_yaw",
        "stiffness_roll", "stiffness_pitch", "stiffness_yaw",
        "baseline_disturbance_roll", "baseline_disturbance_pitch", "baseline_disturbance_yaw",
        "blast_disturbance_roll", "blast_disturbance_pitch", "blast_disturbance_yaw",
        mode="before",
    )
    @classmethod
    def _coerce_decimal(cls, v: Any) -> Decimal:
        return to_decimal(v)

    def blast_window(self) -> tuple[int, int]:
        """Inclusive step window, with start >= 0 and end >= start."""
        start = max(0, self.blast_start_step)
        end = max(start, self.blast_end_step)
        return start, end

    def axis(self, name: str) -> tuple[Decimal, Decimal, Decimal, Decimal]:
        """(inertia, stiffness, baseline, blast) for one axis."""
        return (
            getattr(self, f"inertia_{name}"),
            getattr(self, f"stiffness_{name}"),
            getattr(self, f"baseline_disturbance_{name}"),
            getattr(self, f"blast_disturbance_{name}"),
        )


@dataclass(frozen=True)
class SimulationSnapshot:
    """Attitude and energy at one integration step."""

    step_index: int
    state: AttitudeState
    energy: Decimal
    under_disturbance: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_index": self.step_index,
            "state": self.state.model_dump(),
            "energy": self.energy,
            "under_disturbance": self.under_disturbance,
        }


def _rate(p: Decimal, inertia: Decimal) -> Decimal:
    return p / inertia if inertia != ZERO else ZERO


def _energy(
    q: Sequence[Decimal],
    p: Sequence[Decimal],
    inertia: Sequence[Decimal],
    stiffness: Sequence[Decimal],
) -> Decimal:
    kinetic = sum(
        (HALF * (pi * pi / ii) if ii != ZERO else ZERO for pi, ii in zip(p, inertia)),
        ZERO,
    )
    potential = sum((HALF * (ki * qi * qi) for qi, ki in zip(q, stiffness)), ZERO)
    return kinetic + potential


def simulate_attitude(
    initial_state: AttitudeState,
    env: EnvironmentParameters,
    time_steps: int,
    dt: Decimal | float | str,
) -> list[SimulationSnapshot]:
    """
    Integrate the hover model for ``time_steps`` steps.

    Args:
        initial_state: Starting angles and rates
        env: Inertias, stiffness and disturbances
        time_steps: Number of Euler steps
        dt: Step size

    Returns:
        ``time_steps + 1`` snapshots (the initial state included);
        empty when ``time_steps`` or ``dt`` is not positive
    """
    dt = to_decimal(dt)
    if time_steps <= 0 or dt <= ZERO:
        return []

    params = [env.axis(name) for name in AXES]
    inertia = [a[0] for a in params]
    stiffness = [a[1] for a in params]
    baseline = [a[2] for a in params]
    blast = [a[3] for a in params]

    q = [getattr(initial_state, name) for name in AXES]
    p = [ii * getattr(initial_state, f"{name}_rate") for ii, name in zip(inertia, AXES)]

    blast_start, blast_end = env.blast_window()
    snapshots: list[SimulationSnapshot] = []

    for step in range(time_steps + 1):
        in_window = blast_start <= step <= blast_end
        rates = [_rate(pi, ii) for pi, ii in zip(p, inertia)]

        snapshots.append(SimulationSnapshot(
            step_index=step,
            state=AttitudeState(
                roll=q[0], pitch=q[1], yaw=q[2],
                roll_rate=rates[0], pitch_rate=rates[1], yaw_rate=rates[2],
            ),
            energy=_energy(q, p, inertia, stiffness),
            under_disturbance=in_window,
        ))

        if step == time_steps:
            break

        torque = [
            base + (extra if in_window else ZERO)
            for base, extra in zip(baseline, blast)
        ]
        dp = [-(ki * qi) + ti for ki, qi, ti in zip(stiffness, q, torque)]

        q = [qi + dt * ri for qi, ri in zip(q, rates)]
        p = [pi + dt * dpi for pi, dpi in zip(p, dp)]

    logger.debug(
        f"Attitude run: {time_steps} steps of {dt}, "
        f"energy {snapshots[0].energy:.6f} -> {snapshots[-1].energy:.6f}"
    )
    return snapshots


def trajectory_frame(snapshots: Sequence[SimulationSnapshot]) -> pd.DataFrame:
    """Attitude trajectory as a table (one row per step)."""
    columns = ["step_index", *AXES, *(f"{a}_rate" for a in AXES), "energy", "under_disturbance"]
    records = []
    for s in snapshots:
        record: dict[str, Any] = {"step_index": s.step_index}
        for name in AXES:
            record[name] = float(getattr(s.state, name))
            record[f"{name}_rate"] = float(getattr(s.state, f"{name}_rate"))
        record["energy"] = float(s.energy)
        record["under_disturbance"] = s.under_disturbance
        records.append(record)
    return pd.DataFrame(records, columns=columns)
