"""
Z3D Engines: budget allocation, market compounding and attitude dynamics.

Three stateless numerical engines behind one package:

  - ``z3d.optimization``  single-shot greedy budget allocator
  - ``z3d.market``        multi-month station buying simulation with compounding
  - ``z3d.attitude``      explicit-Euler roll/pitch/yaw hover model

Quickstart::

    from z3d.optimization import optimize_budget
    from z3d.market import run_market_simulation
    from z3d.attitude import simulate_attitude
"""

__version__ = "0.1.0"
