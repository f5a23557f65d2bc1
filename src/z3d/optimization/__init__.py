"""
Budget allocation layer for Z3D.

Provides the greedy diminishing-returns allocator and scenario
comparison across budget levels.
"""

from z3d.optimization.allocator import (
    Channel,
    AllocationResult,
    BudgetAllocator,
    sanitize_channels,
    optimize_budget,
    total_allocated,
    total_expected_gross_return,
    allocation_frame,
)
from z3d.optimization.loaders import load_channels
from z3d.optimization.scenarios import (
    BudgetScenario,
    create_budget_scenarios,
    compare_scenarios,
)

__all__ = [
    "Channel",
    "AllocationResult",
    "BudgetAllocator",
    "sanitize_channels",
    "optimize_budget",
    "total_allocated",
    "total_expected_gross_return",
    "allocation_frame",
    "load_channels",
    "BudgetScenario",
    "create_budget_scenarios",
    "compare_scenarios",
]
