"""
placement_core — node selection strategies.

Public API:
    spread_select   — least-utilised eligible node
    binpack_select  — most-utilised eligible node
    random_select   — uniform eligible node (injectable numpy Generator)
    get_strategy    — SchedulingPolicy → strategy function

Usage:
    from placement_core import get_strategy

    select = get_strategy(SchedulingPolicy.BINPACK)
    node = select(nodes, pod, rng=rng)   # Node or None
"""

from placement_core.strategies import (
    STRATEGIES,
    binpack_select,
    eligible_nodes,
    get_strategy,
    random_select,
    spread_select,
    utilisation_scores,
)

__all__ = [
    "STRATEGIES",
    "binpack_select",
    "eligible_nodes",
    "get_strategy",
    "random_select",
    "spread_select",
    "utilisation_scores",
]
