"""
placement_core/strategies.py
────────────────────────────
The three placement strategies: Spread, BinPack and Random.

Every strategy has the same shape:

    select(nodes, pod, rng=None) -> Optional[Node]

and the same two steps:

  1. Filter to eligible nodes: node.pool.can_fit(cpu_request, memory_request).
     No eligible node → return None. That is a normal answer under resource
     pressure, not an error; the caller leaves the pod queued.

  2. Rank the eligible nodes.

Ranking
───────
Spread and BinPack score each eligible node by its average utilisation
*before* placement:

    score = (cpu_used_fraction * 100 + memory_used_fraction * 100) / 2

Spread takes the minimum (balance load), BinPack the maximum (fill fuller
nodes first, keep empty nodes free for big pods). Scores are gathered into a
numpy vector and ranked with argmin/argmax, which return the *first* index
among equal values. Ties therefore always go to the earliest eligible node in
iteration order, so both strategies are deterministic.

Random draws a uniform index from the eligible list using the injected
numpy Generator. Pass a seeded np.random.default_rng(seed) for reproducible
decisions.

Strategies never mutate nodes or pods. Committing a placement is the
Cluster's job.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from cluster_sim.shared.models import Node, Pod, SchedulingPolicy

Strategy = Callable[..., Optional[Node]]


def eligible_nodes(nodes: Sequence[Node], pod: Pod) -> List[Node]:
    """Nodes that can host the pod right now, in their original order."""
    return [
        node for node in nodes
        if node.pool.can_fit(pod.cpu_request, pod.memory_request)
    ]


def utilisation_scores(nodes: Sequence[Node]) -> np.ndarray:
    """Average utilisation percent for each node, as a float64 vector."""
    return np.array(
        [node.pool.average_utilisation_pct() for node in nodes],
        dtype=np.float64,
    )


def spread_select(
    nodes: Sequence[Node],
    pod: Pod,
    rng: Optional[np.random.Generator] = None,
) -> Optional[Node]:
    """Least-utilised eligible node. Ties → first in iteration order."""
    candidates = eligible_nodes(nodes, pod)
    if not candidates:
        return None
    return candidates[int(np.argmin(utilisation_scores(candidates)))]


def binpack_select(
    nodes: Sequence[Node],
    pod: Pod,
    rng: Optional[np.random.Generator] = None,
) -> Optional[Node]:
    """Most-utilised eligible node. Ties → first in iteration order."""
    candidates = eligible_nodes(nodes, pod)
    if not candidates:
        return None
    return candidates[int(np.argmax(utilisation_scores(candidates)))]


def random_select(
    nodes: Sequence[Node],
    pod: Pod,
    rng: Optional[np.random.Generator] = None,
) -> Optional[Node]:
    """
    Uniformly random eligible node.

    Args:
        rng: Random source. None falls back to a fresh unseeded Generator,
             which is fine interactively but not reproducible.
    """
    candidates = eligible_nodes(nodes, pod)
    if not candidates:
        return None
    rng = rng if rng is not None else np.random.default_rng()
    return candidates[int(rng.integers(len(candidates)))]


STRATEGIES: Dict[SchedulingPolicy, Strategy] = {
    SchedulingPolicy.SPREAD: spread_select,
    SchedulingPolicy.BINPACK: binpack_select,
    SchedulingPolicy.RANDOM: random_select,
}


def get_strategy(policy: SchedulingPolicy) -> Strategy:
    """Strategy function for a policy. Unknown policies fall back to Spread."""
    return STRATEGIES.get(policy, spread_select)
