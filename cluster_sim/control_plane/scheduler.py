"""
cluster_sim/control_plane/scheduler.py
──────────────────────────────────────
The scheduling layer: decides WHICH node a pod goes to.

select_node() is a thin dispatcher over placement_core: it looks up the
strategy for the active policy, runs it, and logs the outcome. It does not
commit anything; Cluster.place_pod() does.

Error handling contract
────────────────────────
  No eligible node → returns None. The caller keeps the pod queued. This is
  the NO_ELIGIBLE_NODE steady state and is logged as a warning, never raised.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from cluster_sim.shared.models import Node, Pod, SchedulingPolicy
from placement_core import get_strategy

logger = logging.getLogger(__name__)


def select_node(
    policy: SchedulingPolicy,
    nodes: Sequence[Node],
    pod: Pod,
    rng: Optional[np.random.Generator] = None,
) -> Optional[Node]:
    """
    Pick a node for a pod using the given policy.

    Args:
        policy: Active SchedulingPolicy.
        nodes:  All nodes in cluster order.
        pod:    The pending pod.
        rng:    Random source for the RANDOM policy.

    Returns:
        The selected Node, or None if no node can fit the pod.
    """
    strategy = get_strategy(policy)
    node = strategy(nodes, pod, rng=rng)

    if node is None:
        logger.warning(
            "select_node: no suitable node for pod %s (cpu=%.2f, mem=%dMB, policy=%s)",
            pod.pod_id, pod.cpu_request, pod.memory_request, policy.value,
        )
        return None

    logger.debug(
        "select_node: pod %s → node %s (policy=%s, node util=%.1f%%)",
        pod.pod_id, node.node_id, policy.value, node.pool.average_utilisation_pct(),
    )
    return node
