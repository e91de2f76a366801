"""
cluster_sim/shared/config.py
────────────────────────────
Simulator settings.

Every knob has a module-level default documented below. SimulatorConfig
bundles them into one validated object so an OrchestratorService can be
built with overrides (tests shrink the queue or the node ceiling this way).
A ceiling below the number of sample nodes is rejected when the config is
built.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from cluster_sim.shared.models import NodeSpec, SchedulingPolicy

# ── Constants ─────────────────────────────────────────────────────────────────

QUEUE_CAPACITY: int = 10
"""Maximum number of pending pods held in the queue.

An 11th create_pod() fails with QUEUE_FULL and the queue stays at 10.
"""

MAX_NODES: int = 6
"""Ceiling on the total number of nodes, sample nodes included."""

EVENT_LOG_SIZE: int = 15
"""Number of events kept by the EventLog. Oldest entries drop first."""

DEFAULT_POLICY: SchedulingPolicy = SchedulingPolicy.SPREAD
"""Policy in effect when the cluster is created."""

SAMPLE_NODES: List[NodeSpec] = [
    NodeSpec(name="Worker-1", cpu=4, memory=8192),
    NodeSpec(name="Worker-2", cpu=4, memory=8192),
    NodeSpec(name="GPU-Node", cpu=8, memory=16384),
]
"""Nodes created at bootstrap. They take ids node-1 .. node-3."""

# Quick-create ranges

QUICK_POD_NAMES: Tuple[str, ...] = (
    "web-server", "database", "cache", "api", "worker", "frontend",
)
QUICK_POD_CPU_RANGE: Tuple[float, float] = (0.5, 3.5)
"""Half-open [low, high) CPU range; the draw is rounded to 0.1 core."""

QUICK_POD_MEMORY_RANGE: Tuple[int, int] = (128, 4224)
"""Half-open [low, high) memory range in MB."""

EXAMPLE_PODS: List[Tuple[str, float, int]] = [
    ("web-server", 1.5, 1024),
    ("database", 2.0, 2048),
    ("cache", 0.5, 512),
    ("api-service", 1.0, 768),
]
"""A small web application stack used by create_example_pods()."""

# Random-node choices

RANDOM_NODE_PREFIXES: Tuple[str, ...] = ("Worker", "Master", "Storage", "Compute", "GPU")
RANDOM_NODE_CPU_CHOICES: Tuple[float, ...] = (2, 4, 8)
RANDOM_NODE_MEMORY_CHOICES: Tuple[int, ...] = (4096, 8192, 16384)


class SimulatorConfig(BaseModel):
    """
    Validated settings for one simulation session.

    seed seeds the default numpy Generator when no rng is injected, making
    Random placement, quick-create pods and random nodes reproducible.
    """
    queue_capacity: int = Field(QUEUE_CAPACITY, gt=0)
    max_nodes: int = Field(MAX_NODES, gt=0)
    event_log_size: int = Field(EVENT_LOG_SIZE, gt=0)
    default_policy: SchedulingPolicy = DEFAULT_POLICY
    sample_nodes: List[NodeSpec] = Field(
        default_factory=lambda: [spec.model_copy() for spec in SAMPLE_NODES]
    )
    seed: Optional[int] = None

    @model_validator(mode="after")
    def check_sample_nodes_within_ceiling(self) -> "SimulatorConfig":
        if len(self.sample_nodes) > self.max_nodes:
            raise ValueError(
                f"{len(self.sample_nodes)} sample nodes exceed max_nodes={self.max_nodes}"
            )
        return self
