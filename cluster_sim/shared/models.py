"""
cluster_sim/shared/models.py
────────────────────────────
Every data structure the simulator passes around.

Design philosophy
-----------------
Each model answers one question: "What does the scheduler *need to know*
about this thing in order to decide where a pod goes?"

Ownership
---------
The Cluster owns every Pod in a single table keyed by pod_id. A Node only
holds the *ids* of the pods it hosts, and the queue only holds ids too, so
there is exactly one mutable Pod object per pod.

Reading guide
-------------
Read top-to-bottom. Each model builds on the ones above it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp used for every model default."""
    return datetime.now(timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 1: ENUMERATIONS
# ─────────────────────────────────────────────────────────────────────────────

class PodStatus(str, Enum):
    """
    Lifecycle states of a pod.

    PENDING → Created and waiting in the queue.
    RUNNING → Placed on a node; resources reserved.

    There is no terminal state: pods are never deleted, only wiped by reset.
    """
    PENDING = "pending"
    RUNNING = "running"


class SchedulingPolicy(str, Enum):
    """
    The placement algorithm the cluster uses for the next decision.

    SPREAD  → least-utilised eligible node (balance load).
    BINPACK → most-utilised eligible node that still fits (consolidate).
    RANDOM  → uniform choice among eligible nodes.
    """
    SPREAD = "spread"
    BINPACK = "binpack"
    RANDOM = "random"


class ResourceDimension(str, Enum):
    CPU = "cpu"
    MEMORY = "memory"


class ErrorKind(str, Enum):
    """
    Every recoverable failure the control plane reports.

    QUEUE_FULL             → enqueue at capacity. Schedule or wait.
    NODE_LIMIT_REACHED     → add_node at the ceiling.
    POD_NOT_FOUND          → caller referenced an id the cluster doesn't hold
                             (or not in the expected state). UI desync.
    NODE_NOT_FOUND         → move target doesn't exist.
    INSUFFICIENT_RESOURCES → move target can't fit the pod. Pod stays put.
    NO_ELIGIBLE_NODE       → nothing fits right now. Pod stays queued.
                             A steady state under pressure, not a failure.
    INVALID_REQUEST        → non-positive resources or capacities.
    """
    QUEUE_FULL = "queue-full"
    NODE_LIMIT_REACHED = "node-limit-reached"
    POD_NOT_FOUND = "pod-not-found"
    NODE_NOT_FOUND = "node-not-found"
    INSUFFICIENT_RESOURCES = "insufficient-resources"
    NO_ELIGIBLE_NODE = "no-eligible-node"
    INVALID_REQUEST = "invalid-request"


class ClusterOperationError(Exception):
    """
    Base class for recoverable control-plane failures.

    Attributes:
        kind:   Which ErrorKind this is. The façade copies it into the
                "error" field of its result dict.
        reason: Human-readable explanation.
    """

    kind: ErrorKind = ErrorKind.INVALID_REQUEST

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class InvariantViolationError(RuntimeError):
    """
    Raised when resource accounting or pod bookkeeping is corrupt.

    Never raised by valid API use. It means a bug upstream (double release,
    desynchronised lists) and must not be caught and tolerated.
    """


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 2: RESOURCE MODELS
# What a node provides and how much of it is promised away.
# ─────────────────────────────────────────────────────────────────────────────

class ResourcePool(BaseModel):
    """
    Capacity and current usage of one node.

    Fields:
        total_cpu    → CPU cores on the node (fractional ok).
        used_cpu     → CPU cores reserved by hosted pods.
        total_memory → RAM in MB.
        used_memory  → RAM in MB reserved by hosted pods.

    reserve() is a pure accounting step: the caller has already checked
    can_fit(). release() refuses to go negative, since that can only mean
    the same pod was released twice.
    """
    total_cpu: float = Field(..., ge=0, description="Total CPU cores")
    used_cpu: float = Field(0.0, ge=0, description="CPU cores reserved by pods")
    total_memory: int = Field(..., ge=0, description="Total memory in MB")
    used_memory: int = Field(0, ge=0, description="Memory in MB reserved by pods")

    @property
    def available_cpu(self) -> float:
        return self.total_cpu - self.used_cpu

    @property
    def available_memory(self) -> int:
        return self.total_memory - self.used_memory

    def can_fit(self, cpu_request: float, memory_request: int) -> bool:
        """True iff both dimensions have at least the requested headroom."""
        return (
            self.total_cpu - self.used_cpu >= cpu_request
            and self.total_memory - self.used_memory >= memory_request
        )

    def reserve(self, cpu_request: float, memory_request: int) -> None:
        self.used_cpu += cpu_request
        self.used_memory += memory_request

    def release(self, cpu_request: float, memory_request: int) -> None:
        """
        Return a pod's request to the pool.

        Raises:
            InvariantViolationError: if either dimension would go negative.
                CPU is compared with a tiny tolerance so that float residue
                from add/subtract cycles (e.g. 0.1 + 0.2 - 0.3) is clamped
                to zero instead of reported as corruption.
        """
        new_cpu = self.used_cpu - cpu_request
        new_memory = self.used_memory - memory_request
        if new_cpu < -1e-9 or new_memory < 0:
            raise InvariantViolationError(
                f"release would make usage negative "
                f"(cpu {self.used_cpu} - {cpu_request}, "
                f"memory {self.used_memory} - {memory_request})"
            )
        self.used_cpu = max(0.0, new_cpu)
        self.used_memory = new_memory

    def used_fraction(self, dimension: ResourceDimension) -> float:
        """used / total for one dimension. A zero-capacity pool reports 0.0."""
        if dimension == ResourceDimension.CPU:
            used, total = self.used_cpu, self.total_cpu
        else:
            used, total = self.used_memory, self.total_memory
        if total == 0:
            return 0.0
        return used / total

    def average_utilisation_pct(self) -> float:
        """
        Mean of CPU and memory utilisation, in percent.

        This is the single metric both Spread and BinPack rank nodes by.
        """
        cpu_pct = self.used_fraction(ResourceDimension.CPU) * 100.0
        memory_pct = self.used_fraction(ResourceDimension.MEMORY) * 100.0
        return (cpu_pct + memory_pct) / 2.0

    def clear(self) -> None:
        self.used_cpu = 0.0
        self.used_memory = 0


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 3: NODE
# ─────────────────────────────────────────────────────────────────────────────

class Node(BaseModel):
    """
    A simulated machine in the cluster.

    pod_ids is ordered by arrival (display order only). The Pod objects
    themselves live in the Cluster's pod table.
    """
    node_id: str = Field(..., description="Unique identifier, e.g. 'node-4'")
    name: str = Field(..., description="Human-readable name, e.g. 'Worker-1'")
    pool: ResourcePool
    pod_ids: List[str] = Field(default_factory=list)

    def can_fit(self, pod: "Pod") -> bool:
        return self.pool.can_fit(pod.cpu_request, pod.memory_request)

    def hosts(self, pod_id: str) -> bool:
        return pod_id in self.pod_ids


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 4: POD
# ─────────────────────────────────────────────────────────────────────────────

class PodRequest(BaseModel):
    """
    What a caller submits to create a pod.

    name is optional: a blank or missing name is replaced by the cluster's
    sequential 'pod-<n>' name.
    """
    name: Optional[str] = None
    cpu_request: float = Field(..., gt=0, description="CPU cores requested")
    memory_request: int = Field(..., gt=0, description="Memory requested in MB")


class NodeSpec(BaseModel):
    """Capacity of a node to be added to the cluster."""
    name: Optional[str] = None
    cpu: float = Field(..., gt=0, description="Total CPU cores")
    memory: int = Field(..., gt=0, description="Total memory in MB")


class Pod(BaseModel):
    """
    A unit of work with a fixed CPU and memory request.

    node_id and scheduled_at are None while PENDING and are set by
    Cluster.place_pod(). A manual move rewrites node_id but keeps
    scheduled_at and status.
    """
    pod_id: str
    name: str
    cpu_request: float = Field(..., gt=0)
    memory_request: int = Field(..., gt=0)
    status: PodStatus = PodStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    node_id: Optional[str] = None
    scheduled_at: Optional[datetime] = None


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 5: READ-ONLY SNAPSHOTS
# Returned by OrchestratorService to callers. Mutating them changes nothing.
# ─────────────────────────────────────────────────────────────────────────────

class NodeSnapshot(BaseModel):
    """
    Display view of one node.

    The percentages are capped at 100 for rendering; accounting itself never
    exceeds capacity.
    """
    node_id: str
    name: str
    total_cpu: float
    used_cpu: float
    available_cpu: float
    total_memory: int
    used_memory: int
    available_memory: int
    cpu_pct: float
    memory_pct: float
    pod_ids: List[str]

    @classmethod
    def from_node(cls, node: Node) -> "NodeSnapshot":
        pool = node.pool
        return cls(
            node_id=node.node_id,
            name=node.name,
            total_cpu=pool.total_cpu,
            used_cpu=pool.used_cpu,
            available_cpu=pool.available_cpu,
            total_memory=pool.total_memory,
            used_memory=pool.used_memory,
            available_memory=pool.available_memory,
            cpu_pct=min(100.0, pool.used_fraction(ResourceDimension.CPU) * 100.0),
            memory_pct=min(100.0, pool.used_fraction(ResourceDimension.MEMORY) * 100.0),
            pod_ids=list(node.pod_ids),
        )


class ClusterStats(BaseModel):
    """
    Aggregate usage across every node.

    cpu_pct / memory_pct are used / total * 100 rounded to one decimal,
    0.0 when the cluster has no capacity at all.
    """
    node_count: int
    running_pods: int
    queued_pods: int
    total_cpu: float
    used_cpu: float
    total_memory: int
    used_memory: int
    cpu_pct: float
    memory_pct: float
    policy: SchedulingPolicy

    def summary(self) -> str:
        """Multi-line human summary, one fact per line."""
        from cluster_sim.shared.formatting import policy_display_name

        return "\n".join([
            "Cluster Statistics:",
            f"- Nodes: {self.node_count}",
            f"- Running Pods: {self.running_pods}",
            f"- Queued Pods: {self.queued_pods}",
            f"- CPU Usage: {self.cpu_pct:.1f}%",
            f"- Memory Usage: {self.memory_pct:.1f}%",
            f"- Algorithm: {policy_display_name(self.policy)}",
        ])
