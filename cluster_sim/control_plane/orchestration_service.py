"""
cluster_sim/control_plane/orchestration_service.py
──────────────────────────────────────────────────
OrchestratorService: the one object a UI talks to.

Pipeline
─────────
  create_pod()   → admission (validate) → PodQueue → [auto_schedule]
  schedule_pod() → scheduler.select_node() → Cluster.place_pod()
  move_pod()     → Cluster.move_pod() (fit check, release, reserve)
  add_node()     → Cluster.add_node() (node ceiling)
  reset()        → Cluster.reset()

Result contract
────────────────
Every mutating call except reset() returns a plain dict:

    {"status": ..., "error": ErrorKind value or None, "message": str, ...ids}

Recoverable failures (ClusterOperationError subclasses) become
status="REJECTED" with the error kind filled in. A scheduling attempt that
finds no node is status="PENDING", error="no-eligible-node": the pod is
still queued and can be retried with schedule_pod() or drain_queue().

InvariantViolationError is deliberately NOT caught. It means the books are
corrupt, and returning a friendly dict would hide that.

Every outcome is also recorded in the EventLog for the activity feed.

Thread safety
──────────────
Not thread-safe. One operation runs to completion before the next; a
concurrent host must serialise calls behind a single lock.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from cluster_sim.shared.config import (
    EXAMPLE_PODS,
    QUICK_POD_CPU_RANGE,
    QUICK_POD_MEMORY_RANGE,
    QUICK_POD_NAMES,
    RANDOM_NODE_CPU_CHOICES,
    RANDOM_NODE_MEMORY_CHOICES,
    RANDOM_NODE_PREFIXES,
    SimulatorConfig,
)
from cluster_sim.shared.formatting import format_memory, policy_display_name
from cluster_sim.shared.models import (
    ClusterOperationError,
    ClusterStats,
    ErrorKind,
    NodeSnapshot,
    Pod,
    SchedulingPolicy,
)
from cluster_sim.control_plane.cluster import Cluster
from cluster_sim.telemetry.event_log import ClusterEvent, EventKind, EventLog

logger = logging.getLogger(__name__)

Result = Dict[str, Any]


class OrchestratorService:
    """
    Façade over one Cluster session.

    Public API:
        create_pod(name, cpu, memory, auto_schedule)  → Result
        quick_create_pod(auto_schedule)               → Result
        create_example_pods(auto_schedule)            → List[Result]
        schedule_pod(pod_id)                          → Result
        drain_queue()                                 → Dict
        move_pod(pod_id, target_node_id)              → Result
        add_node(name, cpu, memory)                   → Result
        add_random_node()                             → Result
        reset()                                       → None
        set_policy(name)                              → Result

    Read-only (copies; mutating them changes nothing):
        list_nodes(), list_queued_pods(), list_running_pods(), get_pod(),
        get_cluster_stats(), get_events()

    Args:
        config: Settings. Defaults to SimulatorConfig().
        rng:    numpy Generator shared by Random placement, quick-create and
                random nodes. Defaults to default_rng(config.seed).
    """

    def __init__(
        self,
        config: Optional[SimulatorConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.config = config or SimulatorConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)

        self.cluster = Cluster(
            max_nodes=self.config.max_nodes,
            queue_capacity=self.config.queue_capacity,
            policy=self.config.default_policy,
            rng=self.rng,
        )
        self.events = EventLog(max_entries=self.config.event_log_size)

        self._initialize_sample_nodes()
        self.events.record(EventKind.INFO, "System initialized. Ready to schedule pods!")
        logger.info(
            "OrchestratorService initialised with %d nodes (policy=%s).",
            len(self.cluster.nodes), self.cluster.policy.value,
        )

    def _initialize_sample_nodes(self) -> None:
        """Bootstrap the configured sample nodes (Worker-1, Worker-2, GPU-Node)."""
        for spec in self.config.sample_nodes:
            self.cluster.add_node(spec.name, spec.cpu, spec.memory)

    # ── Pods ───────────────────────────────────────────────────────────────────

    def create_pod(
        self,
        name: Optional[str],
        cpu: float,
        memory: int,
        auto_schedule: bool = True,
    ) -> Result:
        """
        Create a pending pod and, by default, try to schedule it right away.

        Args:
            name:          Pod name. None or blank → 'pod-<n>'.
            cpu:           CPU cores requested (> 0).
            memory:        Memory requested in MB (> 0).
            auto_schedule: False leaves the pod queued; call schedule_pod()
                           later for the second phase.

        Returns:
            status "SCHEDULED" | "PENDING" | "REJECTED", plus pod_id/node_id.
        """
        try:
            pod = self.cluster.create_pod(name, cpu, memory)
        except ClusterOperationError as e:
            logger.info("create_pod rejected: %s", e.reason)
            self.events.record(EventKind.WARNING, e.reason)
            return self._rejected(e)

        self.events.record(
            EventKind.CREATE,
            f'Pod "{pod.name}" created (CPU: {pod.cpu_request:g}, Memory: {pod.memory_request}MB)',
        )
        if not auto_schedule:
            return {
                "status": "PENDING",
                "error": None,
                "pod_id": pod.pod_id,
                "node_id": None,
                "message": f'Pod "{pod.name}" queued',
            }
        return self._schedule(pod)

    def quick_create_pod(self, auto_schedule: bool = True) -> Result:
        """Create a pod with a random name and a random request."""
        prefix = str(self.rng.choice(QUICK_POD_NAMES))
        number = self.cluster.take_pod_number()
        low_cpu, high_cpu = QUICK_POD_CPU_RANGE
        low_mem, high_mem = QUICK_POD_MEMORY_RANGE
        cpu = round(float(self.rng.uniform(low_cpu, high_cpu)), 1)
        memory = int(self.rng.integers(low_mem, high_mem))
        return self.create_pod(f"{prefix}-{number}", cpu, memory, auto_schedule=auto_schedule)

    def create_example_pods(self, auto_schedule: bool = True) -> List[Result]:
        """Create the four-pod web application example stack."""
        results = [
            self.create_pod(name, cpu, memory, auto_schedule=auto_schedule)
            for name, cpu, memory in EXAMPLE_PODS
        ]
        self.events.record(EventKind.INFO, "Created example pods for web application stack")
        return results

    def schedule_pod(self, pod_id: str) -> Result:
        """
        Try to place a queued pod now.

        Returns:
            "SCHEDULED", "PENDING" (no eligible node, still queued) or
            "REJECTED" with POD_NOT_FOUND when pod_id is not in the queue.
        """
        pod = self.cluster.get_pod(pod_id)
        if pod is None or pod_id not in self.cluster.queue:
            message = f"Pod {pod_id} is not waiting in the queue"
            logger.info("schedule_pod: %s", message)
            return {
                "status": "REJECTED",
                "error": ErrorKind.POD_NOT_FOUND.value,
                "pod_id": pod_id,
                "node_id": None,
                "message": message,
            }
        return self._schedule(pod)

    def drain_queue(self) -> Dict[str, List[Any]]:
        """
        Retry every queued pod once, oldest first.

        Returns:
            {"scheduled": [{"pod_id", "node_id"}, ...], "pending": [pod_id, ...]}
        """
        scheduled: List[Dict[str, str]] = []
        pending: List[str] = []
        for pod, node in self.cluster.drain_queue():
            if node is None:
                pending.append(pod.pod_id)
                self._record_unplaced(pod)
            else:
                scheduled.append({"pod_id": pod.pod_id, "node_id": node.node_id})
                self._record_placed(pod, node.name)
        return {"scheduled": scheduled, "pending": pending}

    def move_pod(self, pod_id: str, target_node_id: str) -> Result:
        """
        Manually move a running pod to another node.

        Returns:
            "MOVED" (also when the pod already runs on the target; nothing
            changes then) or "REJECTED" with POD_NOT_FOUND, NODE_NOT_FOUND
            or INSUFFICIENT_RESOURCES. A rejected move changes nothing.
        """
        try:
            source, target = self.cluster.move_pod(pod_id, target_node_id)
        except ClusterOperationError as e:
            logger.info("move_pod rejected: %s", e.reason)
            self.events.record(EventKind.WARNING, e.reason)
            return self._rejected(e, pod_id=pod_id)

        pod = self.cluster.get_pod(pod_id)
        if source is target:
            message = f'Pod "{pod.name}" already runs on {target.name}'
        else:
            message = f'Pod "{pod.name}" manually moved from {source.name} to {target.name}'
            self.events.record(EventKind.MOVE, message)
        return {
            "status": "MOVED",
            "error": None,
            "pod_id": pod_id,
            "source_node_id": source.node_id,
            "node_id": target.node_id,
            "message": message,
        }

    # ── Nodes and cluster ──────────────────────────────────────────────────────

    def add_node(self, name: Optional[str], cpu: float, memory: int) -> Result:
        """
        Add a node with zero usage.

        Returns:
            "ADDED" with node_id, or "REJECTED" with NODE_LIMIT_REACHED /
            INVALID_REQUEST.
        """
        try:
            node = self.cluster.add_node(name, cpu, memory)
        except ClusterOperationError as e:
            logger.info("add_node rejected: %s", e.reason)
            self.events.record(EventKind.WARNING, e.reason)
            return self._rejected(e)

        self.events.record(
            EventKind.NODE,
            f"New node added: {node.name} "
            f"(CPU: {node.pool.total_cpu:g}, Memory: {format_memory(node.pool.total_memory)})",
        )
        return {
            "status": "ADDED",
            "error": None,
            "node_id": node.node_id,
            "message": f"Node {node.name} added",
        }

    def add_random_node(self) -> Result:
        """Add a node with a random name prefix and random capacity."""
        prefix = str(self.rng.choice(RANDOM_NODE_PREFIXES))
        cpu = float(self.rng.choice(RANDOM_NODE_CPU_CHOICES))
        memory = int(self.rng.choice(RANDOM_NODE_MEMORY_CHOICES))
        name = f"{prefix}-{self.cluster.peek_next_node_number()}"
        return self.add_node(name, cpu, memory)

    def reset(self) -> None:
        """Remove every pod and zero every node. Confirmation is the caller's job."""
        self.cluster.reset()
        self.events.record(EventKind.WARNING, "Cluster reset to initial state")

    def set_policy(self, name: str) -> Result:
        """
        Switch the scheduling policy for future decisions.

        Returns:
            "UPDATED" with the policy value, or "REJECTED" with
            INVALID_REQUEST when name is not "spread", "binpack" or "random".
            A rejected call leaves the active policy unchanged.
        """
        try:
            policy = SchedulingPolicy(name)
        except ValueError:
            message = f"Unknown scheduling policy: {name!r}"
            logger.info("set_policy rejected: %s", message)
            return {
                "status": "REJECTED",
                "error": ErrorKind.INVALID_REQUEST.value,
                "policy": self.cluster.policy.value,
                "message": message,
            }

        self.cluster.set_policy(policy)
        message = f"Scheduler algorithm changed to: {policy_display_name(policy)}"
        self.events.record(EventKind.INFO, message)
        return {
            "status": "UPDATED",
            "error": None,
            "policy": policy.value,
            "message": message,
        }

    @property
    def policy(self) -> SchedulingPolicy:
        return self.cluster.policy

    # ── Read-only queries ──────────────────────────────────────────────────────

    def list_nodes(self) -> List[NodeSnapshot]:
        return [NodeSnapshot.from_node(node) for node in self.cluster.nodes]

    def list_queued_pods(self) -> List[Pod]:
        return [pod.model_copy() for pod in self.cluster.queued_pods()]

    def list_running_pods(self) -> List[Pod]:
        return [pod.model_copy() for pod in self.cluster.running_pods()]

    def get_pod(self, pod_id: str) -> Optional[Pod]:
        pod = self.cluster.get_pod(pod_id)
        return pod.model_copy() if pod is not None else None

    def get_cluster_stats(self) -> ClusterStats:
        """Totals and usage summed over every node."""
        nodes = self.cluster.nodes
        total_cpu = sum(n.pool.total_cpu for n in nodes)
        used_cpu = sum(n.pool.used_cpu for n in nodes)
        total_memory = sum(n.pool.total_memory for n in nodes)
        used_memory = sum(n.pool.used_memory for n in nodes)

        return ClusterStats(
            node_count=len(nodes),
            running_pods=len(self.cluster.running_pods()),
            queued_pods=len(self.cluster.queue),
            total_cpu=total_cpu,
            used_cpu=used_cpu,
            total_memory=total_memory,
            used_memory=used_memory,
            cpu_pct=round(used_cpu / total_cpu * 100.0, 1) if total_cpu > 0 else 0.0,
            memory_pct=round(used_memory / total_memory * 100.0, 1) if total_memory > 0 else 0.0,
            policy=self.cluster.policy,
        )

    def get_events(self, limit: Optional[int] = None) -> List[ClusterEvent]:
        return self.events.entries(limit)

    def clear_events(self) -> None:
        self.events.clear()

    # ── Private helpers ───────────────────────────────────────────────────────

    def _schedule(self, pod: Pod) -> Result:
        node = self.cluster.schedule_pod(pod)
        if node is None:
            self._record_unplaced(pod)
            return {
                "status": "PENDING",
                "error": ErrorKind.NO_ELIGIBLE_NODE.value,
                "pod_id": pod.pod_id,
                "node_id": None,
                "message": f'No suitable node found for pod "{pod.name}"',
            }

        self._record_placed(pod, node.name)
        return {
            "status": "SCHEDULED",
            "error": None,
            "pod_id": pod.pod_id,
            "node_id": node.node_id,
            "message": f'Pod "{pod.name}" placed on {node.name}',
        }

    def _record_placed(self, pod: Pod, node_name: str) -> None:
        self.events.record(
            EventKind.SCHEDULE,
            f'Pod "{pod.name}" scheduled to {node_name} '
            f"using {policy_display_name(self.cluster.policy)}",
        )

    def _record_unplaced(self, pod: Pod) -> None:
        self.events.record(
            EventKind.WARNING,
            f'No suitable node found for pod "{pod.name}". Added to waiting queue.',
        )

    @staticmethod
    def _rejected(error: ClusterOperationError, **ids: str) -> Result:
        result: Result = {
            "status": "REJECTED",
            "error": error.kind.value,
            "message": error.reason,
        }
        result.update(ids)
        return result
