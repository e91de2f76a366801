"""
cluster_sim/control_plane/cluster.py
────────────────────────────────────
Cluster: nodes, pods, the pending queue and the active policy.

Ownership model
────────────────
  _pods         : Dict[pod_id, Pod]  — the one table holding every pod,
                                       pending or running.
  node.pod_ids  : List[pod_id]       — back-references, per node.
  _running_ids  : List[pod_id]       — running pods in placement order.
  _queue        : PodQueue           — pending pod ids, FIFO.

Two invariants hold after every public method returns:

  1. The set of RUNNING pods == the union of every node's pod_ids
     == set(_running_ids).
  2. For every node and dimension: sum of hosted pods' requests == pool usage,
     and usage never exceeds capacity.

check_invariants() verifies both and raises InvariantViolationError.

Mutation rules
───────────────
Every mutating method validates first and commits last, so a rejected call
(QueueFullError, InsufficientResourcesError, ...) leaves no partial state.
The class is not thread-safe; OrchestratorService is the only caller and runs
one operation at a time.
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Optional, Tuple

import numpy as np

from cluster_sim.shared.models import (
    ClusterOperationError,
    ErrorKind,
    InvariantViolationError,
    Node,
    Pod,
    PodStatus,
    ResourcePool,
    SchedulingPolicy,
    utcnow,
)
from cluster_sim.control_plane.admission_controller import admit_node, admit_pod
from cluster_sim.control_plane.pod_queue import PodQueue, QueueFullError
from cluster_sim.control_plane.scheduler import select_node

logger = logging.getLogger(__name__)

# CPU sums are compared with this tolerance in check_invariants(); float
# add/subtract cycles leave residue in the last bits.
_CPU_EPSILON: float = 1e-6


class NodeLimitReachedError(ClusterOperationError):
    """Raised by add_node() when the cluster is at its node ceiling."""

    kind = ErrorKind.NODE_LIMIT_REACHED


class PodNotFoundError(ClusterOperationError):
    """Raised when a pod id is unknown or not in the state the call needs."""

    kind = ErrorKind.POD_NOT_FOUND


class NodeNotFoundError(ClusterOperationError):
    """Raised when a move targets a node id the cluster doesn't have."""

    kind = ErrorKind.NODE_NOT_FOUND


class PodAlreadyKnownError(ClusterOperationError):
    """Raised by enqueue() for a pod that is registered already or not PENDING."""

    kind = ErrorKind.INVALID_REQUEST


class InsufficientResourcesError(ClusterOperationError):
    """Raised when a move target cannot fit the pod. Nothing is changed."""

    kind = ErrorKind.INSUFFICIENT_RESOURCES


class Cluster:
    """
    Owns every node and pod of one simulation session.

    Args:
        max_nodes:      Node ceiling enforced by add_node().
        queue_capacity: Capacity of the pending queue.
        policy:         Initial SchedulingPolicy.
        rng:            numpy Generator for the RANDOM policy. Inject a seeded
                        one for reproducible placements.
    """

    def __init__(
        self,
        max_nodes: int = 6,
        queue_capacity: int = 10,
        policy: SchedulingPolicy = SchedulingPolicy.SPREAD,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.max_nodes = max_nodes
        self.policy = policy
        self.rng = rng if rng is not None else np.random.default_rng()

        self.nodes: List[Node] = []
        self._pods: Dict[str, Pod] = {}
        self._running_ids: List[str] = []
        self._queue = PodQueue(queue_capacity)

        # Sequential counters; they survive reset() so names stay unique.
        self._pod_counter = 1
        self._node_counter = 1

    # ── Lookups ────────────────────────────────────────────────────────────────

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        return None

    def get_pod(self, pod_id: str) -> Optional[Pod]:
        return self._pods.get(pod_id)

    def find_hosting_node(self, pod_id: str) -> Optional[Node]:
        """Scan every node's pod list for the pod. None if it is not placed."""
        for node in self.nodes:
            if node.hosts(pod_id):
                return node
        return None

    @property
    def queue(self) -> PodQueue:
        return self._queue

    def queued_pods(self) -> List[Pod]:
        return [self._pods[pod_id] for pod_id in self._queue]

    def running_pods(self) -> List[Pod]:
        return [self._pods[pod_id] for pod_id in self._running_ids]

    def peek_next_node_number(self) -> int:
        """Number the next add_node() will use in its 'node-<n>' id."""
        return self._node_counter

    def take_pod_number(self) -> int:
        """Consume the pod counter. Shared by auto names and quick-create names."""
        number = self._pod_counter
        self._pod_counter += 1
        return number

    def next_pod_name(self) -> str:
        return f"pod-{self.take_pod_number()}"

    def _new_pod_id(self) -> str:
        """Short 'pod-<8 hex>' id, redrawn until it is unused."""
        while True:
            pod_id = f"pod-{uuid.uuid4().hex[:8]}"
            if pod_id not in self._pods:
                return pod_id

    # ── Nodes ─────────────────────────────────────────────────────────────────

    def add_node(self, name: Optional[str], cpu: float, memory: int) -> Node:
        """
        Append a node with zero usage.

        Args:
            name:   Display name. None → 'Worker-<n>' where n matches the id.
            cpu:    Total CPU cores (> 0).
            memory: Total memory in MB (> 0).

        Raises:
            NodeLimitReachedError:  node count already at max_nodes.
            AdmissionRejectedError: non-positive capacity.
        """
        if len(self.nodes) >= self.max_nodes:
            raise NodeLimitReachedError(
                f"Maximum {self.max_nodes} nodes allowed"
            )
        spec = admit_node(name, cpu, memory)

        number = self._node_counter
        self._node_counter += 1
        node = Node(
            node_id=f"node-{number}",
            name=spec.name or f"Worker-{number}",
            pool=ResourcePool(total_cpu=spec.cpu, total_memory=spec.memory),
        )
        self.nodes.append(node)
        logger.info(
            "Node added: %s (%s) cpu=%.1f mem=%dMB",
            node.node_id, node.name, spec.cpu, spec.memory,
        )
        return node

    # ── Pod lifecycle ──────────────────────────────────────────────────────────

    def create_pod(
        self,
        name: Optional[str],
        cpu_request: float,
        memory_request: int,
    ) -> Pod:
        """
        Validate, build a PENDING pod and enqueue it.

        The queue check happens before the pod is registered, so a
        QueueFullError leaves the pod table untouched. The auto-generated
        name counter is only consumed once the pod is accepted.

        Raises:
            AdmissionRejectedError: non-positive cpu or memory request.
            QueueFullError:         queue already at capacity.
        """
        request = admit_pod(name, cpu_request, memory_request)
        if self._queue.is_full:
            raise QueueFullError(
                f"Queue full ({self._queue.capacity} pods). "
                f"Schedule existing pods before creating more."
            )

        pod = Pod(
            pod_id=self._new_pod_id(),
            name=request.name or self.next_pod_name(),
            cpu_request=request.cpu_request,
            memory_request=request.memory_request,
        )
        self.enqueue(pod)
        logger.info(
            "Pod %s (%s) created cpu=%.2f mem=%dMB",
            pod.pod_id, pod.name, pod.cpu_request, pod.memory_request,
        )
        return pod

    def enqueue(self, pod: Pod) -> None:
        """
        Register a new pending pod and append it to the queue.

        Raises:
            PodAlreadyKnownError: pod_id is already registered or queued, or
                                  the pod is not PENDING.
            QueueFullError:       queue already at capacity.
        """
        if pod.pod_id in self._pods or pod.pod_id in self._queue:
            raise PodAlreadyKnownError(f"Pod {pod.pod_id} is already registered")
        if pod.status != PodStatus.PENDING:
            raise PodAlreadyKnownError(
                f"Pod {pod.pod_id} is {pod.status.value}; only new pending pods can be queued"
            )
        self._queue.enqueue(pod.pod_id)
        self._pods[pod.pod_id] = pod

    def schedule_pod(self, pod: Pod) -> Optional[Node]:
        """
        Try to place a pod with the active policy.

        Returns:
            The node the pod now runs on, or None when no node fits
            (the pod stays queued). A pod that is already RUNNING is left
            alone and its current node is returned.

        Raises:
            PodNotFoundError: the pod isn't registered with this cluster.
        """
        if self._pods.get(pod.pod_id) is not pod:
            raise PodNotFoundError(f"Pod {pod.pod_id} is not known to this cluster")

        if pod.status == PodStatus.RUNNING:
            return self.get_node(pod.node_id) if pod.node_id else None

        node = select_node(self.policy, self.nodes, pod, rng=self.rng)
        if node is None:
            return None

        self.place_pod(pod, node)
        self._queue.remove(pod.pod_id)
        return node

    def place_pod(self, pod: Pod, node: Node) -> None:
        """
        Commit a placement: reserve, mark RUNNING, link both collections.

        The caller (schedule_pod) has already established that node fits pod.
        """
        node.pool.reserve(pod.cpu_request, pod.memory_request)
        pod.status = PodStatus.RUNNING
        pod.node_id = node.node_id
        pod.scheduled_at = utcnow()
        node.pod_ids.append(pod.pod_id)
        self._running_ids.append(pod.pod_id)
        self._pods[pod.pod_id] = pod

        logger.info(
            "Pod %s (%s) scheduled → %s using %s",
            pod.pod_id, pod.name, node.name, self.policy.value,
        )
        logger.debug(
            "Reserved: node=%s cpu=%.2f/%.2f mem=%d/%dMB",
            node.node_id, node.pool.used_cpu, node.pool.total_cpu,
            node.pool.used_memory, node.pool.total_memory,
        )

    def drain_queue(self) -> List[Tuple[Pod, Optional[Node]]]:
        """
        Retry every queued pod once, in FIFO order.

        Returns:
            One (pod, node-or-None) pair per pod that was queued when the
            call started.
        """
        results: List[Tuple[Pod, Optional[Node]]] = []
        for pod in self.queued_pods():
            results.append((pod, self.schedule_pod(pod)))
        return results

    def move_pod(self, pod_id: str, target_node_id: str) -> Tuple[Node, Node]:
        """
        Move a running pod to another node.

        The fit check is against the target's current usage; the pod is still
        counted on the source at that point, which only matters when
        source == target, and that case is a no-op.

        Returns:
            (source, target). Equal when the pod was already on the target.

        Raises:
            PodNotFoundError:           no node hosts pod_id.
            NodeNotFoundError:          target_node_id is unknown.
            InsufficientResourcesError: target can't fit the pod.
        """
        source = self.find_hosting_node(pod_id)
        if source is None:
            raise PodNotFoundError(f"Pod {pod_id} is not running on any node")

        target = self.get_node(target_node_id)
        if target is None:
            raise NodeNotFoundError(f"Node {target_node_id} does not exist")

        if source is target:
            return source, target

        pod = self._pods.get(pod_id)
        if pod is None:
            raise InvariantViolationError(
                f"Node {source.node_id} hosts pod {pod_id} missing from the pod table"
            )

        if not target.can_fit(pod):
            raise InsufficientResourcesError(
                f"Cannot move pod to {target.name}: Insufficient resources "
                f"(needs cpu={pod.cpu_request}, mem={pod.memory_request}MB; "
                f"free cpu={target.pool.available_cpu:.2f}, "
                f"mem={target.pool.available_memory}MB)"
            )

        source.pool.release(pod.cpu_request, pod.memory_request)
        source.pod_ids.remove(pod_id)
        target.pool.reserve(pod.cpu_request, pod.memory_request)
        target.pod_ids.append(pod_id)
        pod.node_id = target.node_id

        logger.info(
            "Pod %s (%s) moved %s → %s", pod_id, pod.name, source.name, target.name,
        )
        logger.debug(
            "Released: node=%s cpu=%.2f/%.2f mem=%d/%dMB",
            source.node_id, source.pool.used_cpu, source.pool.total_cpu,
            source.pool.used_memory, source.pool.total_memory,
        )
        return source, target

    # ── Cluster-wide ──────────────────────────────────────────────────────────

    def set_policy(self, policy: SchedulingPolicy) -> None:
        self.policy = SchedulingPolicy(policy)
        logger.info("Scheduling policy set to %s", self.policy.value)

    def reset(self) -> None:
        """
        Remove every pod and zero every node. Nodes themselves are kept.
        Idempotent.
        """
        for node in self.nodes:
            node.pool.clear()
            node.pod_ids.clear()
        self._running_ids.clear()
        self._pods.clear()
        self._queue.clear()
        logger.info("Cluster reset: %d nodes emptied", len(self.nodes))

    def check_invariants(self) -> None:
        """
        Verify the ownership and accounting invariants.

        Raises:
            InvariantViolationError: describing the first breach found.
        """
        hosted: List[str] = [pid for node in self.nodes for pid in node.pod_ids]
        if len(hosted) != len(set(hosted)):
            raise InvariantViolationError("a pod is listed on more than one node")

        running = {pid for pid, pod in self._pods.items() if pod.status == PodStatus.RUNNING}
        if set(hosted) != running or set(self._running_ids) != running:
            raise InvariantViolationError(
                f"running pods {sorted(running)} != hosted pods {sorted(hosted)}"
            )

        for pod_id in self._queue:
            pod = self._pods.get(pod_id)
            if pod is None or pod.status != PodStatus.PENDING:
                raise InvariantViolationError(f"queued pod {pod_id} is not a pending pod")

        for node in self.nodes:
            pool = node.pool
            pods = [self._pods[pid] for pid in node.pod_ids]
            cpu_sum = sum(p.cpu_request for p in pods)
            mem_sum = sum(p.memory_request for p in pods)
            if abs(cpu_sum - pool.used_cpu) > _CPU_EPSILON or mem_sum != pool.used_memory:
                raise InvariantViolationError(
                    f"node {node.node_id} usage (cpu={pool.used_cpu}, mem={pool.used_memory}) "
                    f"!= hosted requests (cpu={cpu_sum}, mem={mem_sum})"
                )
            if pool.used_cpu > pool.total_cpu + _CPU_EPSILON or pool.used_memory > pool.total_memory:
                raise InvariantViolationError(f"node {node.node_id} is over capacity")
            for pod in pods:
                if pod.node_id != node.node_id:
                    raise InvariantViolationError(
                        f"pod {pod.pod_id} says node {pod.node_id} but is hosted on {node.node_id}"
                    )
