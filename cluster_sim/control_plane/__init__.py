"""
cluster_sim/control_plane — scheduling, accounting and the public façade.

Public API:
    OrchestratorService      — the façade a UI talks to
    Cluster                  — nodes, pod table, queue, active policy
    PodQueue                 — bounded FIFO of pending pod ids
    select_node()            — policy → strategy dispatch
    admit_pod() / admit_node() — request validation

Errors (all ClusterOperationError subclasses):
    AdmissionRejectedError, QueueFullError, NodeLimitReachedError,
    PodNotFoundError, PodAlreadyKnownError, NodeNotFoundError,
    InsufficientResourcesError
"""

from cluster_sim.control_plane.admission_controller import (
    AdmissionRejectedError,
    admit_node,
    admit_pod,
)
from cluster_sim.control_plane.pod_queue import PodQueue, QueueFullError
from cluster_sim.control_plane.scheduler import select_node
from cluster_sim.control_plane.cluster import (
    Cluster,
    InsufficientResourcesError,
    NodeLimitReachedError,
    NodeNotFoundError,
    PodAlreadyKnownError,
    PodNotFoundError,
)
from cluster_sim.control_plane.orchestration_service import OrchestratorService

__all__ = [
    "AdmissionRejectedError",
    "admit_node",
    "admit_pod",
    "PodQueue",
    "QueueFullError",
    "select_node",
    "Cluster",
    "InsufficientResourcesError",
    "NodeLimitReachedError",
    "NodeNotFoundError",
    "PodAlreadyKnownError",
    "PodNotFoundError",
    "OrchestratorService",
]
