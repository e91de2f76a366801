"""
cluster_sim/control_plane/pod_queue.py
──────────────────────────────────────
PodQueue: the bounded FIFO of pending pods.

The queue stores pod *ids*; the Pod objects live in the Cluster's pod table.
Order is arrival order and is what drain_queue() walks.
"""

from __future__ import annotations

from typing import Iterator, List

from cluster_sim.shared.models import ClusterOperationError, ErrorKind


class QueueFullError(ClusterOperationError):
    """Raised when a pod is enqueued while the queue is at capacity."""

    kind = ErrorKind.QUEUE_FULL


class PodQueue:
    """
    Bounded ordered holding area for pending pods.

    Attributes:
        capacity: maximum number of ids held at once.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"queue capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._pod_ids: List[str] = []

    def __len__(self) -> int:
        return len(self._pod_ids)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._pod_ids))

    def __contains__(self, pod_id: object) -> bool:
        return pod_id in self._pod_ids

    @property
    def is_full(self) -> bool:
        return len(self._pod_ids) >= self.capacity

    def enqueue(self, pod_id: str) -> None:
        """
        Append a pod id.

        Raises:
            QueueFullError: if the queue already holds `capacity` ids.
        """
        if self.is_full:
            raise QueueFullError(
                f"Queue full ({self.capacity} pods). "
                f"Schedule existing pods before creating more."
            )
        self._pod_ids.append(pod_id)

    def remove(self, pod_id: str) -> bool:
        """Drop a pod id if present. Returns whether it was queued."""
        try:
            self._pod_ids.remove(pod_id)
        except ValueError:
            return False
        return True

    def snapshot(self) -> List[str]:
        return list(self._pod_ids)

    def clear(self) -> None:
        self._pod_ids.clear()
