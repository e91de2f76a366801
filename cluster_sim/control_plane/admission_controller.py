"""
cluster_sim/control_plane/admission_controller.py
─────────────────────────────────────────────────
Admission control: turn raw caller input into validated requests.

The admission controller is the first gate in the pipeline. It runs BEFORE
the cluster touches any state, so a rejected request leaves nothing behind.

What it checks
───────────────
  1. Pod requests: cpu_request > 0 and memory_request > 0 (whole MB).
     A blank or whitespace-only name is normalised to None so the cluster
     assigns its sequential 'pod-<n>' name.

  2. Node specs: cpu > 0 and memory > 0.

Pydantic does the field-level work; ValidationError is translated into
AdmissionRejectedError so callers only ever catch control-plane errors.

What it does NOT check
───────────────────────
  • Queue capacity: that's PodQueue's job.
  • Whether any node can fit the pod: that's the scheduler's job.
  • Node ceiling: that's Cluster.add_node()'s job.
"""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from cluster_sim.shared.models import (
    ClusterOperationError,
    ErrorKind,
    NodeSpec,
    PodRequest,
)


class AdmissionRejectedError(ClusterOperationError):
    """Raised when a pod request or node spec fails validation."""

    kind = ErrorKind.INVALID_REQUEST


def admit_pod(
    name: Optional[str],
    cpu_request: float,
    memory_request: int,
) -> PodRequest:
    """
    Validate a pod request.

    Returns:
        PodRequest with name=None when the caller gave no usable name.

    Raises:
        AdmissionRejectedError: with a descriptive reason string.
    """
    try:
        request = PodRequest(
            name=name,
            cpu_request=cpu_request,
            memory_request=memory_request,
        )
    except ValidationError as e:
        raise AdmissionRejectedError(
            f"Pod request rejected (cpu={cpu_request!r}, memory={memory_request!r}): "
            f"{_first_error(e)}"
        ) from e

    if request.name is not None and not request.name.strip():
        request.name = None
    return request


def admit_node(name: Optional[str], cpu: float, memory: int) -> NodeSpec:
    """
    Validate a node spec.

    Raises:
        AdmissionRejectedError: if either capacity is not positive.
    """
    try:
        return NodeSpec(name=name, cpu=cpu, memory=memory)
    except ValidationError as e:
        raise AdmissionRejectedError(
            f"Node spec rejected (cpu={cpu!r}, memory={memory!r}): {_first_error(e)}"
        ) from e


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    return f"{field}: {first['msg']}"
