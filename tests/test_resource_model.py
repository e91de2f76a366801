"""
tests/test_resource_model.py
────────────────────────────
Test suite for cluster_sim/shared/models.py and admission control.

Test groups
────────────
Group 1: ResourcePool      — fit boundary, reserve/release, utilisation maths
Group 2: Node / Pod        — defaults and fit delegation
Group 3: Admission control — request validation and name normalisation
Group 4: Formatting        — memory and policy display helpers
"""

from __future__ import annotations

import pytest

from cluster_sim.control_plane.admission_controller import (
    AdmissionRejectedError,
    admit_node,
    admit_pod,
)
from cluster_sim.shared.formatting import format_memory, policy_display_name
from cluster_sim.shared.models import (
    ErrorKind,
    InvariantViolationError,
    Node,
    Pod,
    PodStatus,
    ResourceDimension,
    ResourcePool,
    SchedulingPolicy,
)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _make_pool(
    total_cpu: float = 4.0,
    total_memory: int = 8192,
    used_cpu: float = 0.0,
    used_memory: int = 0,
) -> ResourcePool:
    return ResourcePool(
        total_cpu=total_cpu,
        total_memory=total_memory,
        used_cpu=used_cpu,
        used_memory=used_memory,
    )


def _make_pod(cpu: float = 1.0, memory: int = 1024) -> Pod:
    return Pod(pod_id="pod-test", name="test", cpu_request=cpu, memory_request=memory)


# ─────────────────────────────────────────────────────────────────────────────
# Group 1 — ResourcePool
# ─────────────────────────────────────────────────────────────────────────────

class TestResourcePool:
    def test_exact_fit_is_accepted(self) -> None:
        """Free capacity equal to the request fits (inclusive boundary)."""
        pool = _make_pool(used_cpu=2.0, used_memory=4096)
        assert pool.can_fit(2.0, 4096)

    def test_cpu_over_by_a_little_is_rejected(self) -> None:
        pool = _make_pool(used_cpu=2.0, used_memory=4096)
        assert not pool.can_fit(2.01, 4096)

    def test_memory_over_by_one_mb_is_rejected(self) -> None:
        pool = _make_pool(used_cpu=2.0, used_memory=4096)
        assert not pool.can_fit(1.0, 4097)

    def test_reserve_then_release_restores_usage(self) -> None:
        pool = _make_pool()
        pool.reserve(1.5, 1024)
        assert pool.used_cpu == pytest.approx(1.5)
        assert pool.used_memory == 1024
        pool.release(1.5, 1024)
        assert pool.used_cpu == pytest.approx(0.0)
        assert pool.used_memory == 0

    def test_release_below_zero_raises(self) -> None:
        """Releasing more than is used signals corruption, not user error."""
        pool = _make_pool(used_cpu=1.0, used_memory=512)
        with pytest.raises(InvariantViolationError):
            pool.release(1.0, 1024)
        with pytest.raises(InvariantViolationError):
            pool.release(2.0, 512)

    def test_release_clamps_float_residue(self) -> None:
        """0.1 + 0.2 reserved and released as 0.3 ends at exactly zero."""
        pool = _make_pool()
        pool.reserve(0.1, 1)
        pool.reserve(0.2, 1)
        pool.release(0.3, 2)
        assert pool.used_cpu >= 0.0
        assert pool.used_cpu == pytest.approx(0.0)

    def test_used_fraction_per_dimension(self) -> None:
        pool = _make_pool(used_cpu=1.0, used_memory=4096)
        assert pool.used_fraction(ResourceDimension.CPU) == pytest.approx(0.25)
        assert pool.used_fraction(ResourceDimension.MEMORY) == pytest.approx(0.5)

    def test_zero_capacity_pool_reports_zero_fraction(self) -> None:
        """A degenerate node never divides by zero."""
        pool = _make_pool(total_cpu=0.0, total_memory=0)
        assert pool.used_fraction(ResourceDimension.CPU) == 0.0
        assert pool.used_fraction(ResourceDimension.MEMORY) == 0.0
        assert pool.average_utilisation_pct() == 0.0
        assert not pool.can_fit(0.1, 1)

    def test_average_utilisation_pct(self) -> None:
        pool = _make_pool(used_cpu=3.0, used_memory=6000)
        expected = (3.0 / 4.0 * 100 + 6000 / 8192 * 100) / 2
        assert pool.average_utilisation_pct() == pytest.approx(expected)

    def test_clear_zeroes_usage(self) -> None:
        pool = _make_pool(used_cpu=3.0, used_memory=6000)
        pool.clear()
        assert pool.used_cpu == 0.0
        assert pool.used_memory == 0


# ─────────────────────────────────────────────────────────────────────────────
# Group 2 — Node / Pod
# ─────────────────────────────────────────────────────────────────────────────

class TestNodeAndPod:
    def test_new_pod_is_pending_and_unplaced(self) -> None:
        pod = _make_pod()
        assert pod.status == PodStatus.PENDING
        assert pod.node_id is None
        assert pod.scheduled_at is None
        assert pod.created_at is not None

    def test_node_can_fit_delegates_to_pool(self) -> None:
        node = Node(node_id="node-1", name="Worker-1", pool=_make_pool(used_cpu=3.5))
        assert node.can_fit(_make_pod(cpu=0.5))
        assert not node.can_fit(_make_pod(cpu=0.6))

    def test_node_hosts(self) -> None:
        node = Node(node_id="node-1", name="Worker-1", pool=_make_pool(), pod_ids=["pod-a"])
        assert node.hosts("pod-a")
        assert not node.hosts("pod-b")


# ─────────────────────────────────────────────────────────────────────────────
# Group 3 — Admission control
# ─────────────────────────────────────────────────────────────────────────────

class TestAdmission:
    def test_valid_request_passes(self) -> None:
        request = admit_pod("web", 1.5, 1024)
        assert request.name == "web"
        assert request.cpu_request == 1.5
        assert request.memory_request == 1024

    @pytest.mark.parametrize("cpu,memory", [(0, 512), (-1.0, 512), (1.0, 0), (1.0, -64)])
    def test_non_positive_request_rejected(self, cpu: float, memory: int) -> None:
        with pytest.raises(AdmissionRejectedError) as exc_info:
            admit_pod("bad", cpu, memory)
        assert exc_info.value.kind == ErrorKind.INVALID_REQUEST

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_blank_name_normalised_to_none(self, name) -> None:
        assert admit_pod(name, 1.0, 128).name is None

    def test_node_spec_requires_positive_capacity(self) -> None:
        assert admit_node("big", 8, 16384).cpu == 8.0
        with pytest.raises(AdmissionRejectedError):
            admit_node("broken", 0, 1024)
        with pytest.raises(AdmissionRejectedError):
            admit_node("broken", 2, 0)


# ─────────────────────────────────────────────────────────────────────────────
# Group 4 — Formatting
# ─────────────────────────────────────────────────────────────────────────────

class TestFormatting:
    def test_format_memory(self) -> None:
        assert format_memory(512) == "512 MB"
        assert format_memory(1024) == "1.0 GB"
        assert format_memory(1536) == "1.5 GB"

    def test_policy_display_names(self) -> None:
        assert policy_display_name(SchedulingPolicy.SPREAD) == "Spread (Balanced)"
        assert policy_display_name("binpack") == "Bin Packing (Efficient)"
        assert policy_display_name(SchedulingPolicy.RANDOM) == "Random"
        assert policy_display_name("mystery") == "mystery"
