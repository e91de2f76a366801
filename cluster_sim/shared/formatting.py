"""
cluster_sim/shared/formatting.py
────────────────────────────────
Small text helpers shared by event messages and stats summaries.
"""

from __future__ import annotations

from typing import Union

from cluster_sim.shared.models import SchedulingPolicy

_POLICY_NAMES = {
    SchedulingPolicy.SPREAD: "Spread (Balanced)",
    SchedulingPolicy.BINPACK: "Bin Packing (Efficient)",
    SchedulingPolicy.RANDOM: "Random",
}


def format_memory(mb: int) -> str:
    """'512 MB' below 1 GiB, otherwise GB with one decimal ('1.5 GB')."""
    if mb >= 1024:
        return f"{mb / 1024:.1f} GB"
    return f"{mb} MB"


def policy_display_name(policy: Union[SchedulingPolicy, str]) -> str:
    """Human label for a policy. Unknown strings are returned unchanged."""
    try:
        return _POLICY_NAMES[SchedulingPolicy(policy)]
    except ValueError:
        return str(policy)
