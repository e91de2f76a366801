"""
cluster_sim/telemetry — user-facing activity history.

Public API:
    EventLog      — bounded newest-first history of cluster events
    ClusterEvent  — one entry (kind, message, timestamp)
    EventKind     — info / create / schedule / warning / node / move
"""

from cluster_sim.telemetry.event_log import ClusterEvent, EventKind, EventLog

__all__ = ["ClusterEvent", "EventKind", "EventLog"]
