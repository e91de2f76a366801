"""
cluster_sim/telemetry/event_log.py
──────────────────────────────────
EventLog: a bounded, newest-first history of what happened to the cluster.

What this is
─────────────
The control plane logs through `logging` for operators. The EventLog is the
same story told to the *user*: one short sentence per pod creation,
placement, move, node addition, policy change or warning, ready to be shown
in an activity feed.

Only the last EVENT_LOG_SIZE entries are kept; older ones fall off the end.

Integration contract
─────────────────────
    log = EventLog(max_entries=15)
    log.record(EventKind.SCHEDULE, 'Pod "web" scheduled to Worker-1 ...')
    log.entries(limit=5)   # newest first
"""

from __future__ import annotations

from collections import deque
from datetime import datetime
from enum import Enum
from typing import Deque, List, Optional

from pydantic import BaseModel, Field

from cluster_sim.shared.models import utcnow


class EventKind(str, Enum):
    INFO = "info"
    CREATE = "create"
    SCHEDULE = "schedule"
    WARNING = "warning"
    NODE = "node"
    MOVE = "move"


class ClusterEvent(BaseModel):
    kind: EventKind
    message: str
    timestamp: datetime = Field(default_factory=utcnow)


class EventLog:
    """
    Ring buffer of ClusterEvents.

    Not thread-safe; owned by a single OrchestratorService.
    """

    def __init__(self, max_entries: int = 15) -> None:
        self._entries: Deque[ClusterEvent] = deque(maxlen=max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def max_entries(self) -> int:
        return self._entries.maxlen or 0

    def record(self, kind: EventKind, message: str) -> ClusterEvent:
        event = ClusterEvent(kind=kind, message=message)
        self._entries.appendleft(event)
        return event

    def entries(self, limit: Optional[int] = None) -> List[ClusterEvent]:
        """Newest first, at most `limit` entries (all when None)."""
        events = list(self._entries)
        return events if limit is None else events[:limit]

    def clear(self) -> None:
        self._entries.clear()
