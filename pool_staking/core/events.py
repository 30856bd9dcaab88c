"""Notifications emitted on every committed state transition."""
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from loguru import logger
from pydantic import BaseModel, Field


class EventKind(str, Enum):
    POOL_CREATED = "pool_created"
    POOL_STATUS_CHANGED = "pool_status_changed"
    STAKED = "staked"
    UNSTAKE_REQUESTED = "unstake_requested"
    UNSTAKE_COMPLETED = "unstake_completed"
    BATCH_COMPLETED = "batch_completed"
    CONFIG_UPDATED = "config_updated"
    MANAGER_UPDATED = "manager_updated"


class Notification(BaseModel):
    kind: EventKind
    timestamp: int
    data: Dict[str, Any] = Field(default_factory=dict)


Subscriber = Callable[[Notification], None]


class EventLog:
    """Ordered, append-only audit trail with optional subscribers."""

    def __init__(self, history: Optional[List[Notification]] = None):
        self.history: List[Notification] = list(history or [])
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def emit(self, kind: EventKind, timestamp: int, **data: Any) -> Notification:
        note = Notification(kind=kind, timestamp=timestamp, data=data)
        self.history.append(note)
        logger.info(f"{kind.value} @ {timestamp}: {data}")
        # The transition is already committed; a failing subscriber must not
        # surface as a failure of the operation that emitted it.
        for callback in self._subscribers:
            try:
                callback(note)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed on {kind.value}")
        return note

    def of_kind(self, kind: EventKind) -> List[Notification]:
        return [n for n in self.history if n.kind == kind]

    def __len__(self) -> int:
        return len(self.history)
