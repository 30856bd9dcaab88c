"""Staking ledger core."""
from .clock import ManualClock, SystemClock
from .config import LedgerConfig, configure_logging
from .errors import LedgerError
from .events import EventKind, EventLog, Notification
from .ledger import StakingLedger
from .models import (
    ExcessPolicy,
    Pool,
    StakeRecord,
    StakeStatus,
    UnstakeRequest,
)
from .store import LedgerStore
from .transfer import InMemoryTransfer

__all__ = [
    "EventKind",
    "EventLog",
    "ExcessPolicy",
    "InMemoryTransfer",
    "LedgerConfig",
    "LedgerError",
    "LedgerStore",
    "ManualClock",
    "Notification",
    "Pool",
    "StakeRecord",
    "StakeStatus",
    "StakingLedger",
    "SystemClock",
    "UnstakeRequest",
    "configure_logging",
]
