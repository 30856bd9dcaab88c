"""Collaborators shared by every ledger component."""
from dataclasses import dataclass

from .access import AccessControl
from .clock import Clock
from .config import LedgerConfig
from .events import EventLog
from .transfer import ValueTransfer


@dataclass
class LedgerContext:
    """Explicitly owned configuration and collaborators of one ledger."""
    config: LedgerConfig
    access: AccessControl
    clock: Clock
    transfer: ValueTransfer
    events: EventLog

    def now(self) -> int:
        return self.clock.now()
