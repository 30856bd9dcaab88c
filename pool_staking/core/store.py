"""JSON persistence of a ledger and its in-memory balances."""
import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Union
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from .clock import Clock
from .config import LedgerConfig, get_ledger_home
from .errors import InvalidConfigError
from .events import EventLog, Notification
from .ledger import StakingLedger
from .models import Pool, StakeRecord, UnstakeRequest
from .transfer import InMemoryTransfer


class LedgerSnapshot(BaseModel):
    """Everything needed to rebuild a ledger backed by ``InMemoryTransfer``."""
    owner: str
    managers: List[str]
    config: LedgerConfig
    pools: List[Pool] = Field(default_factory=list)
    total_staked: Dict[int, int] = Field(default_factory=dict)
    stakes: Dict[str, List[StakeRecord]] = Field(default_factory=dict)
    requests: Dict[int, List[UnstakeRequest]] = Field(default_factory=dict)
    events: List[Notification] = Field(default_factory=list)
    balances: Dict[str, Dict[str, int]] = Field(default_factory=dict)


def snapshot_ledger(ledger: StakingLedger) -> LedgerSnapshot:
    transfer = ledger.transfer
    balances = transfer.snapshot() if isinstance(transfer, InMemoryTransfer) else {}
    return LedgerSnapshot(
        owner=ledger.access.owner,
        managers=ledger.access.list_managers(),
        config=ledger.config.model_copy(),
        pools=[p.model_copy() for p in ledger.registry.pools],
        total_staked=ledger.registry.totals(),
        stakes={o: [r.model_copy() for r in rs] for o, rs in ledger.stakes.stakes.items()},
        requests={p: [r.model_copy() for r in q] for p, q in ledger.pipeline.requests.items()},
        events=list(ledger.events.history),
        balances=balances,
    )


def restore_ledger(snapshot: LedgerSnapshot, clock: Optional[Clock] = None) -> StakingLedger:
    return StakingLedger(
        owner=snapshot.owner,
        config=snapshot.config,
        clock=clock,
        transfer=InMemoryTransfer(snapshot.balances),
        events=EventLog(snapshot.events),
        managers=snapshot.managers,
        pools=snapshot.pools,
        total_staked=snapshot.total_staked,
        stakes=snapshot.stakes,
        requests=snapshot.requests,
    )


class LedgerStore:
    """Ledger state kept in a single JSON file."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else get_ledger_home() / "ledger.json"

    def exists(self) -> bool:
        return self.path.exists()

    def load(self, clock: Optional[Clock] = None) -> StakingLedger:
        try:
            with open(self.path) as f:
                snapshot = LedgerSnapshot(**json.load(f))
        except FileNotFoundError as e:
            raise InvalidConfigError(f"No ledger at {self.path}; run 'init' first") from e
        except (json.JSONDecodeError, ValidationError) as e:
            raise InvalidConfigError(f"Corrupted ledger file {self.path}: {e}") from e
        logger.debug(f"Loaded ledger from {self.path}")
        return restore_ledger(snapshot, clock)

    def save(self, ledger: StakingLedger) -> None:
        os.makedirs(self.path.parent, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with open(tmp_path, 'w') as f:
            f.write(snapshot_ledger(ledger).model_dump_json(indent=2))
        os.replace(tmp_path, self.path)
        logger.debug(f"Saved ledger to {self.path}")
