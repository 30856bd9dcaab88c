"""Staking ledger facade.

Wires the pool registry, stake ledger and unstake pipeline around one
``LedgerContext`` and runs every mutating call under a single
non-reentrant lock.
"""
import functools
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Dict, Iterable, List, Optional
from loguru import logger

from .access import AccessControl
from .clock import Clock, SystemClock
from .config import LedgerConfig
from .context import LedgerContext
from .errors import ReentrancyError
from .events import EventKind, EventLog
from .models import (
    BatchResult,
    ExcessPolicy,
    Pool,
    RequestView,
    SettlementResult,
    StakeRecord,
    StakeView,
    UnstakeRequest,
)
from .queries import LedgerQueries
from .registry import PoolRegistry
from .stakes import StakeLedger
from .transfer import InMemoryTransfer, ValueTransfer
from .unstake import UnstakePipeline


def mutating(method):
    """Run ``method`` as the only mutating call in flight on this ledger."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._exclusive(method.__name__):
            return method(self, *args, **kwargs)
    return wrapper


def _plain(value):
    return value.value if isinstance(value, Enum) else value


class StakingLedger:
    """Entry point for depositors, managers and the owner.

    Every mutating method takes the calling principal as its first argument.
    The principal that creates the ledger becomes its owner and, separately,
    its first manager.
    """

    def __init__(
        self,
        owner: str,
        config: Optional[LedgerConfig] = None,
        clock: Optional[Clock] = None,
        transfer: Optional[ValueTransfer] = None,
        events: Optional[EventLog] = None,
        managers: Optional[Iterable[str]] = None,
        pools: Optional[List[Pool]] = None,
        total_staked: Optional[Dict[int, int]] = None,
        stakes: Optional[Dict[str, List[StakeRecord]]] = None,
        requests: Optional[Dict[int, List[UnstakeRequest]]] = None,
    ):
        self.ctx = LedgerContext(
            config=config or LedgerConfig(),
            access=AccessControl(owner, managers),
            clock=clock or SystemClock(),
            transfer=transfer if transfer is not None else InMemoryTransfer(),
            events=events or EventLog(),
        )
        self.registry = PoolRegistry(self.ctx, pools, total_staked)
        self.stakes = StakeLedger(self.ctx, self.registry, stakes)
        self.pipeline = UnstakePipeline(self.ctx, self.registry, self.stakes, requests)
        self.queries = LedgerQueries(self.registry, self.stakes, self.pipeline)

        self._lock = threading.RLock()
        self._active_call: Optional[str] = None

    @contextmanager
    def _exclusive(self, name: str):
        # RLock: other threads wait, the owning thread gets straight back in
        # and is turned away below.
        with self._lock:
            if self._active_call is not None:
                logger.warning(f"Rejected re-entrant {name} during {self._active_call}")
                raise ReentrancyError(f"{name} called while {self._active_call} is executing")
            self._active_call = name
            try:
                yield
            finally:
                self._active_call = None

    @property
    def config(self) -> LedgerConfig:
        return self.ctx.config

    @property
    def access(self) -> AccessControl:
        return self.ctx.access

    @property
    def events(self) -> EventLog:
        return self.ctx.events

    @property
    def transfer(self) -> ValueTransfer:
        return self.ctx.transfer

    @property
    def clock(self) -> Clock:
        return self.ctx.clock

    # Pools

    @mutating
    def create_pool(self, caller: str, is_native: bool, asset: Optional[str] = None,
                    apr: int = 0, lock_duration: int = 0) -> int:
        return self.registry.create_pool(caller, is_native, asset, apr, lock_duration)

    @mutating
    def set_pool_active(self, caller: str, pool_id: int, is_active: bool) -> None:
        self.registry.set_pool_active(caller, pool_id, is_active)

    def get_pool(self, pool_id: int) -> Pool:
        return self.registry.get(pool_id).model_copy()

    def pool_count(self) -> int:
        return self.registry.count()

    def total_staked(self, pool_id: int) -> int:
        return self.registry.total_staked(pool_id)

    # Stakes

    @mutating
    def stake(self, caller: str, pool_id: int, amount: int, attached_value: int = 0) -> int:
        return self.stakes.stake(caller, pool_id, amount, attached_value)

    def get_stake(self, owner: str, stake_index: int) -> StakeRecord:
        return self.stakes.get(owner, stake_index).model_copy()

    def reward_of(self, owner: str, stake_index: int) -> int:
        return self.stakes.reward_of(owner, stake_index)

    def stake_count(self, owner: str) -> int:
        return self.stakes.stake_count(owner)

    # Unstaking

    @mutating
    def request_unstake(self, caller: str, stake_index: int) -> int:
        return self.pipeline.request_unstake(caller, stake_index)

    @mutating
    def complete_unstake(self, caller: str, pool_id: int, request_id: int,
                         attached_value: int = 0) -> SettlementResult:
        return self.pipeline.complete_unstake(caller, pool_id, request_id, attached_value)

    @mutating
    def batch_complete_unstake(self, caller: str, pool_id: int, request_ids: List[int],
                               attached_value: int = 0) -> BatchResult:
        return self.pipeline.batch_complete_unstake(caller, pool_id, list(request_ids), attached_value)

    def quote_batch(self, pool_id: int, request_ids: Iterable[int]) -> int:
        return self.pipeline.quote_batch(pool_id, request_ids)

    def get_request(self, pool_id: int, request_id: int) -> RequestView:
        request = self.pipeline.get_request(pool_id, request_id)
        return RequestView(request=request.model_copy(), status=self.pipeline.status_of(request))

    def request_count(self, pool_id: int) -> int:
        return self.pipeline.request_count(pool_id)

    # Roles and config

    @mutating
    def set_manager(self, caller: str, principal: str, is_manager: bool) -> None:
        self.access.require_owner(caller)
        self.access.set_manager(principal, is_manager)
        self.events.emit(
            EventKind.MANAGER_UPDATED, self.clock.now(),
            principal=principal, is_manager=is_manager,
        )

    def is_manager(self, principal: str) -> bool:
        return self.access.is_manager(principal)

    @mutating
    def set_minimum_stake_amount(self, caller: str, amount: int) -> None:
        self._update_config(caller, "minimum_stake_amount", amount)

    @mutating
    def set_minimum_stake_duration(self, caller: str, duration: int) -> None:
        self._update_config(caller, "minimum_stake_duration", duration)

    @mutating
    def set_treasury(self, caller: str, treasury: str) -> None:
        self._update_config(caller, "treasury", treasury)

    @mutating
    def set_excess_policy(self, caller: str, policy: ExcessPolicy) -> None:
        self._update_config(caller, "excess_policy", policy)

    def _update_config(self, caller: str, field: str, value) -> None:
        self.access.require_manager(caller)
        old = self.config.update(field, value)
        new = getattr(self.config, field)
        self.events.emit(
            EventKind.CONFIG_UPDATED, self.clock.now(),
            field=field, old=_plain(old), new=_plain(new), updated_by=caller,
        )

    # Queries

    def get_all_pools(self, offset: int = 0, limit: int = 10) -> List[Pool]:
        return self.queries.get_all_pools(offset, limit)

    def get_active_pools(self, offset: int = 0, limit: int = 10) -> List[Pool]:
        return self.queries.get_active_pools(offset, limit)

    def get_user_stakes(self, owner: str, offset: int = 0, limit: int = 10) -> List[StakeView]:
        return self.queries.get_user_stakes(owner, offset, limit)

    def get_unstake_requests(self, pool_id: int, offset: int = 0,
                             limit: int = 10) -> List[RequestView]:
        return self.queries.get_unstake_requests(pool_id, offset, limit)
