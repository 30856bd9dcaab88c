"""Unstake pipeline: withdrawal requests and their settlement.

A stake moves STAKED -> PENDING when its owner requests a withdrawal and
PENDING -> COMPLETED when a manager settles the request. The request keeps
no status of its own; it points at the stake record, which is the single
place the settlement state lives.
"""
from typing import Dict, Iterable, List, Optional, Set, Tuple
from loguru import logger

from .context import LedgerContext
from .errors import (
    EmptyBatchError,
    InsufficientFundsError,
    InsufficientValueError,
    InvalidStateError,
    LedgerCorruptionError,
    LockPeriodActiveError,
    RequestNotFoundError,
    StakeNotFoundError,
    ValueMismatchError,
)
from .events import EventKind
from .models import (
    BatchResult,
    ExcessPolicy,
    Pool,
    SettlementResult,
    StakeRecord,
    StakeStatus,
    UnstakeRequest,
)
from .registry import PoolRegistry
from .stakes import StakeLedger

Entry = Tuple[UnstakeRequest, StakeRecord]


class UnstakePipeline:
    """Per-pool queues of unstake requests, indexed by request id."""

    def __init__(self, ctx: LedgerContext, registry: PoolRegistry, stakes: StakeLedger,
                 requests: Optional[Dict[int, List[UnstakeRequest]]] = None):
        self.ctx = ctx
        self.registry = registry
        self.stakes = stakes
        self.requests: Dict[int, List[UnstakeRequest]] = {
            pool_id: list(queue) for pool_id, queue in (requests or {}).items()
        }

    # Requests

    def request_unstake(self, caller: str, stake_index: int) -> int:
        """Freeze the reward of one of the caller's stakes and queue its payout.

        Returns:
            The request id within the stake's pool
        """
        record = self.stakes.get(caller, stake_index)
        if record.status != StakeStatus.STAKED:
            raise InvalidStateError(
                f"Stake {caller}#{stake_index} is {record.status.value}, expected staked"
            )

        now = self.ctx.now()
        unlock_at = record.start_time + record.lock_duration + self.ctx.config.minimum_stake_duration
        if now < unlock_at:
            raise LockPeriodActiveError(
                f"Stake {caller}#{stake_index} is locked until {unlock_at} (now {now})"
            )

        reward = self.stakes.reward_of(caller, stake_index)
        queue = self.requests.setdefault(record.pool_id, [])
        request = UnstakeRequest(
            pool_id=record.pool_id,
            request_id=len(queue),
            user=caller,
            stake_index=stake_index,
            amount=record.staked_amount,
            reward=reward,
            timestamp=now,
        )

        self.registry.remove_staked(record.pool_id, record.staked_amount)
        record.advance(StakeStatus.STAKED)
        record.rewards_earned = reward
        record.request_id = request.request_id
        queue.append(request)

        self.ctx.events.emit(
            EventKind.UNSTAKE_REQUESTED, now,
            user=caller, pool_id=record.pool_id, stake_index=stake_index,
            request_id=request.request_id, amount=request.amount, reward=reward,
        )
        return request.request_id

    def get_request(self, pool_id: int, request_id: int) -> UnstakeRequest:
        self.registry.get(pool_id)
        queue = self.requests.get(pool_id, [])
        if not 0 <= request_id < len(queue):
            raise RequestNotFoundError(f"Pool {pool_id} has no request #{request_id}")
        return queue[request_id]

    def queue(self, pool_id: int) -> List[UnstakeRequest]:
        self.registry.get(pool_id)
        return self.requests.get(pool_id, [])

    def request_count(self, pool_id: int) -> int:
        return len(self.queue(pool_id))

    def status_of(self, request: UnstakeRequest) -> StakeStatus:
        return self._linked_stake(request).status

    def _linked_stake(self, request: UnstakeRequest) -> StakeRecord:
        try:
            stake = self.stakes.get(request.user, request.stake_index)
        except StakeNotFoundError as e:
            raise LedgerCorruptionError(str(e)) from e
        if (stake.pool_id != request.pool_id
                or stake.request_id != request.request_id
                or stake.status == StakeStatus.STAKED):
            raise LedgerCorruptionError(
                f"Request {request.pool_id}/{request.request_id} does not match "
                f"stake {request.user}#{request.stake_index}"
            )
        return stake

    # Settlement

    def complete_unstake(self, caller: str, pool_id: int, request_id: int,
                         attached_value: int = 0) -> SettlementResult:
        """Pay principal plus frozen reward back to the requester.

        For native pools the manager attaches at least the total; what is
        attached beyond it is handled by the configured excess policy. For
        asset pools the tokens come out of the manager's own balance.
        """
        self.ctx.access.require_manager(caller)
        pool = self.registry.get(pool_id)
        request = self.get_request(pool_id, request_id)
        stake = self._linked_stake(request)
        if stake.status != StakeStatus.PENDING:
            raise InvalidStateError(
                f"Request {pool_id}/{request_id} is {stake.status.value}, expected pending"
            )

        total = request.amount + request.reward
        excess = self._check_funding(pool, caller, total, attached_value)

        with self.ctx.transfer.atomic():
            self._pay(pool, caller, request.user, total)
            self._settle_excess(caller, excess)

        stake.advance(StakeStatus.PENDING)
        result = SettlementResult(
            pool_id=pool_id, request_id=request_id, user=request.user,
            amount=request.amount, reward=request.reward, excess=excess,
        )
        self.ctx.events.emit(
            EventKind.UNSTAKE_COMPLETED, self.ctx.now(),
            user=request.user, pool_id=pool_id, request_id=request_id,
            stake_index=request.stake_index, amount=request.amount, reward=request.reward,
        )
        return result

    def quote_batch(self, pool_id: int, request_ids: Iterable[int]) -> int:
        """Native value a manager must attach to settle ``request_ids``.

        Only distinct entries that are still pending count. Asset pools need
        no attached value, so their quote is 0.
        """
        pool = self.registry.get(pool_id)
        if not pool.is_native:
            return 0
        return sum(r.amount + r.reward for r, _ in self._settleable(pool_id, request_ids))

    def batch_complete_unstake(self, caller: str, pool_id: int, request_ids: List[int],
                               attached_value: int = 0) -> BatchResult:
        """Settle every still-pending entry of ``request_ids``, skipping the rest."""
        self.ctx.access.require_manager(caller)
        if not request_ids:
            raise EmptyBatchError("No request ids given")
        pool = self.registry.get(pool_id)

        # Pass one: what the batch will cost
        planned = self._settleable(pool_id, request_ids)
        required = sum(r.amount + r.reward for r, _ in planned)
        excess = self._check_funding(pool, caller, required, attached_value)

        # Pass two: re-validate, pay, then commit once every transfer went through
        paid: List[Entry] = []
        with self.ctx.transfer.atomic():
            for request, stake in planned:
                if stake.status != StakeStatus.PENDING:
                    logger.debug(f"Skipping request {pool_id}/{request.request_id}: already settled")
                    continue
                self._pay(pool, caller, request.user, request.amount + request.reward)
                paid.append((request, stake))
            self._settle_excess(caller, excess)

        result = BatchResult(pool_id=pool_id, excess=excess)
        for request, stake in paid:
            stake.advance(StakeStatus.PENDING)
            result.requests_processed += 1
            result.total_paid += request.amount + request.reward
            result.settled.append(request.request_id)

        self.ctx.events.emit(
            EventKind.BATCH_COMPLETED, self.ctx.now(),
            pool_id=pool_id, requests_processed=result.requests_processed,
            total_paid=result.total_paid, request_ids=list(result.settled),
        )
        return result

    def _settleable(self, pool_id: int, request_ids: Iterable[int]) -> List[Entry]:
        queue = self.requests.get(pool_id, [])
        seen: Set[int] = set()
        entries: List[Entry] = []
        for request_id in request_ids:
            if request_id in seen:
                logger.debug(f"Skipping duplicate request {pool_id}/{request_id}")
                continue
            seen.add(request_id)
            if not 0 <= request_id < len(queue):
                logger.debug(f"Skipping unknown request {pool_id}/{request_id}")
                continue
            request = queue[request_id]
            stake = self._linked_stake(request)
            if stake.status != StakeStatus.PENDING:
                logger.debug(f"Skipping request {pool_id}/{request_id}: {stake.status.value}")
                continue
            entries.append((request, stake))
        return entries

    def _check_funding(self, pool: Pool, manager: str, total: int, attached_value: int) -> int:
        """Validate funding for a settlement of ``total``; returns the native excess."""
        if pool.is_native:
            if attached_value < total:
                raise InsufficientValueError(
                    f"Attached value {attached_value} does not cover {total}"
                )
            return attached_value - total

        if attached_value != 0:
            raise ValueMismatchError("Asset pools do not accept attached native value")
        balance = self.ctx.transfer.balance_of(manager, pool.asset)
        if balance < total:
            raise InsufficientFundsError(
                f"{manager} holds {balance} {pool.asset}, settlement needs {total}"
            )
        return 0

    def _pay(self, pool: Pool, manager: str, recipient: str, amount: int) -> None:
        if pool.is_native:
            self.ctx.transfer.transfer_native(manager, recipient, amount)
        else:
            self.ctx.transfer.transfer_token(pool.asset, manager, recipient, amount)

    def _settle_excess(self, manager: str, excess: int) -> None:
        if excess <= 0:
            return
        if self.ctx.config.excess_policy == ExcessPolicy.RETAIN:
            self.ctx.transfer.transfer_native(manager, self.ctx.config.ledger_account, excess)
            logger.info(f"Retained {excess} of overpayment from {manager}")
        else:
            logger.info(f"Left {excess} of overpayment with {manager}")
