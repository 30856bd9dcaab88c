"""Stake ledger: per-owner stake records and reward accrual."""
from typing import Dict, List, Optional
from loguru import logger

from .context import LedgerContext
from .errors import (
    BelowMinimumStakeError,
    StakeNotFoundError,
    ValueMismatchError,
)
from .events import EventKind
from .models import PRECISION, SECONDS_PER_YEAR, StakeRecord, StakeStatus
from .registry import PoolRegistry


def accrued_reward(amount: int, apr: int, elapsed: int, lock_duration: int) -> int:
    """Linear reward for ``elapsed`` seconds at ``apr`` percent a year.

    Locked stakes stop accruing once the lock duration has passed; unlocked
    stakes (``lock_duration == 0``) accrue indefinitely. The fixed-point
    factor appears in both numerator and denominator, so the only rounding
    is the final floor division.
    """
    elapsed = max(elapsed, 0)
    duration = min(elapsed, lock_duration) if lock_duration > 0 else elapsed
    scaled = amount * apr * PRECISION * duration
    return scaled // (100 * SECONDS_PER_YEAR * PRECISION)


class StakeLedger:
    """Owns every stake record, keyed by owner then by stake index."""

    def __init__(self, ctx: LedgerContext, registry: PoolRegistry,
                 stakes: Optional[Dict[str, List[StakeRecord]]] = None):
        self.ctx = ctx
        self.registry = registry
        self.stakes: Dict[str, List[StakeRecord]] = {
            owner: list(records) for owner, records in (stakes or {}).items()
        }

    def stake(self, caller: str, pool_id: int, amount: int, attached_value: int = 0) -> int:
        """Deposit ``amount`` into a pool and return the new stake index.

        Native pools expect the deposit as attached value; asset pools pull
        the tokens from the caller. Either way the principal ends up with the
        treasury.
        """
        pool = self.registry.require_active(pool_id)
        minimum = self.ctx.config.minimum_stake_amount
        if amount <= 0 or amount < minimum:
            raise BelowMinimumStakeError(f"Stake of {amount} is below the minimum of {minimum}")

        if pool.is_native and attached_value != amount:
            raise ValueMismatchError(
                f"Attached value {attached_value} does not match stake amount {amount}"
            )
        if not pool.is_native and attached_value != 0:
            raise ValueMismatchError("Asset pools do not accept attached native value")

        treasury = self.ctx.config.treasury
        with self.ctx.transfer.atomic():
            if pool.is_native:
                self.ctx.transfer.transfer_native(caller, treasury, amount)
            else:
                self.ctx.transfer.transfer_token(pool.asset, caller, treasury, amount)

        records = self.stakes.setdefault(caller, [])
        record = StakeRecord(
            owner=caller,
            stake_index=len(records),
            pool_id=pool_id,
            staked_amount=amount,
            start_time=self.ctx.now(),
            lock_duration=pool.lock_duration,
        )
        records.append(record)
        self.registry.add_staked(pool_id, amount)

        self.ctx.events.emit(
            EventKind.STAKED, record.start_time,
            user=caller, pool_id=pool_id, stake_index=record.stake_index, amount=amount,
        )
        return record.stake_index

    def get(self, owner: str, stake_index: int) -> StakeRecord:
        records = self.stakes.get(owner, [])
        if not 0 <= stake_index < len(records):
            raise StakeNotFoundError(f"{owner} has no stake #{stake_index}")
        return records[stake_index]

    def records(self, owner: str) -> List[StakeRecord]:
        return self.stakes.get(owner, [])

    def stake_count(self, owner: str) -> int:
        return len(self.stakes.get(owner, []))

    def reward_of(self, owner: str, stake_index: int) -> int:
        """Frozen reward once withdrawal was requested, live estimate before."""
        record = self.get(owner, stake_index)
        if record.status != StakeStatus.STAKED:
            return record.rewards_earned

        pool = self.registry.get(record.pool_id)
        reward = accrued_reward(
            record.staked_amount, pool.apr,
            self.ctx.now() - record.start_time, record.lock_duration,
        )
        logger.debug(f"Live reward for {owner}#{stake_index}: {reward}")
        return reward

    def staked_sum(self, pool_id: int) -> int:
        """Recompute a pool's STAKED principal from the records themselves."""
        return sum(
            r.staked_amount
            for records in self.stakes.values()
            for r in records
            if r.pool_id == pool_id and r.status == StakeStatus.STAKED
        )
