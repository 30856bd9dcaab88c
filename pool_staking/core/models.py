"""Data model for pools, stakes and unstake requests."""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from .errors import InvalidStateError

SECONDS_PER_YEAR = 365 * 86400
PRECISION = 10**18


class StakeStatus(str, Enum):
    """Lifecycle of a stake record. Transitions only move forward."""
    STAKED = "staked"
    PENDING = "pending"
    COMPLETED = "completed"


# Legal forward transitions
NEXT_STATUS = {
    StakeStatus.STAKED: StakeStatus.PENDING,
    StakeStatus.PENDING: StakeStatus.COMPLETED,
}


class ExcessPolicy(str, Enum):
    """What happens to native value attached beyond a settlement's total."""
    RETAIN = "retain"
    REFUND = "refund"


class Pool(BaseModel):
    """Pool configuration under which stakes are created."""
    pool_id: int
    is_native: bool
    asset: Optional[str] = None  # token reference, None for native pools
    apr: int
    lock_duration: int = 0
    is_active: bool = True
    created_at: int = 0


class StakeRecord(BaseModel):
    """A single deposit made by an owner into a pool."""
    owner: str
    stake_index: int
    pool_id: int
    staked_amount: int
    start_time: int
    lock_duration: int
    rewards_earned: int = 0
    status: StakeStatus = StakeStatus.STAKED
    request_id: Optional[int] = None

    def advance(self, expected: StakeStatus) -> StakeStatus:
        """Move to the next status, provided the record is in ``expected``."""
        if self.status != expected or expected not in NEXT_STATUS:
            raise InvalidStateError(
                f"Stake {self.owner}#{self.stake_index} is {self.status.value}, "
                f"expected {expected.value}"
            )
        self.status = NEXT_STATUS[expected]
        return self.status


class UnstakeRequest(BaseModel):
    """Withdrawal request; its status lives on the referenced stake record."""
    pool_id: int
    request_id: int
    user: str
    stake_index: int
    amount: int
    reward: int
    timestamp: int


class StakeView(BaseModel):
    """Stake record together with its current reward."""
    stake: StakeRecord
    reward: int


class RequestView(BaseModel):
    """Unstake request with its status resolved from the stake record."""
    request: UnstakeRequest
    status: StakeStatus


class SettlementResult(BaseModel):
    pool_id: int
    request_id: int
    user: str
    amount: int
    reward: int
    excess: int = 0

    @property
    def total(self) -> int:
        return self.amount + self.reward


class BatchResult(BaseModel):
    pool_id: int
    requests_processed: int = 0
    total_paid: int = 0
    excess: int = 0
    settled: List[int] = Field(default_factory=list)
