"""Pool registry: configuration, activation and per-pool staked totals."""
from typing import Dict, Iterator, List, Optional
from loguru import logger

from .context import LedgerContext
from .errors import (
    InvalidPoolConfigError,
    LedgerCorruptionError,
    PoolInactiveError,
    PoolNotFoundError,
)
from .events import EventKind
from .models import Pool


class PoolRegistry:
    """Stores pools in creation order; ``pool_id`` is the list index."""

    def __init__(self, ctx: LedgerContext, pools: Optional[List[Pool]] = None,
                 total_staked: Optional[Dict[int, int]] = None):
        self.ctx = ctx
        self.pools: List[Pool] = list(pools or [])
        self._total_staked: Dict[int, int] = dict(total_staked or {})

    def create_pool(self, caller: str, is_native: bool, asset: Optional[str],
                    apr: int, lock_duration: int = 0) -> int:
        """Register a new pool and return its identifier.

        Args:
            caller: Principal issuing the call, must be a manager
            is_native: Whether stakes are made in native currency
            asset: Token reference for asset pools, None for native pools
            apr: Annual percentage rate, strictly positive
            lock_duration: Seconds of reward accrual and withdrawal lock, 0 for none

        Returns:
            The new pool's identifier
        """
        self.ctx.access.require_manager(caller)

        if is_native and asset:
            raise InvalidPoolConfigError("Native pools must not reference an asset")
        if not is_native and not asset:
            raise InvalidPoolConfigError("Asset pools need an asset reference")
        if apr <= 0:
            raise InvalidPoolConfigError(f"APR must be positive, got {apr}")
        if lock_duration < 0:
            raise InvalidPoolConfigError(f"Lock duration must not be negative, got {lock_duration}")

        pool = Pool(
            pool_id=len(self.pools),
            is_native=is_native,
            asset=None if is_native else asset,
            apr=apr,
            lock_duration=lock_duration,
            is_active=True,
            created_at=self.ctx.now(),
        )
        self.pools.append(pool)
        self._total_staked[pool.pool_id] = 0

        self.ctx.events.emit(
            EventKind.POOL_CREATED, pool.created_at,
            pool_id=pool.pool_id, is_native=is_native, asset=pool.asset,
            apr=apr, lock_duration=lock_duration,
        )
        return pool.pool_id

    def set_pool_active(self, caller: str, pool_id: int, is_active: bool) -> None:
        self.ctx.access.require_manager(caller)
        pool = self.get(pool_id)
        pool.is_active = is_active
        self.ctx.events.emit(
            EventKind.POOL_STATUS_CHANGED, self.ctx.now(),
            pool_id=pool_id, is_active=is_active,
        )

    def get(self, pool_id: int) -> Pool:
        if not 0 <= pool_id < len(self.pools):
            raise PoolNotFoundError(f"Unknown pool {pool_id}")
        return self.pools[pool_id]

    def require_active(self, pool_id: int) -> Pool:
        pool = self.get(pool_id)
        if not pool.is_active:
            raise PoolInactiveError(f"Pool {pool_id} is not active")
        return pool

    def count(self) -> int:
        return len(self.pools)

    def active(self) -> Iterator[Pool]:
        return (p for p in self.pools if p.is_active)

    def total_staked(self, pool_id: int) -> int:
        self.get(pool_id)
        return self._total_staked.get(pool_id, 0)

    def totals(self) -> Dict[int, int]:
        return dict(self._total_staked)

    def add_staked(self, pool_id: int, amount: int) -> None:
        self._total_staked[pool_id] = self._total_staked.get(pool_id, 0) + amount

    def remove_staked(self, pool_id: int, amount: int) -> None:
        current = self._total_staked.get(pool_id, 0)
        if amount > current:
            # Would mean a stake left STAKED twice
            logger.error(f"Pool {pool_id} total {current} cannot drop by {amount}")
            raise LedgerCorruptionError(f"Pool {pool_id} staked total underflow")
        self._total_staked[pool_id] = current - amount
