"""Read-only paginated views over pools, stakes and unstake requests."""
from itertools import islice
from typing import Iterable, List, Sequence, TypeVar
from loguru import logger

from .errors import OffsetOutOfRangeError, PolicyViolationError
from .models import Pool, RequestView, StakeView
from .registry import PoolRegistry
from .stakes import StakeLedger
from .unstake import UnstakePipeline

T = TypeVar("T")


def _check_window(offset: int, limit: int) -> None:
    if offset < 0 or limit < 0:
        raise PolicyViolationError(f"Invalid page window offset={offset} limit={limit}")


def page(items: Sequence[T], offset: int, limit: int) -> List[T]:
    """Slice of a sequence whose length is known.

    An offset at or past the end is an error, except offset 0 on an empty
    sequence, which yields an empty page.
    """
    _check_window(offset, limit)
    if offset and offset >= len(items):
        raise OffsetOutOfRangeError(f"Offset {offset} is beyond {len(items)} items")
    return list(items[offset:offset + limit])


def page_stream(items: Iterable[T], offset: int, limit: int) -> List[T]:
    """Slice of a filtered stream; running off the end just yields fewer items."""
    _check_window(offset, limit)
    return list(islice(items, offset, offset + limit))


class LedgerQueries:
    """Views for external consumers. Never mutates anything."""

    def __init__(self, registry: PoolRegistry, stakes: StakeLedger, pipeline: UnstakePipeline):
        self.registry = registry
        self.stakes = stakes
        self.pipeline = pipeline

    def get_all_pools(self, offset: int = 0, limit: int = 10) -> List[Pool]:
        return [p.model_copy() for p in page(self.registry.pools, offset, limit)]

    def get_active_pools(self, offset: int = 0, limit: int = 10) -> List[Pool]:
        # Offset counts active pools, not raw pool ids
        return [p.model_copy() for p in page_stream(self.registry.active(), offset, limit)]

    def get_user_stakes(self, owner: str, offset: int = 0, limit: int = 10) -> List[StakeView]:
        records = page(self.stakes.records(owner), offset, limit)
        logger.debug(f"Listing {len(records)} stakes of {owner} from {offset}")
        return [
            StakeView(stake=r.model_copy(), reward=self.stakes.reward_of(owner, r.stake_index))
            for r in records
        ]

    def get_unstake_requests(self, pool_id: int, offset: int = 0,
                             limit: int = 10) -> List[RequestView]:
        requests = page(self.pipeline.queue(pool_id), offset, limit)
        return [
            RequestView(request=r.model_copy(), status=self.pipeline.status_of(r))
            for r in requests
        ]
