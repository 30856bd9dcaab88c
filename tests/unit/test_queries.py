"""Unit tests for the paginated query layer."""
import pytest
from pool_staking.core.errors import OffsetOutOfRangeError, PolicyViolationError, PoolNotFoundError
from pool_staking.core.models import StakeStatus
from pool_staking.core.queries import page, page_stream

UNIT = 10**18
DAY = 86400


@pytest.fixture
def seven_pools(ledger):
    """Seven native pools; ids 1, 3 and 4 deactivated."""
    for apr in range(1, 8):
        ledger.create_pool("manager", True, None, apr, 0)
    for pool_id in (1, 3, 4):
        ledger.set_pool_active("manager", pool_id, False)
    return ledger


def test_page_helpers():
    assert page([1, 2, 3], 1, 5) == [2, 3]
    assert page([], 0, 5) == []
    assert page([1, 2, 3], 0, 0) == []
    with pytest.raises(OffsetOutOfRangeError):
        page([1, 2, 3], 3, 1)
    with pytest.raises(PolicyViolationError):
        page([1, 2, 3], -1, 1)
    assert page_stream(iter(range(10)), 8, 5) == [8, 9]
    assert page_stream(iter(range(3)), 10, 5) == []


def test_all_pools_reconstructed_by_pages(seven_pools):
    """Test consecutive pages cover every pool exactly once."""
    ids = []
    offset = 0
    while offset < seven_pools.pool_count():
        batch = seven_pools.get_all_pools(offset, 3)
        ids.extend(p.pool_id for p in batch)
        offset += 3
    assert ids == list(range(7))


def test_all_pools_offset_past_end(seven_pools):
    assert [p.pool_id for p in seven_pools.get_all_pools(5, 10)] == [5, 6]
    with pytest.raises(OffsetOutOfRangeError):
        seven_pools.get_all_pools(7, 1)


def test_empty_pool_listing(ledger):
    assert ledger.get_all_pools(0, 10) == []
    assert ledger.get_active_pools(0, 10) == []


def test_active_pool_offsets_count_active_pools(seven_pools):
    """Test the active listing offset skips over active pools only."""
    assert [p.pool_id for p in seven_pools.get_active_pools(0, 10)] == [0, 2, 5, 6]
    assert [p.pool_id for p in seven_pools.get_active_pools(1, 2)] == [2, 5]
    assert [p.pool_id for p in seven_pools.get_active_pools(3, 2)] == [6]
    assert seven_pools.get_active_pools(4, 2) == []
    assert seven_pools.get_active_pools(100, 2) == []


def test_user_stakes_listing(ledger, native_pool, clock):
    for _ in range(3):
        ledger.stake("alice", native_pool, 10 * UNIT, 10 * UNIT)
    clock.advance(30 * DAY)
    ledger.request_unstake("alice", 1)

    views = ledger.get_user_stakes("alice", 1, 5)
    assert [v.stake.stake_index for v in views] == [1, 2]
    assert views[0].stake.status == StakeStatus.PENDING
    assert views[0].reward == views[0].stake.rewards_earned
    assert views[1].reward == ledger.reward_of("alice", 2) > 0

    assert ledger.get_user_stakes("nobody", 0, 5) == []
    with pytest.raises(OffsetOutOfRangeError):
        ledger.get_user_stakes("alice", 3, 1)


def test_unstake_request_listing(ledger, native_pool, clock):
    ledger.stake("alice", native_pool, 10 * UNIT, 10 * UNIT)
    ledger.stake("bob", native_pool, 10 * UNIT, 10 * UNIT)
    clock.advance(30 * DAY)
    ledger.request_unstake("bob", 0)
    ledger.request_unstake("alice", 0)
    ledger.complete_unstake("manager", native_pool, 0, 20 * UNIT)

    views = ledger.get_unstake_requests(native_pool, 0, 10)
    assert [(v.request.user, v.status) for v in views] == [
        ("bob", StakeStatus.COMPLETED),
        ("alice", StakeStatus.PENDING),
    ]
    with pytest.raises(OffsetOutOfRangeError):
        ledger.get_unstake_requests(native_pool, 2, 1)
    with pytest.raises(PoolNotFoundError):
        ledger.get_unstake_requests(99, 0, 1)


def test_listings_do_not_expose_live_records(ledger, native_pool):
    ledger.stake("alice", native_pool, 10 * UNIT, 10 * UNIT)
    view = ledger.get_user_stakes("alice", 0, 1)[0]
    view.stake.status = StakeStatus.COMPLETED
    assert ledger.get_stake("alice", 0).status == StakeStatus.STAKED
