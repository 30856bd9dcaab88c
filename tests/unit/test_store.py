"""Unit tests for ledger persistence."""
import json
import pytest
from pool_staking.core.clock import ManualClock
from pool_staking.core.errors import InvalidConfigError
from pool_staking.core.events import EventKind
from pool_staking.core.models import StakeStatus
from pool_staking.core.store import LedgerStore

UNIT = 10**18
DAY = 86400


@pytest.fixture
def busy_ledger(ledger, native_pool, token_pool, clock):
    """Ledger with stakes and requests in every status."""
    ledger.stake("alice", native_pool, 10 * UNIT, 10 * UNIT)
    ledger.stake("alice", token_pool, 5 * UNIT)
    ledger.stake("bob", native_pool, 3 * UNIT, 3 * UNIT)
    clock.advance(30 * DAY)
    ledger.request_unstake("alice", 0)
    ledger.request_unstake("bob", 0)
    ledger.complete_unstake("manager", native_pool, 0, 11 * UNIT)
    ledger.set_pool_active("manager", token_pool, False)
    return ledger


def test_round_trip(tmp_path, busy_ledger, clock):
    """Test a saved ledger reloads with identical state and balances."""
    store = LedgerStore(tmp_path / "state" / "ledger.json")
    store.save(busy_ledger)
    assert store.exists()

    restored = store.load(clock=ManualClock(clock.now()))

    assert restored.access.owner == "owner"
    assert restored.is_manager("manager")
    assert restored.pool_count() == 2
    assert not restored.get_pool(1).is_active
    assert restored.total_staked(0) == 0
    assert restored.total_staked(1) == 5 * UNIT
    assert restored.get_stake("alice", 0).status == StakeStatus.COMPLETED
    assert restored.get_request(0, 1).status == StakeStatus.PENDING
    assert restored.reward_of("alice", 1) == busy_ledger.reward_of("alice", 1)
    assert restored.transfer.balance_of("alice") == busy_ledger.transfer.balance_of("alice")
    assert len(restored.events) == len(busy_ledger.events)
    assert restored.events.history[-1].kind == EventKind.POOL_STATUS_CHANGED


def test_restored_ledger_keeps_counting(tmp_path, busy_ledger, clock):
    store = LedgerStore(tmp_path / "ledger.json")
    store.save(busy_ledger)
    restored = store.load(clock=ManualClock(clock.now()))

    assert restored.stake("alice", 0, UNIT, UNIT) == 2
    request = restored.get_request(0, 1).request
    restored.complete_unstake("manager", 0, 1, request.amount + request.reward)
    assert restored.get_stake("bob", 0).status == StakeStatus.COMPLETED


def test_saved_file_is_json(tmp_path, busy_ledger):
    store = LedgerStore(tmp_path / "ledger.json")
    store.save(busy_ledger)
    data = json.loads((tmp_path / "ledger.json").read_text())
    assert data["owner"] == "owner"
    assert data["stakes"]["alice"][0]["status"] == "completed"


def test_default_location(env_setup):
    assert LedgerStore().path == env_setup / "ledger.json"


def test_missing_file(tmp_path):
    with pytest.raises(InvalidConfigError):
        LedgerStore(tmp_path / "nope.json").load()


def test_corrupted_file(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text("{not json")
    with pytest.raises(InvalidConfigError):
        LedgerStore(path).load()
