"""Test configuration and fixtures for the staking ledger."""
import os
import pytest
from pool_staking.core.clock import ManualClock
from pool_staking.core.config import LedgerConfig
from pool_staking.core.ledger import StakingLedger
from pool_staking.core.transfer import InMemoryTransfer

UNIT = 10**18
DAY = 86400
START = 1_700_000_000
TOKEN = "USDX"

OWNER = "owner"
MANAGER = "manager"
ALICE = "alice"
BOB = "bob"


@pytest.fixture
def clock():
    """Clock frozen at a fixed start time."""
    return ManualClock(START)


@pytest.fixture
def transfer():
    """In-memory balances with native value and tokens for every actor."""
    balances = InMemoryTransfer()
    for principal in (OWNER, MANAGER, ALICE, BOB):
        balances.mint(principal, 1_000 * UNIT)
        balances.mint(principal, 1_000 * UNIT, TOKEN)
    return balances


@pytest.fixture
def config():
    return LedgerConfig(minimum_stake_amount=UNIT, minimum_stake_duration=0)


@pytest.fixture
def ledger(config, clock, transfer):
    """Ledger owned by OWNER with MANAGER appointed."""
    ledger = StakingLedger(owner=OWNER, config=config, clock=clock, transfer=transfer)
    ledger.set_manager(OWNER, MANAGER, True)
    return ledger


@pytest.fixture
def native_pool(ledger):
    """Native pool at 5% APR with a 30 day lock."""
    return ledger.create_pool(MANAGER, True, None, 5, 30 * DAY)


@pytest.fixture
def token_pool(ledger):
    """Token pool at 10% APR with no lock."""
    return ledger.create_pool(MANAGER, False, TOKEN, 10, 0)


@pytest.fixture
def env_setup(tmp_path):
    """Point ledger state and logging at test locations."""
    os.environ["POOL_STAKING_HOME"] = str(tmp_path)
    os.environ["POOL_STAKING_LOG_LEVEL"] = "DEBUG"
    yield tmp_path
    del os.environ["POOL_STAKING_HOME"]
    del os.environ["POOL_STAKING_LOG_LEVEL"]
