"""Integration tests for the pool-staking command line."""
import json
import pytest
from click.testing import CliRunner
from pool_staking.main import cli

UNIT = 10**18
DAY = 86400
T0 = 1_700_000_000


@pytest.fixture
def state(tmp_path):
    return str(tmp_path / "ledger.json")


@pytest.fixture
def run(state):
    """Invoke the CLI against a temporary state file."""
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(cli, ["--state", state, "--log-level", "ERROR", *map(str, args)])
    return invoke


@pytest.fixture
def funded(run):
    """Initialized ledger with a native 5% / 30 day pool and funded actors."""
    assert run("init", "--owner", "owner").exit_code == 0
    for who in ("alice", "owner"):
        assert run("fund", who, 100 * UNIT).exit_code == 0
    result = run("pool", "create", "--caller", "owner", "--apr", 5, "--lock", 30 * DAY, "--at", T0)
    assert result.exit_code == 0
    return run


def test_init_refuses_to_overwrite(run):
    assert run("init", "--owner", "owner").exit_code == 0
    result = run("init", "--owner", "someone")
    assert result.exit_code != 0
    assert "already exists" in result.output
    assert run("init", "--owner", "someone", "--force").exit_code == 0


def test_init_with_yaml_config(run, tmp_path):
    config = tmp_path / "ledger.yaml"
    config.write_text("ledger:\n  treasury: vault\n  minimum_stake_amount: 7\n")
    assert run("init", "--owner", "owner", "--config", config).exit_code == 0

    result = run("config", "show")
    assert "treasury: vault" in result.output
    assert "minimum_stake_amount: 7" in result.output


def test_commands_need_initialized_ledger(run):
    result = run("pool", "list")
    assert result.exit_code != 0
    assert "run 'init' first" in result.output


def test_stake_and_settle_lifecycle(funded, state):
    """Test the 30 day native scenario end to end through the CLI."""
    result = funded("stake", 0, 10 * UNIT, "--caller", "alice", "--at", T0)
    assert result.exit_code == 0
    assert "alice#0" in result.output

    early = funded("request-unstake", 0, "--caller", "alice", "--at", T0 + DAY)
    assert early.exit_code != 0
    assert "locked until" in early.output

    result = funded("request-unstake", 0, "--caller", "alice", "--at", T0 + 30 * DAY)
    assert result.exit_code == 0
    assert "reward 41095890410958904" in result.output

    result = funded("complete", 0, 0, "--caller", "owner", "--value", 11 * UNIT)
    assert result.exit_code == 0
    assert "Paid 10041095890410958904 to alice" in result.output

    result = funded("requests", 0)
    assert "completed" in result.output

    result = funded("balance", "alice")
    assert f"alice: {90 * UNIT + 10041095890410958904} native" in result.output

    data = json.loads(open(state).read())
    assert data["stakes"]["alice"][0]["status"] == "completed"


def test_batch_complete_defaults_to_quote(funded):
    for _ in range(2):
        assert funded("stake", 0, 10 * UNIT, "--caller", "alice", "--at", T0).exit_code == 0
    for index in (0, 1):
        assert funded("request-unstake", index, "--caller", "alice",
                      "--at", T0 + 30 * DAY).exit_code == 0

    result = funded("batch-complete", 0, 0, 1, 5, "--caller", "owner")
    assert result.exit_code == 0
    assert "Processed 2 requests" in result.output

    result = funded("batch-complete", 0, 0, 1, "--caller", "owner")
    assert "Processed 0 requests" in result.output


def test_rejections_do_not_save(funded):
    result = funded("stake", 0, 10 * UNIT, "--caller", "alice", "--value", UNIT)
    assert result.exit_code != 0
    assert "does not match" in result.output

    result = funded("stakes", "alice")
    assert result.exit_code == 0
    assert result.output.strip() == ""


def test_manager_and_config_commands(funded):
    result = funded("config", "set", "treasury", "vault", "--caller", "alice")
    assert result.exit_code != 0
    assert "not a manager" in result.output

    assert funded("manager", "alice", "--caller", "owner").exit_code == 0
    result = funded("config", "set", "treasury", "vault", "--caller", "alice")
    assert result.exit_code == 0
    assert "treasury = vault" in result.output

    result = funded("config", "set", "minimum_stake_amount", "lots", "--caller", "alice")
    assert result.exit_code != 0

    assert funded("manager", "alice", "--revoke", "--caller", "owner").exit_code == 0
    result = funded("pool", "create", "--caller", "alice", "--apr", 5)
    assert result.exit_code != 0


def test_pool_listing_and_activation(funded):
    assert funded("pool", "create", "--caller", "owner", "--asset", "USDX", "--apr", 9).exit_code == 0
    assert funded("pool", "activate", 0, "--inactive", "--caller", "owner").exit_code == 0

    all_pools = funded("pool", "list").output.strip().splitlines()
    active = funded("pool", "list", "--active-only").output.strip().splitlines()
    assert len(all_pools) == 2
    assert len(active) == 1
    assert active[0].startswith("1\tUSDX\tapr=9%")


def test_events_listing(funded):
    funded("stake", 0, 10 * UNIT, "--caller", "alice", "--at", T0)
    result = funded("events", "--kind", "staked")
    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert len(lines) == 1
    assert "staked" in lines[0]


def test_events_limit(funded):
    funded("stake", 0, 10 * UNIT, "--caller", "alice", "--at", T0)
    everything = funded("events", "--limit", 100).output.strip().splitlines()
    assert len(everything) >= 2

    result = funded("events", "--limit", 0)
    assert result.exit_code == 0
    assert result.output == ""

    last = funded("events", "--limit", 1).output.strip().splitlines()
    assert last == everything[-1:]

    assert funded("events", "--limit", -1).exit_code != 0


def test_balance_command(funded):
    assert funded("fund", "alice", 7, "--asset", "USDX").exit_code == 0

    result = funded("balance", "alice", "--asset", "USDX")
    assert result.exit_code == 0
    assert "alice: 7 USDX" in result.output

    result = funded("balance", "nobody")
    assert result.exit_code == 0
    assert "nobody: 0 native" in result.output
