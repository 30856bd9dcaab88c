"""Replay a YAML staking scenario against an in-memory ledger."""
import os
import argparse
from typing import Any, Dict, List
import yaml
from loguru import logger

from pool_staking.core import (
    InMemoryTransfer,
    LedgerConfig,
    LedgerError,
    ManualClock,
    StakingLedger,
    configure_logging,
)

ACTIONS = {
    "create_pool",
    "set_pool_active",
    "stake",
    "request_unstake",
    "complete_unstake",
    "batch_complete_unstake",
    "set_manager",
    "set_minimum_stake_amount",
    "set_minimum_stake_duration",
    "set_treasury",
    "set_excess_policy",
}


def load_scenario(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Scenario file not found: {path}")
    with open(path, "r") as f:
        try:
            scenario = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML scenario: {e}")
    if not isinstance(scenario, dict) or "steps" not in scenario:
        raise ValueError("Scenario needs a 'steps' list")
    return scenario


def build_ledger(scenario: Dict[str, Any]) -> StakingLedger:
    clock = ManualClock(scenario.get("start_time", 0))
    transfer = InMemoryTransfer()
    for entry in scenario.get("balances", []):
        transfer.mint(entry["principal"], entry["amount"], entry.get("asset"))
    return StakingLedger(
        owner=scenario.get("owner", "owner"),
        config=LedgerConfig.from_dict(scenario.get("ledger", {})),
        clock=clock,
        transfer=transfer,
    )


def run(scenario: Dict[str, Any], stop_on_error: bool = False) -> List[Dict[str, Any]]:
    """Execute each step and return one outcome record per step."""
    ledger = build_ledger(scenario)
    outcomes = []
    for number, step in enumerate(scenario["steps"], 1):
        if "advance" in step:
            ledger.clock.advance(step["advance"])
        action = step.get("action")
        if action is None:
            continue
        if action not in ACTIONS:
            raise ValueError(f"Step {number}: unknown action {action}")

        args = dict(step.get("args", {}))
        try:
            result = getattr(ledger, action)(step["caller"], **args)
            outcomes.append({"step": number, "action": action, "ok": True, "result": result})
            logger.info(f"Step {number} {action}: {result}")
        except LedgerError as e:
            outcomes.append({"step": number, "action": action, "ok": False,
                             "error": type(e).__name__})
            logger.warning(f"Step {number} {action} rejected: {type(e).__name__}: {e}")
            if stop_on_error:
                break

    for pool in ledger.get_all_pools(0, ledger.pool_count()):
        print(f"pool {pool.pool_id}: staked={ledger.total_staked(pool.pool_id)} "
              f"requests={ledger.request_count(pool.pool_id)}")
    print(f"{sum(o['ok'] for o in outcomes)}/{len(outcomes)} actions succeeded, "
          f"{len(ledger.events)} notifications")
    return outcomes


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description='Replay a staking scenario')
    parser.add_argument('--scenario', type=str, default='configs/example_scenario.yaml',
                        help='Path to scenario file')
    parser.add_argument('--stop-on-error', action='store_true',
                        help='Stop at the first rejected action')
    parser.add_argument('--log-level', type=str, default=None)
    args = parser.parse_args()

    configure_logging(args.log_level)
    run(load_scenario(args.scenario), stop_on_error=args.stop_on_error)
