"""Pool Staking CLI."""
import functools
import time
from pathlib import Path
from typing import Optional
import click
from loguru import logger

from .core.clock import ManualClock
from .core.config import LedgerConfig, configure_logging
from .core.errors import LedgerError
from .core.events import EventKind
from .core.ledger import StakingLedger
from .core.store import LedgerStore

CONFIG_SETTERS = {
    "minimum_stake_amount": ("set_minimum_stake_amount", int),
    "minimum_stake_duration": ("set_minimum_stake_duration", int),
    "treasury": ("set_treasury", str),
    "excess_policy": ("set_excess_policy", str),
}


def ledger_command(save: bool):
    """Load the ledger before the command runs and, if ``save``, persist it afterwards.

    The wrapped command receives the ledger as its first argument. Ledger
    rejections become click errors, so nothing is saved after a failure.
    """
    def decorator(func):
        @click.pass_obj
        @functools.wraps(func)
        def wrapper(obj, *args, **kwargs):
            at = kwargs.pop("at", None)
            store: LedgerStore = obj["store"]
            try:
                ledger = store.load(clock=ManualClock(at if at is not None else int(time.time())))
                result = func(ledger, *args, **kwargs)
                if save:
                    store.save(ledger)
                return result
            except LedgerError as e:
                logger.error(f"{type(e).__name__}: {e}")
                raise click.ClickException(str(e))
        return wrapper
    return decorator


def caller_option(func):
    return click.option('--caller', required=True, help='Principal issuing the call')(func)


def at_option(func):
    return click.option('--at', type=int, default=None,
                        help='Timestamp to run at (defaults to now)')(func)


def page_options(func):
    func = click.option('--limit', type=int, default=10, show_default=True)(func)
    return click.option('--offset', type=int, default=0, show_default=True)(func)


@click.group()
@click.version_option(package_name="pool-staking")
@click.option('--state', type=click.Path(dir_okay=False, path_type=Path), default=None,
              help='Ledger state file (defaults to $POOL_STAKING_HOME/ledger.json)')
@click.option('--log-level', default=None, help='Log level (defaults to $POOL_STAKING_LOG_LEVEL)')
@click.pass_context
def cli(ctx, state: Optional[Path], log_level: Optional[str]):
    """Pool staking ledger: pools, stakes and two-phase withdrawals."""
    configure_logging(log_level)
    ctx.obj = {"store": LedgerStore(state)}


@cli.command()
@click.option('--owner', required=True, help='Owner and first manager of the ledger')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              default=None, help='YAML file with ledger settings')
@click.option('--force', is_flag=True, help='Overwrite an existing ledger')
@click.pass_obj
def init(obj, owner: str, config_path: Optional[str], force: bool):
    """Create a new, empty ledger."""
    store: LedgerStore = obj["store"]
    if store.exists() and not force:
        raise click.ClickException(f"Ledger already exists at {store.path} (use --force)")
    try:
        config = LedgerConfig.from_yaml(config_path) if config_path else LedgerConfig()
        ledger = StakingLedger(owner=owner, config=config)
    except LedgerError as e:
        raise click.ClickException(str(e))
    store.save(ledger)
    click.echo(f"Initialized ledger at {store.path} owned by {owner}")


@cli.command()
@click.argument('principal')
@click.argument('amount', type=int)
@click.option('--asset', default=None, help='Token to credit (native if omitted)')
@ledger_command(save=True)
def fund(ledger: StakingLedger, principal: str, amount: int, asset: Optional[str]):
    """Credit a principal with native value or tokens."""
    ledger.transfer.mint(principal, amount, asset)
    click.echo(f"{principal} now holds {ledger.transfer.balance_of(principal, asset)} {asset or 'native'}")


@cli.command()
@click.argument('principal')
@click.option('--asset', default=None)
@ledger_command(save=False)
def balance(ledger: StakingLedger, principal: str, asset: Optional[str]):
    """Show a principal's balance."""
    click.echo(f"{principal}: {ledger.transfer.balance_of(principal, asset)} {asset or 'native'}")


@cli.group()
def pool():
    """Manage staking pools."""
    pass


@pool.command("create")
@caller_option
@click.option('--asset', default=None, help='Token reference; omit for a native pool')
@click.option('--apr', type=int, required=True, help='Annual rate in percent')
@click.option('--lock', 'lock_duration', type=int, default=0, show_default=True,
              help='Lock duration in seconds')
@at_option
@ledger_command(save=True)
def pool_create(ledger: StakingLedger, caller: str, asset: Optional[str], apr: int,
                lock_duration: int):
    """Create a pool."""
    pool_id = ledger.create_pool(caller, asset is None, asset, apr, lock_duration)
    click.echo(f"Created pool {pool_id}")


@pool.command("activate")
@click.argument('pool_id', type=int)
@caller_option
@click.option('--active/--inactive', default=True)
@at_option
@ledger_command(save=True)
def pool_activate(ledger: StakingLedger, pool_id: int, caller: str, active: bool):
    """Activate or deactivate a pool."""
    ledger.set_pool_active(caller, pool_id, active)
    click.echo(f"Pool {pool_id} is now {'active' if active else 'inactive'}")


@pool.command("list")
@click.option('--active-only', is_flag=True)
@page_options
@ledger_command(save=False)
def pool_list(ledger: StakingLedger, active_only: bool, offset: int, limit: int):
    """List pools."""
    pools = (ledger.get_active_pools if active_only else ledger.get_all_pools)(offset, limit)
    for p in pools:
        kind = "native" if p.is_native else p.asset
        state = "active" if p.is_active else "inactive"
        click.echo(f"{p.pool_id}\t{kind}\tapr={p.apr}%\tlock={p.lock_duration}s\t{state}\t"
                   f"staked={ledger.total_staked(p.pool_id)}")


@cli.command()
@click.argument('pool_id', type=int)
@click.argument('amount', type=int)
@caller_option
@click.option('--value', 'attached_value', type=int, default=None,
              help='Attached native value (defaults to AMOUNT for native pools)')
@at_option
@ledger_command(save=True)
def stake(ledger: StakingLedger, pool_id: int, amount: int, caller: str,
          attached_value: Optional[int]):
    """Stake AMOUNT into POOL_ID."""
    if attached_value is None:
        attached_value = amount if ledger.get_pool(pool_id).is_native else 0
    index = ledger.stake(caller, pool_id, amount, attached_value)
    click.echo(f"Created stake {caller}#{index}")


@cli.command("request-unstake")
@click.argument('stake_index', type=int)
@caller_option
@at_option
@ledger_command(save=True)
def request_unstake(ledger: StakingLedger, stake_index: int, caller: str):
    """Request withdrawal of one of your stakes."""
    request_id = ledger.request_unstake(caller, stake_index)
    record = ledger.get_stake(caller, stake_index)
    click.echo(f"Queued request {record.pool_id}/{request_id} with reward {record.rewards_earned}")


@cli.command()
@click.argument('pool_id', type=int)
@click.argument('request_id', type=int)
@caller_option
@click.option('--value', 'attached_value', type=int, default=0, show_default=True)
@at_option
@ledger_command(save=True)
def complete(ledger: StakingLedger, pool_id: int, request_id: int, caller: str,
             attached_value: int):
    """Settle a single unstake request."""
    result = ledger.complete_unstake(caller, pool_id, request_id, attached_value)
    click.echo(f"Paid {result.total} to {result.user} (excess {result.excess})")


@cli.command("batch-complete")
@click.argument('pool_id', type=int)
@click.argument('request_ids', type=int, nargs=-1)
@caller_option
@click.option('--value', 'attached_value', type=int, default=None,
              help='Attached native value (defaults to the quoted requirement)')
@at_option
@ledger_command(save=True)
def batch_complete(ledger: StakingLedger, pool_id: int, request_ids, caller: str,
                   attached_value: Optional[int]):
    """Settle several unstake requests, skipping stale ones."""
    if attached_value is None:
        attached_value = ledger.quote_batch(pool_id, request_ids)
    result = ledger.batch_complete_unstake(caller, pool_id, list(request_ids), attached_value)
    click.echo(f"Processed {result.requests_processed} requests, paid {result.total_paid}")


@cli.command()
@click.argument('owner')
@page_options
@ledger_command(save=False)
def stakes(ledger: StakingLedger, owner: str, offset: int, limit: int):
    """List a principal's stakes."""
    for view in ledger.get_user_stakes(owner, offset, limit):
        s = view.stake
        click.echo(f"{s.stake_index}\tpool={s.pool_id}\tamount={s.staked_amount}\t"
                   f"reward={view.reward}\t{s.status.value}")


@cli.command()
@click.argument('pool_id', type=int)
@page_options
@ledger_command(save=False)
def requests(ledger: StakingLedger, pool_id: int, offset: int, limit: int):
    """List a pool's unstake requests."""
    for view in ledger.get_unstake_requests(pool_id, offset, limit):
        r = view.request
        click.echo(f"{r.request_id}\t{r.user}#{r.stake_index}\tamount={r.amount}\t"
                   f"reward={r.reward}\t{view.status.value}")


@cli.command()
@click.argument('principal')
@caller_option
@click.option('--grant/--revoke', default=True)
@at_option
@ledger_command(save=True)
def manager(ledger: StakingLedger, principal: str, caller: str, grant: bool):
    """Grant or revoke manager status (owner only)."""
    ledger.set_manager(caller, principal, grant)
    click.echo(f"{principal} is {'now' if grant else 'no longer'} a manager")


@cli.group()
def config():
    """Inspect or tune global settings."""
    pass


@config.command("show")
@ledger_command(save=False)
def config_show(ledger: StakingLedger):
    for field, value in ledger.config.model_dump(mode="json").items():
        click.echo(f"{field}: {value}")


@config.command("set")
@click.argument('field', type=click.Choice(sorted(CONFIG_SETTERS)))
@click.argument('value')
@caller_option
@at_option
@ledger_command(save=True)
def config_set(ledger: StakingLedger, field: str, value: str, caller: str):
    """Update one global setting (managers only)."""
    setter, cast = CONFIG_SETTERS[field]
    try:
        converted = cast(value)
    except ValueError:
        raise click.BadParameter(f"{value!r} is not a valid {field}")
    getattr(ledger, setter)(caller, converted)
    click.echo(f"{field} = {getattr(ledger.config, field)}")


@cli.command()
@click.option('--kind', type=click.Choice([k.value for k in EventKind]), default=None)
@click.option('--limit', type=click.IntRange(min=0), default=20, show_default=True)
@ledger_command(save=False)
def events(ledger: StakingLedger, kind: Optional[str], limit: int):
    """Show the most recent notifications."""
    history = ledger.events.of_kind(EventKind(kind)) if kind else ledger.events.history
    for note in history[max(len(history) - limit, 0):]:
        click.echo(f"{note.timestamp}\t{note.kind.value}\t{note.data}")


if __name__ == "__main__":
    cli()
