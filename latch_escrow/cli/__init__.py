"""
latch_escrow/cli/__init__.py

Latch CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    latch = "latch_escrow.cli:cli"

Adding a new command:
    1. Add a @click.command() to latch_escrow/cli/commands.py
    2. cli.add_command(your_command) below
"""

from typing import Optional

import click

from latch_escrow.cli.commands import (
    create_command,
    delete_command,
    export_group,
    fund_command,
    list_command,
    log_command,
    policy_command,
    refund_command,
    release_command,
    reset_command,
    role_command,
    stats_command,
)
from latch_escrow.cli.output import Color
from latch_escrow.core.exceptions import ConfigError
from latch_escrow.core.models import Role
from latch_escrow.runtime.config import load_config


@click.group()
@click.version_option(package_name="latch-escrow")
@click.option("--config", "config_path", type=click.Path(), default=None,
              help="YAML config file (env: LATCH_CONFIG).")
@click.option("--state", "state_path", type=click.Path(), default=None,
              help="State file (env: LATCH_STATE, default .latch/state.json).")
@click.option("--policy", "policy_path", type=click.Path(), default=None,
              help="YAML permission table (env: LATCH_POLICY).")
@click.option("--role", type=click.Choice([r.value for r in Role], case_sensitive=False),
              default=None, help="Act as ROLE for this command only.")
@click.option("--log-level", default=None,
              help="DEBUG, INFO, WARNING, ERROR (env: LATCH_LOG_LEVEL).")
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    state_path: Optional[str],
    policy_path: Optional[str],
    role: Optional[str],
    log_level: Optional[str],
    no_color: bool,
) -> None:
    """
    Latch — escrow vault lifecycle.

    \b
    Commands:
      role      Show or select the acting role
      create    Create a draft vault
      fund      Fund a draft vault
      release   Release a funded vault
      refund    Refund a funded vault
      delete    Delete a non-funded vault
      list      List vaults (filter / search / sort)
      log       Show the activity ledger
      stats     Locked balance meter
      policy    Show the permission table
      export    Export a vault or the activity log
      reset     ADMIN: clear everything

    \b
    Quick start:
      latch create 0.01 abc123 --memo "first vault"
      latch fund vault_3f
      latch --role arbitrator refund vault_3f
      latch list --filter closed --sort amount_desc
    """
    Color.configure(not no_color)
    try:
        config = load_config(
            config_path=config_path,
            state_path=state_path,
            policy_path=policy_path,
            log_level=log_level,
        )
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc
    config.configure_logging()
    ctx.obj = {"config": config, "role": role}


cli.add_command(role_command)
cli.add_command(create_command)
cli.add_command(fund_command)
cli.add_command(release_command)
cli.add_command(refund_command)
cli.add_command(delete_command)
cli.add_command(list_command)
cli.add_command(log_command)
cli.add_command(stats_command)
cli.add_command(policy_command)
cli.add_command(export_group)
cli.add_command(reset_command)
