"""
latch_escrow/cli/commands.py

latch — vault lifecycle commands
================================

Every command loads the state file, performs one action and writes the
state back, so the activity ledger records denied attempts too.

Exit codes (POSIX-standard, shell-scriptable):
    0  Action succeeded
    1  Action denied (wrong role, wrong status, invalid input)
    2  Error  (unreadable state/policy/config, unknown vault for export)
"""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click

from latch_escrow.cli.output import (
    Color,
    echo_activity,
    echo_json,
    echo_vaults,
    label_row,
)
from latch_escrow.core.exceptions import LatchError
from latch_escrow.core.models import EXPORT_MARK, FAILURE_MARK, Role, format_amount
from latch_escrow.export.snapshot import (
    activity_snapshot,
    export_filename,
    snapshot_digest,
    vault_snapshot,
)
from latch_escrow.lifecycle.controller import LifecycleResult
from latch_escrow.query.engine import SortKey, StatusFilter
from latch_escrow.runtime.context import EscrowContext

ROLE_CHOICE   = click.Choice([r.value for r in Role], case_sensitive=False)
FORMAT_CHOICE = click.Choice(["human", "json"], case_sensitive=False)


# ── Session helpers ───────────────────────────────────────────────────────────

def _fail(message: str) -> None:
    click.echo(Color.red(f"Error: {message}"), err=True)
    raise click.exceptions.Exit(2)


@contextmanager
def _session(ctx: click.Context, save: bool = True) -> Iterator[EscrowContext]:
    """Load context; persist it afterwards unless the body raised."""
    try:
        escrow = EscrowContext.from_config(ctx.obj["config"])
    except LatchError as exc:
        _fail(str(exc))
    try:
        yield escrow
        if save:
            escrow.save()
    except LatchError as exc:
        _fail(str(exc))


def _acting_role(ctx: click.Context, escrow: EscrowContext) -> Role:
    override = ctx.obj.get("role")
    return Role(override.lower()) if override else escrow.role


def _report(result: LifecycleResult, fmt: str = "human") -> None:
    if fmt == "json":
        payload = {
            "ok":        result.ok,
            "operation": result.operation.value,
            "vault_id":  result.vault_id,
            "reason":    result.reason,
            "message":   result.entry.message,
        }
        if result.vault is not None:
            payload["vault"] = result.vault.to_dict()
        echo_json(payload)
    elif result.ok:
        click.echo(Color.green(result.entry.message))
    else:
        click.echo(Color.red(result.entry.message))

    if not result.ok:
        raise click.exceptions.Exit(1)


def _transition_command(name: str, help_text: str) -> click.Command:
    @click.command(name=name, help=help_text)
    @click.argument("vault_id")
    @click.option("--format", "fmt", type=FORMAT_CHOICE, default="human", show_default=True)
    @click.pass_context
    def command(ctx: click.Context, vault_id: str, fmt: str) -> None:
        with _session(ctx) as escrow:
            role = _acting_role(ctx, escrow)
            resolved = escrow.resolve_vault_id(vault_id)
            result = getattr(escrow.controller, name)(role, resolved)
        _report(result, fmt)

    return command


# ── Role ──────────────────────────────────────────────────────────────────────

@click.command(name="role")
@click.argument("role", type=ROLE_CHOICE, required=False)
@click.pass_context
def role_command(ctx: click.Context, role: Optional[str]) -> None:
    """Show or select the acting role (creator, counterparty, arbitrator)."""
    with _session(ctx, save=role is not None) as escrow:
        if role is not None:
            escrow.set_role(Role(role.lower()))
        current = escrow.role
    click.echo(f"Acting role: {Color.cyan(current.label)}")


# ── Protocol operations ───────────────────────────────────────────────────────

@click.command(name="create")
@click.argument("amount")
@click.argument("counterparty")
@click.option("--memo", default=None, help="Optional free-text annotation.")
@click.option("--format", "fmt", type=FORMAT_CHOICE, default="human", show_default=True)
@click.pass_context
def create_command(
    ctx: click.Context,
    amount: str,
    counterparty: str,
    memo: Optional[str],
    fmt: str,
) -> None:
    """
    Create a draft vault for AMOUNT owed to COUNTERPARTY.

    \b
    Examples:
      latch create 0.25 9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin
      latch create 1.5 alice --memo "invoice 421"
    """
    with _session(ctx) as escrow:
        result = escrow.controller.create_draft(
            _acting_role(ctx, escrow), amount, counterparty, memo
        )
    _report(result, fmt)


fund_command = _transition_command("fund", "Fund a draft vault (Creator).")
release_command = _transition_command(
    "release", "Release a funded vault to its counterparty (Creator or Arbitrator)."
)
refund_command = _transition_command(
    "refund", "Refund a funded vault to its creator (Creator or Arbitrator)."
)
delete_command = _transition_command(
    "delete", "Delete a vault record that is not funded (Creator)."
)


# ── Queries ───────────────────────────────────────────────────────────────────

@click.command(name="list")
@click.option(
    "--filter", "status_filter",
    type=click.Choice([f.value for f in StatusFilter], case_sensitive=False),
    default=StatusFilter.ALL.value,
    show_default=True,
)
@click.option("--search", default=None, help="Match id / counterparty / memo / status.")
@click.option(
    "--sort",
    type=click.Choice([s.value for s in SortKey], case_sensitive=False),
    default=SortKey.NEWEST.value,
    show_default=True,
)
@click.option("--format", "fmt", type=FORMAT_CHOICE, default="human", show_default=True)
@click.pass_context
def list_command(
    ctx: click.Context,
    status_filter: str,
    search: Optional[str],
    sort: str,
    fmt: str,
) -> None:
    """List vaults."""
    with _session(ctx, save=False) as escrow:
        vaults = escrow.query.query(
            escrow.store.list_all(),
            status_filter=StatusFilter(status_filter.lower()),
            search=search,
            sort=SortKey(sort.lower()),
        )
    if fmt == "json":
        echo_json([v.to_dict() for v in vaults])
    else:
        echo_vaults(vaults)


@click.command(name="log")
@click.option("--format", "fmt", type=FORMAT_CHOICE, default="human", show_default=True)
@click.option("--failures", is_flag=True, default=False, help="Only failed attempts.")
@click.pass_context
def log_command(ctx: click.Context, fmt: str, failures: bool) -> None:
    """Show the activity ledger, oldest first."""
    with _session(ctx, save=False) as escrow:
        entries = escrow.ledger.failures() if failures else escrow.ledger.list_all()
    if fmt == "json":
        echo_json([e.to_dict() for e in entries])
    else:
        echo_activity(entries)


@click.command(name="stats")
@click.option("--format", "fmt", type=FORMAT_CHOICE, default="human", show_default=True)
@click.pass_context
def stats_command(ctx: click.Context, fmt: str) -> None:
    """Show the locked balance meter."""
    with _session(ctx, save=False) as escrow:
        balance = escrow.query.locked_balance(escrow.store.list_all())
        ledger_stats = escrow.ledger.get_stats()
        role = escrow.role
    if fmt == "json":
        echo_json({**balance.to_dict(), "ledger": ledger_stats, "role": role.value})
        return
    click.echo(label_row("Locked balance", f"{format_amount(balance.locked_total)} SOL"))
    click.echo(label_row("Total volume", f"{format_amount(balance.total_volume)} SOL"))
    click.echo(label_row("Locked ratio", f"{balance.locked_pct:.1f}%"))
    click.echo(label_row(
        "Vaults", f"{balance.funded_count} funded • {balance.total_count} total"
    ))
    click.echo(label_row(
        "Activity",
        f"{ledger_stats['total_entries']} entries "
        f"({ledger_stats['failed_attempts']} failed)",
    ))
    click.echo(label_row("Acting role", role.label))


@click.command(name="policy")
@click.option("--format", "fmt", type=FORMAT_CHOICE, default="human", show_default=True)
@click.pass_context
def policy_command(ctx: click.Context, fmt: str) -> None:
    """Show the permission table in effect."""
    with _session(ctx, save=False) as escrow:
        policy = escrow.permissions.policy
    if fmt == "json":
        echo_json({**policy.to_dict(), "policy_hash": policy.policy_hash})
        return
    click.echo(label_row("Policy", f"{policy.policy_id} v{policy.version}"))
    click.echo(label_row("Hash", policy.policy_hash))
    for rule in policy.rules:
        roles = " or ".join(sorted(r.label for r in rule.roles))
        if rule.requires_vault and rule.allowed_statuses is not None:
            state = "status in " + ", ".join(sorted(s.value for s in rule.allowed_statuses))
        elif rule.requires_vault and rule.denied_statuses:
            state = "status not " + ", ".join(sorted(s.value for s in rule.denied_statuses))
        else:
            state = "no vault required"
        flag = "" if rule.enabled else Color.yellow(" (disabled)")
        click.echo(f"  {rule.operation.value:<13} {state:<28} {roles}{flag}")


# ── Export ────────────────────────────────────────────────────────────────────

@click.group(name="export")
def export_group() -> None:
    """Export a vault or the activity log as a JSON snapshot."""


def _write_export(escrow: EscrowContext, snapshot: dict, out: Optional[str], what: str) -> bool:
    """Print or write the snapshot. Returns False if the file write failed."""
    if out is None:
        echo_json(snapshot)
        return True

    path = Path(out)
    if path.is_dir():
        path = path / export_filename(snapshot)
    try:
        path.write_text(
            json.dumps(snapshot, indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
    except OSError as exc:
        escrow.ledger.append(f"{FAILURE_MARK} Download failed.")
        click.echo(Color.red(f"Error: could not write {path}: {exc}"), err=True)
        return False

    escrow.ledger.append(f"{EXPORT_MARK} Downloaded {what} JSON.")
    click.echo(label_row("Written", str(path)))
    click.echo(label_row("SHA-256", snapshot_digest(snapshot)))
    return True


@export_group.command(name="vault")
@click.argument("vault_id")
@click.option("--out", type=click.Path(), default=None, metavar="PATH",
              help="Write to PATH (file or directory) instead of stdout.")
@click.pass_context
def export_vault_command(ctx: click.Context, vault_id: str, out: Optional[str]) -> None:
    """Export one vault."""
    with _session(ctx) as escrow:
        vault = escrow.store.get(escrow.resolve_vault_id(vault_id))
        if vault is None:
            _fail(f"Vault not found: {vault_id}")
        snapshot = vault_snapshot(vault, _acting_role(ctx, escrow))
        ok = _write_export(escrow, snapshot, out, "selected vault")
    if not ok:
        raise click.exceptions.Exit(2)


@export_group.command(name="log")
@click.option("--out", type=click.Path(), default=None, metavar="PATH",
              help="Write to PATH (file or directory) instead of stdout.")
@click.pass_context
def export_log_command(ctx: click.Context, out: Optional[str]) -> None:
    """Export the full activity log."""
    with _session(ctx) as escrow:
        snapshot = activity_snapshot(escrow.ledger.list_all(), _acting_role(ctx, escrow))
        ok = _write_export(escrow, snapshot, out, "activity log")
    if not ok:
        raise click.exceptions.Exit(2)


# ── Admin ─────────────────────────────────────────────────────────────────────

@click.command(name="reset")
@click.option("--yes", is_flag=True, default=False, help="Do not prompt for confirmation.")
@click.pass_context
def reset_command(ctx: click.Context, yes: bool) -> None:
    """
    ADMIN: delete every vault and the whole activity log.

    Not a protocol action: no role check, nothing is recorded.
    """
    if not yes:
        click.confirm("Delete all vaults and activity?", abort=True)
    with _session(ctx) as escrow:
        escrow.controller.admin_reset()
    click.echo(Color.yellow("All vaults and activity cleared."))
