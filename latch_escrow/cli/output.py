"""
Terminal rendering helpers for the latch CLI.
"""

import json
import sys
from typing import Iterable

import click

from latch_escrow.core.models import (
    ActivityEntry,
    Vault,
    VaultStatus,
    format_amount,
    short_addr,
)
from latch_escrow.core.time import ms_to_iso


# ── ANSI color ────────────────────────────────────────────────────────────────

class Color:
    """
    Minimal ANSI color wrapper.
    Auto-disables when not a TTY or --no-color is passed.
    """
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def green(cls, s: str) -> str:
        return f"\033[32m{s}\033[0m" if cls._on else s

    @classmethod
    def red(cls, s: str) -> str:
        return f"\033[31m{s}\033[0m" if cls._on else s

    @classmethod
    def yellow(cls, s: str) -> str:
        return f"\033[33m{s}\033[0m" if cls._on else s

    @classmethod
    def cyan(cls, s: str) -> str:
        return f"\033[36m{s}\033[0m" if cls._on else s

    @classmethod
    def dim(cls, s: str) -> str:
        return f"\033[2m{s}\033[0m" if cls._on else s


_STATUS_COLOR = {
    VaultStatus.DRAFT:    Color.dim,
    VaultStatus.FUNDED:   Color.green,
    VaultStatus.RELEASED: Color.cyan,
    VaultStatus.REFUNDED: Color.red,
}


def status_badge(status: VaultStatus) -> str:
    return _STATUS_COLOR[status](f"{status.value:<8}")


def vault_row(vault: Vault) -> str:
    memo = f"  {Color.dim(vault.memo)}" if vault.memo else ""
    return (
        f"  {vault.id:<34}  {status_badge(vault.status)}  "
        f"{format_amount(vault.amount):>12} SOL → {short_addr(vault.counterparty)}{memo}"
    )


def activity_row(entry: ActivityEntry) -> str:
    ts = Color.dim(ms_to_iso(entry.ts))
    message = Color.red(entry.message) if entry.is_failure else entry.message
    return f"  {ts}  {message}"


def label_row(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}  {value}"


def echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def echo_vaults(vaults: Iterable[Vault]) -> None:
    vaults = list(vaults)
    if not vaults:
        click.echo(Color.dim("  (no vaults)"))
        return
    for vault in vaults:
        click.echo(vault_row(vault))


def echo_activity(entries: Iterable[ActivityEntry]) -> None:
    entries = list(entries)
    if not entries:
        click.echo(Color.dim("  (no activity)"))
        return
    for entry in entries:
        click.echo(activity_row(entry))
