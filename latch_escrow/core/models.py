"""
latch_escrow/core/models.py

Escrow Data Model

═══════════════════════════════════════════════════════════════════
CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 — Immutability
    Vault and ActivityEntry are frozen. A status change produces a new
    Vault via with_status(); id, created_at, amount, counterparty and
    memo are carried over untouched.

CONTRACT 2 — Amount precision
    amount is a Decimal quantized to AMOUNT_QUANTUM (0.0001), rounded
    half up. Persisted as the JSON number field "amountSol".

CONTRACT 3 — Wire names
    Vault:          id, createdAt, amountSol, counterparty, status, memo?
    ActivityEntry:  id, ts, message
    Role / status:  lowercase strings

CONTRACT 4 — Failure tag
    An ActivityEntry records a failed attempt iff its message starts
    with FAILURE_MARK.
═══════════════════════════════════════════════════════════════════
"""

import math
import secrets
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Dict, Optional

from latch_escrow.core.exceptions import ValidationError


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

AMOUNT_QUANTUM = Decimal("0.0001")
ASSET_SYMBOL   = "SOL"

FAILURE_MARK = "✖"
SUCCESS_MARK = "✓"
ACTION_MARK  = "⇢"
DELETE_MARK  = "⌫"
EXPORT_MARK  = "⇣"

# Vault id prefix shown in ledger messages
ID_DISPLAY_LENGTH = 10


# ─────────────────────────────────────────────────────────────
# Vocabulary
# ─────────────────────────────────────────────────────────────

class VaultStatus(Enum):
    """Lifecycle states of a vault. RELEASED and REFUNDED are terminal."""
    DRAFT    = "draft"
    FUNDED   = "funded"
    RELEASED = "released"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self in (VaultStatus.RELEASED, VaultStatus.REFUNDED)


class Role(Enum):
    """Who is currently acting."""
    CREATOR      = "creator"
    COUNTERPARTY = "counterparty"
    ARBITRATOR   = "arbitrator"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Operation(Enum):
    """Protocol operations gated by the permission engine."""
    CREATE_DRAFT = "create_draft"
    FUND         = "fund"
    RELEASE      = "release"
    REFUND       = "refund"
    DELETE       = "delete"


class DecisionType(Enum):
    """Authorization decision types"""
    ALLOW = "ALLOW"
    DENY  = "DENY"


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def generate_id(prefix: str, ms: int) -> str:
    """Opaque unique id: <prefix>_<12 random hex>_<hex ms>."""
    return f"{prefix}_{secrets.token_hex(6)}_{ms:x}"


def quantize_amount(value: Decimal) -> Decimal:
    """Round to 4 decimal places, half up, with as many digits as that takes."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 6)
        return value.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert user or persisted input to Decimal.

    Returns None for anything that is not a finite number, including
    magnitudes a JSON number (IEEE double) cannot carry. Floats go
    through str() so 0.1 stays 0.1 rather than its binary expansion.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite() or math.isinf(float(result)):
        return None
    return result


def format_amount(amount: Decimal) -> str:
    """Render an amount without trailing zeros: Decimal('0.0100') -> '0.01'."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(amount.as_tuple().digits))
        return f"{amount.normalize():f}"


def short_addr(value: str) -> str:
    """Abbreviate long identifiers as <first 4>…<last 4>."""
    if not value:
        return ""
    if len(value) <= 10:
        return value
    return f"{value[:4]}…{value[-4:]}"


def short_id(vault_id: str) -> str:
    return f"{vault_id[:ID_DISPLAY_LENGTH]}…"


# ─────────────────────────────────────────────────────────────
# Vault
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Vault:
    """An escrow record: an amount owed to a counterparty and its status."""

    id:           str
    created_at:   int
    amount:       Decimal
    counterparty: str
    status:       VaultStatus = VaultStatus.DRAFT
    memo:         Optional[str] = None

    def with_status(self, status: VaultStatus) -> "Vault":
        """Copy of this vault with only the status changed."""
        return replace(self, status=status)

    @property
    def search_text(self) -> str:
        """Haystack for free-text search."""
        return f"{self.id} {self.counterparty} {self.memo or ''} {self.status.value}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id":           self.id,
            "createdAt":    self.created_at,
            "amountSol":    float(self.amount),
            "counterparty": self.counterparty,
            "status":       self.status.value,
        }
        if self.memo is not None:
            data["memo"] = self.memo
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vault":
        """
        Deserialize a persisted vault record.

        Raises ValidationError naming the first offending field.
        """
        if not isinstance(data, dict):
            raise ValidationError(
                f"vault record must be an object, got {type(data).__name__}"
            )
        try:
            vault_id     = data["id"]
            created_at   = data["createdAt"]
            raw_amount   = data["amountSol"]
            counterparty = data["counterparty"]
            raw_status   = data["status"]
        except KeyError as exc:
            raise ValidationError(f"vault record missing field {exc}") from exc

        if not isinstance(vault_id, str) or not vault_id:
            raise ValidationError("vault id must be a non-empty string")
        if isinstance(created_at, bool) or not isinstance(created_at, int):
            raise ValidationError(
                "createdAt must be integer milliseconds",
                {"id": vault_id},
            )
        amount = to_decimal(raw_amount)
        if amount is not None:
            amount = quantize_amount(amount)
        if amount is None or amount <= 0:
            raise ValidationError(
                "amountSol must be a positive number",
                {"id": vault_id, "amountSol": raw_amount},
            )
        if not isinstance(counterparty, str) or not counterparty.strip():
            raise ValidationError(
                "counterparty must be a non-empty string",
                {"id": vault_id},
            )
        try:
            status = VaultStatus(raw_status)
        except ValueError as exc:
            raise ValidationError(
                f"unknown vault status {raw_status!r}",
                {"id": vault_id},
            ) from exc
        memo = data.get("memo")
        if memo is not None and not isinstance(memo, str):
            raise ValidationError("memo must be a string", {"id": vault_id})

        return cls(
            id=           vault_id,
            created_at=   created_at,
            amount=       amount,
            counterparty= counterparty.strip(),
            status=       status,
            memo=         memo or None,
        )


# ─────────────────────────────────────────────────────────────
# ActivityEntry
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ActivityEntry:
    """One human-readable audit record. Never edited after append."""

    id:      str
    ts:      int
    message: str

    @property
    def is_failure(self) -> bool:
        return self.message.startswith(FAILURE_MARK)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "ts": self.ts, "message": self.message}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActivityEntry":
        if not isinstance(data, dict):
            raise ValidationError(
                f"activity record must be an object, got {type(data).__name__}"
            )
        try:
            entry_id = data["id"]
            ts       = data["ts"]
            message  = data["message"]
        except KeyError as exc:
            raise ValidationError(f"activity record missing field {exc}") from exc
        if not isinstance(entry_id, str) or not entry_id:
            raise ValidationError("activity id must be a non-empty string")
        if isinstance(ts, bool) or not isinstance(ts, int):
            raise ValidationError("ts must be integer milliseconds", {"id": entry_id})
        if not isinstance(message, str):
            raise ValidationError("message must be a string", {"id": entry_id})
        return cls(id=entry_id, ts=ts, message=message)


# ─────────────────────────────────────────────────────────────
# PermissionDecision
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PermissionDecision:
    """
    Result of PermissionEngine.check().

    Returned, never raised. bool(decision) is True iff allowed.
    reason is empty on ALLOW and a fixed human-readable string on DENY.
    """
    decision:        DecisionType
    reason:          str = ""
    matched_rule_id: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.decision == DecisionType.ALLOW

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls, rule_id: Optional[str] = None) -> "PermissionDecision":
        return cls(DecisionType.ALLOW, "", rule_id)

    @classmethod
    def deny(cls, reason: str, rule_id: Optional[str] = None) -> "PermissionDecision":
        return cls(DecisionType.DENY, reason, rule_id)
