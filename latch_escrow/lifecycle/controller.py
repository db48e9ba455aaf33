"""
Vault lifecycle controller.

State machine over Vault.status:

    draft --fund--> funded --release--> released   (terminal)
                          \\--refund--> refunded     (terminal)
    draft|released|refunded --delete--> (removed)

Every protocol call, in this order:
    1. Acquire the controller lock
    2. Look up the target, ask the PermissionEngine, then check the
       transition graph (a policy can narrow it, never widen it)
    3. Validate input (create_draft only)
    4. Mutate the VaultStore (success only)
    5. Append exactly one ActivityLedger entry (success or failure)
    6. Release the lock, then publish one LifecycleEvent

Denials and validation failures are returned, never raised.
"""

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Optional, Tuple

from latch_escrow.core.events import (
    EventBus,
    EventType,
    LifecycleEvent,
    generate_event_id,
)
from latch_escrow.core.exceptions import VaultNotFoundError
from latch_escrow.core.models import (
    ACTION_MARK,
    ASSET_SYMBOL,
    DELETE_MARK,
    FAILURE_MARK,
    SUCCESS_MARK,
    ActivityEntry,
    Operation,
    PermissionDecision,
    Role,
    Vault,
    VaultStatus,
    format_amount,
    generate_id,
    quantize_amount,
    short_addr,
    short_id,
    to_decimal,
)
from latch_escrow.core.time import now_ms
from latch_escrow.ledger.ledger import ActivityLedger
from latch_escrow.policy.policy import PermissionEngine
from latch_escrow.policy.rules import DEFAULT_MISSING_REASON
from latch_escrow.store.store import VaultStore

logger = logging.getLogger("latch.escrow.lifecycle")

INVALID_AMOUNT_REASON       = "Enter a valid Amount (SOL)."
MISSING_COUNTERPARTY_REASON = "Enter a counterparty wallet (base58)."
CREATE_DENIED_HINT          = " (switch role to Creator)"


@dataclass(frozen=True)
class LifecycleResult:
    """
    Outcome of one protocol call.

    entry is the single ledger entry the call appended.
    vault is the vault after the call (None when absent or removed
    before it ever existed).
    """
    ok:        bool
    operation: Operation
    vault_id:  Optional[str]
    reason:    str
    entry:     ActivityEntry
    vault:     Optional[Vault] = None

    def __bool__(self) -> bool:
        return self.ok


def parse_amount(raw: Any) -> Optional[Decimal]:
    """Parse and round an amount. None unless finite and > 0 after rounding."""
    value = to_decimal(raw)
    if value is None or value < 0:
        return None
    value = quantize_amount(value)
    if value <= 0:
        return None
    return value


# Statuses each id-addressed operation may start from, with the denial reason.
_LEGAL_SOURCES = {
    Operation.FUND: (
        frozenset({VaultStatus.DRAFT}),
        "Only Draft vaults can be funded.",
    ),
    Operation.RELEASE: (
        frozenset({VaultStatus.FUNDED}),
        "Only Funded vaults can be released.",
    ),
    Operation.REFUND: (
        frozenset({VaultStatus.FUNDED}),
        "Only Funded vaults can be refunded.",
    ),
    Operation.DELETE: (
        frozenset({VaultStatus.DRAFT, VaultStatus.RELEASED, VaultStatus.REFUNDED}),
        "Funded vaults cannot be deleted.",
    ),
}


# Per-transition settings: target status, event type, success message.
_TRANSITIONS = {
    Operation.FUND: (
        VaultStatus.FUNDED,
        EventType.VAULT_FUNDED,
        lambda v: (
            f"{ACTION_MARK} Funded (locked): {format_amount(v.amount)} "
            f"{ASSET_SYMBOL} in vault {short_id(v.id)}"
        ),
    ),
    Operation.RELEASE: (
        VaultStatus.RELEASED,
        EventType.VAULT_RELEASED,
        lambda v: (
            f"{ACTION_MARK} Released to counterparty: {short_addr(v.counterparty)} "
            f"(vault {short_id(v.id)})"
        ),
    ),
    Operation.REFUND: (
        VaultStatus.REFUNDED,
        EventType.VAULT_REFUNDED,
        lambda v: (
            f"{ACTION_MARK} Refunded to creator (simulated) for vault {short_id(v.id)}"
        ),
    ),
}


class VaultLifecycleController:
    """
    Orchestrates vault state transitions.

    All mutations are serialized through one re-entrant lock, so a
    check-then-write such as "status is draft, set funded" cannot race
    with another caller. Queries may read the store concurrently.
    """

    VAULT_ID_PREFIX = "vault"

    def __init__(
        self,
        store:       VaultStore,
        ledger:      ActivityLedger,
        permissions: PermissionEngine,
        events:      Optional[EventBus] = None,
        clock:       Callable[[], int] = now_ms,
    ) -> None:
        self.store       = store
        self.ledger      = ledger
        self.permissions = permissions
        self.events      = events or EventBus()
        self._clock      = clock
        self._lock       = threading.RLock()
        self._selected_id: Optional[str] = None

    # ── Selection ─────────────────────────────────────────────

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selected_vault(self) -> Optional[Vault]:
        return self.store.get(self._selected_id)

    def select(self, vault_id: Optional[str]) -> None:
        """Select a vault (None clears). Raises VaultNotFoundError on unknown id."""
        with self._lock:
            if vault_id is not None and vault_id not in self.store:
                raise VaultNotFoundError("Vault not found", {"id": vault_id})
            self._selected_id = vault_id

    # ── Protocol operations ───────────────────────────────────

    def create_draft(
        self,
        role:         Role,
        amount:       Any,
        counterparty: str,
        memo:         Optional[str] = None,
    ) -> LifecycleResult:
        """
        Open a new vault in draft.

        amount may be a string, int, float or Decimal; it is rounded to
        4 decimals. counterparty and memo are trimmed.
        """
        with self._lock:
            result, event = self._create_draft(role, amount, counterparty, memo)
        self.events.publish(event)
        return result

    def fund(self, role: Role, vault_id: Optional[str]) -> LifecycleResult:
        return self._run_transition(role, vault_id, Operation.FUND)

    def release(self, role: Role, vault_id: Optional[str]) -> LifecycleResult:
        return self._run_transition(role, vault_id, Operation.RELEASE)

    def refund(self, role: Role, vault_id: Optional[str]) -> LifecycleResult:
        return self._run_transition(role, vault_id, Operation.REFUND)

    def delete(self, role: Role, vault_id: Optional[str]) -> LifecycleResult:
        """Remove a non-funded vault. Clears the selection if it pointed here."""
        with self._lock:
            result, event = self._delete(role, vault_id)
        self.events.publish(event)
        return result

    # ── Administrative ────────────────────────────────────────

    def admin_reset(self) -> None:
        """
        Operator action: empty the store and the ledger, clear selection.

        NOT a protocol operation. Bypasses the permission engine and
        leaves no ledger entry behind.
        """
        with self._lock:
            vault_count = len(self.store)
            entry_count = len(self.ledger)
            self.store.clear()
            self.ledger.clear()
            self._selected_id = None
            event = LifecycleEvent(
                event_id=   generate_event_id(),
                timestamp=  self._clock(),
                event_type= EventType.RESET,
                operation=  None,
                role=       None,
                vault_id=   None,
                message=    "All vaults and activity cleared.",
            )
        logger.warning(
            "Admin reset: dropped %d vault(s) and %d activity entries",
            vault_count, entry_count,
        )
        self.events.publish(event)

    # ── Internal ──────────────────────────────────────────────

    def _create_draft(
        self,
        role:         Role,
        amount:       Any,
        counterparty: str,
        memo:         Optional[str],
    ) -> Tuple[LifecycleResult, LifecycleEvent]:
        op = Operation.CREATE_DRAFT

        decision = self.permissions.check(role, None, op)
        if not decision:
            return self._deny(op, role, None, decision.reason, hint=CREATE_DENIED_HINT)

        value = parse_amount(amount)
        if value is None:
            return self._deny(op, role, None, INVALID_AMOUNT_REASON)

        counterparty = counterparty.strip() if isinstance(counterparty, str) else ""
        if not counterparty:
            return self._deny(op, role, None, MISSING_COUNTERPARTY_REASON)

        memo = memo.strip() if isinstance(memo, str) else None

        created_at = self._clock()
        vault = Vault(
            id=           generate_id(self.VAULT_ID_PREFIX, created_at),
            created_at=   created_at,
            amount=       value,
            counterparty= counterparty,
            status=       VaultStatus.DRAFT,
            memo=         memo or None,
        )
        self.store.insert(vault)
        self._selected_id = vault.id

        entry = self.ledger.append(
            f"{SUCCESS_MARK} Draft created: {format_amount(vault.amount)} {ASSET_SYMBOL} "
            f"→ {short_addr(vault.counterparty)} ({short_id(vault.id)})"
        )
        logger.debug("Vault %s created by %s", vault.id, role.value)

        return self._success(
            op, role, vault, entry, EventType.VAULT_CREATED, selected=True
        )

    def _run_transition(
        self,
        role:      Role,
        vault_id:  Optional[str],
        operation: Operation,
    ) -> LifecycleResult:
        with self._lock:
            result, event = self._transition(role, vault_id, operation)
        self.events.publish(event)
        return result

    def _transition(
        self,
        role:      Role,
        vault_id:  Optional[str],
        operation: Operation,
    ) -> Tuple[LifecycleResult, LifecycleEvent]:
        target_status, event_type, describe = _TRANSITIONS[operation]

        vault = self.store.get(vault_id)
        decision = self._authorize(role, vault, operation)
        if not decision:
            return self._deny(operation, role, vault_id, decision.reason, vault=vault)

        updated = self.store.set_status(vault.id, target_status)
        entry = self.ledger.append(describe(updated))
        logger.debug(
            "Vault %s %s -> %s by %s",
            vault.id, vault.status.value, target_status.value, role.value,
        )
        return self._success(operation, role, updated, entry, event_type)

    def _delete(
        self,
        role:     Role,
        vault_id: Optional[str],
    ) -> Tuple[LifecycleResult, LifecycleEvent]:
        op = Operation.DELETE

        vault = self.store.get(vault_id)
        decision = self._authorize(role, vault, op)
        if not decision:
            return self._deny(op, role, vault_id, decision.reason, vault=vault)

        self.store.remove(vault.id)
        if self._selected_id == vault.id:
            self._selected_id = None

        entry = self.ledger.append(f"{DELETE_MARK} Vault deleted: {short_id(vault.id)}")
        logger.debug("Vault %s deleted by %s", vault.id, role.value)

        result = LifecycleResult(
            ok=        True,
            operation= op,
            vault_id=  vault.id,
            reason=    "",
            entry=     entry,
            vault=     None,
        )
        return result, self._event(EventType.VAULT_DELETED, op, role, vault.id, entry)

    def _authorize(
        self,
        role:      Role,
        vault:     Optional[Vault],
        operation: Operation,
    ) -> PermissionDecision:
        """Policy decision, then the transition graph the policy cannot override."""
        decision = self.permissions.check(role, vault, operation)
        if not decision:
            return decision
        if vault is None:
            return PermissionDecision.deny(DEFAULT_MISSING_REASON, decision.matched_rule_id)
        legal, reason = _LEGAL_SOURCES[operation]
        if vault.status not in legal:
            return PermissionDecision.deny(reason, decision.matched_rule_id)
        return decision

    def _success(
        self,
        operation:  Operation,
        role:       Role,
        vault:      Vault,
        entry:      ActivityEntry,
        event_type: EventType,
        selected:   bool = False,
    ) -> Tuple[LifecycleResult, LifecycleEvent]:
        result = LifecycleResult(
            ok=        True,
            operation= operation,
            vault_id=  vault.id,
            reason=    "",
            entry=     entry,
            vault=     vault,
        )
        event = self._event(event_type, operation, role, vault.id, entry, selected)
        return result, event

    def _deny(
        self,
        operation: Operation,
        role:      Role,
        vault_id:  Optional[str],
        reason:    str,
        vault:     Optional[Vault] = None,
        hint:      str = "",
    ) -> Tuple[LifecycleResult, LifecycleEvent]:
        entry = self.ledger.append(f"{FAILURE_MARK} {reason}{hint}")
        logger.info(
            "Denied %s by %s on %s: %s",
            operation.value, role.value, vault_id or "-", reason,
        )
        result = LifecycleResult(
            ok=        False,
            operation= operation,
            vault_id=  vault_id,
            reason=    reason,
            entry=     entry,
            vault=     vault,
        )
        return result, self._event(EventType.DENIED, operation, role, vault_id, entry)

    def _event(
        self,
        event_type: EventType,
        operation:  Operation,
        role:       Role,
        vault_id:   Optional[str],
        entry:      ActivityEntry,
        selected:   bool = False,
    ) -> LifecycleEvent:
        return LifecycleEvent(
            event_id=   generate_event_id(),
            timestamp=  entry.ts,
            event_type= event_type,
            operation=  operation,
            role=       role,
            vault_id=   vault_id,
            message=    entry.message,
            selected=   selected,
        )
