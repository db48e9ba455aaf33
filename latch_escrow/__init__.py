"""
latch_escrow/__init__.py

Latch Escrow: Vault Lifecycle Engine

Parties move value through a vault from creation to final disposition
under role-based authorization, with every attempt recorded in an
append-only activity ledger. Funding, release and refund are status
changes only; no asset moves.
"""

__version__ = "0.1.0"

from latch_escrow.core.events import EventBus, EventType, LifecycleEvent
from latch_escrow.core.exceptions import (
    LatchError,
    PolicyError,
    StateError,
    ValidationError,
    VaultNotFoundError,
)
from latch_escrow.core.models import (
    ActivityEntry,
    DecisionType,
    Operation,
    PermissionDecision,
    Role,
    Vault,
    VaultStatus,
)
from latch_escrow.ledger.ledger import ActivityLedger
from latch_escrow.lifecycle.controller import LifecycleResult, VaultLifecycleController
from latch_escrow.policy.policy import PermissionEngine, Policy
from latch_escrow.query.engine import LockedBalance, QueryEngine, SortKey, StatusFilter
from latch_escrow.store.store import VaultStore

__all__ = [
    # Model
    "Vault",
    "VaultStatus",
    "ActivityEntry",
    "Role",
    "Operation",
    "DecisionType",
    "PermissionDecision",
    # Components
    "VaultStore",
    "ActivityLedger",
    "Policy",
    "PermissionEngine",
    "VaultLifecycleController",
    "LifecycleResult",
    "QueryEngine",
    "StatusFilter",
    "SortKey",
    "LockedBalance",
    # Events
    "EventBus",
    "EventType",
    "LifecycleEvent",
    # Errors
    "LatchError",
    "PolicyError",
    "StateError",
    "ValidationError",
    "VaultNotFoundError",
]
