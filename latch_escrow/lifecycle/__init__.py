"""
Latch Escrow Lifecycle Controller

Orchestrates vault transitions:
- consults the PermissionEngine
- mutates the VaultStore
- appends to the ActivityLedger
- publishes LifecycleEvents

Design Philosophy:
- Denials are data, not exceptions
- Exactly one ledger entry per protocol call
- The admin reset is separate from protocol operations
"""

from latch_escrow.lifecycle.controller import (
    LifecycleResult,
    VaultLifecycleController,
    parse_amount,
)

__all__ = ["LifecycleResult", "VaultLifecycleController", "parse_amount"]
