"""
Latch Escrow Ledger - Append-Only Activity Log

The ledger is the audit trail for every lifecycle attempt.
"""

from latch_escrow.core.models import ActivityEntry
from latch_escrow.ledger.ledger import ActivityLedger

__all__ = ["ActivityLedger", "ActivityEntry"]
