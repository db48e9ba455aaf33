"""
Latch Escrow Query Engine - filtered, searched and sorted vault views.
"""

from latch_escrow.query.engine import LockedBalance, QueryEngine, SortKey, StatusFilter

__all__ = ["QueryEngine", "StatusFilter", "SortKey", "LockedBalance"]
