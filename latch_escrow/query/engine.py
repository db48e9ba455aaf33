"""
Query engine: read-only projections over vaults.

Filter, then search, then sort. Never mutates anything.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional

from latch_escrow.core.models import Vault, VaultStatus


class StatusFilter(Enum):
    ALL    = "all"
    DRAFT  = "draft"
    FUNDED = "funded"
    CLOSED = "closed"

    def matches(self, status: VaultStatus) -> bool:
        if self is StatusFilter.ALL:
            return True
        if self is StatusFilter.CLOSED:
            return status.is_terminal
        return status.value == self.value


class SortKey(Enum):
    NEWEST      = "newest"
    OLDEST      = "oldest"
    AMOUNT_DESC = "amount_desc"
    AMOUNT_ASC  = "amount_asc"


# (sort key function, reverse); Python's sort stays stable with reverse=True
_SORTS = {
    SortKey.NEWEST:      (lambda v: v.created_at, True),
    SortKey.OLDEST:      (lambda v: v.created_at, False),
    SortKey.AMOUNT_DESC: (lambda v: v.amount, True),
    SortKey.AMOUNT_ASC:  (lambda v: v.amount, False),
}


@dataclass(frozen=True)
class LockedBalance:
    """Locked balance meter: funded value against total volume."""
    locked_total: Decimal
    total_volume: Decimal
    locked_pct:   float
    funded_count: int
    total_count:  int

    def to_dict(self) -> dict:
        return {
            "locked_total": float(self.locked_total),
            "total_volume": float(self.total_volume),
            "locked_pct":   self.locked_pct,
            "funded_count": self.funded_count,
            "total_count":  self.total_count,
        }


class QueryEngine:
    """Stateless; every call recomputes from the vaults it is given."""

    def query(
        self,
        vaults:        Iterable[Vault],
        status_filter: StatusFilter = StatusFilter.ALL,
        search:        Optional[str] = None,
        sort:          SortKey = SortKey.NEWEST,
    ) -> List[Vault]:
        result = [v for v in vaults if status_filter.matches(v.status)]

        needle = (search or "").strip().lower()
        if needle:
            result = [v for v in result if needle in v.search_text.lower()]

        key, reverse = _SORTS[sort]
        return sorted(result, key=key, reverse=reverse)

    def locked_balance(self, vaults: Iterable[Vault]) -> LockedBalance:
        vaults = list(vaults)
        funded = [v for v in vaults if v.status == VaultStatus.FUNDED]

        locked = sum((v.amount for v in funded), Decimal("0"))
        total  = sum((v.amount for v in vaults), Decimal("0"))

        if total <= 0:
            pct = 0.0
        else:
            pct = max(0.0, min(100.0, float(locked / total * 100)))

        return LockedBalance(
            locked_total= locked,
            total_volume= total,
            locked_pct=   pct,
            funded_count= len(funded),
            total_count=  len(vaults),
        )
