"""
Activity ledger implementation.

Append-only audit trail of attempted and completed actions.
Entries are frozen; the only way to remove one is clear(), which drops
them all.
"""

import threading
from typing import Callable, Iterable, List, Optional

from latch_escrow.core.models import ActivityEntry, generate_id
from latch_escrow.core.time import now_ms


class ActivityLedger:
    """
    Append-only activity log.

    Thread-safe via internal lock. list_all() is chronological
    (insertion order).
    """

    ID_PREFIX = "a"

    def __init__(
        self,
        entries: Optional[Iterable[ActivityEntry]] = None,
        clock:   Callable[[], int] = now_ms,
    ) -> None:
        self._lock:    threading.Lock      = threading.Lock()
        self._entries: List[ActivityEntry] = list(entries or ())
        self._clock = clock

    def append(self, message: str) -> ActivityEntry:
        """Record one message with a fresh id and the current timestamp."""
        with self._lock:
            ts = self._clock()
            entry = ActivityEntry(
                id=      generate_id(self.ID_PREFIX, ts),
                ts=      ts,
                message= message,
            )
            self._entries.append(entry)
            return entry

    def list_all(self) -> List[ActivityEntry]:
        with self._lock:
            return self._entries.copy()

    def failures(self) -> List[ActivityEntry]:
        """Entries recording attempted-but-rejected actions."""
        return [e for e in self.list_all() if e.is_failure]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_stats(self) -> dict:
        """Get ledger statistics"""
        entries = self.list_all()
        failed = sum(1 for e in entries if e.is_failure)
        return {
            "total_entries":   len(entries),
            "failed_attempts": failed,
            "first_entry_ts":  entries[0].ts if entries else None,
            "last_entry_ts":   entries[-1].ts if entries else None,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
