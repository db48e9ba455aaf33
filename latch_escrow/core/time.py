"""
latch_escrow/core/time.py

Timestamp helpers.

Two wire formats exist:
    epoch milliseconds        vault createdAt, activity ts
    YYYY-MM-DDTHH:MM:SS.mmmZ  export exportedAt (milliseconds, explicit Z)

now_ms() never goes backwards within a process, even if the wall clock does.
"""

import threading
import time
from datetime import datetime, timezone

_lock    = threading.Lock()
_last_ms = 0


def now_ms() -> int:
    """Current time in epoch milliseconds, non-decreasing across calls."""
    global _last_ms
    with _lock:
        ms = time.time_ns() // 1_000_000
        if ms < _last_ms:
            ms = _last_ms
        _last_ms = ms
        return ms


def iso_timestamp() -> str:
    """
    Return current UTC time as YYYY-MM-DDTHH:MM:SS.mmmZ
    (exactly 3 fractional digits, Z suffix).
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"


def ms_to_iso(ms: int) -> str:
    """Render epoch milliseconds in the same format as iso_timestamp()."""
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms % 1000:03d}Z"
