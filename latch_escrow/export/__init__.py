"""
Latch Escrow Export - serializable snapshots for external transports.
"""

from latch_escrow.export.snapshot import (
    SNAPSHOT_ACTIVITY_LOG,
    SNAPSHOT_VAULT,
    activity_snapshot,
    export_filename,
    snapshot_digest,
    vault_snapshot,
)

__all__ = [
    "SNAPSHOT_VAULT",
    "SNAPSHOT_ACTIVITY_LOG",
    "vault_snapshot",
    "activity_snapshot",
    "snapshot_digest",
    "export_filename",
]
