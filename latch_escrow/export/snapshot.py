"""
Export snapshots.

The core only builds the structure. Copying it to a clipboard or
writing it to a file belongs to the caller.

    {"type": "vault",        "exportedAt": ..., "roleContext": ..., "vault":  {...}}
    {"type": "activity_log", "exportedAt": ..., "roleContext": ..., "events": [...]}
"""

from typing import Any, Dict, Iterable, Optional

from latch_escrow.core.canonical import canonical_hash
from latch_escrow.core.models import ActivityEntry, Role, Vault
from latch_escrow.core.time import iso_timestamp

SNAPSHOT_VAULT        = "vault"
SNAPSHOT_ACTIVITY_LOG = "activity_log"


def vault_snapshot(
    vault: Vault,
    role: Role,
    exported_at: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "type":        SNAPSHOT_VAULT,
        "exportedAt":  exported_at or iso_timestamp(),
        "roleContext": role.value,
        "vault":       vault.to_dict(),
    }


def activity_snapshot(
    entries: Iterable[ActivityEntry],
    role: Role,
    exported_at: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "type":        SNAPSHOT_ACTIVITY_LOG,
        "exportedAt":  exported_at or iso_timestamp(),
        "roleContext": role.value,
        "events":      [e.to_dict() for e in entries],
    }


def snapshot_digest(snapshot: Dict[str, Any]) -> str:
    """SHA-256 of the snapshot's RFC 8785 canonical form."""
    return canonical_hash(snapshot)


def export_filename(snapshot: Dict[str, Any]) -> str:
    """Suggested download name for a snapshot."""
    if snapshot["type"] == SNAPSHOT_VAULT:
        return f"vault_{snapshot['vault']['id'][:10]}.json"
    return f"activity_log_{snapshot['exportedAt'][:10]}.json"
