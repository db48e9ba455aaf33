"""
Persisted state: a key-value JSON document.

    latch_escrow_vaults_v1    list of vault records
    latch_escrow_activity_v1  list of activity records
    latch_escrow_role_v1      "creator" | "counterparty" | "arbitrator"

Writes are atomic: temp file, fsync, replace. A document that cannot be
parsed is reported with a RuntimeWarning and treated as empty state.
"""

import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from latch_escrow.core.exceptions import StateError, ValidationError
from latch_escrow.core.models import ActivityEntry, Role, Vault

KEY_VAULTS   = "latch_escrow_vaults_v1"
KEY_ACTIVITY = "latch_escrow_activity_v1"
KEY_ROLE     = "latch_escrow_role_v1"


@dataclass
class PersistedState:
    vaults:   List[Vault] = field(default_factory=list)
    activity: List[ActivityEntry] = field(default_factory=list)
    role:     Role = Role.CREATOR

    def to_dict(self) -> dict:
        return {
            KEY_VAULTS:   [v.to_dict() for v in self.vaults],
            KEY_ACTIVITY: [e.to_dict() for e in self.activity],
            KEY_ROLE:     self.role.value,
        }


class StateFile:
    """JSON-file backed key-value store for vaults, activity and role."""

    def __init__(self, path: Path, default_role: Role = Role.CREATOR) -> None:
        self.path = Path(path)
        self.default_role = default_role

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> PersistedState:
        """Load state. Missing file -> empty state."""
        if not self.path.exists():
            return PersistedState(role=self.default_role)

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StateError(
                f"Failed to read state file: {exc}", {"path": str(self.path)}
            ) from exc

        if not raw.strip():
            return PersistedState(role=self.default_role)

        try:
            data = json.loads(raw)
            return self._parse(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            warnings.warn(
                f"StateFile: could not restore state from {self.path}: {exc}. "
                "Starting from empty state; the file is overwritten on next save.",
                RuntimeWarning,
                stacklevel=2,
            )
            return PersistedState(role=self.default_role)

    def save(self, state: PersistedState) -> None:
        """Write state atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, ensure_ascii=False, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except OSError as exc:
            if temp_path.exists():
                temp_path.unlink()
            raise StateError(
                f"Failed to write state file: {exc}", {"path": str(self.path)}
            ) from exc

    def _parse(self, data: dict) -> PersistedState:
        if not isinstance(data, dict):
            raise ValidationError(
                f"state document must be an object, got {type(data).__name__}"
            )

        raw_vaults = data.get(KEY_VAULTS) or []
        raw_activity = data.get(KEY_ACTIVITY) or []
        if not isinstance(raw_vaults, list) or not isinstance(raw_activity, list):
            raise ValidationError("vaults and activity must be lists")

        vaults = [Vault.from_dict(v) for v in raw_vaults]
        seen = set()
        for vault in vaults:
            if vault.id in seen:
                raise ValidationError("duplicate vault id", {"id": vault.id})
            seen.add(vault.id)

        activity = [ActivityEntry.from_dict(e) for e in raw_activity]

        try:
            role = Role(data.get(KEY_ROLE))
        except ValueError:
            role = self.default_role

        return PersistedState(vaults=vaults, activity=activity, role=role)
