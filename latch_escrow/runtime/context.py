"""
Runtime context: wires persisted state into a working engine.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from latch_escrow.core.exceptions import VaultNotFoundError
from latch_escrow.core.models import Role
from latch_escrow.ledger.ledger import ActivityLedger
from latch_escrow.lifecycle.controller import VaultLifecycleController
from latch_escrow.policy.policy import PermissionEngine, Policy
from latch_escrow.query.engine import QueryEngine
from latch_escrow.runtime.config import EscrowConfig
from latch_escrow.runtime.state import PersistedState, StateFile
from latch_escrow.store.store import VaultStore

logger = logging.getLogger("latch.escrow.runtime")


@dataclass
class EscrowContext:
    """Everything one session needs, loaded from a state file."""

    permissions: PermissionEngine
    store:       VaultStore
    ledger:      ActivityLedger
    controller:  VaultLifecycleController
    query:       QueryEngine
    state_file:  StateFile
    role:        Role

    @classmethod
    def from_config(cls, config: EscrowConfig) -> "EscrowContext":
        """Create a context from configuration and whatever state is on disk."""
        if config.policy_path:
            policy = Policy.from_yaml(config.policy_path)
        else:
            policy = Policy.default()

        state_file = StateFile(config.state_path, default_role=config.default_role)
        state = state_file.load()

        permissions = PermissionEngine(policy)
        store       = VaultStore(state.vaults)
        ledger      = ActivityLedger(state.activity)
        controller  = VaultLifecycleController(store, ledger, permissions)

        logger.debug(
            "Loaded %d vault(s), %d activity entries from %s (policy %s v%s)",
            len(store), len(ledger), state_file.path, policy.policy_id, policy.version,
        )

        return cls(
            permissions= permissions,
            store=       store,
            ledger=      ledger,
            controller=  controller,
            query=       QueryEngine(),
            state_file=  state_file,
            role=        state.role,
        )

    def set_role(self, role: Role) -> None:
        if not isinstance(role, Role):
            role = Role(role)
        self.role = role

    def resolve_vault_id(self, id_or_prefix: str) -> Optional[str]:
        """
        Exact id, or the single id starting with the given prefix.

        Returns None when nothing matches (the controller turns that into
        a denial). Raises VaultNotFoundError when the prefix is ambiguous.
        """
        if id_or_prefix in self.store:
            return id_or_prefix
        matches = [v.id for v in self.store.list_all() if v.id.startswith(id_or_prefix)]
        if len(matches) > 1:
            raise VaultNotFoundError(
                "Ambiguous vault id prefix",
                {"prefix": id_or_prefix, "matches": len(matches)},
            )
        return matches[0] if matches else None

    def save(self) -> None:
        self.state_file.save(PersistedState(
            vaults=   self.store.list_all(),
            activity= self.ledger.list_all(),
            role=     self.role,
        ))

    def __repr__(self) -> str:
        return (
            f"EscrowContext("
            f"role={self.role.value!r}, "
            f"vaults={len(self.store)}, "
            f"ledger_entries={len(self.ledger)})"
        )
