"""
Vault store.

A dumb, id-indexed map. It guarantees key uniqueness and nothing else:
transition legality is the lifecycle controller's job, ordering is the
query engine's job.
"""

import threading
from typing import Dict, Iterable, List, Optional

from latch_escrow.core.exceptions import DuplicateVaultError, VaultNotFoundError
from latch_escrow.core.models import Vault, VaultStatus


class VaultStore:
    """
    Owns every Vault record. No other component mutates vaults.

    Thread-safe via internal lock. list_all() is newest-first: insert()
    puts a vault at the front, and vaults passed to the constructor keep
    the order they are given in (the persisted order).
    """

    def __init__(self, vaults: Optional[Iterable[Vault]] = None) -> None:
        self._lock:   threading.Lock   = threading.Lock()
        self._vaults: Dict[str, Vault] = {}
        for vault in vaults or ():
            if vault.id in self._vaults:
                raise DuplicateVaultError(
                    "Vault id already present", {"id": vault.id}
                )
            self._vaults[vault.id] = vault

    def insert(self, vault: Vault) -> Vault:
        """Add a vault. Raises DuplicateVaultError if the id is taken."""
        with self._lock:
            if vault.id in self._vaults:
                raise DuplicateVaultError(
                    "Vault id already present", {"id": vault.id}
                )
            self._vaults = {vault.id: vault, **self._vaults}
            return vault

    def set_status(self, vault_id: str, status: VaultStatus) -> Vault:
        """Replace the vault's status. Raises VaultNotFoundError if absent."""
        with self._lock:
            current = self._vaults.get(vault_id)
            if current is None:
                raise VaultNotFoundError("Vault not found", {"id": vault_id})
            updated = current.with_status(status)
            self._vaults[vault_id] = updated
            return updated

    def remove(self, vault_id: str) -> Vault:
        """Remove and return the vault. Raises VaultNotFoundError if absent."""
        with self._lock:
            try:
                return self._vaults.pop(vault_id)
            except KeyError:
                raise VaultNotFoundError("Vault not found", {"id": vault_id}) from None

    def get(self, vault_id: Optional[str]) -> Optional[Vault]:
        if vault_id is None:
            return None
        with self._lock:
            return self._vaults.get(vault_id)

    def list_all(self) -> List[Vault]:
        with self._lock:
            return list(self._vaults.values())

    def clear(self) -> None:
        with self._lock:
            self._vaults.clear()

    def __contains__(self, vault_id: object) -> bool:
        with self._lock:
            return vault_id in self._vaults

    def __len__(self) -> int:
        with self._lock:
            return len(self._vaults)
