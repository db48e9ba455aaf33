"""
Latch Escrow Vault Store - id-indexed ownership of vault records.
"""

from latch_escrow.store.store import VaultStore

__all__ = ["VaultStore"]
