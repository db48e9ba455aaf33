"""
tests/test_store_ledger.py

VaultStore and ActivityLedger tests.

  STORE   key uniqueness, status replacement, removal, newest-first order
  LEDGER  append-only, id/ts assignment, failure tagging, stats
"""

import pytest

from latch_escrow.core.exceptions import DuplicateVaultError, StoreError, VaultNotFoundError
from latch_escrow.core.models import ActivityEntry, VaultStatus
from latch_escrow.ledger.ledger import ActivityLedger
from latch_escrow.store.store import VaultStore


class TestVaultStore:

    def test_insert_and_get(self, store, make_vault):
        vault = make_vault()
        assert store.insert(vault) is vault
        assert store.get(vault.id) == vault
        assert vault.id in store
        assert len(store) == 1

    def test_get_unknown_and_none(self, store):
        assert store.get("vault_missing") is None
        assert store.get(None) is None

    def test_duplicate_id_rejected(self, store, make_vault):
        store.insert(make_vault())
        with pytest.raises(DuplicateVaultError):
            store.insert(make_vault(amount="2"))
        assert store.get("vault_test_0001").amount == 1

    def test_duplicate_is_a_store_error(self, make_vault):
        with pytest.raises(StoreError):
            VaultStore([make_vault(), make_vault()])

    def test_set_status_replaces_record(self, store, make_vault):
        original = store.insert(make_vault())
        updated = store.set_status(original.id, VaultStatus.FUNDED)
        assert updated.status == VaultStatus.FUNDED
        assert original.status == VaultStatus.DRAFT
        assert store.get(original.id) == updated

    def test_set_status_unknown(self, store):
        with pytest.raises(VaultNotFoundError):
            store.set_status("vault_missing", VaultStatus.FUNDED)

    def test_remove(self, store, make_vault):
        vault = store.insert(make_vault())
        assert store.remove(vault.id) == vault
        assert vault.id not in store
        with pytest.raises(VaultNotFoundError):
            store.remove(vault.id)

    def test_insert_puts_newest_first(self, store, make_vault):
        for i in range(3):
            store.insert(make_vault(vault_id=f"vault_{i}", created_at=i))
        assert [v.id for v in store.list_all()] == ["vault_2", "vault_1", "vault_0"]

    def test_set_status_keeps_position(self, store, make_vault):
        for i in range(3):
            store.insert(make_vault(vault_id=f"vault_{i}"))
        store.set_status("vault_1", VaultStatus.FUNDED)
        assert [v.id for v in store.list_all()] == ["vault_2", "vault_1", "vault_0"]

    def test_restored_sequence_keeps_its_order(self, make_vault):
        vaults = [make_vault(vault_id=f"vault_{i}", created_at=100 - i) for i in range(5)]
        store = VaultStore(vaults)
        assert [v.id for v in store.list_all()] == [v.id for v in vaults]

    def test_list_all_is_a_copy(self, store, make_vault):
        store.insert(make_vault())
        store.list_all().clear()
        assert len(store) == 1

    def test_clear(self, store, make_vault):
        store.insert(make_vault())
        store.clear()
        assert len(store) == 0


class TestActivityLedger:

    def test_append_assigns_id_and_ts(self, ledger):
        first = ledger.append("✓ one")
        second = ledger.append("✖ two")
        assert first.id.startswith("a_")
        assert first.id != second.id
        assert first.ts < second.ts
        assert ledger.list_all() == [first, second]

    def test_entries_are_frozen(self, ledger):
        entry = ledger.append("✓ one")
        with pytest.raises(AttributeError):
            entry.message = "edited"

    def test_list_all_is_a_copy(self, ledger):
        ledger.append("✓ one")
        ledger.list_all().clear()
        assert len(ledger) == 1

    def test_failures(self, ledger):
        ledger.append("✓ ok")
        bad = ledger.append("✖ Select a vault first.")
        ledger.append("⇢ Funded")
        assert ledger.failures() == [bad]

    def test_failure_tag_needs_leading_mark(self):
        assert not ActivityEntry("a_1", 1, "Draft ✖").is_failure
        assert ActivityEntry("a_1", 1, "✖ nope").is_failure

    def test_restored_entries_kept(self, clock):
        restored = [ActivityEntry("a_x", 5, "✓ old")]
        ledger = ActivityLedger(restored, clock=clock)
        new = ledger.append("✓ new")
        assert ledger.list_all() == [restored[0], new]

    def test_stats(self, ledger):
        assert ledger.get_stats() == {
            "total_entries":   0,
            "failed_attempts": 0,
            "first_entry_ts":  None,
            "last_entry_ts":   None,
        }
        first = ledger.append("✖ nope")
        last = ledger.append("✓ ok")
        stats = ledger.get_stats()
        assert stats["total_entries"] == 2
        assert stats["failed_attempts"] == 1
        assert stats["first_entry_ts"] == first.ts
        assert stats["last_entry_ts"] == last.ts

    def test_clear(self, ledger):
        ledger.append("✓ ok")
        ledger.clear()
        assert ledger.list_all() == []
