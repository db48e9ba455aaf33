"""
Latch Escrow: Basic Usage Example

Demonstrates:
- Wiring store, ledger and permission engine into a controller
- A denied attempt and the ledger entry it leaves behind
- Fund, refund, delete
- Locked balance meter and an activity log export
"""

import json

from latch_escrow import (
    ActivityLedger,
    PermissionEngine,
    QueryEngine,
    Role,
    VaultLifecycleController,
    VaultStore,
)
from latch_escrow.export.snapshot import activity_snapshot


def main():
    """Basic Latch Escrow usage."""

    print("=" * 60)
    print("Latch Escrow: Basic Usage Example")
    print("=" * 60)
    print()

    # 1️⃣ Wire the engine
    print("1️⃣ Wiring the engine...")
    store = VaultStore()
    ledger = ActivityLedger()
    controller = VaultLifecycleController(store, ledger, PermissionEngine())
    controller.events.subscribe(lambda e: print(f"  [event] {e.event_type.value}"))
    print()

    # 2️⃣ Creator opens a draft
    print("2️⃣ Creator opens a draft for 0.0100001 SOL...")
    created = controller.create_draft(Role.CREATOR, "0.0100001", "abc123", memo="demo")
    vault_id = created.vault_id
    print(f"  {created.entry.message}")
    print()

    # 3️⃣ Counterparty tries to fund
    print("3️⃣ Counterparty tries to fund...")
    denied = controller.fund(Role.COUNTERPARTY, vault_id)
    print(f"  {denied.entry.message}")
    print()

    # 4️⃣ Creator funds, Arbitrator refunds
    print("4️⃣ Creator funds, Arbitrator refunds...")
    print(f"  {controller.fund(Role.CREATOR, vault_id).entry.message}")
    meter = QueryEngine().locked_balance(store.list_all())
    print(f"  Locked: {meter.locked_total} SOL ({meter.locked_pct:.0f}%)")
    print(f"  {controller.refund(Role.ARBITRATOR, vault_id).entry.message}")
    print()

    # 5️⃣ Creator deletes the closed record
    print("5️⃣ Creator deletes the closed record...")
    print(f"  {controller.delete(Role.CREATOR, vault_id).entry.message}")
    print()

    # 6️⃣ Export the activity log
    print("6️⃣ Activity log export:")
    print(json.dumps(activity_snapshot(ledger.list_all(), Role.CREATOR), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
