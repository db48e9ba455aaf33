"""
Shared fixtures for the Latch Escrow test suite.
"""

import itertools
from decimal import Decimal

import pytest

from latch_escrow.core.events import EventBus
from latch_escrow.core.models import Role, Vault, VaultStatus
from latch_escrow.ledger.ledger import ActivityLedger
from latch_escrow.lifecycle.controller import VaultLifecycleController
from latch_escrow.policy.policy import PermissionEngine
from latch_escrow.store.store import VaultStore


class StepClock:
    """Deterministic clock: 1_700_000_000_000, +1 ms per call."""

    def __init__(self, start: int = 1_700_000_000_000):
        self._counter = itertools.count(start)

    def __call__(self) -> int:
        return next(self._counter)


def _make_vault(
    vault_id: str = "vault_test_0001",
    amount: str = "1",
    status: VaultStatus = VaultStatus.DRAFT,
    created_at: int = 1_700_000_000_000,
    counterparty: str = "abc123",
    memo=None,
) -> Vault:
    """Helper: build a vault directly, bypassing the controller."""
    return Vault(
        id=           vault_id,
        created_at=   created_at,
        amount=       Decimal(amount),
        counterparty= counterparty,
        status=       status,
        memo=         memo,
    )


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store():
    return VaultStore()


@pytest.fixture
def ledger(clock):
    return ActivityLedger(clock=clock)


@pytest.fixture
def engine():
    return PermissionEngine()


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def controller(store, ledger, engine, events, clock):
    return VaultLifecycleController(store, ledger, engine, events=events, clock=clock)


@pytest.fixture
def draft(controller):
    """A draft vault created by the Creator."""
    result = controller.create_draft(Role.CREATOR, "1.5", "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin")
    assert result.ok
    return result.vault


@pytest.fixture
def funded(controller, draft):
    """A funded vault."""
    result = controller.fund(Role.CREATOR, draft.id)
    assert result.ok
    return result.vault


@pytest.fixture
def make_vault():
    """Factory fixture: build vaults directly, bypassing the controller."""
    return _make_vault
