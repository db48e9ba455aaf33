"""
tests/test_permission_matrix.py

Permission engine tests.

  MATRIX      3 roles x 5 operations x 4 statuses against the policy table
  PRECEDENCE  missing vault > wrong status > wrong role
  REASONS     every denial carries a concrete reason string
  LOADING     policy tables from dict / YAML, malformed tables rejected
"""

import itertools

import pytest

from latch_escrow.core.exceptions import PolicyError
from latch_escrow.core.models import (
    DecisionType,
    Operation,
    PermissionDecision,
    Role,
    VaultStatus,
)
from latch_escrow.policy.policy import DEFAULT_POLICY, PermissionEngine, Policy


# Expected outcomes, written out independently of DEFAULT_POLICY.
ALLOWED_STATUSES = {
    Operation.FUND:    {VaultStatus.DRAFT},
    Operation.RELEASE: {VaultStatus.FUNDED},
    Operation.REFUND:  {VaultStatus.FUNDED},
    Operation.DELETE:  {VaultStatus.DRAFT, VaultStatus.RELEASED, VaultStatus.REFUNDED},
}
ALLOWED_ROLES = {
    Operation.CREATE_DRAFT: {Role.CREATOR},
    Operation.FUND:         {Role.CREATOR},
    Operation.RELEASE:      {Role.CREATOR, Role.ARBITRATOR},
    Operation.REFUND:       {Role.CREATOR, Role.ARBITRATOR},
    Operation.DELETE:       {Role.CREATOR},
}

ID_OPERATIONS = [Operation.FUND, Operation.RELEASE, Operation.REFUND, Operation.DELETE]


class TestMatrix:

    @pytest.mark.parametrize(
        "role,operation,status",
        list(itertools.product(Role, ID_OPERATIONS, VaultStatus)),
    )
    def test_id_addressed_operations(self, engine, make_vault, role, operation, status):
        """Allow iff status precondition holds AND role is permitted."""
        vault = make_vault(status=status)
        decision = engine.check(role, vault, operation)

        expected = status in ALLOWED_STATUSES[operation] and role in ALLOWED_ROLES[operation]
        assert decision.allowed is expected
        if not expected:
            assert decision.reason, "Denials must carry a reason"

    @pytest.mark.parametrize("role", list(Role))
    def test_create_draft(self, engine, role):
        """Only the Creator may create; no vault is needed."""
        decision = engine.check(role, None, Operation.CREATE_DRAFT)
        assert decision.allowed is (role == Role.CREATOR)

    @pytest.mark.parametrize("status", list(VaultStatus))
    def test_create_draft_ignores_vault_argument(self, engine, make_vault, status):
        decision = engine.check(Role.CREATOR, make_vault(status=status), Operation.CREATE_DRAFT)
        assert decision.allowed


class TestPrecedence:

    @pytest.mark.parametrize("operation", ID_OPERATIONS)
    @pytest.mark.parametrize("role", list(Role))
    def test_missing_vault_reason_wins(self, engine, role, operation):
        decision = engine.check(role, None, operation)
        assert not decision
        assert decision.reason == "Select a vault first."

    def test_wrong_status_reported_before_wrong_role(self, engine, make_vault):
        """Counterparty funding a funded vault hears about status, not role."""
        decision = engine.check(Role.COUNTERPARTY, make_vault(status=VaultStatus.FUNDED), Operation.FUND)
        assert decision.reason == "Only Draft vaults can be funded."

    def test_role_reason_when_status_fine(self, engine, make_vault):
        decision = engine.check(Role.COUNTERPARTY, make_vault(), Operation.FUND)
        assert decision.reason == "Only the Creator can fund a vault."


class TestReasons:

    @pytest.mark.parametrize("operation,status,reason", [
        (Operation.FUND,    VaultStatus.RELEASED, "Only Draft vaults can be funded."),
        (Operation.RELEASE, VaultStatus.DRAFT,    "Only Funded vaults can be released."),
        (Operation.REFUND,  VaultStatus.REFUNDED, "Only Funded vaults can be refunded."),
        (Operation.DELETE,  VaultStatus.FUNDED,   "Funded vaults cannot be deleted."),
    ])
    def test_status_reasons(self, engine, make_vault, operation, status, reason):
        decision = engine.check(Role.CREATOR, make_vault(status=status), operation)
        assert decision.decision == DecisionType.DENY
        assert decision.reason == reason

    @pytest.mark.parametrize("operation,status,reason", [
        (Operation.RELEASE, VaultStatus.FUNDED, "Only Creator or Arbitrator can release."),
        (Operation.REFUND,  VaultStatus.FUNDED, "Only Creator or Arbitrator can refund."),
        (Operation.DELETE,  VaultStatus.DRAFT,  "Only the Creator can delete vault records."),
    ])
    def test_role_reasons(self, engine, make_vault, operation, status, reason):
        decision = engine.check(Role.COUNTERPARTY, make_vault(status=status), operation)
        assert decision.reason == reason

    def test_create_reason(self, engine):
        decision = engine.check(Role.ARBITRATOR, None, Operation.CREATE_DRAFT)
        assert decision.reason == "Only the Creator can create vaults."

    def test_allow_has_empty_reason_and_rule_id(self, engine, make_vault):
        decision = engine.check(Role.CREATOR, make_vault(), Operation.FUND)
        assert decision == PermissionDecision(DecisionType.ALLOW, "", "fund")

    def test_operation_without_rule_is_denied(self, make_vault):
        policy = Policy.from_dict({
            "name": "partial", "version": "1",
            "rules": [DEFAULT_POLICY["rules"][0]],
        })
        decision = PermissionEngine(policy).check(Role.CREATOR, make_vault(), Operation.FUND)
        assert not decision
        assert "No rule for operation 'fund'" in decision.reason


class TestEngineIsPure:

    def test_same_inputs_same_decision(self, engine, make_vault):
        vault = make_vault(status=VaultStatus.FUNDED)
        first = engine.check(Role.ARBITRATOR, vault, Operation.RELEASE)
        second = engine.check(Role.ARBITRATOR, vault, Operation.RELEASE)
        assert first == second
        assert vault.status == VaultStatus.FUNDED

    def test_stats_count_decisions(self, engine, make_vault):
        engine.check(Role.CREATOR, make_vault(), Operation.FUND)
        engine.check(Role.COUNTERPARTY, make_vault(), Operation.FUND)
        stats = engine.get_policy_stats()
        assert stats["total_decisions"] == 2
        assert stats["decisions_by_type"] == {"ALLOW": 1, "DENY": 1}
        assert stats["rule_count"] == 5


class TestPolicyLoading:

    def test_default_round_trips_through_dict(self):
        policy = Policy.default()
        assert Policy.from_dict(policy.to_dict()).policy_hash == policy.policy_hash

    def test_policy_hash_is_stable_hex(self):
        h = Policy.default().policy_hash
        assert len(h) == 64
        assert h == Policy.default().policy_hash

    def test_from_yaml_tightened_policy(self, tmp_path, make_vault):
        """A YAML table where only the Arbitrator may release."""
        path = tmp_path / "policy.yaml"
        path.write_text(
            "name: strict\n"
            "version: 2\n"
            "rules:\n"
            "  - operation: release\n"
            "    allowed_statuses: [funded]\n"
            "    status_reason: Only Funded vaults can be released.\n"
            "    roles: [arbitrator]\n"
            "    role_reason: Only the Arbitrator can release.\n",
            encoding="utf-8",
        )
        policy = Policy.from_yaml(path)
        engine = PermissionEngine(policy)
        vault = make_vault(status=VaultStatus.FUNDED)

        assert policy.version == "2"
        assert engine.check(Role.ARBITRATOR, vault, Operation.RELEASE)
        denied = engine.check(Role.CREATOR, vault, Operation.RELEASE)
        assert denied.reason == "Only the Arbitrator can release."

    def test_missing_yaml_file(self, tmp_path):
        with pytest.raises(PolicyError, match="not found"):
            Policy.from_yaml(tmp_path / "nope.yaml")

    @pytest.mark.parametrize("rule,match", [
        ({"operation": "teleport", "roles": ["creator"], "role_reason": "x"}, "Unknown operation"),
        ({"operation": "fund", "roles": ["janitor"], "role_reason": "x"}, "Invalid roles"),
        ({"operation": "fund", "roles": "creator", "role_reason": "x"}, "roles must be a list"),
        ({"operation": "fund", "roles": ["creator"]}, "missing field"),
        ({"operation": "fund", "requires_vault": False, "roles": ["creator"],
          "role_reason": "x"}, "requires_vault cannot be false"),
        ({"operation": "fund", "roles": ["creator"], "role_reason": "x",
          "allowed_statuses": ["draft"]}, "status_reason"),
    ])
    def test_malformed_rules_rejected(self, rule, match):
        with pytest.raises(PolicyError, match=match):
            Policy.from_dict({"name": "bad", "version": "1", "rules": [rule]})

    def test_duplicate_operation_rejected(self):
        rule = DEFAULT_POLICY["rules"][1]
        with pytest.raises(PolicyError, match="Duplicate"):
            Policy.from_dict({"name": "dup", "version": "1", "rules": [rule, rule]})
