"""
Permission engine for Latch Escrow.

PROTOCOL INVARIANT: check() is a pure function of (role, vault, operation).
No cached decisions, no side effects beyond decision counters.
"""

import copy
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from latch_escrow.core.canonical import canonical_hash
from latch_escrow.core.exceptions import PolicyError
from latch_escrow.core.models import (
    DecisionType,
    Operation,
    PermissionDecision,
    Role,
    Vault,
)
from latch_escrow.policy.rules import PolicyRule

logger = logging.getLogger("latch.escrow.policy")


DEFAULT_POLICY: dict = {
    "name": "latch-escrow-ui",
    "version": "1",
    "rules": [
        {
            "rule_id": "create-draft",
            "operation": "create_draft",
            "requires_vault": False,
            "roles": ["creator"],
            "role_reason": "Only the Creator can create vaults.",
        },
        {
            "rule_id": "fund",
            "operation": "fund",
            "allowed_statuses": ["draft"],
            "status_reason": "Only Draft vaults can be funded.",
            "roles": ["creator"],
            "role_reason": "Only the Creator can fund a vault.",
        },
        {
            "rule_id": "release",
            "operation": "release",
            "allowed_statuses": ["funded"],
            "status_reason": "Only Funded vaults can be released.",
            "roles": ["creator", "arbitrator"],
            "role_reason": "Only Creator or Arbitrator can release.",
        },
        {
            "rule_id": "refund",
            "operation": "refund",
            "allowed_statuses": ["funded"],
            "status_reason": "Only Funded vaults can be refunded.",
            "roles": ["creator", "arbitrator"],
            "role_reason": "Only Creator or Arbitrator can refund.",
        },
        {
            "rule_id": "delete",
            "operation": "delete",
            "denied_statuses": ["funded"],
            "status_reason": "Funded vaults cannot be deleted.",
            "roles": ["creator"],
            "role_reason": "Only the Creator can delete vault records.",
        },
    ],
}


class Policy:
    """
    A policy is a table of rules, at most one per operation.
    Operations without an enabled rule are denied.
    """

    def __init__(
        self,
        policy_id: str,
        version: str,
        rules: List[PolicyRule],
    ):
        self.policy_id = policy_id
        self.version = version
        self.rules = list(rules)

        self._by_operation: Dict[Operation, PolicyRule] = {}
        for rule in self.rules:
            if rule.operation in self._by_operation:
                raise PolicyError(
                    "Duplicate rule for operation",
                    {"operation": rule.operation.value, "rule_id": rule.rule_id},
                )
            self._by_operation[rule.operation] = rule

    @property
    def policy_hash(self) -> str:
        """Deterministic hash of the rule table for versioning."""
        return canonical_hash(self.to_dict())

    def rule_for(self, operation: Operation) -> Optional[PolicyRule]:
        rule = self._by_operation.get(operation)
        if rule is None or not rule.enabled:
            return None
        return rule

    def evaluate(
        self,
        role: Role,
        vault: Optional[Vault],
        operation: Operation,
    ) -> PermissionDecision:
        rule = self.rule_for(operation)
        if rule is None:
            return PermissionDecision.deny(
                f"No rule for operation '{operation.value}', "
                f"default {DecisionType.DENY.value}"
            )
        return rule.evaluate(role, vault)

    def to_dict(self) -> dict:
        return {
            "name": self.policy_id,
            "version": self.version,
            "rules": [r.to_dict() for r in self.rules],
        }

    @staticmethod
    def from_dict(data: dict) -> "Policy":
        """Load policy from dictionary."""
        if not isinstance(data, dict):
            raise PolicyError(f"Policy must be a mapping, got {type(data).__name__}")
        try:
            name = data["name"]
            version = str(data["version"])
        except KeyError as exc:
            raise PolicyError(f"Policy missing field {exc}") from exc

        rules = [PolicyRule.from_dict(r) for r in data.get("rules", [])]
        return Policy(policy_id=name, version=version, rules=rules)

    @staticmethod
    def from_yaml(policy_file: Path) -> "Policy":
        """Load policy from YAML file."""
        policy_file = Path(policy_file)
        try:
            with open(policy_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as exc:
            raise PolicyError(f"Policy file not found: {policy_file}") from exc
        except yaml.YAMLError as exc:
            raise PolicyError(f"Invalid YAML in {policy_file}: {exc}") from exc
        return Policy.from_dict(data)

    @staticmethod
    def default() -> "Policy":
        return Policy.from_dict(copy.deepcopy(DEFAULT_POLICY))


class PermissionEngine:
    """
    Policy Decision Point: (acting role, vault, operation) -> decision.

    Always returns a PermissionDecision with a concrete reason on denial.
    """

    def __init__(self, policy: Optional[Policy] = None):
        self.policy = policy or Policy.default()
        self._count_lock = threading.Lock()
        self._decision_count = {"ALLOW": 0, "DENY": 0}

    def check(
        self,
        role: Role,
        vault: Optional[Vault],
        operation: Operation,
    ) -> PermissionDecision:
        decision = self.policy.evaluate(role, vault, operation)

        with self._count_lock:
            self._decision_count[decision.decision.value] += 1

        if not decision:
            logger.debug(
                "Denied %s for %s: %s", operation.value, role.value, decision.reason
            )
        return decision

    def get_policy_stats(self) -> dict:
        """Get policy evaluation statistics."""
        with self._count_lock:
            counts = self._decision_count.copy()
        return {
            "policy_id": self.policy.policy_id,
            "policy_version": self.policy.version,
            "policy_hash": self.policy.policy_hash,
            "total_decisions": sum(counts.values()),
            "decisions_by_type": counts,
            "rule_count": len(self.policy.rules),
        }
