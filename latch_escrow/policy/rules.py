"""
Permission rule definitions and evaluation logic.

One rule per operation. A rule checks, in this order:
    1. Target presence  (id-addressed operations need a vault)
    2. Vault status     (allowed_statuses / denied_statuses)
    3. Acting role

Earlier checks produce more specific denial reasons than the role check.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from latch_escrow.core.exceptions import PolicyError
from latch_escrow.core.models import (
    Operation,
    PermissionDecision,
    Role,
    Vault,
    VaultStatus,
)

DEFAULT_MISSING_REASON = "Select a vault first."


def _parse_enum_set(enum_cls, values: Optional[Iterable[str]], field_name: str, rule_id: str):
    if values is None:
        return None
    try:
        return frozenset(enum_cls(v) for v in values)
    except ValueError as exc:
        raise PolicyError(
            f"Invalid {field_name} in rule: {exc}", {"rule_id": rule_id}
        ) from exc


@dataclass(frozen=True)
class PolicyRule:
    """A permission rule for one operation"""
    rule_id:          str
    operation:        Operation
    roles:            FrozenSet[Role]
    role_reason:      str
    requires_vault:   bool = True
    missing_reason:   str = DEFAULT_MISSING_REASON
    allowed_statuses: Optional[FrozenSet[VaultStatus]] = None
    denied_statuses:  FrozenSet[VaultStatus] = field(default_factory=frozenset)
    status_reason:    str = ""
    enabled:          bool = True

    def evaluate(self, role: Role, vault: Optional[Vault]) -> PermissionDecision:
        """Evaluate this rule for the acting role and target vault."""
        if self.requires_vault:
            if vault is None:
                return PermissionDecision.deny(self.missing_reason, self.rule_id)

            if not self.status_permits(vault.status):
                return PermissionDecision.deny(self.status_reason, self.rule_id)

        if role not in self.roles:
            return PermissionDecision.deny(self.role_reason, self.rule_id)

        return PermissionDecision.allow(self.rule_id)

    def status_permits(self, status: VaultStatus) -> bool:
        if self.allowed_statuses is not None and status not in self.allowed_statuses:
            return False
        return status not in self.denied_statuses

    def to_dict(self) -> dict:
        data = {
            "rule_id":        self.rule_id,
            "operation":      self.operation.value,
            "roles":          sorted(r.value for r in self.roles),
            "role_reason":    self.role_reason,
            "requires_vault": self.requires_vault,
            "enabled":        self.enabled,
        }
        if self.requires_vault:
            data["missing_reason"] = self.missing_reason
            data["denied_statuses"] = sorted(s.value for s in self.denied_statuses)
            data["status_reason"] = self.status_reason
            if self.allowed_statuses is not None:
                data["allowed_statuses"] = sorted(s.value for s in self.allowed_statuses)
        return data

    @staticmethod
    def from_dict(data: dict) -> "PolicyRule":
        """Create rule from dictionary"""
        if not isinstance(data, dict):
            raise PolicyError(f"Rule must be a mapping, got {type(data).__name__}")

        try:
            operation_value = data["operation"]
            role_values     = data["roles"]
            role_reason     = data["role_reason"]
        except KeyError as exc:
            raise PolicyError(f"Rule missing field {exc}") from exc

        try:
            operation = Operation(operation_value)
        except ValueError as exc:
            raise PolicyError(f"Unknown operation {operation_value!r}") from exc

        rule_id = data.get("rule_id", operation.value)
        if not isinstance(role_values, (list, tuple)):
            raise PolicyError("roles must be a list", {"rule_id": rule_id})
        requires_vault = data.get("requires_vault", operation != Operation.CREATE_DRAFT)
        if operation != Operation.CREATE_DRAFT and not requires_vault:
            raise PolicyError(
                f"Operation '{operation.value}' targets a vault; requires_vault cannot be false",
                {"rule_id": rule_id},
            )

        allowed = _parse_enum_set(
            VaultStatus, data.get("allowed_statuses"), "allowed_statuses", rule_id
        )
        denied = _parse_enum_set(
            VaultStatus, data.get("denied_statuses", []), "denied_statuses", rule_id
        )

        status_reason = data.get("status_reason", "")
        if requires_vault and (allowed is not None or denied) and not status_reason:
            raise PolicyError(
                "Rule with a status precondition needs a status_reason",
                {"rule_id": rule_id},
            )

        return PolicyRule(
            rule_id=          rule_id,
            operation=        operation,
            roles=            _parse_enum_set(Role, role_values, "roles", rule_id),
            role_reason=      role_reason,
            requires_vault=   requires_vault,
            missing_reason=   data.get("missing_reason", DEFAULT_MISSING_REASON),
            allowed_statuses= allowed,
            denied_statuses=  denied,
            status_reason=    status_reason,
            enabled=          data.get("enabled", True),
        )
