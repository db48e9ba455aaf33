"""
Latch Escrow Permission Engine

The Policy Decision Point evaluates lifecycle requests against a
declarative rule table.

Components:
- Policy: rule table (built-in default, dict or YAML)
- PolicyRule: one operation's presence/status/role checks
- PermissionEngine: evaluates (role, vault, operation)
"""

from latch_escrow.policy.policy import DEFAULT_POLICY, PermissionEngine, Policy
from latch_escrow.policy.rules import PolicyRule

__all__ = [
    "DEFAULT_POLICY",
    "Policy",
    "PolicyRule",
    "PermissionEngine",
]
