"""
Latch Escrow Exception Hierarchy

All exceptions inherit from LatchError for easy catching.

Policy denials and input validation failures of lifecycle operations are
NOT exceptions. They come back as LifecycleResult(ok=False) and are
recorded in the activity ledger. Everything below is for programming
and infrastructure errors only.
"""


class LatchError(Exception):
    """Base exception for all Latch Escrow errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(LatchError):
    """Raised when persisted or imported data is malformed"""
    pass


class PolicyError(LatchError):
    """Raised when a policy table cannot be loaded"""
    pass


class StoreError(LatchError):
    """Raised when a vault store operation fails"""
    pass


class VaultNotFoundError(StoreError):
    """Raised when an id-addressed store operation targets a missing vault"""
    pass


class DuplicateVaultError(StoreError):
    """Raised when inserting a vault whose id is already present"""
    pass


class StateError(LatchError):
    """Raised when the state file cannot be read or written"""
    pass


class ConfigError(LatchError):
    """Raised when configuration is invalid"""
    pass
