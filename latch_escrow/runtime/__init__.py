"""
Latch Escrow Runtime - configuration, persisted state and wiring.
"""

from latch_escrow.runtime.config import EscrowConfig, load_config
from latch_escrow.runtime.context import EscrowContext
from latch_escrow.runtime.state import PersistedState, StateFile

__all__ = [
    "EscrowConfig",
    "load_config",
    "EscrowContext",
    "PersistedState",
    "StateFile",
]
