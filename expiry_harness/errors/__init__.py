"""
Error classification for the expiry verification harness.

Every error raised by the harness is fatal to the scenario. The hierarchy
separates configuration problems found before the run starts from
selection failures and runtime invariant violations.
"""

from .base import HarnessError, ConfigurationError
from .selection import SelectionError, ContractMismatchError
from .violations import InvariantViolation, SchedulingError

__all__ = [
    # Base
    "HarnessError",
    "ConfigurationError",
    # Contract Selection
    "SelectionError",
    "ContractMismatchError",
    # Runtime Invariants
    "InvariantViolation",
    "SchedulingError",
]
