"""
Contract selection errors.

Raised while resolving the option contract from the chain, before any
order is submitted.
"""

from typing import Optional, Any

from .base import HarnessError


class SelectionError(HarnessError):
    """The chain yielded zero matches or an ambiguous top-ranked match."""

    def __init__(self, message: str, criteria: Optional[Any] = None,
                 candidates: Optional[list] = None,
                 matches: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.criteria = criteria
        self.candidates = candidates or []
        self.matches = matches or []


class ContractMismatchError(HarnessError):
    """The selected contract differs from the independently expected one."""

    def __init__(self, message: str, expected: Optional[Any] = None,
                 actual: Optional[Any] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual
