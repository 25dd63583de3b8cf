"""
Runtime invariant violations.

These exceptions are raised while the engine replays the scenario and an
observed event (fill, delisting notice, scheduled callback) or the final
portfolio does not match what the scenario expects.
"""

from datetime import datetime
from typing import Optional, Any

from .base import HarnessError


class InvariantViolation(HarnessError):
    """A runtime assertion about the observed event stream failed."""

    def __init__(self, message: str, instrument: Optional[Any] = None,
                 expected: Optional[Any] = None, actual: Optional[Any] = None,
                 timestamp: Optional[datetime] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.instrument = instrument
        self.expected = expected
        self.actual = actual
        self.timestamp = timestamp

        # Diagnostics always carry the offending values
        for key, value in (("instrument", instrument), ("expected", expected),
                           ("actual", actual), ("timestamp", timestamp)):
            if value is not None:
                self.context.setdefault(key, value)


class SchedulingError(InvariantViolation):
    """The single scheduled entry action was registered or fired twice."""

    def __init__(self, message: str, fire_count: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.fire_count = fire_count
