"""
Calendar and time-of-day rules for scheduled actions.

The rules are plain values handed to the engine's scheduler. Resolution
against a clock is the scheduler's job; ``resolve`` exists for schedulers
that evaluate the rules themselves, such as the replay engine.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

from ..data.models import UnderlyingIdentifier


class DateRuleKind(str, Enum):
    """Supported calendar rules."""
    TOMORROW = "tomorrow"
    ON = "on"


class TimeRuleKind(str, Enum):
    """Supported time-of-day rules."""
    AFTER_MARKET_OPEN = "after_market_open"
    AT = "at"


@dataclass(frozen=True)
class DateRule:
    """Single day on which the action fires."""
    kind: DateRuleKind
    day: Optional[date] = None

    @classmethod
    def tomorrow(cls) -> "DateRule":
        return cls(kind=DateRuleKind.TOMORROW)

    @classmethod
    def on(cls, day: date) -> "DateRule":
        return cls(kind=DateRuleKind.ON, day=day)

    def resolve(self, today: date) -> date:
        """Concrete day relative to the scheduler's current date."""
        if self.kind == DateRuleKind.TOMORROW:
            return today + timedelta(days=1)
        if self.kind == DateRuleKind.ON:
            if self.day is None:
                raise ValueError("DateRule.on requires a day")
            return self.day
        raise ValueError(f"Unsupported date rule: {self.kind}")

    def __str__(self) -> str:
        if self.kind == DateRuleKind.ON:
            return f"on {self.day.isoformat()}"
        return self.kind.value


@dataclass(frozen=True)
class TimeRule:
    """Time of day at which the action fires."""
    kind: TimeRuleKind
    minutes: int = 0
    at_time: Optional[time] = None
    instrument: Optional[UnderlyingIdentifier] = None

    @classmethod
    def after_market_open(cls, instrument: UnderlyingIdentifier, minutes: int = 0) -> "TimeRule":
        return cls(kind=TimeRuleKind.AFTER_MARKET_OPEN, minutes=minutes, instrument=instrument)

    @classmethod
    def at(cls, at_time: time) -> "TimeRule":
        return cls(kind=TimeRuleKind.AT, at_time=at_time)

    def resolve(self, day: date, market_open: time) -> datetime:
        """Concrete fire time on the given day."""
        if self.kind == TimeRuleKind.AFTER_MARKET_OPEN:
            return datetime.combine(day, market_open) + timedelta(minutes=self.minutes)
        if self.kind == TimeRuleKind.AT:
            if self.at_time is None:
                raise ValueError("TimeRule.at requires a time")
            return datetime.combine(day, self.at_time)
        raise ValueError(f"Unsupported time rule: {self.kind}")

    def __str__(self) -> str:
        if self.kind == TimeRuleKind.AT:
            return f"at {self.at_time.isoformat()}"
        return f"{self.minutes}m after {self.instrument} open"
