"""
Registration of the scenario's single deferred action.

The registry packages one callback with its date and time rules and hands
it to the engine's scheduler. Triggering belongs to the scheduler; the
registry only guarantees the action is registered once and runs at most
once on the scenario's timeline.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from ..errors import SchedulingError
from .rules import DateRule, TimeRule

logger = structlog.get_logger(__name__)


class Scheduler(ABC):
    """Scheduling primitive provided by the engine under test."""

    @abstractmethod
    def schedule_on(
        self,
        date_rule: DateRule,
        time_rule: TimeRule,
        callback: Callable[[], None]
    ) -> None:
        """Invoke ``callback`` when the engine clock satisfies both rules."""
        pass


@dataclass(frozen=True)
class ScheduledAction:
    """A deferred callback bound to a calendar rule and a time rule."""
    name: str
    date_rule: DateRule
    time_rule: TimeRule
    callback: Callable[[], None]


class ScheduledActionRegistry:
    """Registers exactly one scheduled action and guards it to fire once."""

    def __init__(self, scheduler: Scheduler):
        self.logger = logger
        self.scheduler = scheduler
        self.action: Optional[ScheduledAction] = None
        self.fire_count = 0

    @property
    def fired(self) -> bool:
        return self.fire_count > 0

    def register(
        self,
        date_rule: DateRule,
        time_rule: TimeRule,
        action: Callable[[], None],
        name: str = "entry_order"
    ) -> ScheduledAction:
        """
        Register the scenario's deferred action with the scheduler.

        Raises:
            SchedulingError: An action was already registered for this scenario
        """
        if self.action is not None:
            raise SchedulingError(
                "Scheduled action already registered",
                expected=self.action.name,
                actual=name
            )

        self.action = ScheduledAction(
            name=name,
            date_rule=date_rule,
            time_rule=time_rule,
            callback=action
        )
        self.scheduler.schedule_on(date_rule, time_rule, self._fire)

        self.logger.info(
            "Registered scheduled action",
            action=name,
            date_rule=str(date_rule),
            time_rule=str(time_rule)
        )
        return self.action

    def _fire(self) -> None:
        """Scheduler callback; runs the action once."""
        self.fire_count += 1

        if self.fire_count > 1:
            self.logger.error(
                "Scheduled action fired more than once",
                action=self.action.name,
                fire_count=self.fire_count
            )
            raise SchedulingError(
                f"Scheduled action '{self.action.name}' fired more than once",
                fire_count=self.fire_count,
                expected=1,
                actual=self.fire_count
            )

        self.logger.info("Firing scheduled action", action=self.action.name)
        self.action.callback()
