"""
Observer state models for the option position life cycle.

This module defines immutable data structures for what the scenario
expects to observe and for what it has observed so far: the position
state, the significant fills, and the delisting notices seen.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from ..data.models import (
    ContractIdentifier,
    DelistingKind,
    DelistingNotice,
    OrderDirection,
    UnderlyingIdentifier,
)


class PositionState(str, Enum):
    """Life cycle of the option position."""
    NOT_YET_FILLED = "not_yet_filled"
    OPENED = "opened"
    CLOSED = "closed"


@dataclass(frozen=True)
class ScenarioExpectations:
    """Everything the observer and checker compare the event stream against."""

    contract: ContractIdentifier
    underlying: UnderlyingIdentifier

    # Delisting timing
    warning_time: datetime
    delisting_time: datetime
    require_warning: bool = True
    require_delisted: bool = True

    # Fills
    entry_quantity: int = 1
    entry_date: Optional[date] = None                # None disables the date check
    exit_date: Optional[date] = None
    otm_marker: str = "OTM"
    exercise_marker: str = "Exercise"


@dataclass(frozen=True)
class FillRecord:
    """A significant fill observed for the selected contract."""
    direction: OrderDirection
    timestamp: datetime
    quantity_after: int
    message: str


@dataclass(frozen=True)
class ObserverState:
    """Everything observed so far for the selected contract."""

    position: PositionState = PositionState.NOT_YET_FILLED
    entry_submitted: bool = False

    opened_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    fills: tuple[FillRecord, ...] = ()
    notices: tuple[DelistingNotice, ...] = ()

    def with_entry_submitted(self) -> 'ObserverState':
        """Mark the scheduled entry order as submitted."""
        return ObserverState(
            position=self.position,
            entry_submitted=True,
            opened_at=self.opened_at,
            closed_at=self.closed_at,
            fills=self.fills,
            notices=self.notices
        )

    def with_fill(self, new_position: PositionState, fill: FillRecord) -> 'ObserverState':
        """Record a fill and the position state it produced."""
        opened_at = self.opened_at
        closed_at = self.closed_at

        if new_position == PositionState.OPENED:
            opened_at = fill.timestamp
        elif new_position == PositionState.CLOSED:
            closed_at = fill.timestamp

        return ObserverState(
            position=new_position,
            entry_submitted=self.entry_submitted,
            opened_at=opened_at,
            closed_at=closed_at,
            fills=self.fills + (fill,),
            notices=self.notices
        )

    def with_notice(self, notice: DelistingNotice) -> 'ObserverState':
        """Record a delisting notice."""
        return ObserverState(
            position=self.position,
            entry_submitted=self.entry_submitted,
            opened_at=self.opened_at,
            closed_at=self.closed_at,
            fills=self.fills,
            notices=self.notices + (notice,)
        )

    def first_notice(self, contract: ContractIdentifier,
                     kind: DelistingKind) -> Optional[DelistingNotice]:
        """Earliest notice of the given kind for a contract."""
        for notice in self.notices:
            if notice.contract == contract and notice.kind == kind:
                return notice
        return None

    @property
    def fill_directions(self) -> list[OrderDirection]:
        return [fill.direction for fill in self.fills]
