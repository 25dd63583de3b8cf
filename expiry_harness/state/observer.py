"""
Event observer state machine.

Consumes the engine's event stream for one scenario and asserts each
event's timing, type and payload. Position state moves
NOT_YET_FILLED → OPENED → CLOSED on fills of the selected contract;
delisting notices are checked independently of the fill state. The first
violation aborts the scenario.
"""

from typing import Any, Optional, Union

import structlog

from ..data.models import (
    DelistingKind,
    DelistingNotice,
    HoldingsSnapshot,
    Instrument,
    OrderDirection,
    OrderFillEvent,
    Slice,
)
from ..errors import InvariantViolation
from ..logging.config import (
    get_assertion_logger,
    get_scenario_logger,
    log_assertion,
    log_position_transition,
)
from ..utils.time import format_market_time
from .models import FillRecord, ObserverState, PositionState, ScenarioExpectations

logger = structlog.get_logger(__name__)
assertion_logger = get_assertion_logger(__name__)
state_logger = get_scenario_logger(__name__)

EngineEvent = Union[Slice, DelistingNotice, OrderFillEvent]


class EventObserver:
    """Validates slices and order events against the scenario's expectations."""

    def __init__(self, expectations: ScenarioExpectations):
        self.logger = logger
        self.expectations = expectations
        self.state = ObserverState()

    def handle(self, event: EngineEvent, holdings: Optional[HoldingsSnapshot] = None) -> None:
        """Dispatch any engine event to its handler."""
        if isinstance(event, Slice):
            self.on_slice(event)
        elif isinstance(event, DelistingNotice):
            self.on_delisting(event)
        elif isinstance(event, OrderFillEvent):
            if holdings is None:
                raise InvariantViolation(
                    "Order event delivered without a holdings snapshot",
                    instrument=event.instrument,
                    timestamp=event.timestamp
                )
            self.on_order_event(event, holdings)
        else:
            raise InvariantViolation(
                f"Unhandled event type: {type(event).__name__}",
                actual=event
            )

    def mark_entry_submitted(self) -> None:
        """Record that the scheduled entry order has been submitted."""
        self.state = self.state.with_entry_submitted()
        self.logger.info("Entry order submitted", contract=self.expectations.contract.ticker)

    # -- Data slices -----------------------------------------------------

    def on_slice(self, data: Slice) -> None:
        """Check every delisting notice delivered in a slice."""
        for notice in data.delistings.values():
            self.on_delisting(notice)

    def on_delisting(self, notice: DelistingNotice) -> None:
        """Check a delisting notice's timing and its order relative to the other kind."""
        contract = self.expectations.contract

        if notice.contract != contract:
            self._fail(
                "delisting_instrument",
                "delisting for unknown instrument",
                instrument=notice.contract,
                expected=contract.ticker,
                actual=str(notice.contract),
                timestamp=notice.timestamp
            )

        previous = self.state.first_notice(contract, notice.kind)
        if previous is not None:
            self._fail(
                "single_notice",
                f"duplicate delisting {notice.kind.value}",
                instrument=contract,
                expected=f"one {notice.kind.value} notice",
                actual=format_market_time(previous.timestamp),
                timestamp=notice.timestamp
            )

        if notice.kind == DelistingKind.WARNING:
            self._check_warning(notice)
        elif notice.kind == DelistingKind.DELISTED:
            self._check_delisted(notice)
        else:
            raise InvariantViolation(
                f"Unhandled delisting kind: {notice.kind}",
                instrument=notice.contract,
                timestamp=notice.timestamp
            )

        self.state = self.state.with_notice(notice)

    def _check_warning(self, notice: DelistingNotice) -> None:
        expected = self.expectations.warning_time

        if notice.timestamp != expected:
            self._fail(
                "delisting_warning_time",
                "delisting warning at wrong time",
                instrument=notice.contract,
                expected=format_market_time(expected),
                actual=format_market_time(notice.timestamp),
                timestamp=notice.timestamp
            )

        delisted = self.state.first_notice(notice.contract, DelistingKind.DELISTED)
        if delisted is not None:
            self._fail(
                "delisting_order",
                "delisting warning after delisting",
                instrument=notice.contract,
                expected="warning before delisted",
                actual=format_market_time(delisted.timestamp),
                timestamp=notice.timestamp
            )

        self._pass("delisting_warning_time", notice.contract, "warning at expected time",
                   timestamp=notice.timestamp)

    def _check_delisted(self, notice: DelistingNotice) -> None:
        expected = self.expectations.delisting_time

        if notice.timestamp != expected:
            self._fail(
                "delisting_time",
                "delisting at wrong time",
                instrument=notice.contract,
                expected=format_market_time(expected),
                actual=format_market_time(notice.timestamp),
                timestamp=notice.timestamp
            )

        warning = self.state.first_notice(notice.contract, DelistingKind.WARNING)
        if warning is not None and warning.timestamp >= notice.timestamp:
            self._fail(
                "delisting_order",
                "delisting not after warning",
                instrument=notice.contract,
                expected=f"after {format_market_time(warning.timestamp)}",
                actual=format_market_time(notice.timestamp),
                timestamp=notice.timestamp
            )

        self._pass("delisting_time", notice.contract, "delisted at expected time",
                   timestamp=notice.timestamp)

    # -- Order events ----------------------------------------------------

    def on_order_event(self, event: OrderFillEvent, holdings: HoldingsSnapshot) -> None:
        """
        Check a fill against the position state machine.

        Args:
            event: Order event from the engine
            holdings: Holdings after the engine applied the fill
        """
        if not event.is_filled:
            self.logger.debug(
                "Ignoring non-fill order event",
                instrument=str(event.instrument),
                status=event.status.value
            )
            return

        if event.instrument == self.expectations.underlying:
            self._fail(
                "underlying_fill",
                "unexpected underlying fill",
                instrument=event.instrument,
                expected=0,
                actual=holdings.quantity(event.instrument),
                timestamp=event.timestamp,
                context={"fill_message": event.message}
            )

        if event.instrument != self.expectations.contract:
            self._fail(
                "fill_instrument",
                "fill for unknown instrument",
                instrument=event.instrument,
                expected=self.expectations.contract.ticker,
                actual=str(event.instrument),
                timestamp=event.timestamp
            )

        self._on_option_fill(event, holdings)

        self.logger.info(
            "Order filled",
            instrument=str(event.instrument),
            direction=event.direction.value,
            quantity=event.quantity,
            message=event.message,
            timestamp=format_market_time(event.timestamp)
        )

    def _on_option_fill(self, event: OrderFillEvent, holdings: HoldingsSnapshot) -> None:
        contract = event.instrument

        if self.expectations.exercise_marker in event.message:
            self._fail(
                "no_exercise",
                "exercised an OTM contract",
                instrument=contract,
                expected=f"no '{self.expectations.exercise_marker}' fill",
                actual=event.message,
                timestamp=event.timestamp
            )

        underlying_quantity = holdings.quantity(self.expectations.underlying)
        if underlying_quantity != 0:
            self._fail(
                "underlying_flat",
                "underlying position opened",
                instrument=self.expectations.underlying,
                expected=0,
                actual=underlying_quantity,
                timestamp=event.timestamp
            )

        if event.direction == OrderDirection.BUY:
            self._on_entry_fill(event, holdings)
        elif event.direction == OrderDirection.SELL:
            self._on_exit_fill(event, holdings)
        else:
            raise InvariantViolation(
                f"Unhandled order direction: {event.direction}",
                instrument=contract,
                timestamp=event.timestamp
            )

    def _on_entry_fill(self, event: OrderFillEvent, holdings: HoldingsSnapshot) -> None:
        contract = self.expectations.contract
        quantity = holdings.quantity(contract)

        if self.state.position != PositionState.NOT_YET_FILLED:
            self._fail(
                "single_entry",
                "duplicate entry fill",
                instrument=contract,
                expected=PositionState.NOT_YET_FILLED.value,
                actual=self.state.position.value,
                timestamp=event.timestamp
            )

        if quantity != self.expectations.entry_quantity:
            self._fail(
                "entry_opens_position",
                "entry fill did not open position",
                instrument=contract,
                expected=self.expectations.entry_quantity,
                actual=quantity,
                timestamp=event.timestamp
            )

        entry_date = self.expectations.entry_date
        if entry_date is not None and event.timestamp.date() != entry_date:
            self._fail(
                "entry_date",
                "entry fill on wrong date",
                instrument=contract,
                expected=entry_date.isoformat(),
                actual=event.timestamp.date().isoformat(),
                timestamp=event.timestamp
            )

        self._pass("entry_opens_position", contract, "entry fill opened position",
                   timestamp=event.timestamp, quantity=quantity)
        self._transition(PositionState.OPENED, event, quantity)

    def _on_exit_fill(self, event: OrderFillEvent, holdings: HoldingsSnapshot) -> None:
        contract = self.expectations.contract
        quantity = holdings.quantity(contract)

        if self.state.position != PositionState.OPENED:
            self._fail(
                "exit_after_entry",
                "exit fill without open position",
                instrument=contract,
                expected=PositionState.OPENED.value,
                actual=self.state.position.value,
                timestamp=event.timestamp
            )

        if quantity != 0:
            self._fail(
                "exit_closes_position",
                "exit fill did not close position",
                instrument=contract,
                expected=0,
                actual=quantity,
                timestamp=event.timestamp
            )

        if self.expectations.otm_marker not in event.message:
            self._fail(
                "expired_otm",
                "contract did not expire OTM",
                instrument=contract,
                expected=f"message containing '{self.expectations.otm_marker}'",
                actual=event.message,
                timestamp=event.timestamp
            )

        exit_date = self.expectations.exit_date
        if exit_date is not None and event.timestamp.date() != exit_date:
            self._fail(
                "exit_date",
                "expiry fill on wrong date",
                instrument=contract,
                expected=exit_date.isoformat(),
                actual=event.timestamp.date().isoformat(),
                timestamp=event.timestamp
            )

        self._pass("expired_otm", contract, "contract expired worthless",
                   timestamp=event.timestamp, fill_message=event.message)
        self._transition(PositionState.CLOSED, event, quantity)

    def _transition(self, new_position: PositionState, event: OrderFillEvent,
                    quantity: int) -> None:
        old_position = self.state.position
        fill = FillRecord(
            direction=event.direction,
            timestamp=event.timestamp,
            quantity_after=quantity,
            message=event.message
        )
        self.state = self.state.with_fill(new_position, fill)

        log_position_transition(
            state_logger,
            contract=self.expectations.contract,
            from_state=old_position,
            to_state=new_position,
            direction=event.direction,
            quantity_after=quantity,
            timestamp=event.timestamp,
            message=event.message
        )

    # -- Assertion helpers -----------------------------------------------

    def _pass(self, check_name: str, instrument: Instrument, reason: str,
              timestamp=None, **details: Any) -> None:
        log_assertion(assertion_logger, check_name, True, instrument, reason,
                      timestamp=timestamp, **details)

    def _fail(self, check_name: str, message: str, instrument: Instrument,
              expected: Any = None, actual: Any = None, timestamp=None,
              context: Optional[dict[str, Any]] = None) -> None:
        log_assertion(assertion_logger, check_name, False, instrument, message,
                      expected=expected, actual=actual, timestamp=timestamp, **(context or {}))

        raise InvariantViolation(
            message,
            instrument=instrument,
            expected=expected,
            actual=actual,
            timestamp=timestamp,
            context=context
        )
