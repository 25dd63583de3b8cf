"""Tests for the audit logging of assertions and position state transitions."""

import pytest
from datetime import datetime
from unittest.mock import Mock, patch

import structlog
from structlog.testing import capture_logs

from expiry_harness.data.models import (
    HoldingsSnapshot,
    OrderDirection,
    OrderFillEvent,
    OrderStatus,
)
from expiry_harness.errors import InvariantViolation
from expiry_harness.logging.config import (
    configure_logging,
    get_assertion_logger,
    get_scenario_logger,
    log_assertion,
    log_position_transition,
)
from expiry_harness.state.models import PositionState
from expiry_harness.state.observer import EventObserver


class TestLoggingHelpers:
    """Test the standardized log helpers."""

    def test_passed_assertion_logs_info(self):
        """Passing checks are logged at info with PASS."""
        logger = Mock()

        log_assertion(logger, "expired_otm", True, "SPX   210115P03150000", "contract expired worthless")

        logger.bind.assert_called_once_with(
            check_name="expired_otm",
            check_result="PASS",
            instrument="SPX   210115P03150000",
            reason="contract expired worthless"
        )
        logger.bind.return_value.info.assert_called_once_with("Check passed")

    def test_failed_assertion_logs_expected_and_actual(self, expected_contract):
        """Failing checks carry instrument, expected, actual and market time as fields."""
        logger = Mock()

        log_assertion(logger, "exit_closes_position", False, expected_contract,
                      "exit fill did not close position", expected=0, actual=1,
                      timestamp=datetime(2021, 1, 15, 16))

        logger.bind.assert_called_once_with(
            check_name="exit_closes_position",
            check_result="FAIL",
            instrument=str(expected_contract),
            reason="exit fill did not close position",
            expected=0,
            actual=1,
            timestamp="2021-01-15T16:00:00"
        )
        logger.bind.return_value.warning.assert_called_once_with("Check failed")

    def test_failed_assertion_always_reports_actual(self):
        """A missing observation is reported as actual=None."""
        logger = Mock()

        log_assertion(logger, "warning_observed", False, "SPX", "delisting warning never observed",
                      expected="warning")

        assert logger.bind.call_args.kwargs["actual"] is None

    def test_details_rendered(self, expected_contract):
        """Extra fields are rendered like the first-class ones."""
        logger = Mock()

        log_assertion(logger, "fill_sequence", True, expected_contract, "complete",
                      closed_at=datetime(2021, 1, 15, 16), tickers=[expected_contract])

        fields = logger.bind.call_args.kwargs
        assert fields["closed_at"] == "2021-01-15T16:00:00"
        assert fields["tickers"] == [str(expected_contract)]

    def test_position_transition_logged(self, expected_contract):
        """Transitions record contract, states, direction and resulting quantity."""
        logger = Mock()

        log_position_transition(
            logger,
            contract=expected_contract,
            from_state=PositionState.NOT_YET_FILLED,
            to_state=PositionState.OPENED,
            direction=OrderDirection.BUY,
            quantity_after=1,
            timestamp=datetime(2021, 1, 5, 9, 31)
        )

        logger.bind.assert_called_once_with(
            contract=str(expected_contract),
            from_state="not_yet_filled",
            to_state="opened",
            direction="buy",
            quantity_after=1,
            timestamp="2021-01-05T09:31:00",
            fill_message=""
        )
        logger.bind.return_value.info.assert_called_once_with("Position transition")

    def test_subsystem_loggers_are_usable(self):
        """Bound loggers log without error after configuration."""
        configure_logging(level="DEBUG", format_json=True)

        get_assertion_logger("test").info("assertion logger ready")
        get_scenario_logger("test").info("scenario logger ready")

    def test_invalid_level_rejected(self):
        with pytest.raises(AttributeError):
            configure_logging(level="LOUD")


class TestObserverLogging:
    """Test that the observer leaves an audit trail."""

    def _fill(self, contract, direction, timestamp, message=""):
        return OrderFillEvent(
            instrument=contract,
            direction=direction,
            status=OrderStatus.FILLED,
            message=message,
            timestamp=timestamp
        )

    def test_entry_fill_logs_pass_and_transition(self, expectations, expected_contract, entry_time):
        """An accepted entry logs its check and the OPENED transition."""
        observer = EventObserver(expectations)

        with patch("expiry_harness.state.observer.log_assertion") as mock_assertion, \
                patch("expiry_harness.state.observer.log_position_transition") as mock_transition:
            observer.on_order_event(
                self._fill(expected_contract, OrderDirection.BUY, entry_time),
                HoldingsSnapshot({expected_contract: 1})
            )

        assert mock_assertion.call_args.args[1:3] == ("entry_opens_position", True)
        assert mock_assertion.call_args.kwargs["timestamp"] == entry_time
        transition = mock_transition.call_args.kwargs
        assert transition["from_state"] == PositionState.NOT_YET_FILLED
        assert transition["to_state"] == PositionState.OPENED
        assert transition["quantity_after"] == 1

    def test_violation_logged_before_raising(self, expectations, expected_contract, entry_time):
        """A failed check is logged with its diagnostics, then raised."""
        observer = EventObserver(expectations)

        with patch("expiry_harness.state.observer.log_assertion") as mock_assertion:
            with pytest.raises(InvariantViolation):
                observer.on_order_event(
                    self._fill(expected_contract, OrderDirection.BUY, entry_time, "Exercise"),
                    HoldingsSnapshot({expected_contract: 1})
                )

        args = mock_assertion.call_args.args
        assert args[1] == "no_exercise"
        assert args[2] is False
        assert args[3] == expected_contract
        assert args[4] == "exercised an OTM contract"
        assert mock_assertion.call_args.kwargs["actual"] == "Exercise"
        assert mock_assertion.call_args.kwargs["timestamp"] == entry_time

    def test_capture_structured_events(self, expected_contract, expiry_time):
        """Transition records carry structured fields."""
        with capture_logs() as captured:
            log_position_transition(
                get_scenario_logger("capture"),
                contract=expected_contract,
                from_state=PositionState.OPENED,
                to_state=PositionState.CLOSED,
                direction=OrderDirection.SELL,
                quantity_after=0,
                timestamp=expiry_time,
                message="OTM"
            )

        assert captured[0]["event"] == "Position transition"
        assert captured[0]["subsystem"] == "scenario"
        assert captured[0]["to_state"] == "closed"
        assert captured[0]["timestamp"] == "2021-01-15T16:00:00"
        assert captured[0]["fill_message"] == "OTM"

    def test_structlog_logger_accepts_assertion_fields(self):
        """log_assertion works on a plain structlog logger."""
        with capture_logs() as captured:
            log_assertion(structlog.get_logger("capture"), "flat_at_end", False, "portfolio",
                          "unexpected holdings at end of run", expected="not invested", actual=["SPX"])

        assert captured[0]["log_level"] == "warning"
        assert captured[0]["actual"] == ["SPX"]
