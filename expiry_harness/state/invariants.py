"""
End-of-run invariants.

Runs once when the engine finishes the scenario: checks that the observed
sequence was complete and that the portfolio is flat.
"""

import structlog

from ..data.models import DelistingKind, OrderDirection, PortfolioSnapshot
from ..errors import InvariantViolation
from ..logging.config import get_assertion_logger, log_assertion
from .models import ObserverState, PositionState, ScenarioExpectations

logger = structlog.get_logger(__name__)
assertion_logger = get_assertion_logger(__name__)

EXPECTED_FILL_SEQUENCE = [OrderDirection.BUY, OrderDirection.SELL]


class InvariantChecker:
    """Checks the scenario's final state."""

    def __init__(self, expectations: ScenarioExpectations):
        self.logger = logger
        self.expectations = expectations

    def check_completeness(self, state: ObserverState, fire_count: int) -> None:
        """
        Check that everything the scenario expects was actually observed.

        A single-tick observer cannot tell a missing event from one that has
        not arrived yet, so absence is only decidable here.

        Args:
            state: Final observer state
            fire_count: Times the scheduler fired the entry action

        Raises:
            InvariantViolation: The entry never fired, a notice never arrived,
                or the fill sequence is not exactly [Buy, Sell]
        """
        contract = self.expectations.contract

        if fire_count != 1:
            self._fail(
                "entry_fired",
                "scheduled entry never fired" if fire_count == 0 else "scheduled entry fired more than once",
                expected=1,
                actual=fire_count
            )
        log_assertion(assertion_logger, "entry_fired", True, contract, "scheduled entry fired once")

        directions = state.fill_directions
        if directions != EXPECTED_FILL_SEQUENCE or state.position != PositionState.CLOSED:
            self._fail(
                "fill_sequence",
                "position life cycle incomplete",
                expected=[d.value for d in EXPECTED_FILL_SEQUENCE],
                actual=[d.value for d in directions],
                context={"position": state.position.value}
            )
        log_assertion(assertion_logger, "fill_sequence", True, contract,
                      "entry and expiry fills observed in order",
                      opened_at=state.opened_at, closed_at=state.closed_at)

        required = []
        if self.expectations.require_warning:
            required.append(DelistingKind.WARNING)
        if self.expectations.require_delisted:
            required.append(DelistingKind.DELISTED)

        for kind in required:
            notice = state.first_notice(contract, kind)
            if notice is None:
                self._fail(
                    f"{kind.value}_observed",
                    f"delisting {kind.value} never observed",
                    expected=kind.value,
                    actual=None
                )
            log_assertion(assertion_logger, f"{kind.value}_observed", True, contract,
                          f"delisting {kind.value} observed", timestamp=notice.timestamp)

    def check_final(self, portfolio: PortfolioSnapshot) -> None:
        """
        Check that the portfolio holds nothing at the end of the run.

        Raises:
            InvariantViolation: The portfolio is still invested
        """
        offending = portfolio.invested_instruments()

        if portfolio.invested or offending:
            tickers = [str(instrument) for instrument in offending]
            message = "unexpected holdings at end of run"
            log_assertion(assertion_logger, "flat_at_end", False, ", ".join(tickers) or "portfolio",
                          message, expected="not invested", actual=tickers,
                          quantities=[portfolio.holdings[instrument] for instrument in offending])
            raise InvariantViolation(
                f"{message}: invested in {', '.join(tickers) or 'unreported instruments'}",
                instrument=offending[0] if offending else None,
                expected="not invested",
                actual=tickers
            )

        log_assertion(assertion_logger, "flat_at_end", True, "portfolio", "no holdings at end of run")

    def _fail(self, check_name: str, message: str, expected=None, actual=None,
              context=None) -> None:
        contract = self.expectations.contract
        log_assertion(assertion_logger, check_name, False, contract, message,
                      expected=expected, actual=actual, **(context or {}))

        raise InvariantViolation(
            message,
            instrument=contract,
            expected=expected,
            actual=actual,
            context=context
        )
