"""
Scenario coordinator.

Implements the callbacks the backtesting engine drives (initialize, data,
order events, end of run) for the index option put OTM expiry scenario,
wiring contract selection, the scheduled entry, the event observer and the
end-of-run invariant checks together.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

import structlog

from .config.scenario import ScenarioConfig
from .data.models import (
    ContractIdentifier,
    HoldingsSnapshot,
    OrderFillEvent,
    PortfolioSnapshot,
    Slice,
)
from .errors import HarnessError
from .gateway import EngineGateway
from .logging.config import get_scenario_logger
from .scheduling.registry import ScheduledActionRegistry
from .selection.selector import select_contract, verify_selection
from .state.invariants import InvariantChecker
from .state.models import FillRecord, ObserverState, PositionState
from .state.observer import EventObserver

logger = structlog.get_logger(__name__)
scenario_logger = get_scenario_logger(__name__)


@dataclass
class ScenarioResult:
    """Outcome of one scenario run."""
    passed: bool
    error: Optional[HarnessError] = None
    selected_contract: Optional[ContractIdentifier] = None
    final_position: Optional[PositionState] = None
    fills: list[FillRecord] = field(default_factory=list)
    entry_fired: bool = False
    opened_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    @property
    def failed(self) -> bool:
        return not self.passed

    @property
    def diagnostic(self) -> Optional[str]:
        return str(self.error) if self.error else None


class IndexOptionPutOtmExpiryScenario:
    """
    Buys one index put expected to expire out of the money and checks its
    life cycle: selection, entry fill, delisting notices, worthless expiry,
    and a flat portfolio at the end.
    """

    def __init__(self, gateway: EngineGateway, config: ScenarioConfig):
        self.logger = scenario_logger
        self.gateway = gateway
        self.config = config

        self.registry = ScheduledActionRegistry(gateway)
        self.contract: Optional[ContractIdentifier] = None
        self.observer: Optional[EventObserver] = None
        self.checker = InvariantChecker(config.expectations())

    def on_initialize(self) -> None:
        """Subscribe instruments, select the contract and schedule the entry order."""
        underlying = self.gateway.subscribe(self.config.underlying)

        candidates = self.gateway.list_available_contracts(underlying, self.gateway.time)
        selected = select_contract(candidates, self.config.criteria)
        verify_selection(selected, self.config.expected_contract)

        self.contract = self.gateway.subscribe(selected)

        expectations = self.config.expectations(self.contract)
        self.observer = EventObserver(expectations)
        self.checker = InvariantChecker(expectations)

        self.registry.register(
            self.config.entry_date_rule,
            self.config.entry_time_rule,
            self._submit_entry_order
        )

        self.logger.info(
            "Scenario initialized",
            underlying=str(underlying),
            contract=self.contract.ticker,
            start_date=self.config.start_date.isoformat(),
            end_date=self.config.end_date.isoformat()
        )

    def _submit_entry_order(self) -> None:
        """Scheduled entry: market buy of the selected contract."""
        # Fills may be delivered before submit_market_order returns
        self.observer.mark_entry_submitted()
        order_id = self.gateway.submit_market_order(self.contract, self.config.entry_quantity)

        self.logger.info(
            "Submitted entry order",
            order_id=order_id,
            contract=self.contract.ticker,
            quantity=self.config.entry_quantity,
            time=self.gateway.time.isoformat()
        )

    def on_data(self, data: Slice) -> None:
        """Check the delisting notices delivered with a slice."""
        if self.observer is None:
            return
        self.observer.handle(data)

    def on_order_event(self, event: OrderFillEvent) -> None:
        """Check an order event against the current holdings."""
        if self.observer is None:
            return
        self.observer.handle(event, self._holdings_snapshot(event))

    def _holdings_snapshot(self, event: OrderFillEvent) -> HoldingsSnapshot:
        instruments = {self.config.underlying, event.instrument}
        if self.contract is not None:
            instruments.add(self.contract)
        return HoldingsSnapshot({
            instrument: self.gateway.current_holdings(instrument)
            for instrument in instruments
        })

    def on_end_of_run(self, check_completeness: bool = True) -> None:
        """
        Final checks, run once as the last step of the scenario.

        Args:
            check_completeness: Also require the full fill and notice sequence;
                disabled when the run already aborted
        """
        if check_completeness and self.observer is not None:
            self.checker.check_completeness(self.observer.state, self.registry.fire_count)

        portfolio = PortfolioSnapshot(
            invested=self.gateway.portfolio_invested(),
            holdings=dict(self.gateway.portfolio_holdings())
        )
        self.checker.check_final(portfolio)

        self.logger.info("End of run checks complete", invested=portfolio.invested)

    @property
    def observed(self) -> ObserverState:
        return self.observer.state if self.observer is not None else ObserverState()


def run_scenario(
    scenario: IndexOptionPutOtmExpiryScenario,
    drive: Callable[[], None]
) -> ScenarioResult:
    """
    Run a scenario: initialize, let the engine drive events, then run the
    end-of-run checks. The first violation aborts the run; the end-of-run
    portfolio check always runs last.

    Args:
        scenario: Scenario whose callbacks the engine invokes
        drive: Engine loop delivering slices, fills and scheduled callbacks

    Returns:
        ScenarioResult carrying the first violation, if any
    """
    error: Optional[HarnessError] = None

    try:
        scenario.on_initialize()
        drive()
    except HarnessError as e:
        error = e
        logger.error(
            "Scenario aborted",
            error_type=type(e).__name__,
            error=str(e),
            context={key: str(value) for key, value in e.context.items()}
        )

    try:
        scenario.on_end_of_run(check_completeness=error is None)
    except HarnessError as e:
        if error is None:
            error = e
        logger.error(
            "End of run check failed",
            error_type=type(e).__name__,
            error=str(e)
        )

    observed = scenario.observed
    result = ScenarioResult(
        passed=error is None,
        error=error,
        selected_contract=scenario.contract,
        final_position=observed.position,
        fills=list(observed.fills),
        entry_fired=scenario.registry.fired,
        opened_at=observed.opened_at,
        closed_at=observed.closed_at
    )

    if result.passed:
        logger.info("Scenario passed", contract=str(scenario.contract))
    else:
        logger.warning("Scenario failed", diagnostic=result.diagnostic)

    return result
