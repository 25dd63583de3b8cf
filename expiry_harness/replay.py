"""
Deterministic replay engine.

An in-memory stand-in for the backtesting engine: it lists a fixed option
chain, runs a single-shot scheduler, fills market orders immediately,
keeps holdings, and replays a scripted timeline of delisting notices and
engine-originated fills (expiry liquidations) through the scenario's
callbacks. It exists to drive the scenario deterministically, not to
simulate markets.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Mapping, Optional, Sequence

import structlog

from .config.scenario import ScenarioConfig
from .data.models import (
    ContractIdentifier,
    DelistingKind,
    DelistingNotice,
    Instrument,
    OptionRight,
    OrderDirection,
    OrderFillEvent,
    OrderStatus,
    Slice,
    UnderlyingIdentifier,
)
from .engine import IndexOptionPutOtmExpiryScenario, ScenarioResult, run_scenario
from .gateway import EngineGateway
from .scheduling.rules import DateRule, TimeRule
from .utils.time import MARKET_CLOSE, MARKET_OPEN, start_of_day

logger = structlog.get_logger(__name__)

DEFAULT_EXPIRY_MESSAGE = "Option expired worthless (OTM)"


@dataclass(frozen=True)
class ReplayFill:
    """An engine-originated order event scripted into the timeline."""
    instrument: Instrument
    direction: OrderDirection
    message: str
    quantity: Optional[int] = None          # None liquidates the current position
    status: OrderStatus = OrderStatus.FILLED


@dataclass(frozen=True)
class ReplayStep:
    """Everything the engine delivers at one simulated instant."""
    timestamp: datetime
    delistings: tuple[DelistingNotice, ...] = ()
    fills: tuple[ReplayFill, ...] = ()


class ReplayEngine(EngineGateway):
    """Replays a scripted timeline against a scenario."""

    def __init__(
        self,
        start: datetime,
        end: datetime,
        chain: Sequence[ContractIdentifier],
        steps: Sequence[ReplayStep] = (),
        market_open: time = MARKET_OPEN,
        scheduled_fire_count: int = 1
    ):
        self.logger = logger
        self._time = start
        self.start = start
        self.end = end
        self.chain = list(chain)
        self.steps = sorted(steps, key=lambda step: step.timestamp)
        self.market_open = market_open
        # Values above 1 emulate a scheduler that breaks its fire-once contract
        self.scheduled_fire_count = scheduled_fire_count

        self.subscriptions: list[Instrument] = []
        self.holdings: dict[Instrument, int] = {}
        self.order_events: list[OrderFillEvent] = []
        self.scheduled: list[tuple[datetime, Callable[[], None]]] = []
        self._next_order_id = 1
        self._scenario: Optional[IndexOptionPutOtmExpiryScenario] = None

    # -- EngineGateway ---------------------------------------------------

    @property
    def time(self) -> datetime:
        return self._time

    def subscribe(self, instrument: Instrument) -> Instrument:
        if instrument not in self.subscriptions:
            self.subscriptions.append(instrument)
            self.logger.debug("Subscribed instrument", instrument=str(instrument))
        return instrument

    def list_available_contracts(
        self,
        underlying: UnderlyingIdentifier,
        as_of: datetime
    ) -> Sequence[ContractIdentifier]:
        return [
            contract for contract in self.chain
            if contract.underlying == underlying and contract.expiry >= as_of.date()
        ]

    def schedule_on(
        self,
        date_rule: DateRule,
        time_rule: TimeRule,
        callback: Callable[[], None]
    ) -> None:
        fire_day = date_rule.resolve(self._time.date())
        fire_at = time_rule.resolve(fire_day, self.market_open)
        for _ in range(self.scheduled_fire_count):
            self.scheduled.append((fire_at, callback))
        self.logger.debug("Scheduled callback", fire_at=fire_at.isoformat())

    def submit_market_order(self, instrument: Instrument, quantity: int) -> int:
        order_id = self._next_order_id
        self._next_order_id += 1
        direction = OrderDirection.BUY if quantity > 0 else OrderDirection.SELL

        if instrument not in self.subscriptions or quantity == 0:
            self._emit(OrderFillEvent(
                instrument=instrument,
                direction=direction,
                status=OrderStatus.INVALID,
                message="Order rejected: instrument not subscribed or zero quantity",
                timestamp=self._time,
                quantity=quantity,
                order_id=order_id
            ))
            return order_id

        self._emit(OrderFillEvent(
            instrument=instrument,
            direction=direction,
            status=OrderStatus.SUBMITTED,
            message="",
            timestamp=self._time,
            quantity=quantity,
            order_id=order_id
        ))
        self._apply(instrument, quantity)
        self._emit(OrderFillEvent(
            instrument=instrument,
            direction=direction,
            status=OrderStatus.FILLED,
            message="",
            timestamp=self._time,
            quantity=quantity,
            order_id=order_id
        ))
        return order_id

    def current_holdings(self, instrument: Instrument) -> int:
        return self.holdings.get(instrument, 0)

    def portfolio_invested(self) -> bool:
        return any(quantity != 0 for quantity in self.holdings.values())

    def portfolio_holdings(self) -> Mapping[Instrument, int]:
        return {instrument: quantity for instrument, quantity in self.holdings.items() if quantity != 0}

    # -- Replay ----------------------------------------------------------

    def run(self, scenario: IndexOptionPutOtmExpiryScenario) -> ScenarioResult:
        """Drive the scenario through the whole timeline."""
        self._scenario = scenario
        return run_scenario(scenario, self._replay)

    def _replay(self) -> None:
        # Scheduled callbacks run before data delivered at the same instant
        timeline = [(fire_at, 0, index, callback) for index, (fire_at, callback) in enumerate(self.scheduled)]
        timeline += [(step.timestamp, 1, index, step) for index, step in enumerate(self.steps)]
        timeline.sort(key=lambda item: (item[0], item[1], item[2]))

        for timestamp, kind, _index, item in timeline:
            if timestamp < self.start or timestamp > self.end:
                continue
            self._time = timestamp
            if kind == 0:
                item()
            else:
                self._deliver(item)

        self._time = self.end

    def _deliver(self, step: ReplayStep) -> None:
        if step.delistings:
            self._scenario.on_data(Slice(
                timestamp=step.timestamp,
                delistings={notice.contract: notice for notice in step.delistings}
            ))

        for fill in step.fills:
            quantity = fill.quantity
            if quantity is None:
                held = self.current_holdings(fill.instrument)
                if held == 0:
                    continue
                quantity = abs(held)

            signed = quantity if fill.direction == OrderDirection.BUY else -quantity
            if fill.status == OrderStatus.FILLED:
                self._apply(fill.instrument, signed)

            order_id = self._next_order_id
            self._next_order_id += 1
            self._emit(OrderFillEvent(
                instrument=fill.instrument,
                direction=fill.direction,
                status=fill.status,
                message=fill.message,
                timestamp=step.timestamp,
                quantity=signed,
                order_id=order_id
            ))

    def _apply(self, instrument: Instrument, quantity: int) -> None:
        self.holdings[instrument] = self.holdings.get(instrument, 0) + quantity

    def _emit(self, event: OrderFillEvent) -> None:
        self.order_events.append(event)
        if self._scenario is not None:
            self._scenario.on_order_event(event)


def build_put_chain(
    underlying: UnderlyingIdentifier,
    expiry: date,
    strikes: Sequence[Decimal],
    template: ContractIdentifier
) -> list[ContractIdentifier]:
    """Puts at the given strikes plus same-strike distractors the criteria must reject."""
    chain = [
        ContractIdentifier(underlying, template.market, template.style, OptionRight.PUT, strike, expiry)
        for strike in strikes
    ]
    # A call and a later-month put at the first strike
    chain.append(ContractIdentifier(
        underlying, template.market, template.style, OptionRight.CALL, strikes[0], expiry
    ))
    chain.append(ContractIdentifier(
        underlying, template.market, template.style, OptionRight.PUT, strikes[0], expiry + timedelta(days=35)
    ))
    return chain


def build_otm_expiry_replay(
    config: ScenarioConfig,
    expiry_message: str = DEFAULT_EXPIRY_MESSAGE,
    warning_time: Optional[datetime] = None,
    delisted_time: Optional[datetime] = None,
    chain: Optional[Sequence[ContractIdentifier]] = None,
    extra_steps: Sequence[ReplayStep] = (),
    include_warning: bool = True,
    include_delisted: bool = True,
    scheduled_fire_count: int = 1
) -> ReplayEngine:
    """
    Canonical timeline for a put that expires worthless.

    The chain lists strikes 3100, 3150 and 3200 for the expected expiry;
    the entry order fills when the scheduled action fires; the warning
    arrives on the warning date, the position is liquidated at the close of
    the expiry date with an OTM message, and the delisting follows.
    """
    contract = config.expected_contract
    if chain is None:
        chain = build_put_chain(
            config.underlying,
            contract.expiry,
            [Decimal("3150"), Decimal("3100"), Decimal("3200")],
            contract
        )

    warning_time = warning_time or start_of_day(config.warning_date)
    delisted_time = delisted_time or start_of_day(config.delisted_date)

    steps = list(extra_steps)
    if include_warning:
        steps.append(ReplayStep(
            timestamp=warning_time,
            delistings=(DelistingNotice(contract, DelistingKind.WARNING, warning_time),)
        ))
    steps.append(ReplayStep(
        timestamp=datetime.combine(contract.expiry, MARKET_CLOSE),
        fills=(ReplayFill(contract, OrderDirection.SELL, expiry_message),)
    ))
    if include_delisted:
        steps.append(ReplayStep(
            timestamp=delisted_time,
            delistings=(DelistingNotice(contract, DelistingKind.DELISTED, delisted_time),)
        ))

    return ReplayEngine(
        start=start_of_day(config.start_date),
        end=datetime.combine(config.end_date, MARKET_CLOSE),
        chain=chain,
        steps=steps,
        scheduled_fire_count=scheduled_fire_count
    )
