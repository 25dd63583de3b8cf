"""Integration tests: the full scenario driven by the replay engine."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from expiry_harness.config.scenario import load_scenario_config
from expiry_harness.data.models import OrderDirection, OrderStatus
from expiry_harness.engine import IndexOptionPutOtmExpiryScenario
from expiry_harness.errors import (
    ContractMismatchError,
    InvariantViolation,
    SchedulingError,
    SelectionError,
)
from expiry_harness.replay import (
    ReplayEngine,
    ReplayFill,
    ReplayStep,
    build_otm_expiry_replay,
    build_put_chain,
)
from expiry_harness.state.models import PositionState


def run(config, **replay_options):
    engine = build_otm_expiry_replay(config, **replay_options)
    return engine, engine.run(IndexOptionPutOtmExpiryScenario(engine, config))


@pytest.mark.integration
class TestOtmExpiryScenario:
    """The put expires worthless and every check passes."""

    def test_happy_path(self, scenario_config, expected_contract):
        """Select, buy, warn, expire OTM, delist, end flat."""
        engine, result = run(scenario_config)

        assert result.passed, result.diagnostic
        assert result.selected_contract == expected_contract
        assert result.entry_fired is True
        assert result.final_position == PositionState.CLOSED
        assert [fill.direction for fill in result.fills] == [OrderDirection.BUY, OrderDirection.SELL]
        assert engine.portfolio_invested() is False
        assert result.opened_at == datetime(2021, 1, 5, 9, 31)
        assert result.closed_at == datetime(2021, 1, 15, 16, 0)

    def test_entry_fills_one_minute_after_open_tomorrow(self, scenario_config):
        """Entry fires the day after the start, one minute after the open."""
        _engine, result = run(scenario_config)

        assert result.fills[0].timestamp == datetime(2021, 1, 5, 9, 31)
        assert result.fills[0].quantity_after == 1

    def test_expiry_fill(self, scenario_config):
        """The expiry liquidation arrives at the close of expiry day."""
        _engine, result = run(scenario_config)

        assert result.fills[1].timestamp == datetime(2021, 1, 15, 16, 0)
        assert result.fills[1].quantity_after == 0
        assert "OTM" in result.fills[1].message

    def test_underlying_never_traded(self, scenario_config):
        """No order event in the whole run touches the underlying."""
        engine, _result = run(scenario_config)

        assert all(event.instrument != scenario_config.underlying for event in engine.order_events)
        assert [event.status for event in engine.order_events] == [
            OrderStatus.SUBMITTED, OrderStatus.FILLED, OrderStatus.FILLED
        ]

    def test_repository_scenario(self):
        """The shipped scenarios.yaml entry passes end to end."""
        _engine, result = run(load_scenario_config("spx_put_otm"))

        assert result.passed, result.diagnostic


@pytest.mark.integration
class TestEngineMisbehaviour:
    """Each engine fault is reported as the first violation."""

    def test_exercise_fill_fails(self, scenario_config):
        """An OTM contract reported as exercised."""
        _engine, result = run(scenario_config, expiry_message="Automatic Exercise")

        assert isinstance(result.error, InvariantViolation)
        assert "exercised an OTM contract" in result.diagnostic

    def test_expiry_without_otm_marker_fails(self, scenario_config):
        _engine, result = run(scenario_config, expiry_message="Liquidated at expiry")

        assert "contract did not expire OTM" in result.diagnostic

    def test_warning_at_wrong_time_fails(self, scenario_config):
        """Warning a day early."""
        _engine, result = run(scenario_config, warning_time=datetime(2021, 1, 14))

        assert "delisting warning at wrong time" in result.diagnostic
        assert result.final_position == PositionState.OPENED

    def test_delisted_at_wrong_time_fails(self, scenario_config):
        _engine, result = run(scenario_config, delisted_time=datetime(2021, 1, 18))

        assert "delisting at wrong time" in result.diagnostic

    def test_missing_warning_fails_at_end(self, scenario_config):
        """An absent warning is detected by the end-of-run completeness check."""
        _engine, result = run(scenario_config, include_warning=False)

        assert result.failed
        assert "delisting warning never observed" in result.diagnostic
        assert result.final_position == PositionState.CLOSED

    def test_missing_delisting_fails_at_end(self, scenario_config):
        _engine, result = run(scenario_config, include_delisted=False)

        assert "delisting delisted never observed" in result.diagnostic

    def test_underlying_fill_fails(self, scenario_config, spx):
        """The engine assigning the underlying is caught."""
        assignment = ReplayStep(
            timestamp=datetime(2021, 1, 15, 16, 0),
            fills=(ReplayFill(spx, OrderDirection.BUY, "Assignment", quantity=100),)
        )

        _engine, result = run(scenario_config, extra_steps=[assignment])

        assert "unexpected underlying fill" in result.diagnostic
        assert result.error.instrument == spx

    def test_double_fire_fails(self, scenario_config):
        """A scheduler that fires twice breaks the single entry."""
        engine, result = run(scenario_config, scheduled_fire_count=2)

        assert isinstance(result.error, SchedulingError)
        assert result.error.fire_count == 2
        # Only the first firing reached the engine
        assert engine.current_holdings(scenario_config.expected_contract) == 1

    def test_entry_never_fired_fails(self, scenario_config):
        """A scheduler that never fires must not pass silently."""
        engine, result = run(scenario_config, scheduled_fire_count=0)

        assert result.failed
        assert "scheduled entry never fired" in result.diagnostic
        assert result.entry_fired is False
        assert result.fills == []
        assert result.opened_at is None
        assert engine.order_events == []

    def test_position_left_open_fails(self, tmp_path):
        """A run ending before expiry leaves the life cycle incomplete."""
        config = load_scenario_config(
            overrides={"run": {"end_date": date(2021, 1, 14)}},
            config_dir=tmp_path
        )

        _engine, result = run(config)

        assert "position life cycle incomplete" in result.diagnostic
        assert result.final_position == PositionState.OPENED


@pytest.mark.integration
class TestChainFaults:
    """Chain contents that make selection fail."""

    def test_missing_strike_fails_selection(self, scenario_config, spx, expected_contract):
        """Nothing at or below the ceiling: nothing is traded and the portfolio stays flat."""
        chain = build_put_chain(spx, expected_contract.expiry, [Decimal("3200"), Decimal("3250")], expected_contract)

        engine, result = run(scenario_config, chain=chain)

        assert isinstance(result.error, SelectionError)
        assert result.selected_contract is None
        assert result.entry_fired is False
        assert engine.order_events == []
        assert engine.portfolio_invested() is False

    def test_drifted_chain_fails_cross_check(self, scenario_config, spx, expected_contract):
        """The chain resolving a different strike is a mismatch."""
        chain = build_put_chain(spx, expected_contract.expiry, [Decimal("3100"), Decimal("3200")], expected_contract)

        _engine, result = run(scenario_config, chain=chain)

        assert isinstance(result.error, ContractMismatchError)
        assert result.error.actual.strike == Decimal("3100")

    def test_tie_fails_strict_and_passes_lenient(self, scenario_config, spx, expected_contract, make_contract):
        """A second January 3150 put is ambiguous unless a tie-break is configured."""
        chain = build_put_chain(spx, expected_contract.expiry, [Decimal("3150")], expected_contract)
        chain.append(make_contract("3150", expiry=date(2021, 1, 29)))

        _engine, strict = run(scenario_config, chain=chain)
        _engine, lenient = run(load_scenario_config("spx_put_otm_lenient"), chain=chain)

        assert isinstance(strict.error, SelectionError)
        assert lenient.passed, lenient.diagnostic
        assert lenient.selected_contract == expected_contract

    def test_expired_contracts_not_listed(self, scenario_config, expected_contract):
        """The chain only lists contracts that have not expired."""
        engine = build_otm_expiry_replay(scenario_config)

        listed = engine.list_available_contracts(scenario_config.underlying, datetime(2021, 1, 16))

        assert expected_contract not in listed


@pytest.mark.integration
class TestReplayEngine:
    """Replay engine order handling."""

    def test_unsubscribed_order_is_invalid(self, expected_contract):
        engine = ReplayEngine(datetime(2021, 1, 4), datetime(2021, 1, 31, 16), [expected_contract])

        engine.submit_market_order(expected_contract, 1)

        assert engine.order_events[-1].status == OrderStatus.INVALID
        assert engine.current_holdings(expected_contract) == 0

    def test_market_order_fills_immediately(self, expected_contract):
        engine = ReplayEngine(datetime(2021, 1, 4), datetime(2021, 1, 31, 16), [expected_contract])
        engine.subscribe(expected_contract)

        engine.submit_market_order(expected_contract, 1)

        assert engine.order_events[-1].status == OrderStatus.FILLED
        assert engine.portfolio_holdings() == {expected_contract: 1}
