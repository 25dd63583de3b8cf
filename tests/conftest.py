"""Pytest configuration and shared fixtures."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from expiry_harness.config.loader import ConfigLoader
from expiry_harness.config.scenario import ScenarioConfig
from expiry_harness.data.models import (
    ContractIdentifier,
    Market,
    OptionRight,
    OptionStyle,
    UnderlyingIdentifier,
)
from expiry_harness.selection.models import SelectionCriteria


def make_put(strike: str, expiry: date = date(2021, 1, 15),
             right: OptionRight = OptionRight.PUT,
             style: OptionStyle = OptionStyle.EUROPEAN) -> ContractIdentifier:
    """SPX option contract for tests."""
    return ContractIdentifier(
        underlying=UnderlyingIdentifier("SPX", Market.USA),
        market=Market.USA,
        style=style,
        right=right,
        strike=Decimal(strike),
        expiry=expiry,
    )


@pytest.fixture
def spx() -> UnderlyingIdentifier:
    """SPX index identifier."""
    return UnderlyingIdentifier("SPX", Market.USA)


@pytest.fixture
def expected_contract() -> ContractIdentifier:
    """SPX 3150 European put expiring 2021-01-15."""
    return make_put("3150")


@pytest.fixture
def spx_chain() -> list[ContractIdentifier]:
    """January puts at 3100/3150/3200 plus a call and a February put."""
    return [
        make_put("3100"),
        make_put("3150"),
        make_put("3200"),
        make_put("3150", right=OptionRight.CALL),
        make_put("3150", expiry=date(2021, 2, 19)),
    ]


@pytest.fixture
def criteria(spx) -> SelectionCriteria:
    """Strike <= 3150, put, January 2021."""
    return SelectionCriteria(
        max_strike=Decimal("3150"),
        right=OptionRight.PUT,
        expiry_year=2021,
        expiry_month=1,
        underlying=spx,
    )


@pytest.fixture
def scenario_config(tmp_path) -> ScenarioConfig:
    """Default SPX put OTM scenario configuration (no scenarios.yaml)."""
    loader = ConfigLoader.create(tmp_path)
    return ScenarioConfig.from_dict(loader.merge_config())


@pytest.fixture
def expectations(scenario_config):
    """Observer expectations for the default scenario."""
    return scenario_config.expectations()


@pytest.fixture
def entry_time() -> datetime:
    """Time the scheduled entry fires in the default scenario."""
    return datetime(2021, 1, 5, 9, 31)


@pytest.fixture
def expiry_time() -> datetime:
    """Time the expiry liquidation fill arrives."""
    return datetime(2021, 1, 15, 16, 0)


@pytest.fixture
def make_contract():
    """Factory for SPX option contracts."""
    return make_put
