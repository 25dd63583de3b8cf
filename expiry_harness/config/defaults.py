"""Default configuration parameters: the SPX put OTM expiry scenario."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class RunParams:
    """Simulation window handed to the engine."""
    start_date: date = date(2021, 1, 4)
    end_date: date = date(2021, 1, 31)


@dataclass(frozen=True)
class UnderlyingParams:
    """Underlying index subscription."""
    ticker: str = "SPX"
    market: str = "usa"


@dataclass(frozen=True)
class SelectionParams:
    """Chain filter and ordering."""
    max_strike: Decimal = Decimal("3150")           # Strike ceiling (inclusive)
    right: str = "put"
    expiry_year: int = 2021
    expiry_month: int = 1
    strike_descending: bool = True
    take: int = 1
    tie_break: str = "strict"                       # strict | earliest_expiry | lowest_ticker | first_seen


@dataclass(frozen=True)
class ExpectedContractParams:
    """Contract the selection must resolve to, built from literals."""
    style: str = "european"
    right: str = "put"
    strike: Decimal = Decimal("3150")
    expiry: date = date(2021, 1, 15)


@dataclass(frozen=True)
class EntryParams:
    """Scheduled entry order."""
    date_rule: str = "tomorrow"                     # tomorrow | on
    date: Optional[date] = None                     # Required when date_rule is "on"
    minutes_after_open: int = 1
    quantity: int = 1


@dataclass(frozen=True)
class DelistingParams:
    """Expected delisting notice dates."""
    warning_date: date = date(2021, 1, 15)
    delisted_date: date = date(2021, 1, 16)
    require_warning: bool = True
    require_delisted: bool = True


@dataclass(frozen=True)
class FillParams:
    """Fill message markers and date checks."""
    otm_marker: str = "OTM"
    exercise_marker: str = "Exercise"
    check_fill_dates: bool = True


@dataclass(frozen=True)
class LoggingParams:
    """Logging output."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class ScenarioDefaults:
    """Complete default configuration."""
    run: RunParams
    underlying: UnderlyingParams
    selection: SelectionParams
    expected_contract: ExpectedContractParams
    entry: EntryParams
    delisting: DelistingParams
    fills: FillParams
    logging: LoggingParams


def get_default_config() -> ScenarioDefaults:
    """Get the default configuration instance."""
    return ScenarioDefaults(
        run=RunParams(),
        underlying=UnderlyingParams(),
        selection=SelectionParams(),
        expected_contract=ExpectedContractParams(),
        entry=EntryParams(),
        delisting=DelistingParams(),
        fills=FillParams(),
        logging=LoggingParams(),
    )
