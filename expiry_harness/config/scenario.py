"""Typed scenario configuration built from the merged configuration dict."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import structlog

from ..data.models import ContractIdentifier, Market, OptionRight, OptionStyle, UnderlyingIdentifier
from ..errors import ConfigurationError
from ..scheduling.rules import DateRule, TimeRule
from ..selection.models import SelectionCriteria, TieBreak
from ..state.models import ScenarioExpectations
from ..utils.time import start_of_day, to_date
from .loader import ConfigLoader
from .validation import ConfigValidator

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ScenarioConfig:
    """Fully resolved configuration for one scenario run."""

    start_date: date
    end_date: date
    underlying: UnderlyingIdentifier
    criteria: SelectionCriteria
    expected_contract: ContractIdentifier
    entry_date_rule: DateRule
    entry_time_rule: TimeRule
    entry_quantity: int
    warning_date: date
    delisted_date: date
    require_warning: bool = True
    require_delisted: bool = True
    otm_marker: str = "OTM"
    exercise_marker: str = "Exercise"
    check_fill_dates: bool = True
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "ScenarioConfig":
        """
        Build a typed config from a merged configuration dict.

        Raises:
            ConfigurationError: The configuration failed validation
        """
        errors = ConfigValidator.validate_config(config)
        if errors:
            messages = [f"{err.field}: {err.message} (got: {err.value})" for err in errors]
            logger.error("Scenario configuration invalid", errors=messages)
            raise ConfigurationError(
                f"Invalid scenario configuration: {'; '.join(messages)}",
                errors=errors
            )

        run = config["run"]
        underlying_cfg = config["underlying"]
        selection = config["selection"]
        expected = config["expected_contract"]
        entry = config["entry"]
        delisting = config["delisting"]
        fills = config["fills"]
        logging_cfg = config.get("logging", {})

        market = Market(underlying_cfg["market"])
        underlying = UnderlyingIdentifier(underlying_cfg["ticker"].strip(), market)

        criteria = SelectionCriteria(
            max_strike=Decimal(str(selection["max_strike"])),
            right=OptionRight(selection["right"]),
            expiry_year=selection["expiry_year"],
            expiry_month=selection["expiry_month"],
            underlying=underlying,
            strike_descending=selection["strike_descending"],
            take=selection["take"],
            tie_break=TieBreak(selection["tie_break"]),
        )

        expected_contract = ContractIdentifier(
            underlying=underlying,
            market=market,
            style=OptionStyle(expected["style"]),
            right=OptionRight(expected["right"]),
            strike=Decimal(str(expected["strike"])),
            expiry=to_date(expected["expiry"]),
        )

        if entry["date_rule"] == "on":
            date_rule = DateRule.on(to_date(entry["date"]))
        else:
            date_rule = DateRule.tomorrow()

        return cls(
            start_date=to_date(run["start_date"]),
            end_date=to_date(run["end_date"]),
            underlying=underlying,
            criteria=criteria,
            expected_contract=expected_contract,
            entry_date_rule=date_rule,
            entry_time_rule=TimeRule.after_market_open(underlying, entry["minutes_after_open"]),
            entry_quantity=entry["quantity"],
            warning_date=to_date(delisting["warning_date"]),
            delisted_date=to_date(delisting["delisted_date"]),
            require_warning=delisting["require_warning"],
            require_delisted=delisting["require_delisted"],
            otm_marker=fills["otm_marker"],
            exercise_marker=fills["exercise_marker"],
            check_fill_dates=fills["check_fill_dates"],
            log_level=logging_cfg.get("level", "INFO"),
            log_json=logging_cfg.get("format_json", False),
        )

    @property
    def entry_date(self) -> date:
        """Day the scheduled entry fires, relative to the run start."""
        return self.entry_date_rule.resolve(self.start_date)

    def expectations(self, contract: Optional[ContractIdentifier] = None) -> ScenarioExpectations:
        """Expectations for the observer and checker."""
        contract = contract or self.expected_contract
        return ScenarioExpectations(
            contract=contract,
            underlying=self.underlying,
            warning_time=start_of_day(self.warning_date),
            delisting_time=start_of_day(self.delisted_date),
            require_warning=self.require_warning,
            require_delisted=self.require_delisted,
            entry_quantity=self.entry_quantity,
            entry_date=self.entry_date if self.check_fill_dates else None,
            exit_date=contract.expiry if self.check_fill_dates else None,
            otm_marker=self.otm_marker,
            exercise_marker=self.exercise_marker,
        )


def load_scenario_config(
    scenario_id: Optional[str] = None,
    overrides: Optional[dict[str, Any]] = None,
    config_dir: Optional[Path] = None
) -> ScenarioConfig:
    """Load, merge and validate the configuration for a scenario."""
    loader = ConfigLoader.create(config_dir)
    return ScenarioConfig.from_dict(loader.merge_config(scenario_id, overrides))
