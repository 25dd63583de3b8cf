"""Configuration validation utilities."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from ..utils.time import to_date

OPTION_RIGHTS = ("put", "call")
OPTION_STYLES = ("european", "american")
MARKETS = ("usa",)
TIE_BREAKS = ("strict", "earliest_expiry", "lowest_ticker", "first_seen")
DATE_RULES = ("tomorrow", "on")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_date(value: Any) -> bool:
    try:
        to_date(value)
    except (TypeError, ValueError):
        return False
    return True


def _is_positive_decimal(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return Decimal(str(value)) > 0
    except InvalidOperation:
        return False


class ConfigValidator:
    """Validates scenario configuration parameters."""

    @staticmethod
    def validate_run_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate the simulation window."""
        errors = []

        for name in ("start_date", "end_date"):
            if name in params and not _is_date(params[name]):
                errors.append(ValidationError(
                    field=f"run.{name}",
                    message="Must be a date (YYYY-MM-DD)",
                    value=params[name]
                ))

        if not errors and "start_date" in params and "end_date" in params:
            if to_date(params["end_date"]) <= to_date(params["start_date"]):
                errors.append(ValidationError(
                    field="run.end_date",
                    message="Must be after run.start_date",
                    value=params["end_date"]
                ))

        return errors

    @staticmethod
    def validate_underlying_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate the underlying subscription."""
        errors = []

        if "ticker" in params:
            value = params["ticker"]
            if not isinstance(value, str) or not value.strip() or len(value.strip()) > 6:
                errors.append(ValidationError(
                    field="underlying.ticker",
                    message="Must be a non-empty ticker of at most 6 characters",
                    value=value
                ))

        if "market" in params and params["market"] not in MARKETS:
            errors.append(ValidationError(
                field="underlying.market",
                message=f"Must be one of {', '.join(MARKETS)}",
                value=params["market"]
            ))

        return errors

    @staticmethod
    def validate_selection_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate chain filter and ordering."""
        errors = []

        if "max_strike" in params and not _is_positive_decimal(params["max_strike"]):
            errors.append(ValidationError(
                field="selection.max_strike",
                message="Must be a positive number",
                value=params["max_strike"]
            ))

        if "right" in params and params["right"] not in OPTION_RIGHTS:
            errors.append(ValidationError(
                field="selection.right",
                message=f"Must be one of {', '.join(OPTION_RIGHTS)}",
                value=params["right"]
            ))

        if "expiry_year" in params:
            value = params["expiry_year"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 1900:
                errors.append(ValidationError(
                    field="selection.expiry_year",
                    message="Must be a four-digit year",
                    value=value
                ))

        if "expiry_month" in params:
            value = params["expiry_month"]
            if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= 12:
                errors.append(ValidationError(
                    field="selection.expiry_month",
                    message="Must be an integer between 1 and 12",
                    value=value
                ))

        if "strike_descending" in params and not isinstance(params["strike_descending"], bool):
            errors.append(ValidationError(
                field="selection.strike_descending",
                message="Must be a boolean",
                value=params["strike_descending"]
            ))

        # Selection must resolve exactly one contract
        if "take" in params and params["take"] != 1:
            errors.append(ValidationError(
                field="selection.take",
                message="Must be 1",
                value=params["take"]
            ))

        if "tie_break" in params and params["tie_break"] not in TIE_BREAKS:
            errors.append(ValidationError(
                field="selection.tie_break",
                message=f"Must be one of {', '.join(TIE_BREAKS)}",
                value=params["tie_break"]
            ))

        return errors

    @staticmethod
    def validate_expected_contract_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate the literal expected contract."""
        errors = []

        if "style" in params and params["style"] not in OPTION_STYLES:
            errors.append(ValidationError(
                field="expected_contract.style",
                message=f"Must be one of {', '.join(OPTION_STYLES)}",
                value=params["style"]
            ))

        if "right" in params and params["right"] not in OPTION_RIGHTS:
            errors.append(ValidationError(
                field="expected_contract.right",
                message=f"Must be one of {', '.join(OPTION_RIGHTS)}",
                value=params["right"]
            ))

        if "strike" in params and not _is_positive_decimal(params["strike"]):
            errors.append(ValidationError(
                field="expected_contract.strike",
                message="Must be a positive number",
                value=params["strike"]
            ))

        if "expiry" in params and not _is_date(params["expiry"]):
            errors.append(ValidationError(
                field="expected_contract.expiry",
                message="Must be a date (YYYY-MM-DD)",
                value=params["expiry"]
            ))

        return errors

    @staticmethod
    def validate_entry_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate the scheduled entry order."""
        errors = []

        if "date_rule" in params:
            value = params["date_rule"]
            if value not in DATE_RULES:
                errors.append(ValidationError(
                    field="entry.date_rule",
                    message=f"Must be one of {', '.join(DATE_RULES)}",
                    value=value
                ))
            elif value == "on" and not _is_date(params.get("date")):
                errors.append(ValidationError(
                    field="entry.date",
                    message="Must be a date when entry.date_rule is 'on'",
                    value=params.get("date")
                ))

        if "minutes_after_open" in params:
            value = params["minutes_after_open"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(ValidationError(
                    field="entry.minutes_after_open",
                    message="Must be a non-negative integer",
                    value=value
                ))

        if "quantity" in params:
            value = params["quantity"]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                errors.append(ValidationError(
                    field="entry.quantity",
                    message="Must be a positive integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_delisting_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate expected delisting dates."""
        errors = []

        for name in ("warning_date", "delisted_date"):
            if name in params and not _is_date(params[name]):
                errors.append(ValidationError(
                    field=f"delisting.{name}",
                    message="Must be a date (YYYY-MM-DD)",
                    value=params[name]
                ))

        for name in ("require_warning", "require_delisted"):
            if name in params and not isinstance(params[name], bool):
                errors.append(ValidationError(
                    field=f"delisting.{name}",
                    message="Must be a boolean",
                    value=params[name]
                ))

        # Warning must strictly precede delisting
        if not errors and "warning_date" in params and "delisted_date" in params:
            if to_date(params["warning_date"]) >= to_date(params["delisted_date"]):
                errors.append(ValidationError(
                    field="delisting.delisted_date",
                    message="Must be after delisting.warning_date",
                    value=params["delisted_date"]
                ))

        return errors

    @staticmethod
    def validate_fill_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate fill message markers."""
        errors = []

        for name in ("otm_marker", "exercise_marker"):
            if name in params:
                value = params[name]
                if not isinstance(value, str) or not value:
                    errors.append(ValidationError(
                        field=f"fills.{name}",
                        message="Must be a non-empty string",
                        value=value
                    ))

        if "check_fill_dates" in params and not isinstance(params["check_fill_dates"], bool):
            errors.append(ValidationError(
                field="fills.check_fill_dates",
                message="Must be a boolean",
                value=params["check_fill_dates"]
            ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging output settings."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                errors.append(ValidationError(
                    field="logging.level",
                    message=f"Must be one of {', '.join(LOG_LEVELS)}",
                    value=value
                ))

        if "format_json" in params and not isinstance(params["format_json"], bool):
            errors.append(ValidationError(
                field="logging.format_json",
                message="Must be a boolean",
                value=params["format_json"]
            ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        section_validators = {
            "run": ConfigValidator.validate_run_params,
            "underlying": ConfigValidator.validate_underlying_params,
            "selection": ConfigValidator.validate_selection_params,
            "expected_contract": ConfigValidator.validate_expected_contract_params,
            "entry": ConfigValidator.validate_entry_params,
            "delisting": ConfigValidator.validate_delisting_params,
            "fills": ConfigValidator.validate_fill_params,
            "logging": ConfigValidator.validate_logging_params,
        }

        for section, validator in section_validators.items():
            if section not in config:
                continue
            params = config[section]
            if not isinstance(params, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Must be a mapping",
                    value=params
                ))
                continue
            errors.extend(validator(params))

        # Expected contract must fall inside the selection window
        if not errors and "selection" in config and "expected_contract" in config:
            selection = config["selection"]
            expected = config["expected_contract"]
            if "expiry" in expected and "expiry_month" in selection and "expiry_year" in selection:
                expiry = to_date(expected["expiry"])
                if (expiry.year, expiry.month) != (selection["expiry_year"], selection["expiry_month"]):
                    errors.append(ValidationError(
                        field="expected_contract.expiry",
                        message="Must fall in the selection expiry month",
                        value=expected["expiry"]
                    ))

        return errors
