"""
Structured logging for the expiry verification harness.

Two record shapes matter for a failed run: one record per assertion
(PASS or FAIL, with expected and actual values) and one per position
state change. Both go through the helpers below so the audit trail of a
run can be filtered on ``subsystem`` and ``check_name``.
"""
import logging
import sys
from datetime import datetime
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger

from ..utils.time import format_market_time


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog on top of stdlib logging.

    ``include_timestamp`` stamps records with wall-clock time; simulated
    market times are carried in the ``timestamp`` field of each record.
    JSON output renders non-serializable values (instruments, Decimals)
    with ``str``.
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", key="logged_at"))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer(default=str))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    return structlog.get_logger(name)


def get_assertion_logger(name: str) -> FilteringBoundLogger:
    """Logger for invariant checks; every record belongs to the audit trail."""
    return get_logger(name).bind(subsystem="assertions", audit_trail=True)


def get_scenario_logger(name: str) -> FilteringBoundLogger:
    """Logger for the scenario life cycle and option position changes."""
    return get_logger(name).bind(subsystem="scenario", audit_trail=True)


def _render(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_market_time(value)
    if isinstance(value, (list, tuple)):
        return [_render(item) for item in value]
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def log_assertion(
    logger: FilteringBoundLogger,
    check_name: str,
    passed: bool,
    instrument: Any,
    reason: str,
    expected: Any = None,
    actual: Any = None,
    timestamp: Optional[datetime] = None,
    **details: Any
) -> None:
    """
    Record the outcome of one check.

    Args:
        check_name: Stable identifier of the check, e.g. ``expired_otm``
        passed: PASS is logged at info, FAIL at warning
        instrument: Contract, underlying, or a label such as ``portfolio``
        reason: Outcome in words; for failures, the violation message
        expected: What the scenario expected, omitted when None
        actual: What the engine delivered; always logged on failure
        timestamp: Simulated market time of the event under check
        details: Extra fields (fill message, quantities)
    """
    fields = {
        "check_name": check_name,
        "check_result": "PASS" if passed else "FAIL",
        "instrument": _render(instrument),
        "reason": reason,
    }
    if expected is not None:
        fields["expected"] = _render(expected)
    if actual is not None or not passed:
        fields["actual"] = _render(actual)
    if timestamp is not None:
        fields["timestamp"] = format_market_time(timestamp)
    for key, value in details.items():
        fields[key] = _render(value)

    bound_logger = logger.bind(**fields)
    if passed:
        bound_logger.info("Check passed")
    else:
        bound_logger.warning("Check failed")


def log_position_transition(
    logger: FilteringBoundLogger,
    contract: Any,
    from_state: Any,
    to_state: Any,
    direction: Any,
    quantity_after: int,
    timestamp: datetime,
    message: str = ""
) -> None:
    """
    Record an option position change caused by a fill.

    States and direction may be enums; their values are logged.
    """
    logger.bind(
        contract=_render(contract),
        from_state=getattr(from_state, "value", from_state),
        to_state=getattr(to_state, "value", to_state),
        direction=getattr(direction, "value", direction),
        quantity_after=quantity_after,
        timestamp=format_market_time(timestamp),
        fill_message=message,
    ).info("Position transition")
