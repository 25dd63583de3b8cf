"""
Simulated market time helpers.

The harness never reads the wall clock: every timestamp comes from the
engine under test and is a naive exchange-local datetime.
"""

from datetime import date, datetime, time
from typing import Union

# Regular session open for US index options
MARKET_OPEN = time(9, 30)
MARKET_CLOSE = time(16, 0)


def start_of_day(day: date) -> datetime:
    """
    Midnight of a calendar day.

    Delisting notices are stamped with the date they apply to, so expected
    notice times are midnight of the expected day.
    """
    return datetime.combine(day, time.min)


def to_date(value: Union[date, datetime, str]) -> date:
    """
    Coerce a configuration value to a date.

    Args:
        value: date, datetime, or ISO8601 date string

    Returns:
        Calendar date

    Raises:
        ValueError: The value cannot be interpreted as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip())
    raise ValueError(f"Cannot interpret {value!r} as a date")


def format_market_time(market_ts: datetime) -> str:
    """
    Format market timestamp for diagnostics and logging.

    Args:
        market_ts: Market timestamp to format

    Returns:
        ISO8601 formatted string
    """
    return market_ts.isoformat()
