"""
Canonical data models for instruments and engine events.

This module defines immutable data structures for the instruments the
scenario trades and for the events the engine under test delivers:
delisting notices inside data slices, order events, and the holdings
snapshots passed alongside them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Mapping, Union


class Market(str, Enum):
    """Listing market of an instrument."""
    USA = "usa"


class OptionStyle(str, Enum):
    """Exercise style of an option contract."""
    EUROPEAN = "european"
    AMERICAN = "american"


class OptionRight(str, Enum):
    """Put or call."""
    PUT = "put"
    CALL = "call"


@dataclass(frozen=True)
class UnderlyingIdentifier:
    """Identifier of the underlying index."""
    ticker: str
    market: Market = Market.USA

    def __str__(self) -> str:
        return self.ticker


@dataclass(frozen=True)
class ContractIdentifier:
    """Structural identity of a single listed option contract."""
    underlying: UnderlyingIdentifier
    market: Market
    style: OptionStyle
    right: OptionRight
    strike: Decimal
    expiry: date

    @property
    def ticker(self) -> str:
        """OSI-style ticker, e.g. ``SPX   210115P03150000``."""
        right_code = "P" if self.right == OptionRight.PUT else "C"
        strike_code = int(self.strike * 1000)
        return f"{self.underlying.ticker:<6}{self.expiry:%y%m%d}{right_code}{strike_code:08d}"

    @classmethod
    def parse(
        cls,
        ticker: str,
        market: Market = Market.USA,
        style: OptionStyle = OptionStyle.EUROPEAN
    ) -> "ContractIdentifier":
        """Build a contract from an OSI-style ticker."""
        code = ticker.replace(" ", "")
        if len(code) < 16:
            raise ValueError(f"Not an OSI option ticker: {ticker!r}")

        root, expiry_code, right_code, strike_code = (
            code[:-15], code[-15:-9], code[-9], code[-8:]
        )
        if right_code not in ("P", "C") or not strike_code.isdigit() or not expiry_code.isdigit():
            raise ValueError(f"Not an OSI option ticker: {ticker!r}")

        return cls(
            underlying=UnderlyingIdentifier(root, market),
            market=market,
            style=style,
            right=OptionRight.PUT if right_code == "P" else OptionRight.CALL,
            strike=Decimal(int(strike_code)) / 1000,
            expiry=datetime.strptime(expiry_code, "%y%m%d").date(),
        )

    def __str__(self) -> str:
        return self.ticker


Instrument = Union[UnderlyingIdentifier, ContractIdentifier]


class DelistingKind(str, Enum):
    """Two-phase delisting notification."""
    WARNING = "warning"
    DELISTED = "delisted"


@dataclass(frozen=True)
class DelistingNotice:
    """Notice that a contract will stop (warning) or has stopped trading."""
    contract: ContractIdentifier
    kind: DelistingKind
    timestamp: datetime


class OrderDirection(str, Enum):
    """Side of an order."""
    BUY = "buy"
    SELL = "sell"


class OrderStatus(str, Enum):
    """Order life cycle status reported by the engine."""
    NEW = "new"
    SUBMITTED = "submitted"
    PARTIALLY_FILLED = "partially_filled"
    FILLED = "filled"
    CANCELED = "canceled"
    INVALID = "invalid"


@dataclass(frozen=True)
class OrderFillEvent:
    """Order event delivered by the engine; only FILLED events are significant."""
    instrument: Instrument
    direction: OrderDirection
    status: OrderStatus
    message: str
    timestamp: datetime
    quantity: int = 0
    order_id: int = 0

    @property
    def is_filled(self) -> bool:
        return self.status == OrderStatus.FILLED


@dataclass(frozen=True)
class Slice:
    """Data delivered for one engine tick."""
    timestamp: datetime
    delistings: Mapping[ContractIdentifier, DelistingNotice] = field(default_factory=dict)


@dataclass(frozen=True)
class HoldingsSnapshot:
    """Per-instrument position quantities at the moment an event is delivered."""
    quantities: Mapping[Instrument, int] = field(default_factory=dict)

    def quantity(self, instrument: Instrument) -> int:
        """Quantity held, zero when the instrument has no position."""
        return self.quantities.get(instrument, 0)


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Read-only view of the portfolio at the end of the run."""
    invested: bool
    holdings: Mapping[Instrument, int] = field(default_factory=dict)

    def invested_instruments(self) -> list[Instrument]:
        """Instruments with a nonzero position."""
        return [instrument for instrument, quantity in self.holdings.items() if quantity != 0]
