"""Outbound interface to the backtesting engine under test."""

from abc import abstractmethod
from datetime import datetime
from typing import Mapping, Sequence

from .data.models import ContractIdentifier, Instrument, UnderlyingIdentifier
from .scheduling.registry import Scheduler


class EngineGateway(Scheduler):
    """Calls the scenario makes into the engine. The engine owns all of this state."""

    @property
    @abstractmethod
    def time(self) -> datetime:
        """Current simulated time."""
        pass

    @abstractmethod
    def subscribe(self, instrument: Instrument) -> Instrument:
        """Add an instrument to the engine's universe and return its resolved identifier."""
        pass

    @abstractmethod
    def list_available_contracts(
        self,
        underlying: UnderlyingIdentifier,
        as_of: datetime
    ) -> Sequence[ContractIdentifier]:
        """Option chain listed for the underlying at the given time."""
        pass

    @abstractmethod
    def submit_market_order(self, instrument: Instrument, quantity: int) -> int:
        """Submit a market order; returns the order id."""
        pass

    @abstractmethod
    def current_holdings(self, instrument: Instrument) -> int:
        """Position quantity currently held."""
        pass

    @abstractmethod
    def portfolio_invested(self) -> bool:
        """Whether the portfolio holds any position."""
        pass

    @abstractmethod
    def portfolio_holdings(self) -> Mapping[Instrument, int]:
        """Position quantity per instrument in the portfolio."""
        pass
