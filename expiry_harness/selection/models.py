"""
Selection criteria data models.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..data.models import ContractIdentifier, OptionRight, UnderlyingIdentifier


class TieBreak(str, Enum):
    """Policy when several contracts share the top-ranked strike."""
    STRICT = "strict"                    # Ambiguity is a selection failure
    EARLIEST_EXPIRY = "earliest_expiry"  # Earliest expiry, then lowest ticker
    LOWEST_TICKER = "lowest_ticker"      # Lexicographically lowest ticker
    FIRST_SEEN = "first_seen"            # Chain order


@dataclass(frozen=True)
class SelectionCriteria:
    """Filter, ordering and cardinality used to pick one contract from a chain."""

    # Predicate
    max_strike: Decimal
    right: OptionRight
    expiry_year: int
    expiry_month: int
    underlying: Optional[UnderlyingIdentifier] = None

    # Ordering
    strike_descending: bool = True

    # Cardinality
    take: int = 1
    tie_break: TieBreak = TieBreak.STRICT

    def matches(self, contract: ContractIdentifier) -> bool:
        """Check whether a contract satisfies the predicate."""
        if self.underlying is not None and contract.underlying != self.underlying:
            return False
        return (
            contract.strike <= self.max_strike
            and contract.right == self.right
            and contract.expiry.year == self.expiry_year
            and contract.expiry.month == self.expiry_month
        )

    def describe(self) -> str:
        """Human-readable form for diagnostics."""
        order = "desc" if self.strike_descending else "asc"
        return (
            f"strike<={self.max_strike}, right={self.right.value}, "
            f"expiry={self.expiry_year}-{self.expiry_month:02d}, "
            f"order=strike {order}, take={self.take}, tie_break={self.tie_break.value}"
        )
