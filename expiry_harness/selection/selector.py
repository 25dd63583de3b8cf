"""
Contract selection from an option chain.

Selection is a pure function of the candidate list and the criteria: the
chain is filtered by the criteria's predicate, ordered by strike, and the
single top-ranked contract is returned. Zero matches or an ambiguous top
rank are configuration errors, never silently tolerated.
"""

from typing import Sequence

import structlog

from ..errors import ContractMismatchError, SelectionError
from ..data.models import ContractIdentifier
from ..logging.config import get_assertion_logger, log_assertion
from .models import SelectionCriteria, TieBreak

logger = structlog.get_logger(__name__)
assertion_logger = get_assertion_logger(__name__)


def select_contract(
    candidates: Sequence[ContractIdentifier],
    criteria: SelectionCriteria
) -> ContractIdentifier:
    """
    Pick exactly one contract from the chain.

    Args:
        candidates: Contracts listed by the engine's chain provider
        criteria: Predicate, ordering and tie-break policy

    Returns:
        The selected contract

    Raises:
        SelectionError: No match, or several contracts share the top strike
            and the tie-break policy is STRICT
    """
    if criteria.take != 1:
        raise SelectionError(
            f"Selection must take exactly one contract, got take={criteria.take}",
            criteria=criteria
        )

    # Repeated listings of the same contract are not ambiguity
    unique = list(dict.fromkeys(candidates))
    matches = [contract for contract in unique if criteria.matches(contract)]

    if not matches:
        raise SelectionError(
            f"No contract in chain matches criteria: {criteria.describe()}",
            criteria=criteria,
            candidates=unique,
            context={"candidate_count": len(unique)}
        )

    ordered = sorted(matches, key=lambda c: c.strike, reverse=criteria.strike_descending)
    top_strike = ordered[0].strike
    top_ranked = [contract for contract in ordered if contract.strike == top_strike]

    selected = _break_tie(top_ranked, criteria)

    logger.info(
        "Selected contract from chain",
        contract=selected.ticker,
        candidates=len(unique),
        matches=len(matches),
        criteria=criteria.describe()
    )
    return selected


def _break_tie(
    top_ranked: list[ContractIdentifier],
    criteria: SelectionCriteria
) -> ContractIdentifier:
    """Resolve contracts sharing the top-ranked strike."""
    if len(top_ranked) == 1:
        return top_ranked[0]

    if criteria.tie_break == TieBreak.STRICT:
        raise SelectionError(
            f"Ambiguous selection: {len(top_ranked)} contracts share strike "
            f"{top_ranked[0].strike}: {', '.join(c.ticker for c in top_ranked)}",
            criteria=criteria,
            matches=top_ranked
        )
    if criteria.tie_break == TieBreak.EARLIEST_EXPIRY:
        return min(top_ranked, key=lambda c: (c.expiry, c.ticker))
    if criteria.tie_break == TieBreak.LOWEST_TICKER:
        return min(top_ranked, key=lambda c: c.ticker)
    if criteria.tie_break == TieBreak.FIRST_SEEN:
        return top_ranked[0]

    raise SelectionError(
        f"Unknown tie-break policy: {criteria.tie_break}",
        criteria=criteria,
        matches=top_ranked
    )


def verify_selection(
    selected: ContractIdentifier,
    expected: ContractIdentifier
) -> None:
    """
    Cross-check the selected contract against the literal expected contract.

    Raises:
        ContractMismatchError: The chain provider resolved a different contract
    """
    passed = selected == expected
    log_assertion(
        assertion_logger,
        check_name="expected_contract",
        passed=passed,
        instrument=selected,
        reason="selected contract matches expected" if passed else "selected contract differs from expected",
        expected=expected,
        actual=selected
    )

    if not passed:
        raise ContractMismatchError(
            f"Contract {expected.ticker} was not found in the chain",
            expected=expected,
            actual=selected,
            context={"expected": expected.ticker, "actual": selected.ticker}
        )
