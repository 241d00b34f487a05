"""Candidate selection with value-added-tax conflict resolution."""

import logging
from collections.abc import Sequence

from .models import Candidate, TaxBounds

logger = logging.getLogger(__name__)


def rank(candidates: Sequence[Candidate], bounds: TaxBounds) -> list[Candidate]:
    """Order by score, then by distance to the expected midpoint.

    The sort is stable, so document order breaks any remaining tie.
    """
    return sorted(
        candidates,
        key=lambda c: (-c.score, abs(c.numeric_value - bounds.lodging_midpoint)),
    )


def select_best(
    candidates: Sequence[Candidate], value_added_tax: str, bounds: TaxBounds
) -> Candidate | None:
    """Pick the lodging tax, never returning the value-added-tax amount.

    Returns None when no non-conflicting candidate is left.
    """
    remaining = list(candidates)
    while remaining:
        best = rank(remaining, bounds)[0]
        if not value_added_tax or best.value != value_added_tax:
            logger.debug(
                f"Selected {best.value} ({best.strategy.value}, score {best.score})"
            )
            return best

        logger.info(f"Discarding {best.value}: conflicts with value-added tax")
        remaining = [c for c in remaining if c.value != best.value]

    return None
