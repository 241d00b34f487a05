"""Ratio-to-subtotal sanity check for the lodging tax."""

import logging
from decimal import Decimal

from .document import SourceDocument, local_name, parse_amount, parse_decimal
from .models import Candidate, StrategyId, TaxBounds

logger = logging.getLogger(__name__)

PERCENT = Decimal("100")


def in_ratio_band(amount: Decimal, subtotal: Decimal, bounds: TaxBounds) -> bool:
    return bounds.ratio_min <= amount / subtotal <= bounds.ratio_max


def research(
    document: SourceDocument, subtotal: Decimal, claimed: frozenset[str], bounds: TaxBounds
) -> Candidate | None:
    """Best unclaimed amount whose share of the subtotal sits in the re-search band.

    Scored as ``100 - |share% - target%|``; only a score above
    ``research_min_score`` counts as a match.
    """
    low = subtotal * bounds.research_min
    high = subtotal * bounds.research_max
    claimed_amounts = {parse_decimal(text) for text in claimed}

    best: Candidate | None = None
    best_score = Decimal("0")
    for node in document.nodes:
        for name, text in document.attributes(node.element):
            amount = parse_amount(text)
            if amount is None or not low <= amount <= high:
                continue
            if text in claimed or amount in claimed_amounts:
                continue
            share = amount / subtotal * PERCENT
            score = PERCENT - abs(share - bounds.research_target * PERCENT)
            if score > best_score:
                best_score = score
                best = Candidate(
                    value=text,
                    numeric_value=amount,
                    location_path=f"{node.path}@{local_name(name)}",
                    strategy=StrategyId.RATIO_RESEARCH,
                    score=int(score),
                )

    if best is None or best_score <= bounds.research_min_score:
        return None
    return best


def revise_lodging_tax(
    document: SourceDocument,
    subtotal: str,
    claimed: frozenset[str],
    lodging_tax: Candidate | None,
    bounds: TaxBounds,
) -> Candidate | None:
    """Replace an implausible lodging tax with a better-proportioned amount.

    Corrective only: without a strong replacement the original is kept.
    """
    base = parse_decimal(subtotal) if subtotal else None
    if lodging_tax is None or base is None or base <= 0:
        return lodging_tax

    if in_ratio_band(lodging_tax.numeric_value, base, bounds):
        return lodging_tax

    logger.info(
        f"{document.file_name}: lodging tax {lodging_tax.value} is "
        f"{lodging_tax.numeric_value / base:.2%} of subtotal, searching again"
    )
    replacement = research(document, base, claimed, bounds)
    if replacement is None:
        logger.debug("No better-proportioned amount found, keeping original")
        return lodging_tax

    logger.info(f"{document.file_name}: lodging tax revised to {replacement.value}")
    return replacement
