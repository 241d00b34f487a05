"""Exact tax-code matching on standard transfer nodes."""

import logging
from dataclasses import dataclass
from xml.etree import ElementTree as ET

from .document import Node, SourceDocument, get_attribute, local_name, parse_positive
from .locator import Locator
from .models import Candidate, StrategyId, TaxBounds

logger = logging.getLogger(__name__)

TRANSFER_TAG = "traslado"
TAX_CODE_ATTRS = ("Impuesto", "impuesto")
AMOUNT_ATTRS = ("Importe", "importe", "Valor", "valor")

EXACT_CODE_SCORE = 100


@dataclass(frozen=True)
class ExactMatch:
    value_added_tax: Candidate | None = None
    lodging_tax: Candidate | None = None
    # Every amount on a value-added-tax transfer, per line item and in total
    vat_amounts: frozenset[str] = frozenset()


def transfer_nodes(document: SourceDocument) -> list[Node]:
    """Every tax-transfer node, in document order."""
    return [n for n in document.nodes if local_name(n.element.tag).lower() == TRANSFER_TAG]


def transfer_amount(element: ET.Element) -> str:
    return get_attribute(element, *AMOUNT_ATTRS)


def match_vat(document: SourceDocument, bounds: TaxBounds) -> Candidate | None:
    """Value-added tax from its fixed code.

    The last matching node wins: the document-level tax summary follows the
    per-concept transfers.
    """
    found: Candidate | None = None
    for node in transfer_nodes(document):
        if get_attribute(node.element, *TAX_CODE_ATTRS) not in bounds.vat_codes:
            continue
        text = transfer_amount(node.element)
        amount = parse_positive(text)
        if amount is None or not bounds.is_vat_amount(amount):
            logger.debug(f"VAT transfer rejected at {node.path}: {text!r}")
            continue
        found = Candidate(
            value=text,
            numeric_value=amount,
            location_path=node.path,
            strategy=StrategyId.EXACT_CODE,
            score=EXACT_CODE_SCORE,
        )
    return found


def vat_amounts(document: SourceDocument, bounds: TaxBounds) -> frozenset[str]:
    """Amount text of every value-added-tax transfer, whatever its range."""
    amounts = set()
    for node in transfer_nodes(document):
        if get_attribute(node.element, *TAX_CODE_ATTRS) not in bounds.vat_codes:
            continue
        text = transfer_amount(node.element)
        if parse_positive(text) is not None:
            amounts.add(text)
    return frozenset(amounts)


def code_candidates(
    document: SourceDocument,
    claimed: frozenset[str],
    bounds: TaxBounds,
    strategy: StrategyId,
    score: int,
) -> list[Candidate]:
    """Lodging-tax candidates carried by the secondary tax code."""
    candidates = []
    for node in transfer_nodes(document):
        if get_attribute(node.element, *TAX_CODE_ATTRS) not in bounds.lodging_codes:
            continue
        text = transfer_amount(node.element)
        amount = parse_positive(text)
        if amount is None or not bounds.is_lodging_amount(amount) or text in claimed:
            continue
        candidates.append(
            Candidate(
                value=text,
                numeric_value=amount,
                location_path=node.path,
                strategy=strategy,
                score=score,
            )
        )
    return candidates


def match_exact(document: SourceDocument, locator: Locator, bounds: TaxBounds) -> ExactMatch:
    """Resolve both taxes from tax codes where the document allows it.

    The lodging tax is only accepted here when the document has no local-tax
    block; otherwise the explicit local-tax structure takes precedence.
    """
    vat = match_vat(document, bounds)
    claimed = vat_amounts(document, bounds)

    lodging = None
    if locator.locate(document, "local_taxes") is None:
        found = code_candidates(
            document, claimed, bounds, StrategyId.EXACT_CODE, EXACT_CODE_SCORE
        )
        lodging = found[-1] if found else None

    if vat:
        logger.debug(f"VAT by code: {vat.value} at {vat.location_path}")
    if lodging:
        logger.debug(f"Lodging tax by code: {lodging.value} at {lodging.location_path}")
    return ExactMatch(value_added_tax=vat, lodging_tax=lodging, vat_amounts=claimed)
