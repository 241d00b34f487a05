"""Lodging-tax search cascade.

Phases run in order of decreasing confidence. Each phase is a pure function
of the document, the values already claimed by other fields or earlier
candidates, and the tax bounds. A phase is skipped once an earlier phase
produced a candidate scoring at least its ``skip_at`` threshold.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from xml.etree import ElementTree as ET

from .document import SourceDocument, get_attribute, local_name, parse_amount, parse_positive
from .locator import Locator
from .matcher import AMOUNT_ATTRS, code_candidates
from .models import Candidate, StrategyId, TaxBounds

logger = logging.getLogger(__name__)

LOCAL_TAX_TYPE_ATTRS = ("ImpLocTrasladado", "ImpLocTraslado", "implocTrasladado", "imploctraslado")

LOCAL_TAX_SCORE = 100
TAGGED_ATTRIBUTE_SCORE = 95
SECONDARY_CODE_SCORE = 90
PREFERRED_RANGE_SCORE = 20
OUTER_RANGE_SCORE = 10

# (keywords, weight) over an element's lowercased serialization
SEMANTIC_KEYWORDS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("impuestoslocales", "implocal"), 80),
    (("hospedaje",), 70),
    (("ish",), 60),
    (("turismo", "tourism"), 50),
    (("hotel", "alojamiento"), 40),
    (('impuesto="002"', "impuesto='002'"), -100),
    (("iva", "valor agregado"), -50),
)

SearchFn = Callable[[SourceDocument, Locator, frozenset[str], TaxBounds], list[Candidate]]


@dataclass(frozen=True)
class Phase:
    strategy: StrategyId
    search: SearchFn
    skip_at: int | None = None  # Skip if a candidate already scores this high


def search_local_tax_structure(
    document: SourceDocument, locator: Locator, claimed: frozenset[str], bounds: TaxBounds
) -> list[Candidate]:
    """Local-tax transfers explicitly typed as the lodging tax."""
    abbreviation = bounds.lodging_abbreviation.upper()
    candidates = []
    for container in locator.locate_all(document, "local_taxes"):
        for element in locator.locate_all(document, "local_tax_transfer", scope=container):
            if get_attribute(element, *LOCAL_TAX_TYPE_ATTRS).upper() != abbreviation:
                continue
            text = get_attribute(element, "Importe", "importe")
            amount = parse_positive(text)
            if amount is None or not bounds.is_lodging_amount(amount) or text in claimed:
                continue
            candidates.append(
                Candidate(
                    value=text,
                    numeric_value=amount,
                    location_path=document.path_of(element),
                    strategy=StrategyId.LOCAL_TAX_STRUCTURE,
                    score=LOCAL_TAX_SCORE,
                )
            )
    return candidates


def search_tagged_attribute(
    document: SourceDocument, locator: Locator, claimed: frozenset[str], bounds: TaxBounds
) -> list[Candidate]:
    """Any element tagged with the lodging abbreviation carrying an amount."""
    abbreviation = bounds.lodging_abbreviation.upper()
    candidates = []
    for node in document.nodes:
        if not any(v.upper() == abbreviation for _, v in document.attributes(node.element)):
            continue
        text = get_attribute(node.element, *AMOUNT_ATTRS)
        amount = parse_positive(text)
        if amount is None or not bounds.is_lodging_amount(amount) or text in claimed:
            continue
        candidates.append(
            Candidate(
                value=text,
                numeric_value=amount,
                location_path=node.path,
                strategy=StrategyId.TAGGED_ATTRIBUTE,
                score=TAGGED_ATTRIBUTE_SCORE,
            )
        )
    return candidates


def search_secondary_code(
    document: SourceDocument, locator: Locator, claimed: frozenset[str], bounds: TaxBounds
) -> list[Candidate]:
    return code_candidates(
        document, claimed, bounds, StrategyId.SECONDARY_CODE, SECONDARY_CODE_SCORE
    )


def keyword_groups(text: str) -> frozenset[int]:
    """Indexes into SEMANTIC_KEYWORDS of the groups present in lowercased text."""
    return frozenset(
        i
        for i, (keywords, _) in enumerate(SEMANTIC_KEYWORDS)
        if any(k in text for k in keywords)
    )


def semantic_score(text: str) -> int:
    """Additive keyword score of lowercased element text."""
    return sum(SEMANTIC_KEYWORDS[i][1] for i in keyword_groups(text))


def _own_text(document: SourceDocument, element: ET.Element) -> str:
    parts = [str(element.tag)]
    parts.extend(f'{local_name(n)}="{v}"' for n, v in document.attributes(element))
    parts.extend(t for t in (element.text, element.tail) if t)
    return " ".join(parts).lower()


def context_scores(document: SourceDocument) -> dict[int, int]:
    """Keyword score of each scanned element's subtree, keyed by element id.

    Computed bottom-up over the scanned nodes, so the work stays within the
    scan limits whatever the nesting depth.
    """
    groups: dict[int, frozenset[int]] = {}
    for node in reversed(document.nodes):
        found = set(keyword_groups(_own_text(document, node.element)))
        for child in node.element:
            found.update(groups.get(id(child), ()))
        groups[id(node.element)] = frozenset(found)

    return {
        key: sum(SEMANTIC_KEYWORDS[i][1] for i in present) for key, present in groups.items()
    }


def search_semantic_context(
    document: SourceDocument, locator: Locator, claimed: frozenset[str], bounds: TaxBounds
) -> list[Candidate]:
    """Amounts on elements whose content reads like a lodging tax."""
    scores = context_scores(document)
    candidates = []
    for node in document.nodes:
        score = scores[id(node.element)]
        if score <= 0:
            continue
        for name, text in document.attributes(node.element):
            amount = parse_amount(text)
            if amount is None or not bounds.is_lodging_amount(amount) or text in claimed:
                continue
            candidates.append(
                Candidate(
                    value=text,
                    numeric_value=amount,
                    location_path=f"{node.path}@{local_name(name)}",
                    strategy=StrategyId.SEMANTIC_CONTEXT,
                    score=score,
                )
            )
    return candidates


def search_range_fallback(
    document: SourceDocument, locator: Locator, claimed: frozenset[str], bounds: TaxBounds
) -> list[Candidate]:
    """Any amount inside the lodging-tax range, weakly scored."""
    candidates = []
    for node in document.nodes:
        for name, text in document.attributes(node.element):
            amount = parse_amount(text)
            if amount is None or not bounds.is_lodging_amount(amount) or text in claimed:
                continue
            preferred = bounds.lodging_preferred_min <= amount <= bounds.lodging_preferred_max
            candidates.append(
                Candidate(
                    value=text,
                    numeric_value=amount,
                    location_path=f"{node.path}@{local_name(name)}",
                    strategy=StrategyId.RANGE_FALLBACK,
                    score=PREFERRED_RANGE_SCORE if preferred else OUTER_RANGE_SCORE,
                )
            )
    return candidates


DEFAULT_PHASES: tuple[Phase, ...] = (
    Phase(StrategyId.LOCAL_TAX_STRUCTURE, search_local_tax_structure),
    Phase(StrategyId.TAGGED_ATTRIBUTE, search_tagged_attribute, skip_at=LOCAL_TAX_SCORE),
    Phase(StrategyId.SECONDARY_CODE, search_secondary_code, skip_at=SECONDARY_CODE_SCORE),
    Phase(StrategyId.SEMANTIC_CONTEXT, search_semantic_context, skip_at=70),
    Phase(StrategyId.RANGE_FALLBACK, search_range_fallback, skip_at=PREFERRED_RANGE_SCORE),
)


def run_cascade(
    document: SourceDocument,
    locator: Locator,
    claimed: frozenset[str],
    bounds: TaxBounds,
    phases: Sequence[Phase] = DEFAULT_PHASES,
) -> list[Candidate]:
    """Collect lodging-tax candidates from every phase that needs to run."""
    candidates: list[Candidate] = []
    for phase in phases:
        if phase.skip_at is not None and any(c.score >= phase.skip_at for c in candidates):
            logger.debug(f"Skipping {phase.strategy.value}: confident candidate found")
            continue

        taken = claimed | {c.value for c in candidates}
        found = phase.search(document, locator, taken, bounds)
        for c in found:
            logger.debug(f"{phase.strategy.value} ({c.score}): {c.value} at {c.location_path}")
        candidates.extend(found)

    return candidates
