"""Shared test fixtures."""

from collections.abc import Callable

import pytest

from cfdi_harvest.domain.document import SourceDocument, load_document
from cfdi_harvest.domain.locator import Locator
from cfdi_harvest.domain.models import TaxBounds
from cfdi_harvest.domain.services import ExtractionService

from cfdi_samples import build_cfdi


@pytest.fixture
def bounds() -> TaxBounds:
    return TaxBounds()


@pytest.fixture
def locator() -> Locator:
    return Locator()


@pytest.fixture
def service() -> ExtractionService:
    return ExtractionService()


@pytest.fixture
def make_document() -> Callable[..., SourceDocument]:
    """Factory: build_cfdi keyword arguments -> loaded SourceDocument."""

    def factory(**kwargs) -> SourceDocument:
        return load_document(build_cfdi(**kwargs), "invoice.xml")

    return factory


@pytest.fixture
def scenario_a_xml() -> str:
    """IVA 696.00, ISH 150.00 as explicit local tax, subtotal 4350.00."""
    return build_cfdi()


@pytest.fixture
def scenario_b_xml() -> str:
    """Only the IVA transfer, no local-tax structure anywhere."""
    return build_cfdi(total="5046.00", local_taxes=())


@pytest.fixture
def scenario_c_xml() -> str:
    """The only lodging-tax amount equals the IVA amount."""
    return build_cfdi(vat="150.00", total="4650.00", local_taxes=(("ISH", "150.00"),))
