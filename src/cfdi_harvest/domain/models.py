"""Domain models."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

ERROR_SENTINEL = "ERROR"
ERROR_SUFFIX = " (ERROR)"


class StrategyId(str, Enum):
    """Search strategy that produced a candidate."""

    EXACT_CODE = "exact_code"
    LOCAL_TAX_STRUCTURE = "local_tax_structure"
    TAGGED_ATTRIBUTE = "tagged_attribute"
    SECONDARY_CODE = "secondary_code"
    SEMANTIC_CONTEXT = "semantic_context"
    RANGE_FALLBACK = "range_fallback"
    RATIO_RESEARCH = "ratio_research"


class RecordStatus(str, Enum):
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class Candidate:
    """A provisional tax amount found somewhere in a document."""

    value: str  # Verbatim attribute text
    numeric_value: Decimal
    location_path: str
    strategy: StrategyId
    score: int


@dataclass(frozen=True)
class TaxBounds:
    """Tuning parameters for tax plausibility.

    Empirically tuned; callers are expected to override them from config.
    Ratios are fractions of the subtotal (0.03 == 3%).
    """

    vat_codes: tuple[str, ...] = ("002", "IVA")
    lodging_codes: tuple[str, ...] = ("003",)
    lodging_abbreviation: str = "ISH"
    vat_min: Decimal = Decimal("100")
    vat_max: Decimal = Decimal("10000")
    lodging_min: Decimal = Decimal("10")
    lodging_max: Decimal = Decimal("1000")
    lodging_midpoint: Decimal = Decimal("200")
    lodging_preferred_min: Decimal = Decimal("50")
    lodging_preferred_max: Decimal = Decimal("400")
    ratio_min: Decimal = Decimal("0.01")
    ratio_max: Decimal = Decimal("0.10")
    research_min: Decimal = Decimal("0.02")
    research_max: Decimal = Decimal("0.04")
    research_target: Decimal = Decimal("0.03")
    research_min_score: Decimal = Decimal("70")

    def is_vat_amount(self, amount: Decimal) -> bool:
        return self.vat_min <= amount <= self.vat_max

    def is_lodging_amount(self, amount: Decimal) -> bool:
        return self.lodging_min <= amount <= self.lodging_max


@dataclass(frozen=True)
class ScanLimits:
    """Upper bounds on work done per document."""

    max_elements: int = 20_000
    max_attributes: int = 200


@dataclass(frozen=True)
class ExtractedRecord:
    """Fields extracted from one invoice file."""

    source_file_name: str
    issuer_tax_id: str = ""
    recipient_tax_id: str = ""
    document_id: str = ""  # UUID from the digital stamp
    issue_date: str = ""
    subtotal: str = ""
    total_amount: str = ""
    value_added_tax: str = ""
    lodging_tax: str = ""
    status: RecordStatus = RecordStatus.OK
    error_detail: str = ""

    def __post_init__(self) -> None:
        if (
            self.status is RecordStatus.OK
            and self.value_added_tax
            and self.value_added_tax == self.lodging_tax
        ):
            raise ValueError(
                f"Value-added tax and lodging tax must differ: {self.lodging_tax}"
            )

    @property
    def success(self) -> bool:
        return self.status is RecordStatus.OK

    @classmethod
    def failed(cls, file_name: str, detail: str = "") -> "ExtractedRecord":
        """Error record: every field set to the sentinel, name annotated."""
        return cls(
            source_file_name=f"{file_name}{ERROR_SUFFIX}",
            issuer_tax_id=ERROR_SENTINEL,
            recipient_tax_id=ERROR_SENTINEL,
            document_id=ERROR_SENTINEL,
            issue_date=ERROR_SENTINEL,
            subtotal=ERROR_SENTINEL,
            total_amount=ERROR_SENTINEL,
            value_added_tax=ERROR_SENTINEL,
            lodging_tax=ERROR_SENTINEL,
            status=RecordStatus.ERROR,
            error_detail=detail,
        )


@dataclass(frozen=True)
class FileRejection:
    """A file refused before extraction (size or type)."""

    file_name: str
    reason: str


@dataclass
class BatchResult:
    """Records of one upload session, in upload order."""

    records: list[ExtractedRecord] = field(default_factory=list)
    rejections: list[FileRejection] = field(default_factory=list)

    def append(self, record: ExtractedRecord) -> None:
        self.records.append(record)

    def reject(self, rejection: FileRejection) -> None:
        self.rejections.append(rejection)

    def clear(self) -> None:
        self.records.clear()
        self.rejections.clear()

    @property
    def failed(self) -> list[ExtractedRecord]:
        return [r for r in self.records if not r.success]

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.records if r.success)

    @property
    def error_count(self) -> int:
        return len(self.records) - self.success_count

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)
