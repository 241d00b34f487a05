"""Domain services - orchestrate business logic."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .cascade import DEFAULT_PHASES, Phase, run_cascade
from .document import DocumentError, SourceDocument, load_document
from .locator import Identity, Locator, read_identity
from .matcher import ExactMatch, match_exact
from .models import (
    BatchResult,
    Candidate,
    ExtractedRecord,
    FileRejection,
    ScanLimits,
    TaxBounds,
)
from .plausibility import revise_lodging_tax
from .ranker import select_best

logger = logging.getLogger(__name__)

XML_SUFFIX = ".xml"
XML_CONTENT_TYPES = frozenset({"text/xml", "application/xml"})
MAX_FILE_BYTES = 50 * 1024 * 1024


@dataclass(frozen=True)
class Analysis:
    """Everything the pipeline learned about one document."""

    identity: Identity
    exact: ExactMatch
    candidates: list[Candidate] = field(default_factory=list)
    selected: Candidate | None = None
    lodging_tax: Candidate | None = None


class ExtractionService:
    """Runs the extraction pipeline on one document at a time."""

    def __init__(
        self,
        bounds: TaxBounds | None = None,
        limits: ScanLimits | None = None,
        locator: Locator | None = None,
        phases: Sequence[Phase] = DEFAULT_PHASES,
    ) -> None:
        self.bounds = bounds or TaxBounds()
        self.limits = limits or ScanLimits()
        self.locator = locator or Locator()
        self.phases = phases

    def analyze(self, document: SourceDocument) -> Analysis:
        """Pipeline:
            1. Identity fields via the locator
            2. Exact tax-code match for both taxes
            3. Lodging-tax cascade (if step 2 left it open)
            4. Ranking with conflict resolution
            5. Ratio-to-subtotal plausibility pass
        """
        identity = read_identity(document, self.locator)
        exact = match_exact(document, self.locator, self.bounds)
        vat = exact.value_added_tax.value if exact.value_added_tax else ""

        claimed = exact.vat_amounts
        if exact.lodging_tax is not None:
            candidates = [exact.lodging_tax]
        else:
            candidates = run_cascade(
                document, self.locator, claimed, self.bounds, self.phases
            )

        selected = select_best(candidates, vat, self.bounds)
        lodging = revise_lodging_tax(
            document, identity.subtotal, claimed, selected, self.bounds
        )
        return Analysis(
            identity=identity,
            exact=exact,
            candidates=candidates,
            selected=selected,
            lodging_tax=lodging,
        )

    def extract(self, content: bytes | str, file_name: str) -> ExtractedRecord:
        """Extract one record. Never raises: failures become error records."""
        try:
            document = load_document(content, file_name, self.limits)
            record = self._to_record(file_name, self.analyze(document))
        except DocumentError as e:
            logger.warning(f"Rejected document: {e}")
            return ExtractedRecord.failed(file_name, str(e))
        except Exception as e:
            logger.exception(f"Extraction failed for {file_name}: {e}")
            return ExtractedRecord.failed(file_name, str(e))

        logger.info(
            f"Extracted {file_name}: VAT={record.value_added_tax or '-'} "
            f"lodging={record.lodging_tax or '-'}"
        )
        return record

    def _to_record(self, file_name: str, analysis: Analysis) -> ExtractedRecord:
        identity = analysis.identity
        vat = analysis.exact.value_added_tax
        return ExtractedRecord(
            source_file_name=file_name,
            issuer_tax_id=identity.issuer_tax_id,
            recipient_tax_id=identity.recipient_tax_id,
            document_id=identity.document_id,
            issue_date=identity.issue_date,
            subtotal=identity.subtotal,
            total_amount=identity.total_amount,
            value_added_tax=vat.value if vat else "",
            lodging_tax=analysis.lodging_tax.value if analysis.lodging_tax else "",
        )


class BatchService:
    """Accumulates extracted records for one upload session."""

    def __init__(
        self,
        extractor: ExtractionService,
        max_file_bytes: int = MAX_FILE_BYTES,
        batch: BatchResult | None = None,
    ) -> None:
        self.extractor = extractor
        self.max_file_bytes = max_file_bytes
        self.batch = batch if batch is not None else BatchResult()

    def process(self, paths: Iterable[Path]) -> BatchResult:
        """Process files in upload order; one bad file never stops the rest."""
        for path in paths:
            self.add_file(path)
        logger.info(
            f"Batch complete: {self.batch.success_count} ok, "
            f"{self.batch.error_count} errors, {len(self.batch.rejections)} rejected"
        )
        return self.batch

    def add_file(self, path: Path) -> ExtractedRecord | None:
        """Read and extract one file from disk.

        Returns None when the file is rejected before extraction.
        """
        if reason := self._type_problem(path.name):
            return self._reject(path.name, reason)

        try:
            size = path.stat().st_size
            if size > self.max_file_bytes:
                return self._reject(path.name, self._too_large(size))
            content = path.read_bytes()
        except OSError as e:
            return self._reject(path.name, f"Unreadable file: {e}")

        return self._extract(path.name, content)

    def add_content(
        self, file_name: str, content: bytes | str, content_type: str | None = None
    ) -> ExtractedRecord | None:
        """Extract an uploaded file already held in memory."""
        if reason := self._type_problem(file_name, content_type):
            return self._reject(file_name, reason)

        size = len(content.encode() if isinstance(content, str) else content)
        if size > self.max_file_bytes:
            return self._reject(file_name, self._too_large(size))

        return self._extract(file_name, content)

    def _extract(self, file_name: str, content: bytes | str) -> ExtractedRecord:
        record = self.extractor.extract(content, file_name)
        self.batch.append(record)
        return record

    def _type_problem(self, file_name: str, content_type: str | None = None) -> str:
        suffix = Path(file_name).suffix
        if suffix.lower() != XML_SUFFIX:
            return f"Unsupported file type: {suffix or '(none)'}"
        if content_type:
            media_type = content_type.split(";")[0].strip().lower()
            if media_type not in XML_CONTENT_TYPES:
                return f"Unsupported content type: {content_type}"
        return ""

    def _too_large(self, size: int) -> str:
        limit_mb = self.max_file_bytes / (1024 * 1024)
        return f"File too large: {size / (1024 * 1024):.1f} MB (limit {limit_mb:.0f} MB)"

    def _reject(self, file_name: str, reason: str) -> None:
        logger.warning(f"Skipping {file_name}: {reason}")
        self.batch.reject(FileRejection(file_name=file_name, reason=reason))
