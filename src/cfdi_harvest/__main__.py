"""CLI entry point for cfdi-harvest."""

import logging
import sys
from pathlib import Path

import click

from .adapters.export import create_exporter
from .config import ExportFormat, Settings, load_settings
from .domain.document import DocumentError, load_document
from .domain.models import BatchResult, ExtractedRecord
from .domain.services import BatchService, ExtractionService

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_extraction_service(settings: Settings) -> ExtractionService:
    """Create an ExtractionService from configured bounds and limits."""
    return ExtractionService(
        bounds=settings.tax.to_bounds(),
        limits=settings.limits.to_scan_limits(),
    )


def collect_files(paths: tuple[Path, ...], recursive: bool) -> list[Path]:
    """Expand directories into their XML files, keeping argument order.

    Files given explicitly are kept whatever their suffix, so that the batch
    can report them as rejected.
    """
    files: list[Path] = []
    for path in paths:
        if path.is_file():
            files.append(path)
            continue
        pattern = "**/*" if recursive else "*"
        found = [p for p in path.glob(pattern) if p.is_file() and p.suffix.lower() == ".xml"]
        logger.debug(f"Found {len(found)} XML files in {path}")
        files.extend(sorted(found))
    return files


def format_record(record: ExtractedRecord) -> str:
    """One-line summary of a record."""
    if not record.success:
        return f"✗ {record.source_file_name}: {record.error_detail}"
    fields = [
        ("issuer", record.issuer_tax_id),
        ("recipient", record.recipient_tax_id),
        ("uuid", record.document_id),
        ("date", record.issue_date),
        ("subtotal", record.subtotal),
        ("vat", record.value_added_tax),
        ("ish", record.lodging_tax),
        ("total", record.total_amount),
    ]
    summary = " ".join(f"{name}={value or '-'}" for name, value in fields)
    return f"✓ {record.source_file_name}: {summary}"


def report_batch(batch: BatchResult) -> None:
    for record in batch:
        click.echo(format_record(record), err=not record.success)

    click.echo(f"\nProcessed: {batch.success_count} ok, {batch.error_count} errors")

    if batch.failed:
        click.echo("Failed files:", err=True)
        for record in batch.failed:
            click.echo(f"  {record.source_file_name}", err=True)

    if batch.rejections:
        click.echo("Rejected files:", err=True)
        for rejection in batch.rejections:
            click.echo(f"  {rejection.file_name}: {rejection.reason}", err=True)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("-c", "--config", type=click.Path(exists=True), help="Config file path")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """cfdi-harvest - tax field extraction from CFDI invoices."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None


@cli.command()
@click.argument(
    "paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)
)
@click.option("--recursive/--no-recursive", default=False, help="Descend into directories")
@click.option(
    "--format",
    "fmt",
    type=click.Choice([f.value for f in ExportFormat]),
    help="Export format (default from config)",
)
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for the export file",
)
@click.option("--no-export", is_flag=True, help="Print results only")
@click.pass_context
def extract(
    ctx: click.Context,
    paths: tuple[Path, ...],
    recursive: bool,
    fmt: str | None,
    output_dir: Path | None,
    no_export: bool,
) -> None:
    """Extract tax fields from invoice XML files."""
    settings = load_settings(ctx.obj["config_path"])

    files = collect_files(paths, recursive)
    if not files:
        click.echo("No XML files found")
        return

    service = BatchService(
        create_extraction_service(settings),
        max_file_bytes=settings.limits.max_file_bytes,
    )
    batch = service.process(files)
    report_batch(batch)

    if not batch.records:
        sys.exit(1)

    if not no_export:
        exporter = create_exporter(ExportFormat(fmt) if fmt else settings.export.format)
        dest = exporter.export(batch, output_dir or settings.export.output_dir)
        click.echo(f"Exported: {dest}")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def inspect(ctx: click.Context, file: Path) -> None:
    """Show every lodging-tax candidate found in one document."""
    settings = load_settings(ctx.obj["config_path"])
    service = create_extraction_service(settings)

    try:
        document = load_document(file.read_bytes(), file.name, service.limits)
        analysis = service.analyze(document)
    except DocumentError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Inspection failed for {file.name}: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    identity = analysis.identity
    click.echo(f"issuer: {identity.issuer_tax_id or '-'}")
    click.echo(f"recipient: {identity.recipient_tax_id or '-'}")
    click.echo(f"uuid: {identity.document_id or '-'}")
    click.echo(f"date: {identity.issue_date or '-'}")
    click.echo(f"subtotal: {identity.subtotal or '-'}")
    click.echo(f"total: {identity.total_amount or '-'}")

    vat = analysis.exact.value_added_tax
    if vat:
        click.echo(f"vat: {vat.value} ({vat.location_path})")
    else:
        click.echo("vat: -")

    click.echo(f"\nCandidates ({len(analysis.candidates)}):")
    for candidate in analysis.candidates:
        marker = "*" if candidate == analysis.selected else " "
        click.echo(
            f" {marker} {candidate.score:>4}  {candidate.value:<12} "
            f"{candidate.strategy.value:<20} {candidate.location_path}"
        )

    lodging = analysis.lodging_tax
    if lodging and lodging != analysis.selected:
        click.echo(f"\nRevised by subtotal ratio: {lodging.value} ({lodging.location_path})")
    click.echo(f"ish: {lodging.value if lodging else '-'}")


if __name__ == "__main__":
    cli()
