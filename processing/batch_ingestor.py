"""
Batch ingestor — runs a list of supplier files through the whole pipeline.

Files are processed one at a time: read → map headers (the supplier's
template when one exists, otherwise auto-mapping) → validate → build
normalized offers.  A failure in one file is caught, logged and recorded
on that file's result; offers from earlier files are never touched.

The first successful auto-mapped file from a supplier creates that
supplier's template, so later files from the same supplier reuse it.

Public API:
    ingest_files(sources, ...) → BatchResult
    ingest_table(table, file_name, ...) → FileIngestResult
"""

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from config.settings import BASE_CURRENCY
from processing.column_mapper import ColumnMapping, FieldMapping, HeaderMapper
from processing.file_reader import STATUS_OK, TableReadResult, read_file
from processing.identity_resolver import EntityRegistry
from processing.offer_builder import Offer, build_offers
from processing.pdf_tables import TableExtractor
from processing.table import Table
from processing.template_manager import SupplierTemplate, TemplateManager, columns_from_mapping

logger = logging.getLogger(__name__)

STATUS_EMPTY = "empty"
STATUS_UNSUPPORTED = "unsupported"
STATUS_INVALID_MAPPING = "invalid_mapping"
STATUS_ERROR = "error"

# A source is a path, or a (file name, raw bytes) pair from an upload.
Source = str | Path | tuple[str, bytes]


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class FileIngestResult:
    """Outcome of ingesting one file."""

    file_name: str
    status: str = STATUS_OK
    source_id: str = ""
    supplier_name: str | None = None
    offers: list[Offer] = field(default_factory=list)
    skipped_rows: list[dict] = field(default_factory=list)
    mapping: ColumnMapping | None = None
    template_id: str | None = None
    template_created: bool = False
    errors: list[str] = field(default_factory=list)


@dataclass
class BatchResult:
    files: list[FileIngestResult] = field(default_factory=list)

    @property
    def offers(self) -> list[Offer]:
        return [offer for file_result in self.files for offer in file_result.offers]

    @property
    def succeeded(self) -> list[FileIngestResult]:
        return [file_result for file_result in self.files if file_result.status == STATUS_OK]

    @property
    def failed(self) -> list[FileIngestResult]:
        return [file_result for file_result in self.files if file_result.status != STATUS_OK]


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def ingest_files(
    sources: Iterable[Source],
    *,
    mapper: HeaderMapper | None = None,
    templates: TemplateManager | None = None,
    registry: EntityRegistry | None = None,
    fx=None,
    supplier_name: str | None = None,
    base_currency: str = BASE_CURRENCY,
    target_unit: str | None = None,
    pdf_extractor: TableExtractor | None = None,
) -> BatchResult:
    """
    Ingest every source sequentially.

    Args:
        sources: Paths, or (file name, bytes) pairs.
        mapper: Header mapper (shared with *templates*).
        templates: Template manager for supplier templates.
        registry: Entity registry for supplier / product ids.
        fx: Object with get_rate(from, to), e.g. FxCache or StaticRates.
            None leaves foreign-currency prices unconverted.
        supplier_name: Supplier of every file in the batch, when known.
        base_currency: Currency to normalize into.
        target_unit: Unit to normalize into; None uses category defaults.
        pdf_extractor: Primary PDF table extractor.

    Returns:
        BatchResult with one FileIngestResult per source, in order.
    """
    mapper = mapper if mapper is not None else HeaderMapper()
    templates = templates if templates is not None else TemplateManager(mapper=mapper)
    registry = registry if registry is not None else EntityRegistry()

    batch = BatchResult()
    for source in sources:
        file_name = _source_name(source)
        try:
            read_result = _read_source(source, file_name, pdf_extractor)
            file_result = _from_read_result(read_result)
            if file_result is None:
                file_result = ingest_table(
                    read_result.table,
                    file_name,
                    mapper=mapper,
                    templates=templates,
                    registry=registry,
                    fx=fx,
                    supplier_name=supplier_name,
                    base_currency=base_currency,
                    target_unit=target_unit,
                )
        except Exception as exc:
            logger.exception(f"Ingesting '{file_name}' failed")
            file_result = FileIngestResult(
                file_name=file_name,
                status=STATUS_ERROR,
                errors=[f"Unexpected error: {exc}"],
            )
        batch.files.append(file_result)

    logger.info(
        f"Batch complete: {len(batch.succeeded)}/{len(batch.files)} file(s) ingested, "
        f"{len(batch.offers)} offer(s)"
    )
    return batch


def ingest_table(
    table: Table,
    file_name: str,
    *,
    mapper: HeaderMapper,
    templates: TemplateManager,
    registry: EntityRegistry,
    fx=None,
    supplier_name: str | None = None,
    base_currency: str = BASE_CURRENCY,
    target_unit: str | None = None,
) -> FileIngestResult:
    """Map, validate and normalize one already-read table."""
    result = FileIngestResult(file_name=file_name, source_id=str(uuid.uuid4()))

    mapping = mapper.map_headers(list(table.headers))
    supplier = supplier_name or _single_supplier(table, mapping)
    template = templates.find_by_supplier(supplier) if supplier else None
    if template is not None:
        mapping = mapping_from_template(template, mapping)
        result.template_id = template.id
        supplier = template.supplier_name
        logger.info(f"Using template {template.id} for '{supplier}'")

    result.mapping = mapping
    result.supplier_name = supplier

    built = build_offers(
        table,
        mapping,
        source_id=result.source_id,
        base_currency=base_currency,
        rate_lookup=fx.get_rate if fx is not None else None,
        registry=registry,
        default_supplier=supplier_name or (template.supplier_name if template else None),
        target_unit=target_unit,
    )
    result.offers = built.offers
    result.skipped_rows = built.skipped_rows
    result.errors.extend(built.errors)

    if built.is_blocked:
        result.status = STATUS_INVALID_MAPPING
        return result

    if template is None and supplier and built.offers:
        created = templates.create_template(
            supplier,
            description=f"Created from {file_name}",
            column_mappings=columns_from_mapping(mapping),
        )
        result.template_id = created.id
        result.template_created = True

    return result


def mapping_from_template(template: SupplierTemplate, auto_mapping: ColumnMapping) -> ColumnMapping:
    """
    Apply a template to a table's headers.

    Headers the template knows take the template's field; new headers keep
    their auto-detected mapping.
    """
    template_entries = {entry.original_header: entry for entry in template.to_column_mapping()}
    entries: list[FieldMapping] = []
    for entry in auto_mapping:
        entries.append(template_entries.get(entry.original_header, entry))
    return ColumnMapping(entries=entries)


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _source_name(source: Source) -> str:
    if isinstance(source, tuple):
        return source[0]
    return Path(source).name


def _read_source(source: Source, file_name: str, pdf_extractor: TableExtractor | None) -> TableReadResult:
    data = source[1] if isinstance(source, tuple) else source
    return read_file(data, file_name, pdf_extractor=pdf_extractor)


def _from_read_result(read_result: TableReadResult) -> FileIngestResult | None:
    """A finished FileIngestResult when the file cannot be mapped, else None."""
    if read_result.status == STATUS_OK:
        return None
    status = {
        "empty": STATUS_EMPTY,
        "unsupported": STATUS_UNSUPPORTED,
    }.get(read_result.status, STATUS_ERROR)
    errors = list(read_result.errors) or [read_result.message]
    logger.info(f"Skipping '{read_result.file_name}': {status}")
    return FileIngestResult(file_name=read_result.file_name, status=status, errors=errors)


def _single_supplier(table: Table, mapping: ColumnMapping) -> str | None:
    """The supplier named in the table when every row names the same one."""
    header = mapping.header_for("supplier")
    if header is None:
        return None
    names = {
        " ".join(table.raw_value(index, header).split())
        for index in range(table.row_count)
    }
    names.discard("")
    if len(names) != 1:
        return None
    return names.pop()
