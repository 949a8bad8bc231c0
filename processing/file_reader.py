"""
File reader — turns supplier documents into a uniform Table.

Handles:
  - Delimited text (.csv, .tsv, .txt, pasted text): quote-aware parsing with
    delimiter auto-detection, row 1 promoted to headers.
  - Spreadsheets (.xlsx, .xlsm): first sheet only, read row-major with an
    empty-cell default; the sheet count is reported as metadata.
  - PDFs: delegated to a TableExtractor collaborator, falling back to the
    pdfplumber extractor when the primary is unconfigured or fails.
  - Word-processor documents and images: reported as unsupported with a
    hint to supply CSV or pasted text instead.

Nothing here raises for bad input.  Every outcome is a TableReadResult with
a status ("ok", "empty", "unsupported", "error") and human-readable errors.

Public API:
    read_file(source, file_name) → TableReadResult
    read_delimited_text(text, file_name) → TableReadResult
    read_pasted_text(text) → TableReadResult
    read_spreadsheet(source, file_name) → TableReadResult
    read_pdf_tables(source, file_name, primary, fallback) → TableReadResult
"""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path

import openpyxl

from config.settings import PDF_MIN_TABLE_CONFIDENCE
from processing.delimited_parser import parse_delimited_text, positional_headers
from processing.pdf_tables import ExtractedTable, PdfplumberTableExtractor, TableExtractor
from processing.table import EMPTY_TABLE, Table, build_table

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_EMPTY = "empty"
STATUS_UNSUPPORTED = "unsupported"
STATUS_ERROR = "error"

_DELIMITED_EXTENSIONS: dict[str, str] = {".csv": "csv", ".tsv": "csv", ".txt": "text"}
_SPREADSHEET_EXTENSIONS: set[str] = {".xlsx", ".xlsm"}
_WORD_EXTENSIONS: set[str] = {".doc", ".docx", ".rtf", ".odt", ".pages"}
_IMAGE_EXTENSIONS: set[str] = {
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tif", ".tiff", ".webp", ".heic",
}

# Text encodings tried in order when decoding delimited files.
_TEXT_ENCODINGS: tuple[str, ...] = ("utf-8-sig", "cp1252", "latin-1")


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class TableReadResult:
    """Complete result of reading one document."""

    table: Table = EMPTY_TABLE
    file_name: str = ""
    file_type: str = "unknown"
    status: str = STATUS_EMPTY
    delimiter: str | None = None
    headerless: bool = False
    sheet_count: int | None = None
    page_count: int | None = None
    candidate_tables: list[ExtractedTable] = field(default_factory=list)
    confidence: float | None = None
    extractor: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def is_ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def message(self) -> str:
        """One-line description suitable for showing to the user."""
        if self.errors:
            return f"{self.file_name}: {'; '.join(self.errors)}"
        if self.status == STATUS_EMPTY:
            return f"{self.file_name}: no data rows found"
        return f"{self.file_name}: {self.table.row_count} row(s) read"


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def read_file(
    source: str | Path | bytes,
    file_name: str | None = None,
    pdf_extractor: TableExtractor | None = None,
) -> TableReadResult:
    """
    Read a supplier document, routing on its file extension.

    Args:
        source: Path to the file, or its raw bytes.
        file_name: Display name; required for bytes input to pick a reader.
        pdf_extractor: Optional primary PDF table extractor.

    Returns:
        TableReadResult — never raises.
    """
    if file_name is None:
        file_name = Path(source).name if not isinstance(source, bytes) else "upload"

    extension = Path(file_name).suffix.lower()

    if extension in _WORD_EXTENSIONS:
        return _unsupported(
            file_name, "word",
            "Word document parsing is not supported. "
            "Please save the price list as CSV or copy the table and paste it as text.",
        )
    if extension in _IMAGE_EXTENSIONS:
        return _unsupported(
            file_name, "image",
            "Image files need OCR, which is not supported. "
            "Please extract the text and paste it, or upload a CSV.",
        )

    try:
        data = source if isinstance(source, bytes) else Path(source).read_bytes()
    except Exception as exc:
        error_message = f"Cannot open file '{file_name}': {exc}"
        logger.error(error_message)
        return TableReadResult(file_name=file_name, status=STATUS_ERROR, errors=[error_message])

    if extension in _SPREADSHEET_EXTENSIONS:
        return read_spreadsheet(data, file_name)

    if extension == ".pdf":
        return read_pdf_tables(data, file_name, primary=pdf_extractor)

    if extension == ".xls":
        return _unsupported(
            file_name, "excel",
            "Legacy .xls workbooks are not supported. Please re-save as .xlsx or CSV.",
        )

    file_type = _DELIMITED_EXTENSIONS.get(extension, "text")
    if extension not in _DELIMITED_EXTENSIONS:
        logger.info(f"Unknown extension '{extension}' for '{file_name}' — trying as text")

    text, error_message = _decode_text(data)
    if text is None:
        logger.error(f"Cannot decode '{file_name}': {error_message}")
        return TableReadResult(
            file_name=file_name, file_type=file_type,
            status=STATUS_ERROR, errors=[error_message],
        )
    return read_delimited_text(text, file_name, file_type=file_type)


def read_delimited_text(
    text: str,
    file_name: str = "Pasted Data",
    file_type: str = "csv",
) -> TableReadResult:
    """
    Parse delimited text into a Table.

    Row 1 becomes the headers unless the input has a single record, in
    which case positional headers are synthesized and the record is data.

    Args:
        text: Raw CSV / TSV / semicolon-separated text.
        file_name: Display name for messages.
        file_type: "csv" or "text".

    Returns:
        TableReadResult with status "ok" or "empty", or "error" when the text
        cannot be tokenized.
    """
    try:
        parsed = parse_delimited_text(text)
    except Exception as exc:
        error_message = f"Cannot parse '{file_name}' as delimited text: {exc}"
        logger.error(error_message)
        return TableReadResult(
            file_name=file_name, file_type=file_type,
            status=STATUS_ERROR, errors=[error_message],
        )
    table = build_table(parsed.headers, parsed.records)

    result = TableReadResult(
        table=table,
        file_name=file_name,
        file_type=file_type,
        delimiter=parsed.delimiter,
        headerless=parsed.headerless,
    )

    if table.row_count == 0:
        # Header-only input still reports its headers; zero-record input is empty.
        result.status = STATUS_EMPTY
        logger.info(f"No data rows in '{file_name}'")
        return result

    result.status = STATUS_OK
    logger.info(
        f"Finished reading '{file_name}': {table.row_count} data rows, "
        f"{len(table.headers)} columns"
    )
    return result


def read_pasted_text(text: str) -> TableReadResult:
    """Parse text pasted by the user (same rules as a .txt upload)."""
    return read_delimited_text(text or "", "Pasted Data", file_type="text")


def read_spreadsheet(source: str | Path | bytes, file_name: str | None = None) -> TableReadResult:
    """
    Read the first sheet of an .xlsx workbook into a Table.

    Args:
        source: Path to the workbook, or its raw bytes.
        file_name: Display name for messages.

    Returns:
        TableReadResult with sheet_count set when the workbook opened.
    """
    if file_name is None:
        file_name = Path(source).name if not isinstance(source, bytes) else "workbook.xlsx"
    result = TableReadResult(file_name=file_name, file_type="excel")

    # ------------------------------------------------------------------
    # 1. Open workbook
    # ------------------------------------------------------------------
    try:
        handle = io.BytesIO(source) if isinstance(source, bytes) else source
        workbook = openpyxl.load_workbook(handle, read_only=True, data_only=True)
    except Exception as exc:
        error_message = f"Cannot open workbook '{file_name}': {exc}"
        logger.error(error_message)
        result.status = STATUS_ERROR
        result.errors.append(error_message)
        return result

    # ------------------------------------------------------------------
    # 2. Read the first sheet as a row-major grid
    # ------------------------------------------------------------------
    try:
        result.sheet_count = len(workbook.sheetnames)
        if not workbook.sheetnames:
            result.errors.append("No sheets found in workbook")
            return result

        worksheet = workbook.worksheets[0]
        logger.info(
            f"Reading sheet '{worksheet.title}' from '{file_name}' "
            f"({result.sheet_count} sheet(s) in workbook)"
        )
        grid = [list(row) for row in worksheet.iter_rows(values_only=True)]
    except Exception as exc:
        error_message = f"Failed to read workbook '{file_name}': {exc}"
        logger.error(error_message)
        result.status = STATUS_ERROR
        result.errors.append(error_message)
        return result
    finally:
        workbook.close()

    # ------------------------------------------------------------------
    # 3. Drop blank rows and trailing blank columns, promote headers
    # ------------------------------------------------------------------
    grid = _trim_grid(grid)
    if not grid:
        logger.info(f"No data found in first sheet of '{file_name}'")
        return result

    if len(grid) == 1:
        result.headerless = True
        result.table = build_table(positional_headers(len(grid[0])), grid)
    else:
        result.table = build_table(grid[0], grid[1:])

    if result.table.row_count > 0:
        result.status = STATUS_OK

    logger.info(
        f"Finished reading '{file_name}': {result.table.row_count} data rows, "
        f"{len(result.table.headers)} columns"
    )
    return result


def read_pdf_tables(
    source: str | Path | bytes,
    file_name: str | None = None,
    primary: TableExtractor | None = None,
    fallback: TableExtractor | None = None,
    min_confidence: float = PDF_MIN_TABLE_CONFIDENCE,
) -> TableReadResult:
    """
    Extract candidate tables from a PDF through external extractors.

    The primary extractor is used when configured; when it is missing,
    unconfigured, or raises, the fallback (pdfplumber by default) is tried.
    Candidates below *min_confidence* are dropped.  The most confident
    candidate becomes the result's table; all are kept in candidate_tables.

    Args:
        source: Path to the PDF, or its raw bytes.
        file_name: Display name for messages.
        primary: Preferred extractor (e.g. a cloud document-AI client).
        fallback: Lower-fidelity extractor used when the primary is unusable.
        min_confidence: Minimum candidate confidence to keep.

    Returns:
        TableReadResult with status "ok", "empty" or "error".
    """
    if file_name is None:
        file_name = Path(source).name if not isinstance(source, bytes) else "document.pdf"
    result = TableReadResult(file_name=file_name, file_type="pdf")

    try:
        data = source if isinstance(source, bytes) else Path(source).read_bytes()
    except Exception as exc:
        error_message = f"Cannot open file '{file_name}': {exc}"
        logger.error(error_message)
        result.status = STATUS_ERROR
        result.errors.append(error_message)
        return result

    extractors: list[TableExtractor] = []
    if primary is not None and primary.is_configured():
        extractors.append(primary)
    elif primary is not None:
        logger.warning(f"PDF extractor '{primary.name}' is not configured — using fallback")
    extractors.append(fallback if fallback is not None else PdfplumberTableExtractor())

    failures: list[str] = []
    for extractor in extractors:
        try:
            candidates = extractor.extract(data, file_name)
        except Exception as exc:
            failure = f"{extractor.name} extraction failed: {exc}"
            logger.error(f"'{file_name}': {failure}")
            failures.append(failure)
            continue

        result.extractor = extractor.name
        kept = [
            candidate for candidate in candidates
            if candidate.confidence >= min_confidence and candidate.table.row_count > 0
        ]
        if len(kept) < len(candidates):
            logger.info(
                f"Dropped {len(candidates) - len(kept)} low-confidence table(s) "
                f"from '{file_name}'"
            )
        result.candidate_tables = kept
        pages = [c.page_number for c in candidates if c.page_number is not None]
        result.page_count = max(pages) if pages else None
        break
    else:
        result.status = STATUS_ERROR
        result.errors.extend(failures)
        return result

    if not result.candidate_tables:
        result.status = STATUS_EMPTY
        result.errors.append(
            "No tables detected in PDF. Please ensure the document contains tabular data."
        )
        return result

    best = max(result.candidate_tables, key=lambda candidate: candidate.confidence)
    result.table = best.table
    result.confidence = best.confidence
    result.status = STATUS_OK
    logger.info(
        f"Finished reading '{file_name}' via {result.extractor}: "
        f"{len(result.candidate_tables)} table(s), best confidence {best.confidence:.2f}"
    )
    return result


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _unsupported(file_name: str, file_type: str, message: str) -> TableReadResult:
    logger.info(f"Unsupported format for '{file_name}' ({file_type})")
    return TableReadResult(
        file_name=file_name,
        file_type=file_type,
        status=STATUS_UNSUPPORTED,
        errors=[message],
    )


def _decode_text(data: bytes) -> tuple[str | None, str]:
    """Decode bytes with the first encoding that works."""
    for encoding in _TEXT_ENCODINGS:
        try:
            return data.decode(encoding), ""
        except UnicodeDecodeError:
            continue
    return None, "File is not valid text in any supported encoding"


def _trim_grid(grid: list[list[object]]) -> list[list[object]]:
    """Remove all-blank rows and columns to the right of the last used one."""
    def is_blank(value: object) -> bool:
        return value is None or str(value).strip() == ""

    rows = [row for row in grid if not all(is_blank(value) for value in row)]
    if not rows:
        return []

    width = 0
    for row in rows:
        for index, value in enumerate(row):
            if not is_blank(value):
                width = max(width, index + 1)
    return [row[:width] for row in rows]
