"""
PDF table extraction collaborators.

Layout analysis and OCR are not done here.  A TableExtractor is anything
with a ``name``, ``is_configured()`` and ``extract(data, file_name)`` that
returns candidate tables with a confidence and source page; the file reader
tries the configured primary extractor first and falls back to the
lower-fidelity pdfplumber extractor below.

Public API:
    ExtractedTable
    TableExtractor (protocol)
    PdfplumberTableExtractor().extract(data, file_name) → list[ExtractedTable]
    score_table_confidence(table) → float
"""

import io
import logging
from dataclasses import dataclass
from typing import Protocol

from processing.table import Table, build_table

logger = logging.getLogger(__name__)

# Header keywords that raise a candidate table's confidence.
_PRICE_KEYWORDS: tuple[str, ...] = ("price", "cost")
_PRODUCT_KEYWORDS: tuple[str, ...] = ("product", "item", "description")


@dataclass(frozen=True)
class ExtractedTable:
    """One candidate table pulled out of a PDF."""

    table: Table
    confidence: float
    page_number: int | None = None
    section: str | None = None


class TableExtractor(Protocol):
    """External PDF table-extraction collaborator."""

    name: str

    def is_configured(self) -> bool:
        ...

    def extract(self, data: bytes, file_name: str) -> list[ExtractedTable]:
        ...


class PdfplumberTableExtractor:
    """
    Lower-fidelity fallback extractor built on pdfplumber's ruled-table
    detection, retrying with text alignment when a page has no ruled tables.
    """

    name = "pdfplumber"

    def is_configured(self) -> bool:
        return True

    def extract(self, data: bytes, file_name: str) -> list[ExtractedTable]:
        """
        Extract every table with a header and at least one data row.

        Raises:
            Exception: Whatever pdfplumber raises for unreadable documents;
                       the file reader records it as an extraction error.
        """
        import pdfplumber

        candidates: list[ExtractedTable] = []

        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page_number, page in enumerate(pdf.pages, start=1):
                grids = page.extract_tables()
                if not grids:
                    grids = page.extract_tables({
                        "vertical_strategy": "text",
                        "horizontal_strategy": "text",
                    })

                for grid in grids:
                    if not grid or len(grid) < 2:
                        continue
                    table = build_table(grid[0], grid[1:])
                    if table.row_count == 0:
                        continue
                    candidates.append(ExtractedTable(
                        table=table,
                        confidence=score_table_confidence(table),
                        page_number=page_number,
                    ))

        logger.info(
            f"pdfplumber found {len(candidates)} candidate table(s) in '{file_name}'"
        )
        return candidates


def score_table_confidence(table: Table) -> float:
    """
    Heuristic confidence that *table* is a supplier price list.

    Starts at 0.5; +0.2 for a price-like header, +0.2 for a product-like
    header, +0.1 when rows fill on average within one cell of the header
    width.  Capped at 1.0.
    """
    confidence = 0.5
    lowered = [header.lower() for header in table.headers]

    if any(keyword in header for header in lowered for keyword in _PRICE_KEYWORDS):
        confidence += 0.2
    if any(keyword in header for header in lowered for keyword in _PRODUCT_KEYWORDS):
        confidence += 0.2

    if table.rows:
        filled = [
            sum(1 for value in row.values() if value != "") for row in table.rows
        ]
        average_filled = sum(filled) / len(filled)
        if abs(average_filled - len(table.headers)) <= 1:
            confidence += 0.1

    return round(min(confidence, 1.0), 2)
