"""
Table — the uniform headers + rows shape every reader produces.

build_table() is the single place raw grids become Tables, so delimited
text, spreadsheets and PDF candidates share the same header and cell rules:
  - headers are trimmed; blank headers become "Column <position>";
    duplicates get " (2)", " (3)" suffixes so headers stay unique
  - short records are padded with "", long records are truncated
  - records whose cells are all blank are dropped
  - every cell goes through the generic numeric coercion, and the trimmed
    original text is kept alongside in raw_rows
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

import pandas as pd

from processing.numeric_converter import coerce_cell

logger = logging.getLogger(__name__)

CellValue = str | int | float


@dataclass(frozen=True)
class Table:
    """Immutable parsed table."""

    headers: tuple[str, ...] = ()
    rows: tuple[Mapping[str, CellValue], ...] = ()
    raw_rows: tuple[Mapping[str, str], ...] = ()
    """Trimmed original cell text per row, for field-typed re-coercion."""

    @property
    def is_empty(self) -> bool:
        return not self.headers and not self.rows

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def raw_value(self, row_index: int, header: str) -> str:
        """Original trimmed text of one cell ("" when not available)."""
        if row_index < len(self.raw_rows):
            return self.raw_rows[row_index].get(header, "")
        value = self.rows[row_index].get(header, "")
        return "" if value is None else str(value)

    def to_records(self) -> list[dict[str, CellValue]]:
        return [dict(row) for row in self.rows]

    def to_dataframe(self) -> pd.DataFrame:
        """Rows as a DataFrame with columns in header order."""
        return pd.DataFrame(self.to_records(), columns=list(self.headers))


EMPTY_TABLE = Table()


def build_table(raw_headers: list[object], raw_records: list[list[object]]) -> Table:
    """
    Build a Table from a header record and data records.

    Args:
        raw_headers: Header cells (may contain None / blanks / duplicates).
        raw_records: Data records; cells may be str, numbers or None.

    Returns:
        Table with unique headers and coerced rows.
    """
    headers = unique_headers(raw_headers)
    if not headers:
        return EMPTY_TABLE

    rows: list[Mapping[str, CellValue]] = []
    raw_rows: list[Mapping[str, str]] = []
    truncated = 0

    for record in raw_records:
        cells = list(record)
        if len(cells) > len(headers):
            if any(_cell_text(cell) for cell in cells[len(headers):]):
                truncated += 1
            cells = cells[: len(headers)]
        cells.extend([None] * (len(headers) - len(cells)))

        texts = [_cell_text(cell) for cell in cells]
        if all(text == "" for text in texts):
            continue

        rows.append(MappingProxyType({
            header: coerce_cell(cell) for header, cell in zip(headers, cells)
        }))
        raw_rows.append(MappingProxyType(dict(zip(headers, texts))))

    if truncated:
        logger.warning(
            f"{truncated} record(s) had more cells than the {len(headers)} headers — "
            "extra cells dropped"
        )

    return Table(headers=tuple(headers), rows=tuple(rows), raw_rows=tuple(raw_rows))


def unique_headers(raw_headers: list[object]) -> list[str]:
    """
    Trim headers, name blanks positionally and de-duplicate.

    A repeated header gets the lowest " (n)" suffix (n ≥ 2) that is not
    already a header of the table, compared case-insensitively.  An empty
    header record yields an empty list.
    """
    trimmed = [_cell_text(header) for header in raw_headers]
    if not trimmed:
        return []

    names = [text or f"Column {position}" for position, text in enumerate(trimmed, start=1)]
    taken = {name.lower() for name in names}

    headers: list[str] = []
    used: set[str] = set()
    for name in names:
        candidate = name
        if candidate.lower() in used:
            suffix = 2
            candidate = f"{name} ({suffix})"
            while candidate.lower() in used or candidate.lower() in taken:
                suffix += 1
                candidate = f"{name} ({suffix})"
        used.add(candidate.lower())
        headers.append(candidate)
    return headers


def _cell_text(value: object) -> str:
    """Trimmed text of a cell as the user would read it."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value).strip()
