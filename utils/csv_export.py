"""
CSV export for canonical records and offers.

The header row lists the fields in first-seen order (mapping order for
records produced by the template manager).  Rendering goes through
DataFrame.to_csv with minimal quoting: values containing the delimiter, a
double quote or a line break are wrapped in quotes with inner quotes
doubled.  None becomes an empty cell, booleans are written as true/false
and integral floats without a trailing ".0".  Rows are joined with "\\n"
and there is no trailing newline.

Public API:
    to_csv(records, field_order, delimiter) → str
    save_csv(records, path, field_order, delimiter) → Path
"""

import csv
import logging
from pathlib import Path
from typing import Iterable, Mapping

import pandas as pd

logger = logging.getLogger(__name__)


def to_csv(
    records: Iterable[Mapping[str, object]],
    field_order: list[str] | None = None,
    delimiter: str = ",",
) -> str:
    """
    Render *records* as CSV text.

    Args:
        records: Dicts keyed by field name.
        field_order: Columns to write; defaults to every key in first-seen order.
        delimiter: Cell separator.

    Returns:
        CSV text, or "" when there are no records and no field order.
    """
    records = list(records)
    if field_order is None:
        field_order = []
        for record in records:
            for key in record:
                if key not in field_order:
                    field_order.append(key)
    if not field_order:
        return ""

    df = pd.DataFrame(
        [[_format_value(record.get(name)) for name in field_order] for record in records],
        columns=field_order,
    )
    text = df.to_csv(
        index=False,
        sep=delimiter,
        lineterminator="\n",
        quoting=csv.QUOTE_MINIMAL,
        quotechar='"',
        doublequote=True,
    )

    logger.debug(f"Rendered {len(records)} record(s) as CSV with {len(field_order)} column(s)")
    return text.removesuffix("\n")


def save_csv(
    records: Iterable[Mapping[str, object]],
    path: str | Path,
    field_order: list[str] | None = None,
    delimiter: str = ",",
) -> Path:
    """Write to_csv() output to *path* as UTF-8 and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_csv(records, field_order, delimiter), encoding="utf-8")
    logger.info(f"CSV file saved to '{path}'")
    return path


def _format_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
