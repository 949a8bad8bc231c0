"""
Delimited text parser — tokenizes CSV / TSV / semicolon text into records.

Records are read with pandas (python engine): delimiters and line breaks
inside double-quoted fields are literal, and a doubled quote ("") inside a
quoted field is a literal quote character.  A leading UTF-8 byte-order mark
is stripped.

The delimiter is detected from the first physical record only, so a
semicolon-heavy notes column further down cannot flip the choice.

Public API:
    detect_delimiter(text) → str
    tokenize(text, delimiter) → list[list[str]]
    parse_delimited_text(text) → DelimitedParseResult
"""

import io
import logging
import warnings
from dataclasses import dataclass, field

import pandas as pd

logger = logging.getLogger(__name__)

# Candidate delimiters in tie-break priority order.
CANDIDATE_DELIMITERS: tuple[str, ...] = ("\t", ",", ";")

_BOM = "\ufeff"
_QUOTE = '"'


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class DelimitedParseResult:
    """Output of parse_delimited_text()."""

    headers: list[str] = field(default_factory=list)
    records: list[list[str]] = field(default_factory=list)
    """Data records (header row excluded), cells untrimmed."""

    delimiter: str = ","
    headerless: bool = False
    """True when the input had a single record and headers were synthesized."""


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def strip_bom(text: str) -> str:
    """Remove a leading UTF-8 byte-order mark, if any."""
    if text.startswith(_BOM):
        return text[len(_BOM):]
    return text


def detect_delimiter(text: str) -> str:
    """
    Pick the dominant delimiter of the first physical record.

    Counts tabs, commas and semicolons outside quotes up to the first
    unquoted line break.  The highest count wins; ties go to tab, then
    comma, then semicolon.  Text with none of them falls back to comma.

    Args:
        text: Raw delimited text (BOM allowed).

    Returns:
        The delimiter character.
    """
    counts = {delimiter: 0 for delimiter in CANDIDATE_DELIMITERS}
    in_quotes = False
    seen_content = False

    for char in strip_bom(text):
        if char == _QUOTE:
            # A doubled quote toggles twice, which leaves the state unchanged
            in_quotes = not in_quotes
            seen_content = True
        elif in_quotes:
            continue
        elif char in ("\n", "\r"):
            if seen_content:
                break
            # Leading blank lines do not count as the first record
        elif char in counts:
            counts[char] += 1
            seen_content = True
        elif not char.isspace():
            seen_content = True

    best = CANDIDATE_DELIMITERS[0]
    for delimiter in CANDIDATE_DELIMITERS:
        if counts[delimiter] > counts[best]:
            best = delimiter

    if counts[best] == 0:
        logger.debug("No delimiter found in first record — defaulting to comma")
        return ","

    logger.debug(f"Detected delimiter {best!r} (counts={counts})")
    return best


def tokenize(text: str, delimiter: str) -> list[list[str]]:
    """
    Split *text* into records of cells with pandas' python CSV engine.

    Doubled quotes, quoted line breaks and \\n / \\r\\n / \\r line endings
    are handled by the reader.  The first record fixes the width: shorter
    records are padded with "", longer ones are truncated with a warning.
    Records whose cells are all blank are discarded.

    Args:
        text: Raw delimited text.
        delimiter: Single-character delimiter.

    Returns:
        List of records, each a list of raw (untrimmed) cell strings.

    Raises:
        pandas.errors.ParserError: If the text cannot be tokenized at all.
    """
    lines = strip_bom(text).replace("\r\n", "\n").replace("\r", "\n").split("\n")
    # Leading blank lines must not fix the record width
    while lines and not lines[0].strip():
        lines.pop(0)
    text = "\n".join(lines)
    if not text.strip():
        return []

    overlong: list[int] = []

    def _keep_overlong(bad_line: list[str]) -> list[str]:
        overlong.append(len(bad_line))
        return bad_line

    with warnings.catch_warnings():
        # Extra cells of overlong records are dropped by the reader
        warnings.simplefilter("ignore", pd.errors.ParserWarning)
        frame = pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            index_col=False,
            dtype=str,
            keep_default_na=False,
            quotechar=_QUOTE,
            doublequote=True,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=_keep_overlong,
        )

    if overlong:
        logger.warning(
            f"{len(overlong)} record(s) had more than {frame.shape[1]} cells — "
            "extra cells dropped"
        )

    records = frame.fillna("").astype(str).values.tolist()
    non_blank = [record for record in records if not _is_blank_record(record)]
    dropped = len(records) - len(non_blank)
    if dropped:
        logger.debug(f"Discarded {dropped} blank record(s)")
    return non_blank


def parse_delimited_text(text: str) -> DelimitedParseResult:
    """
    Tokenize delimited text and split off the header record.

    A single-record input is treated as headerless: positional headers
    ("Column 1", "Column 2", …) are synthesized and the record becomes the
    only data row.

    Args:
        text: Raw delimited text.

    Returns:
        DelimitedParseResult with raw header strings and data records.
    """
    delimiter = detect_delimiter(text or "")
    records = tokenize(text or "", delimiter)

    if not records:
        return DelimitedParseResult(delimiter=delimiter)

    if len(records) == 1:
        lone = records[0]
        return DelimitedParseResult(
            headers=positional_headers(len(lone)),
            records=[lone],
            delimiter=delimiter,
            headerless=True,
        )

    logger.info(
        f"Parsed {len(records) - 1} data record(s) with delimiter {delimiter!r}"
    )
    return DelimitedParseResult(
        headers=records[0],
        records=records[1:],
        delimiter=delimiter,
    )


def positional_headers(count: int) -> list[str]:
    """Return ["Column 1", …, "Column <count>"]."""
    return [f"Column {position}" for position in range(1, count + 1)]


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _is_blank_record(record: list[str]) -> bool:
    return all(cell.strip() == "" for cell in record)
