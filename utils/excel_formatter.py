"""
Excel formatter — writes normalized offers to a formatted workbook.

Sheet 1: "Offers" — every offer with auto-filters, number formats, column
         widths and a frozen header row.
Sheet 2: "Best Offers" — cheapest offer per product group with the number
         of competing offers.

Public API:
    save_offers_excel(offers, output_path) → Path
"""

import logging
from pathlib import Path

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
import pandas as pd

from analysis.comparison import best_offers, offers_to_dataframe
from processing.offer_builder import Offer

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════════════════

_HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
_BEST_FILL = PatternFill(start_color="E2EFDA", end_color="E2EFDA", fill_type="solid")
_HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
_NORMAL_FONT = Font(size=10)

# Max column width (characters) to prevent excessively wide columns
_MAX_COL_WIDTH = 50
_MIN_COL_WIDTH = 8

# Sheet column → (DataFrame column, header label)
_OFFER_SHEET_COLUMNS: list[tuple[str, str]] = [
    ("supplier_name", "Supplier"),
    ("product_name", "Product"),
    ("product_code", "Product Code"),
    ("category", "Category"),
    ("raw_price", "Raw Price"),
    ("raw_currency", "Raw Currency"),
    ("pack_qty", "Pack Qty"),
    ("pack_unit", "Pack Unit"),
    ("normalized_price_per_unit", "Normalized Price"),
    ("normalized_currency", "Currency"),
    ("normalized_unit", "Per Unit"),
    ("in_stock", "In Stock"),
    ("updated_at", "Updated"),
    ("source_id", "Source"),
]

_BEST_SHEET_COLUMNS: list[tuple[str, str]] = [
    ("product_name", "Product"),
    ("category", "Category"),
    ("supplier_name", "Best Supplier"),
    ("normalized_price_per_unit", "Normalized Price"),
    ("normalized_currency", "Currency"),
    ("normalized_unit", "Per Unit"),
    ("total_offers", "Offers Compared"),
    ("latest_update", "Latest Update"),
]

_NUMBER_FORMATS: dict[str, str] = {
    "raw_price": "#,##0.00",
    "pack_qty": "#,##0.###",
    "normalized_price_per_unit": "#,##0.00",
    "total_offers": "#,##0",
}


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def save_offers_excel(offers: list[Offer], output_path: Path) -> Path:
    """
    Write a formatted Excel workbook with the offers and best offers.

    Args:
        offers: Normalized offers to export.
        output_path: Path where the .xlsx file should be saved.

    Returns:
        The output_path (same as input, for convenience).
    """
    offers_df = offers_to_dataframe(offers)
    best_df = best_offers(offers_df)
    best_ids = set(best_df["id"])

    workbook = openpyxl.Workbook()

    offers_sheet = workbook.active
    offers_sheet.title = "Offers"
    _write_sheet(offers_sheet, offers_df, _OFFER_SHEET_COLUMNS, highlight_ids=best_ids)

    best_sheet = workbook.create_sheet("Best Offers")
    _write_sheet(best_sheet, best_df, _BEST_SHEET_COLUMNS)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(str(output_path))
    workbook.close()

    logger.info(f"Excel file saved to '{output_path}' ({len(offers)} offers)")
    return output_path


# ═══════════════════════════════════════════════════════════════════════════
# Sheet writing
# ═══════════════════════════════════════════════════════════════════════════

def _write_sheet(
    worksheet: openpyxl.worksheet.worksheet.Worksheet,
    dataframe: pd.DataFrame,
    columns: list[tuple[str, str]],
    highlight_ids: set[str] | None = None,
) -> None:
    """Header row, data rows, number formats, widths, filter and frozen header."""
    for col_idx, (_, label) in enumerate(columns, start=1):
        cell = worksheet.cell(row=1, column=col_idx, value=label)
        cell.fill = _HEADER_FILL
        cell.font = _HEADER_FONT
        cell.alignment = Alignment(horizontal="center")

    for row_offset, df_idx in enumerate(dataframe.index):
        excel_row = row_offset + 2  # 1-based, header is row 1
        highlight = highlight_ids is not None and dataframe.at[df_idx, "id"] in highlight_ids

        for col_idx, (name, _) in enumerate(columns, start=1):
            value = dataframe.at[df_idx, name] if name in dataframe.columns else None

            # Convert NaN to None for cleaner Excel output
            if not isinstance(value, bool) and pd.isna(value):
                value = None
            elif hasattr(value, "item"):
                value = value.item()  # numpy scalar → Python scalar

            cell = worksheet.cell(row=excel_row, column=col_idx, value=value)
            cell.font = _NORMAL_FONT
            if name in _NUMBER_FORMATS:
                cell.number_format = _NUMBER_FORMATS[name]
            if highlight:
                cell.fill = _BEST_FILL

    _auto_fit_column_widths(worksheet)

    last_col_letter = get_column_letter(len(columns))
    worksheet.auto_filter.ref = f"A1:{last_col_letter}{len(dataframe) + 1}"
    worksheet.freeze_panes = "A2"


def _auto_fit_column_widths(
    worksheet: openpyxl.worksheet.worksheet.Worksheet,
) -> None:
    """
    Set column widths based on content length, clamped between
    _MIN_COL_WIDTH and _MAX_COL_WIDTH.
    """
    for column_cells in worksheet.columns:
        max_length = _MIN_COL_WIDTH
        col_letter = get_column_letter(column_cells[0].column)

        for cell in column_cells:
            if cell.value is not None:
                max_length = max(max_length, len(str(cell.value)))

        worksheet.column_dimensions[col_letter].width = min(max_length + 2, _MAX_COL_WIDTH)
