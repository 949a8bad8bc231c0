"""
Tests for utils/excel_formatter.py

Covers: two-sheet creation, auto-filter, best-offer highlighting, number
formats, column widths, frozen header and empty input.
"""

import openpyxl
import pytest

from processing.offer_builder import Offer
from utils.excel_formatter import save_offers_excel


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_offer(offer_id: str, product_id: str, supplier: str, price: float, **overrides) -> Offer:
    values = dict(
        id=offer_id,
        product_id=product_id,
        supplier_id=f"s-{supplier}",
        raw_price=price * 5,
        raw_currency="AUD",
        pack_qty=5.0,
        pack_unit="m",
        normalized_price_per_unit=price,
        normalized_unit="m",
        normalized_currency="AUD",
        source_id="upload-1",
        updated_at="2024-01-01T00:00:00+00:00",
        product_name=f"Product {product_id}",
        supplier_name=supplier,
        category="Pipe & Fittings",
    )
    values.update(overrides)
    return Offer(**values)


def _make_offers() -> list[Offer]:
    return [
        _make_offer("o1", "p1", "Acme", 97.0, in_stock=True),
        _make_offer("o2", "p1", "Bolt Co", 95.5),
        _make_offer("o3", "p2", "Acme", 4.0),
    ]


@pytest.fixture
def workbook(tmp_path):
    path = save_offers_excel(_make_offers(), tmp_path / "offers.xlsx")
    wb = openpyxl.load_workbook(path)
    yield wb
    wb.close()


# ═══════════════════════════════════════════════════════════════════════════
# Sheets
# ═══════════════════════════════════════════════════════════════════════════

class TestSheets:

    def test_sheet_names(self, workbook):
        assert workbook.sheetnames == ["Offers", "Best Offers"]

    def test_offer_rows(self, workbook):
        sheet = workbook["Offers"]
        assert sheet.max_row == 4
        assert sheet.cell(row=1, column=1).value == "Supplier"
        assert sheet.cell(row=2, column=1).value == "Acme"
        assert sheet.cell(row=2, column=9).value == 97.0

    def test_unknown_values_blank(self, workbook):
        sheet = workbook["Offers"]
        headers = [cell.value for cell in sheet[1]]
        assert sheet.cell(row=2, column=headers.index("In Stock") + 1).value is True
        assert sheet.cell(row=3, column=headers.index("In Stock") + 1).value is None
        assert sheet.cell(row=2, column=headers.index("Product Code") + 1).value is None

    def test_best_offers_sheet(self, workbook):
        sheet = workbook["Best Offers"]
        rows = list(sheet.iter_rows(min_row=2, values_only=True))
        assert [row[2] for row in rows] == ["Bolt Co", "Acme"]
        assert [row[6] for row in rows] == [2, 1]


# ═══════════════════════════════════════════════════════════════════════════
# Formatting
# ═══════════════════════════════════════════════════════════════════════════

class TestFormatting:

    def test_auto_filter_and_frozen_header(self, workbook):
        sheet = workbook["Offers"]
        assert sheet.auto_filter.ref == "A1:N4"
        assert sheet.freeze_panes == "A2"

    def test_header_style(self, workbook):
        cell = workbook["Offers"].cell(row=1, column=1)
        assert cell.font.bold is True
        assert cell.fill.start_color.rgb.endswith("4472C4")

    def test_best_offer_highlighted(self, workbook):
        sheet = workbook["Offers"]
        # o2 is the cheapest p1 offer, o1 is not
        assert sheet.cell(row=3, column=1).fill.start_color.rgb.endswith("E2EFDA")
        assert sheet.cell(row=2, column=1).fill.fill_type is None

    def test_number_formats(self, workbook):
        sheet = workbook["Offers"]
        assert sheet.cell(row=2, column=5).number_format == "#,##0.00"
        assert sheet.cell(row=2, column=9).number_format == "#,##0.00"

    def test_column_widths_clamped(self, workbook):
        sheet = workbook["Offers"]
        for letter in ("A", "B", "M"):
            width = sheet.column_dimensions[letter].width
            assert 10 <= width <= 50


class TestEmpty:

    def test_no_offers(self, tmp_path):
        path = save_offers_excel([], tmp_path / "nested" / "empty.xlsx")

        wb = openpyxl.load_workbook(path)
        assert wb["Offers"].max_row == 1
        assert wb["Best Offers"].cell(row=1, column=1).value == "Product"
        wb.close()
