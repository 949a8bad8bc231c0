"""
Tests for processing/pdf_tables.py

Covers the confidence heuristic and the pdfplumber fallback extractor
(pdfplumber itself is mocked; no PDF fixtures needed).
"""

from unittest.mock import MagicMock, patch

from processing.pdf_tables import PdfplumberTableExtractor, score_table_confidence
from processing.table import build_table


def _make_pdf(pages_tables: list[list]) -> MagicMock:
    """Mock pdfplumber document whose pages return the given tables."""
    pages = []
    for tables in pages_tables:
        page = MagicMock()
        page.extract_tables.return_value = tables
        pages.append(page)
    pdf = MagicMock()
    pdf.pages = pages
    pdf.__enter__.return_value = pdf
    pdf.__exit__.return_value = False
    return pdf


class TestScoreTableConfidence:

    def test_price_list_scores_full(self):
        table = build_table(["Product", "Unit Price"], [["Pipe", "4"], ["Elbow", "2"]])
        assert score_table_confidence(table) == 1.0

    def test_no_keywords(self):
        table = build_table(["Code", "Qty"], [["A1", "4"]])
        assert score_table_confidence(table) == 0.6

    def test_sparse_rows_lose_fill_bonus(self):
        table = build_table(
            ["Item", "Cost", "Notes", "Extra"],
            [["Pipe", "", "", ""], ["Bolt", "", "", ""]],
        )
        assert score_table_confidence(table) == 0.9


class TestPdfplumberTableExtractor:

    def test_extracts_tables_with_page_numbers(self):
        pdf = _make_pdf([
            [[["Product", "Price"], ["Pipe", "4.00"]]],
            [[["Description", "Cost"], ["Bolt", "0.40"], ["Nut", "0.10"]]],
        ])
        with patch("pdfplumber.open", return_value=pdf):
            candidates = PdfplumberTableExtractor().extract(b"%PDF", "list.pdf")

        assert [candidate.page_number for candidate in candidates] == [1, 2]
        assert candidates[1].table.row_count == 2
        assert candidates[0].table.rows[0]["Price"] == 4.0
        assert candidates[0].confidence == 1.0

    def test_header_only_grids_skipped(self):
        pdf = _make_pdf([[[["Product", "Price"]], None]])
        with patch("pdfplumber.open", return_value=pdf):
            candidates = PdfplumberTableExtractor().extract(b"%PDF", "list.pdf")
        assert candidates == []

    def test_text_strategy_retry_when_no_ruled_tables(self):
        page = MagicMock()
        page.extract_tables.side_effect = [[], [[["Product", "Price"], ["Pipe", "4"]]]]
        pdf = _make_pdf([])
        pdf.pages = [page]

        with patch("pdfplumber.open", return_value=pdf):
            candidates = PdfplumberTableExtractor().extract(b"%PDF", "list.pdf")

        assert len(candidates) == 1
        assert page.extract_tables.call_count == 2
