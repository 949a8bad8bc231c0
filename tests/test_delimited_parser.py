"""
Tests for processing/delimited_parser.py

Covers:
  - Delimiter detection: dominance, tie-break order, quoted delimiters
  - Tokenizing: doubled quotes, embedded newlines, line endings, BOM
  - Blank-record removal and single-record (headerless) input
"""

from processing.delimited_parser import (
    detect_delimiter,
    parse_delimited_text,
    positional_headers,
    strip_bom,
    tokenize,
)


# ═══════════════════════════════════════════════════════════════════════════
# Delimiter detection
# ═══════════════════════════════════════════════════════════════════════════

class TestDetectDelimiter:

    def test_tab_dominant_header_splits_on_tab(self):
        text = "Supplier\tProduct, size\tPrice;AUD\tUnit\n"
        assert detect_delimiter(text) == "\t"

    def test_comma_dominant(self):
        assert detect_delimiter("a,b,c;d\n1,2,3;4") == ","

    def test_semicolon_dominant(self):
        assert detect_delimiter("a;b;c\n1;2;3") == ";"

    def test_tie_prefers_tab_then_comma(self):
        assert detect_delimiter("a\tb,c\n") == "\t"
        assert detect_delimiter("a,b;c\n") == ","

    def test_quoted_delimiters_ignored(self):
        """Commas inside quotes must not outvote the real semicolons."""
        assert detect_delimiter('"a,b,c,d";x;y\n') == ";"

    def test_only_first_record_counts(self):
        assert detect_delimiter("a;b\n1,2,3,4,5,6") == ";"

    def test_no_delimiter_defaults_to_comma(self):
        assert detect_delimiter("just one column\nvalue") == ","

    def test_leading_blank_lines_skipped(self):
        assert detect_delimiter("\n\na;b;c\n") == ";"


# ═══════════════════════════════════════════════════════════════════════════
# Tokenizing
# ═══════════════════════════════════════════════════════════════════════════

class TestTokenize:

    def test_quoted_comma_stays_in_cell(self):
        assert tokenize('"Acme, Inc.",10', ",") == [["Acme, Inc.", "10"]]

    def test_doubled_quote_is_literal(self):
        assert tokenize('"6"" pipe",5', ",") == [['6" pipe', "5"]]

    def test_embedded_newline_in_quotes(self):
        records = tokenize('name,notes\nBolt,"line one\nline two"\n', ",")
        assert records == [["name", "notes"], ["Bolt", "line one\nline two"]]

    def test_crlf_and_cr_line_endings(self):
        assert tokenize("a,b\r\n1,2\r3,4", ",") == [["a", "b"], ["1", "2"], ["3", "4"]]

    def test_blank_records_dropped(self):
        assert tokenize("a,b\n\n , \n1,2\n", ",") == [["a", "b"], ["1", "2"]]

    def test_trailing_empty_cell_kept(self):
        assert tokenize("a,b,\n", ",") == [["a", "b", ""]]

    def test_short_records_padded(self):
        assert tokenize("a,b,c\n1\n", ",") == [["a", "b", "c"], ["1", "", ""]]

    def test_long_records_truncated_to_first_width(self):
        assert tokenize("a,b\n1,2,3\n", ",") == [["a", "b"], ["1", "2"]]

    def test_leading_blank_lines_do_not_fix_width(self):
        assert tokenize("\n  \na;b\n1;2", ";") == [["a", "b"], ["1", "2"]]

    def test_cells_kept_as_text(self):
        assert tokenize("code,qty\n00731,NA\n", ",") == [["code", "qty"], ["00731", "NA"]]

    def test_blank_input(self):
        assert tokenize("", ",") == []
        assert tokenize(" \n\t\n", ",") == []

    def test_bom_stripped(self):
        assert tokenize("\ufeffa,b\n1,2", ",")[0] == ["a", "b"]
        assert strip_bom("\ufeffx") == "x"


# ═══════════════════════════════════════════════════════════════════════════
# Full parse
# ═══════════════════════════════════════════════════════════════════════════

class TestParseDelimitedText:

    def test_header_record_split_off(self):
        result = parse_delimited_text("Supplier;Price\nAcme;10\nBolt Co;12")
        assert result.delimiter == ";"
        assert result.headers == ["Supplier", "Price"]
        assert result.records == [["Acme", "10"], ["Bolt Co", "12"]]
        assert result.headerless is False

    def test_single_record_is_headerless(self):
        result = parse_delimited_text('"Acme, Inc.",10')
        assert result.headerless is True
        assert result.headers == ["Column 1", "Column 2"]
        assert result.records == [["Acme, Inc.", "10"]]

    def test_empty_text(self):
        result = parse_delimited_text("")
        assert result.headers == []
        assert result.records == []

    def test_whitespace_only_text(self):
        result = parse_delimited_text("  \n\n\t\n")
        assert result.headers == []
        assert result.records == []

    def test_positional_headers(self):
        assert positional_headers(3) == ["Column 1", "Column 2", "Column 3"]
        assert positional_headers(0) == []
