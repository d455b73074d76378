"""Unit tests for the buyer CSV parser."""

import pytest

from lead_intake.lib.importer.parser import (
    BatchTooLargeError,
    CsvParseError,
    EmptyInputError,
    MalformedCsvError,
    parse_csv,
)

HEADER = "fullName,phone,city,propertyType,purpose,timeline,source"
ROW = "Jane Roe,9998887777,Mohali,Plot,Buy,0-3m,Website"


class TestParseCsv:
    """Tests for parse_csv."""

    def test_maps_cells_to_header_names(self) -> None:
        rows = parse_csv(f"{HEADER}\n{ROW}\n")
        assert rows == [
            {
                "fullName": "Jane Roe",
                "phone": "9998887777",
                "city": "Mohali",
                "propertyType": "Plot",
                "purpose": "Buy",
                "timeline": "0-3m",
                "source": "Website",
            }
        ]

    def test_header_only_yields_no_rows(self) -> None:
        assert parse_csv(f"{HEADER}\n") == []

    def test_quoted_cell_keeps_embedded_comma(self) -> None:
        rows = parse_csv('fullName,notes\n"Roe, Jane","near park, east facing"\n')
        assert rows[0]["fullName"] == "Roe, Jane"
        assert rows[0]["notes"] == "near park, east facing"

    def test_quoted_cell_keeps_doubled_quotes(self) -> None:
        rows = parse_csv('fullName,notes\nJane,"wants a ""corner"" plot"\n')
        assert rows[0]["notes"] == 'wants a "corner" plot'

    def test_trims_header_and_cells(self) -> None:
        rows = parse_csv(" fullName , phone \n  Jane Roe  ,  9998887777 \n")
        assert rows == [{"fullName": "Jane Roe", "phone": "9998887777"}]

    def test_short_row_padded_with_empty_strings(self) -> None:
        rows = parse_csv("fullName,phone,notes\nJane Roe,9998887777\n")
        assert rows == [{"fullName": "Jane Roe", "phone": "9998887777", "notes": ""}]

    def test_blank_lines_skipped(self) -> None:
        rows = parse_csv(f"{HEADER}\n\n{ROW}\n\n{ROW}\n\n")
        assert len(rows) == 2

    def test_whitespace_only_lines_skipped(self) -> None:
        rows = parse_csv(f"{HEADER}\n   \n{ROW}\n\t\n{ROW}\n")
        assert len(rows) == 2

    def test_row_of_bare_delimiters_is_kept(self) -> None:
        rows = parse_csv(f"{HEADER}\n{ROW}\n,,,,,,\n{ROW}\n")
        assert len(rows) == 3
        assert set(rows[1].values()) == {""}
        assert rows[2]["fullName"] == "Jane Roe"

    def test_cells_stay_text(self) -> None:
        rows = parse_csv("phone,budgetMin\n0098887777,5000\n")
        assert rows[0]["phone"] == "0098887777"
        assert rows[0]["budgetMin"] == "5000"

    def test_strips_byte_order_mark(self) -> None:
        rows = parse_csv(f"\ufeff{HEADER}\n{ROW}\n")
        assert "fullName" in rows[0]

    def test_preserves_row_order(self) -> None:
        text = "fullName\n" + "\n".join(f"Buyer {i}" for i in range(5))
        rows = parse_csv(text)
        assert [r["fullName"] for r in rows] == [f"Buyer {i}" for i in range(5)]


class TestParseCsvErrors:
    """Tests for parse_csv failure modes."""

    @pytest.mark.parametrize("text", ["", "\n\n", "   \n \n"])
    def test_empty_input(self, text: str) -> None:
        with pytest.raises(EmptyInputError, match="Empty file"):
            parse_csv(text)

    def test_accepts_exactly_the_limit(self) -> None:
        text = HEADER + "\n" + "\n".join([ROW] * 200)
        assert len(parse_csv(text)) == 200

    def test_rejects_one_over_the_limit(self) -> None:
        text = HEADER + "\n" + "\n".join([ROW] * 201)
        with pytest.raises(BatchTooLargeError, match="Maximum 200 rows allowed") as exc_info:
            parse_csv(text)
        assert exc_info.value.row_count == 201
        assert exc_info.value.max_rows == 200

    def test_custom_limit(self) -> None:
        text = HEADER + "\n" + "\n".join([ROW] * 3)
        with pytest.raises(BatchTooLargeError):
            parse_csv(text, max_rows=2)

    def test_oversized_input_stops_reading_past_the_limit(self) -> None:
        text = HEADER + "\n" + "\n".join([ROW] * 1000)
        with pytest.raises(BatchTooLargeError) as exc_info:
            parse_csv(text, max_rows=10)
        assert exc_info.value.row_count == 11

    def test_duplicate_header_rejected(self) -> None:
        with pytest.raises(MalformedCsvError, match="Duplicate column names: phone"):
            parse_csv("fullName,phone, phone\nJane Roe,9998887777,9998887778\n")

    def test_blank_header_names_not_treated_as_duplicates(self) -> None:
        rows = parse_csv("fullName,,\nJane Roe,,\n")
        assert rows[0]["fullName"] == "Jane Roe"

    def test_unterminated_quote(self) -> None:
        with pytest.raises(MalformedCsvError):
            parse_csv('fullName,notes\nJane,"never closed\n')

    def test_errors_are_value_errors(self) -> None:
        assert issubclass(CsvParseError, ValueError)
        assert issubclass(EmptyInputError, CsvParseError)
        assert issubclass(BatchTooLargeError, CsvParseError)
        assert issubclass(MalformedCsvError, CsvParseError)
