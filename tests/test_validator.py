import pytest

from statement_lens.errors import ValidationError
from statement_lens.models import ParsedTable, TableMetadata
from statement_lens.validator import VOCABULARY_WARNING, validate_table


def _table(headers, rows):
    return ParsedTable(
        headers=headers,
        rows=rows,
        metadata=TableMetadata(sheet_name="Sheet1", row_count=len(rows), column_count=len(headers)),
    )


def test_validate_rejects_single_column_even_with_numbers():
    table = _table(["Amount"], [["1"], ["2"], ["3"], ["4"]])
    with pytest.raises(ValidationError, match="at least 2 columns"):
        validate_table(table)


def test_validate_rejects_two_data_rows():
    table = _table(["Item", "2023"], [["Revenue", "100"], ["Cost", "50"]])
    with pytest.raises(ValidationError, match="at least 3 data rows") as excinfo:
        validate_table(table)
    assert "3 data rows" in excinfo.value.reason


def test_validate_rejects_tables_without_numeric_values():
    table = _table(
        ["Item", "Comment"],
        [["Revenue", "n/a"], ["Cost", "tbd"], ["Profit", ""]],
    )
    with pytest.raises(ValidationError, match="numeric financial data"):
        validate_table(table)


def test_validate_ignores_numbers_in_label_column():
    table = _table(["Code", "Comment"], [["100", "x"], ["200", "y"], ["300", "z"]])
    with pytest.raises(ValidationError, match="numeric financial data"):
        validate_table(table)


def test_validate_accepts_unfamiliar_vocabulary_with_warning():
    table = _table(
        ["Line", "2023", "2022"],
        [["Widgets", "n/a", "x"], ["Gadgets", "$1,000", ""], ["Sprockets", "", ""], ["Cogs", "", ""]],
    )
    assert validate_table(table) == [VOCABULARY_WARNING]


def test_validate_accepts_financial_statement_without_warnings():
    table = _table(
        ["Item", "2023"],
        [["Total Revenue", "1,000"], ["Operating expenses", "(400)"], ["Net profit", "600"]],
    )
    assert validate_table(table) == []
