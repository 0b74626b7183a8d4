from datetime import datetime

import pytest

from statement_lens.errors import MalformedSpreadsheet, NoHeaderRow
from statement_lens.normalizer import normalize_table
from statement_lens.spreadsheet import cell_to_text, detect_periods, extract_table, is_spreadsheet_upload
from tests.helpers.workbooks import balance_sheet_rows, build_workbook


def test_extract_table_skips_leading_and_blank_rows():
    table = extract_table(build_workbook(balance_sheet_rows(), title="BS"))
    assert table.headers == ["Item", "2023", "2022"]
    assert table.rows == [
        ["Cash", "100", "90"],
        ["Inventory", "200", "180"],
        ["Total Assets", "300", "270"],
    ]
    assert table.metadata.sheet_name == "BS"
    assert table.metadata.row_count == 3
    assert table.metadata.column_count == 3


def test_extract_table_header_after_blank_cells_is_trimmed():
    content = build_workbook(
        [
            [None, "   ", None],
            ["  Account ", " Q1 2024", "Dec "],
            ["Revenue", 10, 20],
        ]
    )
    table = extract_table(content)
    assert table.headers == ["Account", "Q1 2024", "Dec"]
    assert table.metadata.periods == ["Q1 2024", "Dec"]


def test_extract_table_pads_and_truncates_rows_to_header_width():
    content = (
        "Item,2023,2022\n"
        "Cash,100\n"
        "Inventory,200,180,999\n"
        ",,\n"
        "Total Assets,300,270\n"
    ).encode("utf-8")
    table = extract_table(content, filename="statement.csv")
    assert table.rows == [
        ["Cash", "100", ""],
        ["Inventory", "200", "180"],
        ["Total Assets", "300", "270"],
    ]
    assert all(len(row) == len(table.headers) for row in table.rows)
    assert table.metadata.sheet_name == "Sheet1"


def test_extract_table_drops_workbook_cells_beyond_the_header():
    content = build_workbook(
        [
            ["Item", "2023", "2022"],
            ["Cash", 100, 90, "note a", "note b"],
            ["Inventory", 200],
        ]
    )
    table = extract_table(content)
    assert table.headers == ["Item", "2023", "2022"]
    assert table.rows == [["Cash", "100", "90"], ["Inventory", "200", ""]]
    assert table.metadata.column_count == 3

    records = normalize_table(table)
    assert all(len(record) == len(table.headers) for record in records)
    assert records[0] == {"Item": "Cash", "2023": 100.0, "2022": 90.0}


def test_extract_table_keeps_blank_and_duplicate_headers():
    content = "Item,,2023,2023\nCash,x,1,2\n".encode("utf-8")
    table = extract_table(content, filename="dupes.csv")
    assert table.headers == ["Item", "", "2023", "2023"]


def test_extract_table_rejects_non_spreadsheet_bytes():
    with pytest.raises(MalformedSpreadsheet, match="Failed to read spreadsheet"):
        extract_table(b"not a workbook", filename="report.xlsx")


def test_extract_table_rejects_empty_sheet():
    with pytest.raises(MalformedSpreadsheet, match="no data"):
        extract_table(b"", filename="empty.csv")


def test_extract_table_without_non_blank_row_has_no_header():
    with pytest.raises(NoHeaderRow):
        extract_table(b" , \n,\n", filename="blank.csv")


def test_extract_table_requires_a_data_row():
    with pytest.raises(MalformedSpreadsheet, match="no data rows"):
        extract_table(build_workbook([["Item", "2023"]]))


def test_detect_periods_matches_years_quarters_and_months():
    headers = ["Line item", "FY2023", "q3", "JANUARY", "Notes", "Total"]
    assert detect_periods(headers) == ["FY2023", "q3", "JANUARY"]


def test_cell_to_text_renders_workbook_values():
    assert cell_to_text(None) == ""
    assert cell_to_text(1500.0) == "1500"
    assert cell_to_text(12.5) == "12.5"
    assert cell_to_text(datetime(2023, 12, 31)) == "2023-12-31"
    assert cell_to_text("  Cash ") == "Cash"


def test_is_spreadsheet_upload_checks_suffix_and_mime():
    assert is_spreadsheet_upload("bs.XLSX")
    assert is_spreadsheet_upload("upload", "text/csv; charset=utf-8")
    assert not is_spreadsheet_upload("report.pdf", "application/pdf")


def test_is_spreadsheet_upload_rejects_legacy_xls():
    assert not is_spreadsheet_upload("legacy.xls")
    assert not is_spreadsheet_upload("legacy.xls", "application/vnd.ms-excel")
    assert not is_spreadsheet_upload("upload", "application/vnd.ms-excel")
    assert not is_spreadsheet_upload("legacy.xls", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
    assert is_spreadsheet_upload("export.csv", "application/vnd.ms-excel")
