import csv
import io
import re
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

from openpyxl import load_workbook

from .errors import MalformedSpreadsheet, NoHeaderRow
from .models import ParsedTable, TableMetadata


SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm", ".csv"}
SPREADSHEET_MIME_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel.sheet.macroenabled.12",
    "text/csv",
}
CSV_SHEET_NAME = "Sheet1"

PERIOD_PATTERN = re.compile(
    r"\d{4}|Q[1-4]|Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec",
    re.IGNORECASE,
)


def is_spreadsheet_upload(filename: str, content_type: Optional[str] = None) -> bool:
    suffix = Path(filename or "").suffix.lower()
    if suffix:
        return suffix in SPREADSHEET_SUFFIXES
    return (content_type or "").split(";")[0].strip().lower() in SPREADSHEET_MIME_TYPES


def extract_table(content: bytes, filename: Optional[str] = None) -> ParsedTable:
    """Read the first sheet of a workbook into a header row and rectangular data rows.

    Rows above the first non-blank row are discarded, fully blank rows are
    dropped, and each data row is padded or truncated to the header width.
    """
    if Path(filename or "").suffix.lower() == ".csv":
        sheet_name, raw_rows = _read_csv_rows(content)
    else:
        sheet_name, raw_rows = _read_workbook_rows(content)

    if not raw_rows:
        raise MalformedSpreadsheet("Spreadsheet contains no data")

    header_index = None
    for index, row in enumerate(raw_rows):
        if _has_content(row):
            header_index = index
            break
    if header_index is None:
        raise NoHeaderRow("Could not find a header row in the spreadsheet")

    headers = list(raw_rows[header_index])
    width = len(headers)
    rows = [
        _fit_row(row, width)
        for row in raw_rows[header_index + 1 :]
        if _has_content(row)
    ]
    if not rows:
        raise MalformedSpreadsheet("Spreadsheet has a header row but no data rows")

    periods = detect_periods(headers)
    return ParsedTable(
        headers=headers,
        rows=rows,
        metadata=TableMetadata(
            sheet_name=sheet_name,
            row_count=len(rows),
            column_count=width,
            periods=periods,
        ),
    )


def detect_periods(headers: Iterable[str]) -> List[str]:
    periods: List[str] = []
    for header in headers:
        if header and PERIOD_PATTERN.search(header) and header not in periods:
            periods.append(header)
    return periods


def cell_to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value).strip()


def _read_workbook_rows(content: bytes):
    try:
        workbook = load_workbook(io.BytesIO(content), data_only=True)
    except Exception as exc:
        raise MalformedSpreadsheet(f"Failed to read spreadsheet: {exc}")
    try:
        if not workbook.worksheets:
            raise MalformedSpreadsheet("Spreadsheet contains no sheets")
        sheet = workbook.worksheets[0]
        # iter_rows pads every row to the sheet's widest row
        rows = [
            _trim_trailing_blanks([cell_to_text(value) for value in row])
            for row in sheet.iter_rows(values_only=True)
        ]
        return sheet.title, rows
    finally:
        workbook.close()


def _read_csv_rows(content: bytes):
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedSpreadsheet(f"Failed to read spreadsheet: {exc}")
    rows = [[cell.strip() for cell in row] for row in csv.reader(io.StringIO(text))]
    return CSV_SHEET_NAME, rows


def _has_content(row: Sequence[str]) -> bool:
    return any(cell.strip() for cell in row)


def _trim_trailing_blanks(row: List[str]) -> List[str]:
    end = len(row)
    while end and not row[end - 1].strip():
        end -= 1
    return row[:end]


def _fit_row(row: Sequence[str], width: int) -> List[str]:
    fitted = list(row[:width])
    fitted.extend([""] * (width - len(fitted)))
    return fitted
