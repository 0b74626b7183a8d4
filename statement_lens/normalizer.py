import math
import re
from typing import Any, Dict, List, Optional, Union

from .models import ParsedTable


AMOUNT_NOISE = re.compile(r"[$,()]")
LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

FinancialRecord = Dict[str, Union[str, float]]


def parse_amount(text: Any) -> Optional[float]:
    """Parse the numeric prefix of a cell once `$`, `,` and parentheses are stripped."""
    cleaned = AMOUNT_NOISE.sub("", str(text))
    match = LEADING_NUMBER.match(cleaned)
    if not match:
        return None
    try:
        value = float(match.group(0))
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def coerce_cell(text: str) -> Union[str, float]:
    value = parse_amount(text)
    if value is None:
        return text.strip()
    if "(" in text:
        return -abs(value)
    return value


def normalize_table(table: ParsedTable) -> List[FinancialRecord]:
    records: List[FinancialRecord] = []
    for row in table.rows:
        record: FinancialRecord = {}
        for index, header in enumerate(table.headers):
            cell = row[index] if index < len(row) else ""
            record[header] = cell.strip() if index == 0 else coerce_cell(cell)
        records.append(record)
    return records
