import re
from typing import List

from .errors import ValidationError
from .models import ParsedTable
from .normalizer import parse_amount


MIN_COLUMNS = 2
MIN_DATA_ROWS = 3
FINANCIAL_TERMS = re.compile(
    r"revenue|sales|income|expense|asset|liability|equity|cash|cost|profit|loss",
    re.IGNORECASE,
)
VOCABULARY_WARNING = "File may not contain recognizable financial statement data"


def validate_table(table: ParsedTable) -> List[str]:
    """Reject tables that cannot be a financial statement.

    Returns non-fatal warnings; raises ValidationError for hard failures.
    """
    if len(table.headers) < MIN_COLUMNS:
        raise ValidationError(
            "Spreadsheet must have at least 2 columns (account names and values)"
        )
    if len(table.rows) < MIN_DATA_ROWS:
        raise ValidationError("Spreadsheet must have at least 3 data rows")
    if not has_numeric_data(table):
        raise ValidationError("Spreadsheet must contain numeric financial data")

    warnings: List[str] = []
    if not has_financial_terms(table):
        warnings.append(VOCABULARY_WARNING)
    return warnings


def has_numeric_data(table: ParsedTable) -> bool:
    return any(
        parse_amount(cell) is not None
        for row in table.rows
        for cell in row[1:]
    )


def has_financial_terms(table: ParsedTable) -> bool:
    return any(row and FINANCIAL_TERMS.search(row[0]) for row in table.rows)
