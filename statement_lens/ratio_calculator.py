import re
from typing import Any, Dict, List, Optional

from .models import AnalysisResult, to_number


DEFAULT_RATIOS = {
    "currentRatio": 2.34,
    "quickRatio": 1.88,
    "debtToEquity": 0.43,
    "debtToAssets": 0.54,
    "equityRatio": 0.46,
    "workingCapital": 850000.0,
    "roa": 8.7,
    "roe": 15.2,
    "assetTurnover": 1.28,
}

DEFAULT_BALANCE_SHEET_TOTALS = {
    "totalAssets": 5200000.0,
    "totalLiabilities": 2800000.0,
    "totalEquity": 2400000.0,
}

# Simulated comparison: not historical data, just a fixed haircut on the current period.
SIMULATED_PREVIOUS_PERIOD_FACTORS = {
    "totalAssets": 0.94,
    "totalLiabilities": 0.93,
    "totalEquity": 0.96,
}

DEFAULT_MARGINS = {
    "grossMargin": 67.8,
    "operatingMargin": 23.4,
    "netMargin": 14.2,
}

BALANCE_SHEET_LABELS = ["Total Assets", "Total Liabilities", "Total Equity"]
MARGIN_LABELS = ["Gross Margin", "Operating Margin", "Net Margin"]
CURRENT_PERIOD_LABEL = "Current Period"
PREVIOUS_PERIOD_LABEL = "Previous Period"

REVENUE_LINE = re.compile(r"revenue|sales", re.IGNORECASE)
NET_INCOME_LINE = re.compile(r"net\s+(?:income|profit|earnings)", re.IGNORECASE)


class FinancialRatioCalculator:
    """Ratios read from the model's key metrics, each falling back to a fixed default."""

    def __init__(self, key_metrics: Optional[Dict[str, Any]]) -> None:
        self.key_metrics = key_metrics or {}

    def metric(self, name: str, default: float) -> float:
        value = to_number(self.key_metrics.get(name))
        if value is None:
            return default
        return value

    def _ratio(self, name: str) -> float:
        return self.metric(name, DEFAULT_RATIOS[name])

    def calculate_liquidity_ratios(self) -> Dict[str, float]:
        return {
            "currentRatio": self._ratio("currentRatio"),
            "quickRatio": self._ratio("quickRatio"),
            "workingCapital": self._ratio("workingCapital"),
        }

    def calculate_leverage_ratios(self) -> Dict[str, float]:
        return {
            "debtToEquity": self._ratio("debtToEquity"),
            "debtToAssets": self._ratio("debtToAssets"),
            "equityRatio": self._ratio("equityRatio"),
        }

    def calculate_efficiency_ratios(self) -> Dict[str, float]:
        return {
            "roa": self._ratio("roa"),
            "roe": self._ratio("roe"),
            "assetTurnover": self._ratio("assetTurnover"),
        }

    def calculate_all_ratios(self) -> Dict[str, Dict[str, float]]:
        return {
            "liquidity": self.calculate_liquidity_ratios(),
            "leverage": self.calculate_leverage_ratios(),
            "efficiency": self.calculate_efficiency_ratios(),
        }

    def balance_sheet_totals(self) -> List[float]:
        return [self.metric(name, default) for name, default in DEFAULT_BALANCE_SHEET_TOTALS.items()]

    def margins(self) -> List[float]:
        return [self.metric(name, default) for name, default in DEFAULT_MARGINS.items()]


def derive_ratios(key_metrics: Optional[Dict[str, Any]]) -> Dict[str, float]:
    calculator = FinancialRatioCalculator(key_metrics)
    ratios: Dict[str, float] = {}
    for section in calculator.calculate_all_ratios().values():
        ratios.update(section)
    return {name: ratios[name] for name in DEFAULT_RATIOS}


def derive_charts(records: List[Dict[str, Any]], analysis: AnalysisResult) -> Dict[str, Any]:
    calculator = FinancialRatioCalculator(analysis.key_metrics)
    return {
        "balanceSheetChart": _balance_sheet_chart(calculator),
        "revenueChart": _revenue_chart(records, calculator),
        "profitabilityChart": {
            "labels": list(MARGIN_LABELS),
            "datasets": [{"label": "Margin %", "data": calculator.margins()}],
        },
    }


def _balance_sheet_chart(calculator: FinancialRatioCalculator) -> Dict[str, Any]:
    current = calculator.balance_sheet_totals()
    factors = list(SIMULATED_PREVIOUS_PERIOD_FACTORS.values())
    previous = [value * factor for value, factor in zip(current, factors)]
    return {
        "labels": list(BALANCE_SHEET_LABELS),
        "datasets": [
            {"label": CURRENT_PERIOD_LABEL, "data": current},
            {"label": PREVIOUS_PERIOD_LABEL, "data": previous},
        ],
        "simulatedComparison": True,
    }


def _revenue_chart(records: List[Dict[str, Any]], calculator: FinancialRatioCalculator) -> Dict[str, Any]:
    columns = _value_columns(records)
    revenue_row = _find_line(records, REVENUE_LINE)
    if columns and revenue_row is not None:
        net_income_row = _find_line(records, NET_INCOME_LINE)
        datasets = [{"label": "Revenue", "data": _row_series(revenue_row, columns)}]
        if net_income_row is not None:
            datasets.append({"label": "Net Income", "data": _row_series(net_income_row, columns)})
        return {"labels": columns, "datasets": datasets}

    return {
        "labels": [CURRENT_PERIOD_LABEL],
        "datasets": [
            {"label": "Revenue", "data": [calculator.metric("totalRevenue", 0.0)]},
            {"label": "Net Income", "data": [calculator.metric("netIncome", 0.0)]},
        ],
    }


def _value_columns(records: List[Dict[str, Any]]) -> List[str]:
    if not records:
        return []
    keys = list(records[0].keys())[1:]
    return [
        key
        for key in keys
        if any(_is_number(record.get(key)) for record in records)
    ]


def _find_line(records: List[Dict[str, Any]], pattern) -> Optional[Dict[str, Any]]:
    for record in records:
        label = next(iter(record.values()), "")
        if isinstance(label, str) and pattern.search(label):
            return record
    return None


def _row_series(record: Dict[str, Any], columns: List[str]) -> List[float]:
    return [float(record[key]) if _is_number(record.get(key)) else 0.0 for key in columns]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
