import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


STATEMENT_TYPES = ("balance_sheet", "income_statement")
DEFAULT_STATEMENT_TYPE = "income_statement"
INSIGHT_TYPES = ("positive", "warning", "info")
SEVERITIES = ("low", "medium", "high")
VARIANCE_TYPES = ("revenue", "expense", "asset", "liability", "equity")


@dataclass(frozen=True)
class TableMetadata:
    sheet_name: str
    row_count: int
    column_count: int
    periods: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ParsedTable:
    headers: List[str]
    rows: List[List[str]]
    metadata: TableMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headers": list(self.headers),
            "rows": [list(row) for row in self.rows],
            "metadata": {
                "sheet_name": self.metadata.sheet_name,
                "row_count": self.metadata.row_count,
                "column_count": self.metadata.column_count,
                "periods": list(self.metadata.periods),
            },
        }


@dataclass(frozen=True)
class DepthProfile:
    instruction: str
    expected_insights: str
    expected_key_metrics: str


_DEPTH_PROFILES = {
    "basic": DepthProfile(
        instruction=(
            "Focus on key metrics, major trends, and significant variances (>10%). "
            "Provide 2 main insights and 3 key metrics."
        ),
        expected_insights="2",
        expected_key_metrics="3",
    ),
    "detailed": DepthProfile(
        instruction=(
            "Provide comprehensive analysis including ratios, horizontal/vertical analysis, "
            "trend analysis, and detailed variance explanation. Include 5-6 insights and "
            "up to 10 key metrics."
        ),
        expected_insights="5-6",
        expected_key_metrics="up to 10",
    ),
    "executive": DepthProfile(
        instruction=(
            "Create a high-level executive summary focusing on strategic implications, "
            "key risks, and opportunities. Provide 3 strategic insights and up to 7 key metrics."
        ),
        expected_insights="3",
        expected_key_metrics="up to 7",
    ),
}


class AnalysisDepth(str, Enum):
    BASIC = "basic"
    DETAILED = "detailed"
    EXECUTIVE = "executive"

    @property
    def profile(self) -> DepthProfile:
        return _DEPTH_PROFILES[self.value]

    @classmethod
    def parse(cls, value: Any) -> "AnalysisDepth":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        try:
            return cls(text)
        except ValueError:
            allowed = ", ".join(item.value for item in cls)
            raise ValueError(f"Unsupported analysis depth: {value!r} (expected one of {allowed})")


@dataclass
class AnalysisResult:
    """Default-filled view of the model's analysis reply.

    Every container is present even when the reply omitted it, so downstream
    derivation never sees a missing field.
    """

    statement_type: str = DEFAULT_STATEMENT_TYPE
    insights: List[Dict[str, Any]] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    key_metrics: Dict[str, Optional[float]] = field(default_factory=dict)
    variances: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "AnalysisResult":
        if not isinstance(payload, dict):
            payload = {}
        statement_type = payload.get("statementType")
        if statement_type not in STATEMENT_TYPES:
            statement_type = DEFAULT_STATEMENT_TYPE
        return cls(
            statement_type=statement_type,
            insights=_normalize_insights(payload.get("insights")),
            recommendations=_normalize_recommendations(payload.get("recommendations")),
            key_metrics=_normalize_key_metrics(payload.get("keyMetrics")),
            variances=_normalize_variances(payload.get("variances")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statementType": self.statement_type,
            "insights": [dict(item) for item in self.insights],
            "recommendations": list(self.recommendations),
            "keyMetrics": dict(self.key_metrics),
            "variances": [dict(item) for item in self.variances],
        }


def to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _normalize_insights(value: Any) -> List[Dict[str, Any]]:
    insights: List[Dict[str, Any]] = []
    for item in value if isinstance(value, list) else []:
        if not isinstance(item, dict):
            continue
        insight_type = str(item.get("type", "")).strip().lower()
        insight: Dict[str, Any] = {
            "type": insight_type if insight_type in INSIGHT_TYPES else "info",
            "title": str(item.get("title") or "").strip(),
            "description": str(item.get("description") or "").strip(),
        }
        severity = str(item.get("severity") or "").strip().lower()
        if severity in SEVERITIES:
            insight["severity"] = severity
        insights.append(insight)
    return insights


def _normalize_recommendations(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _normalize_key_metrics(value: Any) -> Dict[str, Optional[float]]:
    if not isinstance(value, dict):
        return {}
    return {str(name): to_number(metric) for name, metric in value.items()}


def _normalize_variances(value: Any) -> List[Dict[str, Any]]:
    variances: List[Dict[str, Any]] = []
    for item in value if isinstance(value, list) else []:
        if not isinstance(item, dict):
            continue
        change = item.get("changePercent", item.get("change"))
        variance_type = str(item.get("type", "")).strip().lower()
        severity = str(item.get("severity", "")).strip().lower()
        variances.append(
            {
                "item": str(item.get("item") or "").strip(),
                "changePercent": to_number(change) or 0.0,
                "type": variance_type if variance_type in VARIANCE_TYPES else "expense",
                "severity": severity if severity in SEVERITIES else "low",
            }
        )
    return variances
