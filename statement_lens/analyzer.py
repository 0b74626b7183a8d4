import json
from typing import Any, Dict, List

from .errors import AnalysisError
from .models import (
    AnalysisDepth,
    AnalysisResult,
    DEFAULT_STATEMENT_TYPE,
    STATEMENT_TYPES,
)


ANALYST_SYSTEM_PROMPT = (
    "You are a senior financial analyst with expertise in financial statement analysis. "
    "Analyze the provided financial data and generate insights in JSON format."
)
CLASSIFIER_SYSTEM_PROMPT = (
    "You are a financial analyst. Determine if the provided data represents "
    "a Balance Sheet or Income Statement."
)
DETECTION_SAMPLE_SIZE = 20
VARIANCE_THRESHOLD_PERCENT = 10
ANALYSIS_MAX_TOKENS = 2000
DETECTION_MAX_TOKENS = 100

ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "statementType": {"type": "string", "enum": list(STATEMENT_TYPES)},
        "insights": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "type": {"type": "string", "enum": ["positive", "warning", "info"]},
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "severity": {"type": "string", "enum": ["low", "medium", "high"]},
                },
                "required": ["type", "title", "description"],
            },
        },
        "recommendations": {"type": "array", "items": {"type": "string"}},
        "keyMetrics": {"type": "object"},
        "variances": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "item": {"type": "string"},
                    "changePercent": {"type": "number"},
                    "type": {
                        "type": "string",
                        "enum": ["revenue", "expense", "asset", "liability", "equity"],
                    },
                    "severity": {"type": "string", "enum": ["low", "medium", "high"]},
                },
                "required": ["item", "changePercent", "type", "severity"],
            },
        },
    },
    "required": ["statementType", "insights", "recommendations", "keyMetrics", "variances"],
}

STATEMENT_TYPE_SCHEMA = {
    "type": "object",
    "properties": {
        "statementType": {"type": "string", "enum": list(STATEMENT_TYPES)},
        "confidence": {"type": "number"},
    },
    "required": ["statementType"],
}

KEY_METRIC_NAMES = [
    "totalRevenue",
    "netIncome",
    "grossMargin",
    "operatingMargin",
    "netMargin",
    "totalAssets",
    "totalLiabilities",
    "totalEquity",
    "currentRatio",
    "quickRatio",
    "debtToEquity",
    "debtToAssets",
    "equityRatio",
    "workingCapital",
    "roa",
    "roe",
    "assetTurnover",
]


def build_analysis_prompt(records: List[Dict[str, Any]], depth: AnalysisDepth) -> str:
    profile = depth.profile
    data_text = json.dumps(records, ensure_ascii=False, indent=2)
    return (
        f"Analyze this financial statement data and provide insights based on "
        f"{depth.value} analysis depth.\n\n"
        f"Financial Data:\n{data_text}\n\n"
        "Analysis Requirements:\n"
        "1. Determine if this is a Balance Sheet or Income Statement\n"
        f"2. {profile.instruction}\n"
        f"3. Identify variances exceeding {VARIANCE_THRESHOLD_PERCENT}% threshold\n"
        "4. Calculate relevant financial ratios where possible\n"
        "5. Provide actionable recommendations\n\n"
        f"Expected output size: {profile.expected_insights} insights, "
        f"{profile.expected_key_metrics} key metrics.\n"
        f"Use these keyMetrics names where applicable (null when unknown): "
        f"{', '.join(KEY_METRIC_NAMES)}.\n"
        "Percentages (margins, roa, roe, changePercent) are expressed in percent, e.g. 12.5."
    )


def analyze_financial_data(
    records: List[Dict[str, Any]],
    depth: AnalysisDepth,
    llm,
) -> AnalysisResult:
    depth = AnalysisDepth.parse(depth)
    try:
        payload = llm.generate_json(
            ANALYST_SYSTEM_PROMPT,
            build_analysis_prompt(records, depth),
            ANALYSIS_SCHEMA,
            max_tokens=ANALYSIS_MAX_TOKENS,
        )
    except Exception as exc:
        raise AnalysisError(f"Failed to analyze financial data: {exc}") from exc
    if not isinstance(payload, dict):
        raise AnalysisError("Failed to analyze financial data: reply is not a JSON object")
    return AnalysisResult.from_payload(payload)


def detect_statement_type(records: List[Dict[str, Any]], llm) -> str:
    """Classify the statement from its first rows; any failure yields the income statement default."""
    sample = records[:DETECTION_SAMPLE_SIZE]
    try:
        payload = llm.generate_json(
            CLASSIFIER_SYSTEM_PROMPT,
            "Analyze this financial data and determine the statement type. Look for "
            "characteristic line items like Assets/Liabilities/Equity for Balance Sheet "
            "or Revenue/Expenses for Income Statement.\n\n"
            f"Data: {json.dumps(sample, ensure_ascii=False)}",
            STATEMENT_TYPE_SCHEMA,
            temperature=0.1,
            max_tokens=DETECTION_MAX_TOKENS,
        )
    except Exception:
        return DEFAULT_STATEMENT_TYPE
    statement_type = payload.get("statementType") if isinstance(payload, dict) else None
    if statement_type not in STATEMENT_TYPES:
        return DEFAULT_STATEMENT_TYPE
    return statement_type
