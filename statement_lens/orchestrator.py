from pathlib import Path
from typing import Any, Dict, Optional

from .analyzer import analyze_financial_data, detect_statement_type
from .models import AnalysisDepth
from .normalizer import normalize_table
from .ratio_calculator import derive_charts, derive_ratios
from .run_logger import log_step
from .spreadsheet import extract_table
from .storage import AnalysisStore, COMPLETED, FAILED, PROCESSING, new_analysis_record
from .validator import validate_table


def create_analysis(
    store: AnalysisStore,
    filename: str,
    file_size: int,
    depth: AnalysisDepth,
) -> str:
    depth = AnalysisDepth.parse(depth)
    return store.create(new_analysis_record(filename, file_size, depth.value))


def run_pipeline(
    analysis_id: str,
    content: bytes,
    depth: AnalysisDepth,
    llm,
    store: AnalysisStore,
    output_dir: Optional[Path] = None,
    filename: Optional[str] = None,
) -> Dict[str, Any]:
    """Extract, validate, normalize, analyze and derive for one uploaded file.

    Any failure marks the record failed and is re-raised; nothing is retried.
    Results arriving after the record left `processing` (e.g. timed out) are
    discarded.
    """
    try:
        depth = AnalysisDepth.parse(depth)
        table = extract_table(content, filename=filename)
        log_step(output_dir, analysis_id, "extract", table.to_dict()["metadata"])

        warnings = validate_table(table)
        log_step(output_dir, analysis_id, "validate", {"warnings": warnings})

        records = normalize_table(table)
        store.update_if_status(analysis_id, PROCESSING, {"raw_data": records, "warnings": warnings})
        log_step(output_dir, analysis_id, "normalize", {"record_count": len(records)})

        statement_type = detect_statement_type(records, llm)
        store.update_if_status(analysis_id, PROCESSING, {"statement_type": statement_type})
        log_step(output_dir, analysis_id, "detect_statement_type", {"statement_type": statement_type})

        analysis = analyze_financial_data(records, depth, llm)
        log_step(output_dir, analysis_id, "analysis", analysis.to_dict())

        ratios = derive_ratios(analysis.key_metrics)
        chart_data = derive_charts(records, analysis)
        completed = store.update_if_status(
            analysis_id,
            PROCESSING,
            {
                "status": COMPLETED,
                "insights": analysis.insights,
                "recommendations": analysis.recommendations,
                "metrics": analysis.key_metrics,
                "variances": analysis.variances,
                "ratios": ratios,
                "chart_data": chart_data,
            },
        )
        if completed:
            log_step(output_dir, analysis_id, "completed", {"ratios": ratios})
        else:
            log_step(output_dir, analysis_id, "discarded", {"status": _current_status(store, analysis_id)})
    except Exception as exc:
        store.update_if_status(analysis_id, PROCESSING, {"status": FAILED, "error": str(exc)})
        log_step(output_dir, analysis_id, "failed", {"error": str(exc), "type": type(exc).__name__})
        raise
    return store.get(analysis_id) or {}


def _current_status(store: AnalysisStore, analysis_id: str) -> Optional[str]:
    record = store.get(analysis_id)
    return record.get("status") if record else None


def describe_progress(record: Dict[str, Any]) -> Dict[str, Any]:
    status = record.get("status")
    if status == PROCESSING:
        if record.get("raw_data"):
            progress, current_step = 60, "Generating AI insights..."
        else:
            progress, current_step = 20, "Processing file..."
    elif status == COMPLETED:
        progress, current_step = 100, "Analysis complete"
    else:
        progress, current_step = 0, "Analysis failed"
    return {
        "id": record.get("id"),
        "status": status,
        "progress": progress,
        "current_step": current_step,
    }
