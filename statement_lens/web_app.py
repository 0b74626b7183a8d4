import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import load_config
from .errors import AnalysisError, MalformedSpreadsheet, ValidationError
from .llm_client import LLMClient
from .models import AnalysisDepth
from .orchestrator import create_analysis, describe_progress, run_pipeline
from .spreadsheet import is_spreadsheet_upload
from .storage import AnalysisStore, FAILED, InMemoryAnalysisStore, PROCESSING


BASE_DIR = Path(__file__).resolve().parents[1]

STORE = InMemoryAnalysisStore()
RUN_TIMEOUT_SECONDS = 300
EXPORT_FORMATS = {"pdf", "excel"}


class UploadResponse(BaseModel):
    analysis_id: str
    status: str
    message: str


class ProgressResponse(BaseModel):
    id: str
    status: str
    progress: int
    current_step: str


def create_app(
    llm_factory: Optional[Callable[[str, str, str, str], Any]] = None,
    store: Optional[AnalysisStore] = None,
) -> FastAPI:
    app = FastAPI(title="Statement Lens")

    store = store or STORE
    use_default_factory = llm_factory is None

    if use_default_factory:
        def llm_factory(provider: str, model: str, api_key: str, base_url: str):
            config = load_config()
            return LLMClient(
                provider=provider,
                model=model,
                api_key=api_key,
                base_url=base_url,
                timeout=config.llm_timeout_seconds,
                max_retries=config.llm_max_retries,
                api_version=config.llm_api_version,
            )

    @app.post("/api/analysis/upload")
    async def upload_analysis(
        file: UploadFile = File(...),
        analysis_depth: str = Form("basic"),
        mode: str = "async",
    ):
        config = load_config()
        filename = (file.filename or "").strip()
        if not filename:
            raise HTTPException(status_code=400, detail="No file uploaded")
        if not is_spreadsheet_upload(filename, file.content_type):
            raise HTTPException(status_code=400, detail="Only Excel (.xlsx, .xlsm) or CSV files are allowed")

        content = await file.read()
        if not content:
            raise HTTPException(status_code=400, detail="Uploaded file is empty")
        if len(content) > config.max_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File exceeds the {config.max_upload_bytes} byte upload limit",
            )

        try:
            depth = AnalysisDepth.parse(analysis_depth)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

        if not config.llm_api_key and use_default_factory:
            raise HTTPException(status_code=400, detail="Missing API key")

        llm = llm_factory(config.llm_provider, config.llm_model_name, config.llm_api_key, config.llm_base_url)
        analysis_id = create_analysis(store, filename, len(content), depth)
        output_dir = _analysis_output_dir(config.output_dir, analysis_id)

        if mode == "sync":
            try:
                record = await run_in_threadpool(
                    run_pipeline, analysis_id, content, depth, llm, store, output_dir, filename
                )
            except (MalformedSpreadsheet, ValidationError) as exc:
                raise HTTPException(
                    status_code=422,
                    detail={"analysis_id": analysis_id, "message": str(exc)},
                )
            except AnalysisError as exc:
                raise HTTPException(
                    status_code=502,
                    detail={"analysis_id": analysis_id, "message": str(exc)},
                )
            return JSONResponse(record)

        thread = threading.Thread(
            target=_run_pipeline_background,
            args=(analysis_id, content, depth, llm, store, output_dir, filename),
            daemon=True,
        )
        thread.start()

        return UploadResponse(
            analysis_id=analysis_id,
            status=PROCESSING,
            message="File uploaded successfully. Analysis in progress.",
        )

    @app.get("/api/analysis/{analysis_id}")
    def get_analysis(analysis_id: str):
        return JSONResponse(_get_or_404(store, analysis_id))

    @app.get("/api/analysis/{analysis_id}/progress", response_model=ProgressResponse)
    def get_progress(analysis_id: str):
        record = _get_or_404(store, analysis_id)
        if record.get("status") == PROCESSING:
            last_update = record.get("updated_at", record.get("created_at", time.time()))
            if time.time() - last_update > RUN_TIMEOUT_SECONDS:
                store.update_if_status(analysis_id, PROCESSING, {"status": FAILED, "error": "Analysis timed out"})
                record = _get_or_404(store, analysis_id)
        return describe_progress(record)

    @app.get("/api/analysis/{analysis_id}/export/{export_format}")
    def export_analysis(analysis_id: str, export_format: str):
        if export_format not in EXPORT_FORMATS:
            raise HTTPException(status_code=404, detail=f"Unknown export format: {export_format}")
        _get_or_404(store, analysis_id)
        raise HTTPException(status_code=501, detail=f"{export_format.upper()} export not yet implemented")

    return app


def _get_or_404(store: AnalysisStore, analysis_id: str) -> Dict[str, Any]:
    record = store.get(analysis_id)
    if not record:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return record


def _analysis_output_dir(output_dir: str, analysis_id: str) -> Path:
    root = Path(output_dir)
    if not root.is_absolute():
        root = BASE_DIR / root
    return root / f"analysis_{analysis_id}"


def _run_pipeline_background(
    analysis_id: str,
    content: bytes,
    depth: AnalysisDepth,
    llm,
    store: AnalysisStore,
    output_dir: Path,
    filename: Optional[str],
) -> None:
    try:
        run_pipeline(analysis_id, content, depth, llm, store, output_dir, filename)
    except Exception as exc:
        _fail_analysis(store, analysis_id, str(exc))


def _fail_analysis(store: AnalysisStore, analysis_id: str, error: str) -> None:
    store.update_if_status(analysis_id, PROCESSING, {"status": FAILED, "error": error})


app = create_app()
