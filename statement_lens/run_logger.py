import json
import time
from pathlib import Path
from typing import Any, Dict, Optional


def log_step(output_dir: Optional[Path], analysis_id: str, step: str, payload: Dict[str, Any]) -> None:
    """Append one JSON line per pipeline step; a missing output_dir disables the log."""
    if output_dir is None:
        return
    output_dir.mkdir(parents=True, exist_ok=True)
    entry = {"ts": time.time(), "analysis_id": analysis_id, "step": step, "payload": payload}
    with open(output_dir / "run.log", "a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
