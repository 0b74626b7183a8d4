import copy
import threading
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"


def new_analysis_record(
    filename: str,
    file_size: int,
    analysis_depth: str,
) -> Dict[str, Any]:
    return {
        "filename": filename,
        "file_size": file_size,
        "analysis_depth": analysis_depth,
        "status": PROCESSING,
        "statement_type": None,
        "raw_data": None,
        "metrics": None,
        "insights": None,
        "recommendations": None,
        "chart_data": None,
        "variances": None,
        "ratios": None,
        "warnings": [],
        "error": None,
    }


class AnalysisStore(ABC):
    """Key-value store of analysis records keyed by an opaque analysis id."""

    @abstractmethod
    def create(self, fields: Dict[str, Any]) -> str:
        raise NotImplementedError

    @abstractmethod
    def update(self, analysis_id: str, fields: Dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def update_if_status(self, analysis_id: str, status: str, fields: Dict[str, Any]) -> bool:
        """Apply fields only while the record still has the given status."""
        raise NotImplementedError

    @abstractmethod
    def get(self, analysis_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError


class InMemoryAnalysisStore(AnalysisStore):
    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def create(self, fields: Dict[str, Any]) -> str:
        analysis_id = str(uuid.uuid4())
        now = time.time()
        record = copy.deepcopy(fields)
        record.update({"id": analysis_id, "created_at": now, "updated_at": now})
        record.setdefault("status", PROCESSING)
        with self._lock:
            self._records[analysis_id] = record
        return analysis_id

    def update(self, analysis_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            record = self._records.get(analysis_id)
            if record is None:
                return
            record.update(copy.deepcopy(fields))
            record["updated_at"] = time.time()

    def update_if_status(self, analysis_id: str, status: str, fields: Dict[str, Any]) -> bool:
        with self._lock:
            record = self._records.get(analysis_id)
            if record is None or record.get("status") != status:
                return False
            record.update(copy.deepcopy(fields))
            record["updated_at"] = time.time()
            return True

    def get(self, analysis_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._records.get(analysis_id)
            return copy.deepcopy(record) if record is not None else None

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
