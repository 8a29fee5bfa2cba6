"""Run report generation service."""

import json
import os
import tempfile
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from wpdeploy.models import HostResult


class RunReportService:
    """Collects per-host step outcomes and writes an optional JSON report.

    Hosts report concurrently, so every mutation holds the lock. Host updates
    arriving after `finalize` are dropped.
    """

    def __init__(self, report_file: Optional[str], logger):
        self.report_file = report_file
        self.logger = logger
        self._lock = threading.Lock()
        self._finalized = False
        self.report: Dict[str, Any] = {
            "run_id": None,
            "operation": None,
            "status": "running",
            "started_at": None,
            "finished_at": None,
            "duration_seconds": None,
            "metadata": {},
            "hosts": {},
            "error": None,
        }

    def start_run(self, run_id: str, operation: str, metadata: Dict[str, Any]):
        with self._lock:
            self._finalized = False
            self.report["run_id"] = run_id
            self.report["operation"] = operation
            self.report["status"] = "running"
            self.report["started_at"] = self._now()
            self.report["metadata"] = metadata
            self._write()

    def host_started(self, host: str):
        with self._lock:
            if self._finalized:
                return
            self.report["hosts"][host] = {"status": "running", "steps": [], "error": None}
            self._write()

    def step_finished(self, host: str, step: Dict[str, Any]):
        with self._lock:
            if self._finalized:
                return
            entry = self.report["hosts"].setdefault(host, {"status": "running", "steps": [], "error": None})
            entry["steps"].append(dict(step))
            self._write()

    def host_finished(self, result: HostResult):
        with self._lock:
            if self._finalized:
                return
            entry = self.report["hosts"].setdefault(result.host, {"steps": []})
            entry.update(
                {
                    "status": result.status,
                    "ok": result.ok,
                    "changed": result.changed,
                    "error": result.error,
                }
            )
            self._write()

    def finalize(self, status: str, error: Optional[str] = None):
        with self._lock:
            self._finalized = True
            self.report["status"] = status
            self.report["finished_at"] = self._now()
            if self.report.get("started_at"):
                started_at = datetime.fromisoformat(self.report["started_at"])
                finished_at = datetime.fromisoformat(self.report["finished_at"])
                self.report["duration_seconds"] = (finished_at - started_at).total_seconds()
            self.report["error"] = error
            self._write()

    def _write(self):
        if not self.report_file:
            return

        os.makedirs(os.path.dirname(self.report_file) or ".", exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            prefix="run-report-",
            suffix=".json",
            dir=os.path.dirname(self.report_file) or ".",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(self.report, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.report_file)
        except OSError as exc:
            self.logger.warning("Could not write report file '%s': %s", self.report_file, exc)
            try:
                os.remove(temp_path)
            except OSError:
                pass

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
