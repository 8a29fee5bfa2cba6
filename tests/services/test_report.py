import json

from wpdeploy.models import HostResult
from wpdeploy.services.report import RunReportService


class DummyLogger:
    def warning(self, *_args, **_kwargs):
        return None


def test_report_records_hosts_and_steps(tmp_path):
    report_file = tmp_path / "reports" / "run.json"
    service = RunReportService(str(report_file), logger=DummyLogger())

    service.start_run("abc123", "install-packages", {"inventory": "hosts"})
    service.host_started("web-1")
    service.step_finished("web-1", {"name": "install_packages", "status": "changed", "changed": True})
    service.host_finished(HostResult(host="web-1", ok=1, changed=1))
    service.finalize("success")

    data = json.loads(report_file.read_text(encoding="utf-8"))
    assert data["run_id"] == "abc123"
    assert data["operation"] == "install-packages"
    assert data["status"] == "success"
    assert data["duration_seconds"] is not None
    assert data["hosts"]["web-1"]["status"] == "ok"
    assert data["hosts"]["web-1"]["changed"] == 1
    assert data["hosts"]["web-1"]["steps"][0]["name"] == "install_packages"


def test_report_without_file_stays_in_memory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    service = RunReportService(None, logger=DummyLogger())

    service.start_run("abc123", "deploy-application", {})
    service.finalize("failed", error="inventory missing")

    assert service.report["error"] == "inventory missing"
    assert list(tmp_path.iterdir()) == []


def test_report_ignores_host_updates_after_finalize(tmp_path):
    report_file = tmp_path / "run.json"
    service = RunReportService(str(report_file), logger=DummyLogger())

    service.start_run("abc123", "deploy-application", {})
    service.host_started("web-1")
    service.finalize("aborted", error="Operation cancelled by user.")
    service.step_finished("web-1", {"name": "wait_for_mysql", "status": "failed", "changed": False})
    service.host_finished(HostResult(host="web-1", status="failed"))

    data = json.loads(report_file.read_text(encoding="utf-8"))
    assert data["status"] == "aborted"
    assert data["hosts"]["web-1"] == {"status": "running", "steps": [], "error": None}
