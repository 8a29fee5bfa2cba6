"""Parallel per-host execution of task sequences."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from wpdeploy.errors import DeployError, HostUnreachableError
from wpdeploy.models import HostRecord, HostResult, Task


class HostFanout:
    """Runs one task sequence per host on a bounded pool.

    Hosts never wait on each other; a failing host stops only its own sequence.
    Setting `stop_event` makes running hosts stop at their next task boundary.
    """

    def __init__(self, forks: int, logger, console, report, stop_event: Optional[threading.Event] = None):
        self.forks = max(1, forks)
        self.logger = logger
        self.console = console
        self.report = report
        self.stop_event = stop_event or threading.Event()

    def run(self, hosts: List[HostRecord], tasks: List[Task]) -> List[HostResult]:
        pool = ThreadPoolExecutor(max_workers=min(self.forks, len(hosts)) or 1, thread_name_prefix="host")
        try:
            futures = [pool.submit(self.run_host, host, tasks) for host in hosts]
            results = [future.result() for future in futures]
        except KeyboardInterrupt:
            self.stop_event.set()
            pool.shutdown(wait=False, cancel_futures=True)
            raise
        pool.shutdown(wait=True)
        return results

    def run_host(self, host: HostRecord, tasks: List[Task]) -> HostResult:
        result = HostResult(host=host.name)
        facts: Dict[str, Any] = {}
        self.report.host_started(host.name)

        for task in tasks:
            if self.stop_event.is_set():
                self.logger.info("[%s] stopping before %s: run interrupted", host.name, task.name)
                return result
            step: Dict[str, Any] = {
                "name": task.name,
                "status": "running",
                "changed": False,
                "started_at": datetime.now(timezone.utc).isoformat(),
                "duration_seconds": None,
                "error": None,
            }
            started = time.monotonic()
            try:
                changed = bool(task.action(host, facts))
            except HostUnreachableError as exc:
                self._fail(result, step, "unreachable", str(exc))
            except DeployError as exc:
                self._fail(result, step, "failed", str(exc))
            except Exception as exc:
                self.logger.exception("[%s] unexpected error in %s", host.name, task.name)
                self._fail(result, step, "failed", f"Unexpected error: {exc}")
            else:
                step["status"] = "changed" if changed else "ok"
                step["changed"] = changed
                result.ok += 1
                if changed:
                    result.changed += 1

            step["duration_seconds"] = round(time.monotonic() - started, 3)
            result.steps.append(step)
            if self.stop_event.is_set():
                return result
            self.report.step_finished(host.name, step)
            self._print_step(host, step)
            if result.status != "ok":
                break

        self.report.host_finished(result)
        return result

    @staticmethod
    def _fail(result: HostResult, step: Dict[str, Any], status: str, error: str):
        step["status"] = status
        step["error"] = error
        result.status = status
        result.error = error

    def _print_step(self, host: HostRecord, step: Dict[str, Any]):
        colors = {"ok": "green", "changed": "yellow", "failed": "red", "unreachable": "red"}
        status = step["status"]
        color = colors.get(status, "white")
        self.console.print(f"{status}: [{host.name}] => {step['name']}", style=color, markup=False)
        if step["error"]:
            self.console.print(f"  {step['error']}", style=color, markup=False)
            self.logger.error("[%s] %s: %s", host.name, step["name"], step["error"])
