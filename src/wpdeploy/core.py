import logging
import threading
import uuid
from typing import Any, Dict, List, Optional

import requests
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from .constants import (
    ALL_GROUP,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_FORKS,
    DEFAULT_SSH_PORT,
    EXIT_ERROR,
    EXIT_HOST_FAILED,
    EXIT_HOST_UNREACHABLE,
    EXIT_OK,
)
from .errors import DeployError
from .models import AppSettings, ConnectionSettings, Credentials, HostRecord, HostResult, Task
from .services.application import ApplicationService
from .services.command_runner import CommandRunner
from .services.docker_runtime import DockerRuntimeService
from .services.fanout import HostFanout
from .services.http_check import HttpCheckService
from .services.inventory import Inventory, InventoryService
from .services.packages import PackageService
from .services.remote import RemoteExecutor
from .services.report import RunReportService

console = Console()
logger = logging.getLogger("wpdeploy")


class Deployer:
    OPERATIONS = ("install-packages", "deploy-application")

    def __init__(
        self,
        inventory_source: str,
        limit: Optional[str] = None,
        forks: int = DEFAULT_FORKS,
        user: Optional[str] = None,
        private_key: Optional[str] = None,
        ssh_port: int = DEFAULT_SSH_PORT,
        connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
        become: bool = True,
        command_timeout: Optional[float] = None,
        retry_count: int = 0,
        retry_backoff_seconds: float = 2.0,
        packages: Optional[List[str]] = None,
        app_settings: Optional[AppSettings] = None,
        verify_http: bool = False,
        report_file: Optional[str] = None,
        dry_run: bool = False,
        ec2_source_factory=None,
    ):
        if forks < 1:
            raise DeployError("--forks must be at least 1.")

        self.inventory_source = inventory_source
        self.limit = limit
        self.forks = forks
        self.packages = packages
        self.app_settings = app_settings or AppSettings()
        self.verify_http = verify_http
        self.report_file = report_file
        self.dry_run = dry_run
        self.run_id = uuid.uuid4().hex[:10]
        self.stop_event = threading.Event()

        self.connection = ConnectionSettings(
            user=user,
            private_key=private_key,
            port=ssh_port,
            connect_timeout=connect_timeout,
            become=become,
            command_timeout=command_timeout,
        )
        self.command_runner = CommandRunner(logger=logger)
        self.remote = RemoteExecutor(
            command_runner=self.command_runner,
            settings=self.connection,
            logger=logger,
            retry_count=retry_count,
            retry_backoff_seconds=retry_backoff_seconds,
        )
        self.inventory_service = InventoryService(logger=logger, ec2_source_factory=ec2_source_factory)
        self.report_service = RunReportService(report_file=report_file, logger=logger)
        self.fanout = HostFanout(
            forks=forks,
            logger=logger,
            console=console,
            report=self.report_service,
            stop_event=self.stop_event,
        )
        self.package_service = PackageService(remote=self.remote, logger=logger, packages=packages)
        self.docker_runtime_service = DockerRuntimeService(
            remote=self.remote,
            logger=logger,
            console=console,
            stop_event=self.stop_event,
        )
        self.http_check_service = HttpCheckService(logger=logger, requests_module=requests)

    def load_inventory(self) -> Inventory:
        return self.inventory_service.load(self.inventory_source)

    def select_hosts(self) -> List[HostRecord]:
        inventory = self.load_inventory()
        hosts = inventory.select(self.limit)
        logger.info("Selected %s host(s): %s", len(hosts), ", ".join(host.name for host in hosts))
        return hosts

    def build_application_service(self, credentials: Optional[Credentials]) -> ApplicationService:
        return ApplicationService(
            docker_runtime=self.docker_runtime_service,
            settings=self.app_settings,
            credentials=credentials,
            logger=logger,
            http_check=self.http_check_service if self.verify_http else None,
        )

    def install_packages(self) -> int:
        return self._run("install-packages", self.package_service.tasks())

    def deploy_application(self, credentials: Optional[Credentials]) -> int:
        """Recreates MySQL and WordPress on every selected host.

        `credentials` may be None only for a dry run.
        """
        if credentials is None and not self.dry_run:
            raise DeployError("Credentials are required to deploy the application.")
        application = self.build_application_service(credentials)
        return self._run("deploy-application", application.tasks(), details=application.describe())

    def render_inventory(self) -> Tree:
        inventory = self.load_inventory()
        tree = Tree(f"@{ALL_GROUP}")
        for group in inventory.group_names():
            if group == ALL_GROUP:
                continue
            branch = tree.add(f"@{group}")
            for name in inventory.groups[group]:
                host = inventory.hosts[name]
                label = name
                if host.instance_id:
                    label = f"{name} ({host.instance_id}, {host.availability_zone or '-'}, {host.state or '-'})"
                branch.add(label)
        return tree

    def _build_metadata(self, operation: str, details: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        metadata = {
            "operation": operation,
            "inventory": self.inventory_source,
            "limit": self.limit,
            "forks": self.forks,
            "become": self.connection.become,
            "dry_run": self.dry_run,
        }
        if details:
            metadata.update(details)
        return metadata

    def print_plan(self, operation: str, hosts: List[HostRecord], tasks: List[Task]):
        console.print(f"[bold blue]Dry run: {operation}[/bold blue]")
        for host in hosts:
            console.print(f"[blue]{host.name}[/blue] ({host.address})", highlight=False)
            for index, task in enumerate(tasks, start=1):
                console.print(f"  {index}. {task.name}")

    def print_recap(self, results: List[HostResult]):
        table = Table(title="PLAY RECAP")
        table.add_column("Host")
        table.add_column("ok", justify="right", style="green")
        table.add_column("changed", justify="right", style="yellow")
        table.add_column("unreachable", justify="right", style="red")
        table.add_column("failed", justify="right", style="red")
        for result in results:
            table.add_row(
                result.host,
                str(result.ok),
                str(result.changed),
                "1" if result.unreachable else "0",
                "1" if result.failed else "0",
            )
        console.print(table)

    @staticmethod
    def exit_code_for(results: List[HostResult]) -> int:
        if any(result.failed for result in results):
            return EXIT_HOST_FAILED
        if any(result.unreachable for result in results):
            return EXIT_HOST_UNREACHABLE
        return EXIT_OK

    def _run(self, operation: str, tasks: List[Task], details: Optional[Dict[str, Any]] = None) -> int:
        exit_code = EXIT_ERROR
        report_status = "failed"
        report_error: Optional[str] = None

        try:
            logger.info("Starting %s (run %s)...", operation, self.run_id)
            self.report_service.start_run(
                run_id=self.run_id,
                operation=operation,
                metadata=self._build_metadata(operation, details),
            )

            hosts = self.select_hosts()

            if self.dry_run:
                self.print_plan(operation, hosts, tasks)
                report_status = "dry_run"
                exit_code = EXIT_OK
                return exit_code

            results = self.fanout.run(hosts, tasks)
            self.print_recap(results)

            exit_code = self.exit_code_for(results)
            if exit_code == EXIT_OK:
                report_status = "success"
            else:
                bad_hosts = [result.host for result in results if result.status != "ok"]
                report_error = f"{len(bad_hosts)} host(s) did not complete: {', '.join(bad_hosts)}"
                logger.error(report_error)
            return exit_code

        except KeyboardInterrupt:
            self.stop_event.set()
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            report_status = "aborted"
            report_error = "Operation cancelled by user."
            exit_code = EXIT_ERROR
            return exit_code
        except DeployError as exc:
            console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}", highlight=False)
            logger.error(str(exc))
            report_status = "failed"
            report_error = str(exc)
            exit_code = EXIT_ERROR
            return exit_code
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {escape(str(exc))}")
            logger.exception("Unexpected error")
            report_status = "failed"
            report_error = str(exc)
            exit_code = EXIT_ERROR
            return exit_code
        finally:
            self.report_service.finalize(report_status, error=report_error)
