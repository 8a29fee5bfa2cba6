"""Docker runtime services for wpdeploy."""

import time

from wpdeploy.constants import MYSQL_READY_INTERVAL_SECONDS, MYSQL_READY_RETRIES
from wpdeploy.errors import DeployError
from wpdeploy.errors_catalog import actionable_error
from wpdeploy.models import ContainerSpec, HostRecord


class DockerRuntimeService:
    """Drives the Docker CLI on a managed node."""

    def __init__(self, remote, logger, console, stop_event=None):
        self.remote = remote
        self.logger = logger
        self.console = console
        self.stop_event = stop_event

    def server_version(self, host: HostRecord) -> str:
        result = self.remote.run(
            host,
            ["docker", "version", "--format", "{{.Server.Version}}"],
            check=False,
        )
        version = (result.stdout or "").strip()
        if result.returncode != 0 or not version:
            raise DeployError(actionable_error("docker_unavailable", host=host.name))
        return version

    def ensure_network(self, host: HostRecord, network_name: str) -> bool:
        result = self.remote.run(host, ["docker", "network", "inspect", network_name], check=False)
        if result.returncode == 0:
            return False

        self.remote.run(host, ["docker", "network", "create", "--driver", "bridge", network_name])
        self.logger.info("[%s] created network %s", host.name, network_name)
        return True

    def remove_container(self, host: HostRecord, name: str) -> bool:
        exists = self.remote.run(
            host,
            ["docker", "container", "inspect", "--format", "{{.Id}}", name],
            check=False,
        )
        if exists.returncode != 0:
            return False

        self.remote.run(host, ["docker", "rm", "--force", name])
        return True

    def container_status(self, host: HostRecord, name: str) -> str:
        result = self.remote.run(
            host,
            ["docker", "container", "inspect", "--format", "{{.State.Status}}", name],
            check=False,
        )
        if result.returncode != 0:
            return "missing"
        return (result.stdout or "").strip()

    def run_container(self, host: HostRecord, spec: ContainerSpec) -> str:
        result = self.remote.run(host, spec.run_args(), env=spec.env)
        container_id = (result.stdout or "").strip()

        status = self.container_status(host, spec.name)
        if status != "running":
            logs = self.remote.run(host, ["docker", "logs", "--tail", "20", spec.name], check=False)
            message = actionable_error(
                "container_start_failed", name=spec.name, host=host.name, status=status
            )
            tail = ((logs.stdout or "") + (logs.stderr or "")).strip()
            if tail:
                message = f"{message}\n{tail}"
            raise DeployError(message)
        return container_id

    def recreate_container(self, host: HostRecord, spec: ContainerSpec) -> bool:
        if self.remove_container(host, spec.name):
            self.logger.info("[%s] removed existing container %s", host.name, spec.name)
        container_id = self.run_container(host, spec)
        self.logger.info("[%s] started %s (%s) from %s", host.name, spec.name, container_id[:12], spec.image)
        return True

    def wait_for_mysql(
        self,
        host: HostRecord,
        container_name: str,
        max_retries: int = MYSQL_READY_RETRIES,
        interval: float = MYSQL_READY_INTERVAL_SECONDS,
    ):
        self.console.print(f"[yellow]{host.name}: waiting for MySQL to accept connections...[/yellow]")

        cmd = [
            "docker",
            "exec",
            container_name,
            "mysqladmin",
            "ping",
            "-h",
            "127.0.0.1",
            "--silent",
        ]
        for _ in range(max_retries):
            if self.stop_event is not None and self.stop_event.is_set():
                raise DeployError(f"Stopped waiting for MySQL on {host.name}: run interrupted.")
            result = self.remote.run(host, cmd, check=False)
            if result.returncode == 0:
                return
            time.sleep(interval)

        raise DeployError(
            f"MySQL in container {container_name} on {host.name} failed to become ready. "
            "Check `docker logs` on the host and available memory."
        )
