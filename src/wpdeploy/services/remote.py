"""Command transport to managed nodes."""

import os
import shlex
import subprocess
from typing import Dict, List, Optional

from wpdeploy.constants import SSH_UNREACHABLE_RETURNCODE
from wpdeploy.errors import DeployError, HostUnreachableError
from wpdeploy.errors_catalog import actionable_error
from wpdeploy.models import ConnectionSettings, HostRecord


class RemoteExecutor:
    """Runs argv commands on a managed node over SSH or locally."""

    def __init__(
        self,
        command_runner,
        settings: ConnectionSettings,
        logger,
        retry_count: int = 0,
        retry_backoff_seconds: float = 0.0,
    ):
        self.command_runner = command_runner
        self.settings = settings
        self.logger = logger
        self.retry_count = retry_count
        self.retry_backoff_seconds = retry_backoff_seconds

    def login_user(self, host: HostRecord) -> Optional[str]:
        return host.user or self.settings.user

    def build_command(
        self,
        host: HostRecord,
        argv: List[str],
        become: Optional[bool] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> List[str]:
        use_become = self.settings.become if become is None else become
        if env:
            inner = ["sh", "-s"]
        else:
            inner = list(argv)
        if use_become:
            inner = ["sudo", "-n"] + inner

        if host.connection == "local":
            return inner

        cmd = [
            "ssh",
            "-o",
            "BatchMode=yes",
            "-o",
            "StrictHostKeyChecking=accept-new",
            "-o",
            f"ConnectTimeout={self.settings.connect_timeout}",
            "-p",
            str(host.port or self.settings.port),
        ]
        private_key = host.private_key or self.settings.private_key
        if private_key:
            cmd.extend(["-i", os.path.expanduser(private_key)])
        user = self.login_user(host)
        if user:
            cmd.extend(["-l", user])
        cmd.append(host.address)
        cmd.append(shlex.join(inner))
        return cmd

    @staticmethod
    def build_script(argv: List[str], env: Dict[str, str]) -> str:
        lines = ["set -e"]
        for key in sorted(env):
            lines.append(f"export {key}={shlex.quote(env[key])}")
        lines.append(f"exec {shlex.join(argv)}")
        return "\n".join(lines) + "\n"

    def run(
        self,
        host: HostRecord,
        argv: List[str],
        become: Optional[bool] = None,
        env: Optional[Dict[str, str]] = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        cmd = self.build_command(host, argv, become=become, env=env)
        input_text = self.build_script(argv, env) if env else None
        is_ssh = host.connection != "local"

        self.logger.debug("[%s] %s", host.name, shlex.join(argv))
        result = self.command_runner.run(
            cmd,
            timeout=self.settings.command_timeout,
            input_text=input_text,
            retry_count=self.retry_count if is_ssh else 0,
            retry_backoff_seconds=self.retry_backoff_seconds,
            retry_on_returncodes=[SSH_UNREACHABLE_RETURNCODE],
        )

        if is_ssh and result.returncode == SSH_UNREACHABLE_RETURNCODE:
            detail = (result.stderr or "").strip()
            message = actionable_error("host_unreachable", host=host.name)
            if detail:
                message = f"{message}\n{detail}"
            raise HostUnreachableError(message)

        if check and result.returncode != 0:
            message = f"Command failed ({result.returncode}) on {host.name}: {shlex.join(argv)}"
            stderr = (result.stderr or "").strip()
            if stderr:
                message = f"{message}\n{stderr}"
            raise DeployError(message)

        return result
