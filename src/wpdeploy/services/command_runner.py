"""Subprocess execution service for wpdeploy."""

import subprocess
import time
from typing import Iterable, List, Optional

from wpdeploy.errors import DeployError


class CommandRunner:
    """Runs control-node commands and hands back the completed process.

    Output is captured but never logged: `docker inspect` and friends echo
    container environments. `input_text` is written to the child's stdin,
    so callers use it to ship secret-bearing scripts to remote shells.
    """

    def __init__(self, logger):
        self.logger = logger

    def run(
        self,
        cmd: List[str],
        timeout: Optional[float] = None,
        input_text: Optional[str] = None,
        retry_count: int = 0,
        retry_backoff_seconds: float = 0.0,
        retry_on_returncodes: Optional[Iterable[int]] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        max_attempts = max(1, retry_count + 1)
        retry_codes = set(retry_on_returncodes or [])
        attempt = 0

        while True:
            attempt += 1
            try:
                result = subprocess.run(
                    cmd,
                    text=True,
                    input=input_text,
                    capture_output=True,
                    timeout=timeout,
                )
            except FileNotFoundError as exc:
                raise DeployError(
                    f"Required command not found: {cmd[0]}. Please install it on the control node."
                ) from exc
            except subprocess.TimeoutExpired as exc:
                if attempt < max_attempts:
                    self.logger.warning(
                        "Command timed out on attempt %s/%s. Retrying in %.1fs: %s",
                        attempt,
                        max_attempts,
                        retry_backoff_seconds,
                        cmd_str,
                    )
                    time.sleep(retry_backoff_seconds)
                    continue
                raise DeployError(f"Command timed out after {timeout}s: {cmd_str}") from exc
            except OSError as exc:
                raise DeployError(f"Failed to execute command: {cmd_str}. {exc}") from exc

            if result.returncode == 0:
                return result

            can_retry = attempt < max_attempts and (not retry_codes or result.returncode in retry_codes)
            if not can_retry:
                self.logger.debug("Command exited with %s: %s", result.returncode, cmd_str)
                return result

            self.logger.warning(
                "Command exited with %s on attempt %s/%s and will be retried in %.1fs: %s",
                result.returncode,
                attempt,
                max_attempts,
                retry_backoff_seconds,
                cmd_str,
            )
            time.sleep(retry_backoff_seconds)
