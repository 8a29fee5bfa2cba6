"""Configuration loader for wpdeploy."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from wpdeploy.constants import SECRET_ENV_VARS
from wpdeploy.errors import DeployError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "inventory",
        "limit",
        "forks",
        "user",
        "private_key",
        "ssh_port",
        "connect_timeout",
        "become",
        "command_timeout",
        "retry_count",
        "retry_backoff_seconds",
        "verbose",
        "log_file",
        "report_file",
        "dry_run",
        "packages",
        "verify_http",
        "network_name",
        "mysql_container_name",
        "wordpress_container_name",
        "mysql_image",
        "wordpress_image",
        "wordpress_port",
        "mysql_database",
    }
    INTEGER_KEYS = {"forks", "ssh_port", "connect_timeout", "retry_count", "wordpress_port"}
    NUMBER_KEYS = {"command_timeout", "retry_backoff_seconds"}
    BOOLEAN_KEYS = {"become", "verbose", "dry_run", "verify_http"}

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise DeployError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise DeployError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise DeployError("Config file must contain a YAML mapping at the root.")

        secrets = sorted(set(parsed.keys()) & set(SECRET_ENV_VARS))
        if secrets:
            raise DeployError(
                f"Credentials are never read from config files: {', '.join(secrets)}. "
                "Enter them at the prompt instead."
            )

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise DeployError(f"Unknown configuration keys: {unknown_list}")

        for key in sorted(self.INTEGER_KEYS & set(parsed)):
            value = parsed[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise DeployError(f"Config key '{key}' must be an integer, got: {value!r}")

        for key in sorted(self.NUMBER_KEYS & set(parsed)):
            value = parsed[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise DeployError(f"Config key '{key}' must be a number, got: {value!r}")

        for key in sorted(self.BOOLEAN_KEYS & set(parsed)):
            if not isinstance(parsed[key], bool):
                raise DeployError(f"Config key '{key}' must be true or false, got: {parsed[key]!r}")

        packages = parsed.get("packages")
        if packages is not None and (
            not isinstance(packages, list) or not all(isinstance(item, str) and item for item in packages)
        ):
            raise DeployError("Config key 'packages' must be a list of package names.")

        return parsed
