"""Idempotent Docker host preparation (install-packages)."""

from typing import Any, Dict, List, Optional

from wpdeploy.constants import DEFAULT_PACKAGES, DOCKER_GROUP, DOCKER_SERVICE, PACKAGE_MANAGERS
from wpdeploy.errors import DeployError
from wpdeploy.errors_catalog import actionable_error
from wpdeploy.models import HostRecord, Task


class PackageService:
    """Installs the configured packages and readies the Docker service on a host."""

    def __init__(self, remote, logger, packages: Optional[List[str]] = None):
        self.remote = remote
        self.logger = logger
        self.packages = list(packages) if packages else None

    def tasks(self) -> List[Task]:
        return [
            Task("detect_package_manager", self.detect_package_manager),
            Task("update_package_cache", self.update_package_cache),
            Task("install_packages", self.install_packages),
            Task("ensure_docker_service", self.ensure_docker_service),
            Task("add_user_to_docker_group", self.add_user_to_docker_group),
            Task("verify_packages", self.verify_packages),
        ]

    def packages_for(self, family: str) -> List[str]:
        return self.packages or list(DEFAULT_PACKAGES[family])

    def detect_package_manager(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        probe = " || ".join(f"command -v {name}" for name in PACKAGE_MANAGERS)
        result = self.remote.run(host, ["sh", "-c", probe], become=False, check=False)
        found = (result.stdout or "").strip().splitlines()
        if result.returncode != 0 or not found:
            raise DeployError(
                f"No supported package manager ({', '.join(PACKAGE_MANAGERS)}) found on {host.name}."
            )

        binary = found[0].strip().rsplit("/", 1)[-1]
        facts["package_manager"] = "apt" if binary == "apt-get" else binary
        self.logger.debug("[%s] package manager: %s", host.name, facts["package_manager"])
        return False

    def update_package_cache(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        if facts["package_manager"] != "apt":
            return False
        self.remote.run(host, ["apt-get", "update", "-q"], become=True)
        return False

    def missing_packages(self, host: HostRecord, family: str) -> List[str]:
        missing = []
        for package in self.packages_for(family):
            if family == "apt":
                result = self.remote.run(
                    host,
                    ["dpkg-query", "-W", "-f=${Status}", package],
                    become=False,
                    check=False,
                )
                installed = result.returncode == 0 and "install ok installed" in (result.stdout or "")
            else:
                result = self.remote.run(host, ["rpm", "-q", package], become=False, check=False)
                installed = result.returncode == 0
            if not installed:
                missing.append(package)
        return missing

    def install_packages(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        family = facts["package_manager"]
        missing = self.missing_packages(host, family)
        if not missing:
            self.logger.debug("[%s] all packages already present", host.name)
            return False

        self.logger.info("[%s] installing %s", host.name, ", ".join(missing))
        if family == "apt":
            self.remote.run(
                host,
                ["apt-get", "install", "-y", "-q"] + missing,
                become=True,
                env={"DEBIAN_FRONTEND": "noninteractive"},
            )
        else:
            self.remote.run(host, [family, "install", "-y"] + missing, become=True)
        return True

    def ensure_docker_service(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        active = self.remote.run(
            host, ["systemctl", "is-active", "--quiet", DOCKER_SERVICE], become=True, check=False
        )
        enabled = self.remote.run(
            host, ["systemctl", "is-enabled", "--quiet", DOCKER_SERVICE], become=True, check=False
        )
        if active.returncode == 0 and enabled.returncode == 0:
            return False

        self.remote.run(host, ["systemctl", "enable", "--now", DOCKER_SERVICE], become=True)
        return True

    def add_user_to_docker_group(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        user = self.remote.login_user(host)
        if not user or user == "root":
            return False

        result = self.remote.run(host, ["id", "-nG", user], become=False, check=False)
        if result.returncode == 0 and DOCKER_GROUP in (result.stdout or "").split():
            return False

        self.remote.run(host, ["usermod", "-aG", DOCKER_GROUP, user], become=True)
        return True

    def verify_packages(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        missing = self.missing_packages(host, facts["package_manager"])
        if missing:
            raise DeployError(
                actionable_error("packages_missing", host=host.name, packages=", ".join(missing))
            )
        return False
