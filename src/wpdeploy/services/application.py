"""WordPress + MySQL container deployment (deploy-application)."""

from typing import Any, Dict, List, Optional

from wpdeploy.constants import MYSQL_PORT, WORDPRESS_CONTAINER_PORT
from wpdeploy.models import AppSettings, ContainerSpec, Credentials, HostRecord, Task


class ApplicationService:
    """Builds the container specs and the per-host deployment sequence."""

    def __init__(
        self,
        docker_runtime,
        settings: AppSettings,
        credentials: Optional[Credentials],
        logger,
        http_check=None,
    ):
        self.docker = docker_runtime
        self.settings = settings
        self.credentials = credentials
        self.logger = logger
        self.http_check = http_check

    def mysql_spec(self) -> ContainerSpec:
        return ContainerSpec(
            name=self.settings.mysql_container_name,
            image=self.settings.mysql_image,
            network=self.settings.network_name,
            env={
                "MYSQL_ROOT_PASSWORD": self.credentials.mysql_root_password,
                "MYSQL_DATABASE": self.settings.mysql_database,
                "MYSQL_USER": self.credentials.wordpress_db_user,
                "MYSQL_PASSWORD": self.credentials.wordpress_db_password,
            },
        )

    def wordpress_spec(self) -> ContainerSpec:
        return ContainerSpec(
            name=self.settings.wordpress_container_name,
            image=self.settings.wordpress_image,
            network=self.settings.network_name,
            ports=((self.settings.wordpress_port, WORDPRESS_CONTAINER_PORT),),
            env={
                # containers on the same network resolve each other by name
                "WORDPRESS_DB_HOST": f"{self.settings.mysql_container_name}:{MYSQL_PORT}",
                "WORDPRESS_DB_USER": self.credentials.wordpress_db_user,
                "WORDPRESS_DB_PASSWORD": self.credentials.wordpress_db_password,
                "WORDPRESS_DB_NAME": self.settings.mysql_database,
            },
        )

    def tasks(self) -> List[Task]:
        tasks = [
            Task("check_docker", self.check_docker),
            Task("ensure_network", self.ensure_network),
            Task("recreate_mysql", self.recreate_mysql),
            Task("wait_for_mysql", self.wait_for_mysql),
            Task("recreate_wordpress", self.recreate_wordpress),
        ]
        if self.http_check is not None:
            tasks.append(Task("verify_http", self.verify_http))
        return tasks

    def check_docker(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        facts["docker_version"] = self.docker.server_version(host)
        self.logger.debug("[%s] Docker server %s", host.name, facts["docker_version"])
        return False

    def ensure_network(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        return self.docker.ensure_network(host, self.settings.network_name)

    def recreate_mysql(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        return self.docker.recreate_container(host, self.mysql_spec())

    def wait_for_mysql(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        self.docker.wait_for_mysql(host, self.settings.mysql_container_name)
        return False

    def recreate_wordpress(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        return self.docker.recreate_container(host, self.wordpress_spec())

    def site_url(self, host: HostRecord) -> str:
        url = f"http://{host.address}"
        if self.settings.wordpress_port != 80:
            url = f"{url}:{self.settings.wordpress_port}"
        return f"{url}/"

    def verify_http(self, host: HostRecord, facts: Dict[str, Any]) -> bool:
        url = self.site_url(host)
        facts["http_status"] = self.http_check.wait_until_ready(url)
        self.logger.info("[%s] %s answered HTTP %s", host.name, url, facts["http_status"])
        return False

    def describe(self) -> Dict[str, Any]:
        """Secret-free summary of what will be deployed."""
        return {
            "network": self.settings.network_name,
            "containers": [
                {"name": self.settings.mysql_container_name, "image": self.settings.mysql_image},
                {
                    "name": self.settings.wordpress_container_name,
                    "image": self.settings.wordpress_image,
                    "port": self.settings.wordpress_port,
                },
            ],
        }
