"""Shared domain models for wpdeploy."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class HostRecord:
    """Read-only projection of a managed node taken from inventory or cloud metadata."""

    name: str
    public_ip: Optional[str] = None
    private_ip: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)
    availability_zone: Optional[str] = None
    state: Optional[str] = None
    instance_id: Optional[str] = None
    vars: Dict[str, str] = field(default_factory=dict)

    @property
    def address(self) -> str:
        return self.vars.get("ansible_host") or self.public_ip or self.private_ip or self.name

    @property
    def connection(self) -> str:
        return self.vars.get("ansible_connection", "ssh")

    @property
    def user(self) -> Optional[str]:
        return self.vars.get("ansible_user")

    @property
    def port(self) -> Optional[int]:
        value = self.vars.get("ansible_port")
        return int(value) if value else None

    @property
    def private_key(self) -> Optional[str]:
        return self.vars.get("ansible_ssh_private_key_file")


@dataclass(frozen=True)
class ConnectionSettings:
    """Control-node defaults for reaching managed nodes; host vars take precedence."""

    user: Optional[str] = None
    private_key: Optional[str] = None
    port: int = 22
    connect_timeout: int = 10
    become: bool = True
    command_timeout: Optional[float] = None


@dataclass(frozen=True)
class Credentials:
    """Secrets entered per run. Never persisted."""

    mysql_root_password: str = field(repr=False)
    wordpress_db_user: str = field(repr=False)
    wordpress_db_password: str = field(repr=False)

    def secret_values(self) -> List[str]:
        return [self.mysql_root_password, self.wordpress_db_user, self.wordpress_db_password]


@dataclass(frozen=True)
class AppSettings:
    network_name: str = "wordpress_net"
    mysql_container_name: str = "mysql"
    wordpress_container_name: str = "wordpress"
    mysql_image: str = "mysql:5.7"
    wordpress_image: str = "wordpress:latest"
    wordpress_port: int = 80
    mysql_database: str = "wordpress"


@dataclass(frozen=True)
class ContainerSpec:
    """Declarative container definition, recreated on every run."""

    name: str
    image: str
    network: str
    ports: Tuple[Tuple[int, int], ...] = ()
    env: Dict[str, str] = field(default_factory=dict, repr=False)
    restart_policy: str = "unless-stopped"

    def run_args(self) -> List[str]:
        """Builds `docker run` arguments. Env values are supplied out of band."""
        args = [
            "docker",
            "run",
            "--detach",
            "--name",
            self.name,
            "--network",
            self.network,
            "--restart",
            self.restart_policy,
        ]
        for host_port, container_port in self.ports:
            args.extend(["--publish", f"{host_port}:{container_port}"])
        for key in sorted(self.env):
            args.extend(["--env", key])
        args.append(self.image)
        return args


@dataclass(frozen=True)
class Task:
    """A named step of a per-host sequence. The action returns whether it changed the host."""

    name: str
    action: Callable[[HostRecord, Dict[str, Any]], bool]


@dataclass
class HostResult:
    host: str
    status: str = "ok"
    ok: int = 0
    changed: int = 0
    error: Optional[str] = None
    steps: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def unreachable(self) -> bool:
        return self.status == "unreachable"
