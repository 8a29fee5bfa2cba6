"""Defaults shared across wpdeploy services."""

DEFAULT_CONFIG_FILE = ".wpdeploy.yml"
DEFAULT_FORKS = 5
DEFAULT_SSH_PORT = 22
DEFAULT_CONNECT_TIMEOUT = 10

SSH_UNREACHABLE_RETURNCODE = 255

EC2_PLUGIN_NAMES = ("aws_ec2", "amazon.aws.aws_ec2")
EC2_GROUP = "aws_ec2"
DEFAULT_EC2_HOSTNAMES = ("ip-address", "private-ip-address", "instance-id")

ALL_GROUP = "all"
UNGROUPED_GROUP = "ungrouped"

PACKAGE_MANAGERS = ("apt-get", "dnf", "yum")
DEFAULT_PACKAGES = {
    "apt": [
        "apt-transport-https",
        "ca-certificates",
        "curl",
        "software-properties-common",
        "docker.io",
    ],
    "dnf": ["docker"],
    "yum": ["docker"],
}
DOCKER_SERVICE = "docker"
DOCKER_GROUP = "docker"

MYSQL_PORT = 3306
WORDPRESS_CONTAINER_PORT = 80
MYSQL_READY_RETRIES = 30
MYSQL_READY_INTERVAL_SECONDS = 2.0
HTTP_CHECK_RETRIES = 15
HTTP_CHECK_INTERVAL_SECONDS = 4.0

SECRET_ENV_VARS = {
    "mysql_root_password": "WPDEPLOY_MYSQL_ROOT_PASSWORD",
    "wordpress_db_user": "WPDEPLOY_WORDPRESS_DB_USER",
    "wordpress_db_password": "WPDEPLOY_WORDPRESS_DB_PASSWORD",
}
MYSQL_MAX_USERNAME_LENGTH = 32

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_HOST_FAILED = 2
EXIT_HOST_UNREACHABLE = 4
