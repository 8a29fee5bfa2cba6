import logging
import os

import click
from rich.logging import RichHandler

from . import __version__
from .constants import DEFAULT_CONFIG_FILE, DEFAULT_CONNECT_TIMEOUT, DEFAULT_FORKS, DEFAULT_SSH_PORT
from .core import Deployer, console
from .errors import DeployError
from .models import AppSettings
from .services.config_loader import ConfigLoader
from .services.credentials import CredentialPrompter


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


def _load_config(config):
    try:
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path
        return ConfigLoader().load(resolved_config)
    except DeployError as exc:
        raise click.ClickException(str(exc)) from exc


def _optional_float(value):
    return None if value is None else float(value)


def _configure_logging(verbose, log_file):
    logger = logging.getLogger("wpdeploy")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


def common_options(func):
    options = [
        click.option(
            "-i",
            "--inventory",
            required=False,
            help="INI inventory file, aws_ec2 YAML descriptor, or comma-separated host list.",
        ),
        click.option("-l", "--limit", required=False, help="Host pattern to restrict the run to."),
        click.option(
            "--config",
            required=False,
            type=click.Path(),
            help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
        ),
        click.option("-f", "--forks", type=int, default=None, help="Hosts handled in parallel (default: 5)."),
        click.option("-u", "--user", required=False, help="Remote SSH user."),
        click.option("--private-key", type=click.Path(), required=False, help="SSH private key file."),
        click.option("--ssh-port", type=int, default=None, help="SSH port (default: 22)."),
        click.option("--connect-timeout", type=int, default=None, help="SSH connect timeout in seconds."),
        click.option(
            "--become/--no-become",
            default=None,
            help="Run privileged commands through sudo (default: become).",
        ),
        click.option("--command-timeout", type=float, default=None, help="Timeout for each remote command."),
        click.option(
            "--retry-count",
            type=int,
            default=None,
            help="Retries for SSH connection failures (default: 0).",
        ),
        click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging"),
        click.option("--log-file", type=click.Path(), help="Path to log file"),
        click.option("--report-file", type=click.Path(), help="Write a JSON run report to this path."),
        click.option(
            "--dry-run",
            is_flag=True,
            default=None,
            help="Resolve the inventory and print the task plan without touching any host.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_deployer(options, config_values, **extra):
    inventory = _resolve_option(options["inventory"], config_values, "inventory")
    if not inventory:
        raise click.ClickException("Missing required option '--inventory' (or provide it in config).")

    verbose = bool(_resolve_option(options["verbose"], config_values, "verbose", default=False))
    log_file = _resolve_option(options["log_file"], config_values, "log_file")
    _configure_logging(verbose, log_file)

    try:
        return Deployer(
            inventory_source=inventory,
            limit=_resolve_option(options["limit"], config_values, "limit"),
            forks=int(_resolve_option(options["forks"], config_values, "forks", default=DEFAULT_FORKS)),
            user=_resolve_option(options["user"], config_values, "user"),
            private_key=_resolve_option(options["private_key"], config_values, "private_key"),
            ssh_port=int(
                _resolve_option(options["ssh_port"], config_values, "ssh_port", default=DEFAULT_SSH_PORT)
            ),
            connect_timeout=int(
                _resolve_option(
                    options["connect_timeout"],
                    config_values,
                    "connect_timeout",
                    default=DEFAULT_CONNECT_TIMEOUT,
                )
            ),
            become=bool(_resolve_option(options["become"], config_values, "become", default=True)),
            command_timeout=_optional_float(
                _resolve_option(options["command_timeout"], config_values, "command_timeout")
            ),
            retry_count=int(_resolve_option(options["retry_count"], config_values, "retry_count", default=0)),
            retry_backoff_seconds=float(config_values.get("retry_backoff_seconds", 2.0)),
            report_file=_resolve_option(options["report_file"], config_values, "report_file"),
            dry_run=bool(_resolve_option(options["dry_run"], config_values, "dry_run", default=False)),
            **extra,
        )
    except DeployError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.version_option(__version__, prog_name="wpdeploy")
def main():
    """Provision EC2 hosts with Docker and deploy WordPress + MySQL."""


@main.command("install-packages")
@common_options
def install_packages(config, **options):
    """Install Docker and its prerequisites on every selected host."""
    config_values = _load_config(config)
    deployer = _build_deployer(
        options,
        config_values,
        packages=config_values.get("packages"),
    )
    raise SystemExit(deployer.install_packages())


@main.command("deploy-application")
@common_options
@click.option(
    "--verify-http",
    is_flag=True,
    default=None,
    help="Poll each host's WordPress URL after deployment.",
)
def deploy_application(config, verify_http, **options):
    """Create the Docker network and (re)create the MySQL and WordPress containers."""
    config_values = _load_config(config)

    defaults = AppSettings()
    app_settings = AppSettings(
        network_name=config_values.get("network_name", defaults.network_name),
        mysql_container_name=config_values.get("mysql_container_name", defaults.mysql_container_name),
        wordpress_container_name=config_values.get(
            "wordpress_container_name", defaults.wordpress_container_name
        ),
        mysql_image=config_values.get("mysql_image", defaults.mysql_image),
        wordpress_image=config_values.get("wordpress_image", defaults.wordpress_image),
        wordpress_port=int(config_values.get("wordpress_port", defaults.wordpress_port)),
        mysql_database=config_values.get("mysql_database", defaults.mysql_database),
    )
    deployer = _build_deployer(
        options,
        config_values,
        app_settings=app_settings,
        verify_http=bool(_resolve_option(verify_http, config_values, "verify_http", default=False)),
    )

    credentials = None
    if not deployer.dry_run:
        try:
            credentials = CredentialPrompter().collect()
        except DeployError as exc:
            raise click.ClickException(str(exc)) from exc

    raise SystemExit(deployer.deploy_application(credentials))


@main.command("inventory")
@click.option("-i", "--inventory", required=False, help="Inventory source to display.")
@click.option("--config", required=False, type=click.Path(), help="Path to a YAML configuration file.")
def show_inventory(inventory, config):
    """Print the inventory group graph."""
    config_values = _load_config(config)
    inventory = _resolve_option(inventory, config_values, "inventory")
    if not inventory:
        raise click.ClickException("Missing required option '--inventory' (or provide it in config).")

    try:
        tree = Deployer(inventory_source=inventory).render_inventory()
    except DeployError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(tree)


if __name__ == "__main__":
    main()
