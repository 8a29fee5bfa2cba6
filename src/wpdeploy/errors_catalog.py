"""Actionable error catalog for wpdeploy."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "inventory_not_found": {
        "what": "Inventory source not found: {source}",
        "next": "Pass an INI file, an `aws_ec2` YAML descriptor, or a comma-separated host list.",
    },
    "invalid_inventory": {
        "what": "Invalid inventory '{source}': {reason}",
        "next": "Fix the inventory file syntax and retry.",
    },
    "unknown_pattern": {
        "what": "Host pattern '{pattern}' matches no group or host in the inventory.",
        "next": "Run `wpdeploy inventory -i <source>` to list the available groups.",
    },
    "no_hosts_matched": {
        "what": "No hosts matched '{pattern}'.",
        "next": "Check the `--limit` value and that the target instances are running and tagged.",
    },
    "aws_query_failed": {
        "what": "EC2 inventory query failed in region {region}: {reason}",
        "next": "Check AWS credentials, the configured profile and `ec2:DescribeInstances` permission.",
    },
    "host_unreachable": {
        "what": "Host {host} is unreachable over SSH.",
        "next": "Verify the security group allows port 22 and that `--user`/`--private-key` are correct.",
    },
    "missing_secret": {
        "what": "A value for {label} is required.",
        "next": "Enter it at the prompt or export {env_var} for non-interactive runs.",
    },
    "docker_unavailable": {
        "what": "Docker is not available on {host}.",
        "next": "Run `wpdeploy install-packages` against this host first.",
    },
    "packages_missing": {
        "what": "Packages still missing on {host}: {packages}",
        "next": "Inspect the package manager output with `--verbose` and retry.",
    },
    "container_start_failed": {
        "what": "Container {name} on {host} is '{status}' instead of running.",
        "next": "Inspect `docker logs {name}` on the host, fix the cause and rerun deploy-application.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
