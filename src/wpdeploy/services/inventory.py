"""Inventory loading and host pattern selection."""

import fnmatch
import re
import shlex
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from wpdeploy.constants import ALL_GROUP, EC2_PLUGIN_NAMES, UNGROUPED_GROUP
from wpdeploy.errors import DeployError
from wpdeploy.errors_catalog import actionable_error
from wpdeploy.models import HostRecord


class Inventory:
    """Mapping of group name to host list, plus the host records themselves."""

    def __init__(self, source: str):
        self.source = source
        self.hosts: Dict[str, HostRecord] = {}
        self.groups: Dict[str, List[str]] = {ALL_GROUP: []}

    def add_host(self, host: HostRecord, groups: Optional[List[str]] = None):
        if host.name not in self.hosts:
            self.groups[ALL_GROUP].append(host.name)
        self.hosts[host.name] = host
        for group in groups or []:
            members = self.groups.setdefault(group, [])
            if host.name not in members:
                members.append(host.name)

    def group_names(self) -> List[str]:
        return list(self.groups)

    def select(self, pattern: Optional[str] = None) -> List[HostRecord]:
        """Resolves an Ansible-style host pattern.

        Terms are separated by `,` or `:`; a leading `!` excludes. Order
        follows the inventory, not the pattern.
        """
        pattern = (pattern or ALL_GROUP).strip()
        terms = [term.strip() for term in re.split(r"[,:]", pattern) if term.strip()]

        included = set()
        excluded = set()
        has_include = False
        for term in terms:
            negate = term.startswith("!")
            name = term[1:] if negate else term
            matched = self._resolve_term(name)
            if matched is None:
                raise DeployError(actionable_error("unknown_pattern", pattern=name))
            if negate:
                excluded.update(matched)
            else:
                has_include = True
                included.update(matched)

        if not has_include:
            included.update(self.groups[ALL_GROUP])

        selected = [
            self.hosts[name]
            for name in self.groups[ALL_GROUP]
            if name in included and name not in excluded
        ]
        if not selected:
            raise DeployError(actionable_error("no_hosts_matched", pattern=pattern))
        return selected

    def _resolve_term(self, name: str) -> Optional[List[str]]:
        if name in (ALL_GROUP, "*"):
            return list(self.groups[ALL_GROUP])
        if name in self.groups:
            return list(self.groups[name])
        if name in self.hosts:
            return [name]
        if any(char in name for char in "*?["):
            matched = [host for host in self.groups[ALL_GROUP] if fnmatch.fnmatch(host, name)]
            for group, members in self.groups.items():
                if fnmatch.fnmatch(group, name):
                    matched.extend(members)
            return matched or None
        return None


class InventoryService:
    """Resolves an inventory source string into an Inventory."""

    def __init__(self, logger, ec2_source_factory=None):
        self.logger = logger
        self.ec2_source_factory = ec2_source_factory

    def load(self, source: str) -> Inventory:
        if not source or not source.strip():
            raise DeployError(actionable_error("inventory_not_found", source=source or "<empty>"))

        path = Path(source)
        if path.is_file():
            if path.suffix.lower() in (".yml", ".yaml"):
                return self._load_yaml(path)
            return self.parse_ini(source, path.read_text(encoding="utf-8"))

        if "," in source:
            return self.parse_host_list(source)

        raise DeployError(actionable_error("inventory_not_found", source=source))

    def _load_yaml(self, path: Path) -> Inventory:
        try:
            descriptor = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise DeployError(
                actionable_error("invalid_inventory", source=str(path), reason=str(exc))
            ) from exc

        if not isinstance(descriptor, dict) or descriptor.get("plugin") not in EC2_PLUGIN_NAMES:
            raise DeployError(
                actionable_error(
                    "invalid_inventory",
                    source=str(path),
                    reason="YAML inventories must declare `plugin: aws_ec2`",
                )
            )

        if self.ec2_source_factory is None:
            from wpdeploy.services.ec2_inventory import EC2InventorySource

            ec2_source = EC2InventorySource(descriptor=descriptor, logger=self.logger)
        else:
            ec2_source = self.ec2_source_factory(descriptor)

        self.logger.info("Querying EC2 dynamic inventory from %s", path)
        return ec2_source.load(str(path))

    def parse_host_list(self, source: str) -> Inventory:
        inventory = Inventory(source)
        for name in source.split(","):
            name = name.strip()
            if name:
                inventory.add_host(HostRecord(name=name), [UNGROUPED_GROUP])
        return inventory

    def parse_ini(self, source: str, text: str) -> Inventory:
        host_vars: Dict[str, Dict[str, str]] = {}
        group_hosts: Dict[str, List[str]] = {ALL_GROUP: [], UNGROUPED_GROUP: []}
        group_vars: Dict[str, Dict[str, str]] = {}
        children: Dict[str, List[str]] = {}
        host_order: List[str] = []

        group = UNGROUPED_GROUP
        kind = "hosts"
        for lineno, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith(("#", ";")):
                continue

            if line.startswith("["):
                if not line.endswith("]"):
                    raise DeployError(
                        actionable_error(
                            "invalid_inventory",
                            source=source,
                            reason=f"unterminated section header on line {lineno}",
                        )
                    )
                header = line[1:-1].strip()
                group, _, kind = header.partition(":")
                kind = kind or "hosts"
                if kind not in ("hosts", "vars", "children"):
                    raise DeployError(
                        actionable_error(
                            "invalid_inventory",
                            source=source,
                            reason=f"unknown section type '{kind}' on line {lineno}",
                        )
                    )
                group_hosts.setdefault(group, [])
                continue

            try:
                tokens = shlex.split(line, comments=True)
            except ValueError as exc:
                raise DeployError(
                    actionable_error("invalid_inventory", source=source, reason=f"line {lineno}: {exc}")
                ) from exc
            if not tokens:
                continue

            if kind == "vars":
                group_vars.setdefault(group, {}).update(self._parse_assignments(source, lineno, tokens))
            elif kind == "children":
                children.setdefault(group, []).append(tokens[0])
                group_hosts.setdefault(tokens[0], [])
            else:
                name = tokens[0]
                if name not in host_vars:
                    host_vars[name] = {}
                    host_order.append(name)
                host_vars[name].update(self._parse_assignments(source, lineno, tokens[1:]))
                if name not in group_hosts[group]:
                    group_hosts[group].append(name)

        grouped = {
            name
            for group_name, members in group_hosts.items()
            if group_name not in (ALL_GROUP, UNGROUPED_GROUP)
            for name in members
        }
        group_hosts[UNGROUPED_GROUP] = [
            name for name in group_hosts[UNGROUPED_GROUP] if name not in grouped
        ]

        resolved = {name: self._expand_group(name, group_hosts, children) for name in group_hosts}

        inventory = Inventory(source)
        for name in host_order:
            merged: Dict[str, str] = dict(group_vars.get(ALL_GROUP, {}))
            member_of = [g for g, members in resolved.items() if name in members and g != ALL_GROUP]
            for group_name in member_of:
                merged.update(group_vars.get(group_name, {}))
            merged.update(host_vars[name])
            inventory.add_host(HostRecord(name=name, vars=merged), member_of)

        for group_name in resolved:
            inventory.groups.setdefault(group_name, [])
        return inventory

    def _parse_assignments(self, source: str, lineno: int, tokens: List[str]) -> Dict[str, str]:
        values = {}
        for token in tokens:
            key, sep, value = token.partition("=")
            if not sep or not key:
                raise DeployError(
                    actionable_error(
                        "invalid_inventory",
                        source=source,
                        reason=f"expected key=value on line {lineno}, got '{token}'",
                    )
                )
            values[key] = value
        return values

    def _expand_group(
        self,
        group: str,
        group_hosts: Dict[str, List[str]],
        children: Dict[str, List[str]],
        seen: Optional[set] = None,
    ) -> List[str]:
        seen = seen or set()
        if group in seen:
            return []
        seen.add(group)

        members = list(group_hosts.get(group, []))
        for child in children.get(group, []):
            for name in self._expand_group(child, group_hosts, children, seen):
                if name not in members:
                    members.append(name)
        return members
