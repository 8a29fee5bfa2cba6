"""EC2 dynamic inventory backed by boto3."""

import re
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from wpdeploy.constants import ALL_GROUP, DEFAULT_EC2_HOSTNAMES, EC2_GROUP
from wpdeploy.errors import DeployError
from wpdeploy.errors_catalog import actionable_error
from wpdeploy.models import HostRecord
from wpdeploy.services.inventory import Inventory


class EC2InventorySource:
    """Builds an Inventory from `DescribeInstances`, grouped by instance attributes."""

    SUPPORTED_KEYS = {
        "plugin",
        "regions",
        "filters",
        "keyed_groups",
        "hostnames",
        "aws_profile",
    }
    HOSTNAME_FIELDS = {
        "ip-address": "PublicIpAddress",
        "private-ip-address": "PrivateIpAddress",
        "dns-name": "PublicDnsName",
        "private-dns-name": "PrivateDnsName",
        "instance-id": "InstanceId",
    }
    # preferences that name a reachable address rather than a label
    ADDRESS_HOSTNAMES = {"ip-address", "private-ip-address", "dns-name", "private-dns-name"}

    def __init__(self, descriptor: Dict[str, Any], logger, session_factory=boto3.Session):
        unknown = sorted(set(descriptor) - self.SUPPORTED_KEYS)
        if unknown:
            raise DeployError(f"Unknown aws_ec2 inventory keys: {', '.join(unknown)}")

        self.logger = logger
        self.session_factory = session_factory
        self.profile = descriptor.get("aws_profile")
        self.regions = self._as_list(descriptor.get("regions"))
        if not self.regions:
            raise DeployError("aws_ec2 inventory must list at least one region under `regions`.")
        self.filters = self.build_filters(descriptor.get("filters") or {})
        self.keyed_groups = self.validate_keyed_groups(descriptor.get("keyed_groups"))
        self.hostnames = self.validate_hostnames(
            self._as_list(descriptor.get("hostnames")) or list(DEFAULT_EC2_HOSTNAMES)
        )

    def validate_keyed_groups(self, keyed_groups) -> List[Dict[str, Any]]:
        entries = self._as_list(keyed_groups)
        for entry in entries:
            if not isinstance(entry, dict):
                raise DeployError(f"Each keyed_groups entry must be a mapping, got: {entry!r}")
            if not entry.get("key"):
                raise DeployError("Each keyed_groups entry needs a `key`.")
        return entries

    def validate_hostnames(self, hostnames: List[Any]) -> List[str]:
        for preference in hostnames:
            if not isinstance(preference, str):
                raise DeployError(f"Invalid aws_ec2 hostnames preference: {preference!r}")
            if preference.startswith("tag:") and len(preference) > 4:
                continue
            if preference not in self.HOSTNAME_FIELDS:
                supported = ", ".join(sorted(self.HOSTNAME_FIELDS))
                raise DeployError(
                    f"Unknown aws_ec2 hostnames preference '{preference}'. "
                    f"Use tag:<Name> or one of: {supported}."
                )
        return hostnames

    @staticmethod
    def _as_list(value) -> List[Any]:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        return [value]

    def build_filters(self, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        values = dict(filters)
        values.setdefault("instance-state-name", "running")
        return [
            {"Name": name, "Values": [str(item) for item in self._as_list(value)]}
            for name, value in values.items()
        ]

    def load(self, source: str) -> Inventory:
        inventory = Inventory(source)
        for region in self.regions:
            for instance in self.describe_instances(region):
                host = self.to_host_record(instance)
                if host is None:
                    self.logger.debug(
                        "Skipping instance %s: none of %s resolved",
                        instance.get("InstanceId"),
                        self.hostnames,
                    )
                    continue
                inventory.add_host(host, [EC2_GROUP] + self.groups_for(instance))

        self.logger.info(
            "EC2 inventory resolved %s host(s) in %s group(s)",
            len(inventory.groups[ALL_GROUP]),
            len(inventory.groups) - 1,
        )
        return inventory

    def describe_instances(self, region: str) -> List[Dict[str, Any]]:
        try:
            session = self.session_factory(profile_name=self.profile, region_name=region)
            client = session.client("ec2")
            paginator = client.get_paginator("describe_instances")
            instances = []
            for page in paginator.paginate(Filters=self.filters):
                for reservation in page.get("Reservations", []):
                    instances.extend(reservation.get("Instances", []))
            return instances
        except (ClientError, BotoCoreError) as exc:
            raise DeployError(
                actionable_error("aws_query_failed", region=region, reason=str(exc))
            ) from exc

    def to_host_record(self, instance: Dict[str, Any]) -> Optional[HostRecord]:
        preference, name = self.resolve_preference(instance)
        if not name:
            return None
        host_vars = {"ansible_host": name} if preference in self.ADDRESS_HOSTNAMES else {}
        return HostRecord(
            name=name,
            public_ip=instance.get("PublicIpAddress"),
            private_ip=instance.get("PrivateIpAddress"),
            tags=self._tags(instance),
            availability_zone=instance.get("Placement", {}).get("AvailabilityZone"),
            state=instance.get("State", {}).get("Name"),
            instance_id=instance.get("InstanceId"),
            vars=host_vars,
        )

    def resolve_preference(self, instance: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        """Returns the first `hostnames` preference the instance has a value for, and that value."""
        tags = self._tags(instance)
        for preference in self.hostnames:
            if preference.startswith("tag:"):
                value = tags.get(preference[4:])
            else:
                value = instance.get(self.HOSTNAME_FIELDS[preference])
            if value:
                return preference, value
        return None, None

    def resolve_hostname(self, instance: Dict[str, Any]) -> Optional[str]:
        return self.resolve_preference(instance)[1]

    def groups_for(self, instance: Dict[str, Any]) -> List[str]:
        attributes = {
            "tags": self._tags(instance),
            "placement": {
                "availability_zone": instance.get("Placement", {}).get("AvailabilityZone"),
            },
            "instance_type": instance.get("InstanceType"),
            "instance_id": instance.get("InstanceId"),
            "state": instance.get("State", {}).get("Name"),
        }

        groups = []
        for keyed_group in self.keyed_groups:
            value = self._lookup(attributes, keyed_group["key"])
            if value in (None, ""):
                continue
            prefix = keyed_group.get("prefix", "")
            separator = keyed_group.get("separator", "_")
            name = f"{prefix}{separator}{value}" if prefix else str(value)
            groups.append(self.sanitize_group_name(name))
        return groups

    @staticmethod
    def sanitize_group_name(name: str) -> str:
        return re.sub(r"[^A-Za-z0-9_]", "_", name)

    @staticmethod
    def _lookup(attributes: Dict[str, Any], key: str):
        current: Any = attributes
        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
        return current

    @staticmethod
    def _tags(instance: Dict[str, Any]) -> Dict[str, str]:
        return {tag["Key"]: tag["Value"] for tag in instance.get("Tags", [])}
