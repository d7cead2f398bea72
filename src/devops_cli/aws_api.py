from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from .errors import MissingFieldError, ProviderFilterError, TransportError
from .models import InstanceRecord, InstanceState

MAX_RESULTS = 1000


@dataclass(slots=True, frozen=True)
class ProviderFilter:
    """A server-side `DescribeInstances` filter, written as `key=value1,value2`."""

    key: str
    values: tuple[str, ...]

    @classmethod
    def parse(cls, value: str) -> ProviderFilter:
        key, sep, values = value.partition("=")
        if not sep:
            raise ProviderFilterError(f"Unable to parse filter `{value}`, expected key=value[,value2...]")
        return cls(key=key, values=tuple(values.split(",")))

    def to_boto(self) -> dict[str, Any]:
        return {"Name": self.key, "Values": list(self.values)}


class AwsEc2Service:
    """Lists raw EC2 instance records, credentials resolved by boto3 itself."""

    def __init__(
        self,
        profile: str | None = None,
        region: str | None = None,
        *,
        session: Any | None = None,
    ) -> None:
        self.profile = profile
        self.region = region
        if session is None:
            try:
                session = boto3.Session(profile_name=profile, region_name=region)
            except BotoCoreError as exc:
                raise TransportError(f"Unable to create an AWS session: {exc}") from exc
        self._session = session

    def list_instances(self, filters: Sequence[ProviderFilter] = ()) -> list[dict[str, Any]]:
        boto_filters = [f.to_boto() for f in filters]
        logger.debug("describe_instances with filters {filters}", filters=boto_filters)

        raw: list[dict[str, Any]] = []
        try:
            ec2 = self._session.client("ec2")
            paginator = ec2.get_paginator("describe_instances")
            pages = paginator.paginate(
                Filters=boto_filters,
                PaginationConfig={"PageSize": MAX_RESULTS},
            )
            for page in pages:
                for reservation in page.get("Reservations", []):
                    raw.extend(reservation.get("Instances", []))
        except (BotoCoreError, ClientError) as exc:
            raise TransportError(f"Unable to list EC2 instances: {exc}") from exc

        logger.debug("AWS returned {count} instances", count=len(raw))
        return raw


def to_record(instance: dict[str, Any]) -> InstanceRecord:
    """Validate a raw `DescribeInstances` entry into an `InstanceRecord`.

    Raises:
        MissingFieldError: naming the first required attribute that is absent.
    """
    instance_id = instance.get("InstanceId") or _missing("instance_id")
    state = instance.get("State")
    if state is None:
        _missing("state")
    placement = instance.get("Placement")
    if placement is None:
        _missing("placement")
    availability_zone = placement.get("AvailabilityZone") or _missing("placement.availability_zone")
    private_ip = instance.get("PrivateIpAddress") or _missing("private_ip")
    launch_time = _to_utc(instance.get("LaunchTime")) or _missing("launch_time")

    return InstanceRecord(
        instance_id=instance_id,
        state=InstanceState.from_code(state.get("Code")),
        availability_zone=availability_zone,
        private_ip=private_ip,
        launch_time=launch_time,
        private_dns=instance.get("PrivateDnsName") or None,
        public_ip=instance.get("PublicIpAddress") or None,
        public_dns=instance.get("PublicDnsName") or None,
        tags=_collect_tags(instance.get("Tags") or []),
    )


def build_mock_instances(region: str = "us-west-1") -> list[dict[str, Any]]:
    short_region = region.replace("-", "")
    return [
        {
            "InstanceId": f"i-{short_region}a1b2c3d4e5f6",
            "State": {"Code": 16, "Name": "running"},
            "Placement": {"AvailabilityZone": f"{region}a"},
            "PrivateIpAddress": "10.0.1.21",
            "PrivateDnsName": "ip-10-0-1-21.ec2.internal",
            "PublicIpAddress": "54.10.10.21",
            "PublicDnsName": "",
            "LaunchTime": datetime(2024, 5, 2, 8, 30, tzinfo=timezone.utc),
            "Tags": [{"Key": "Name", "Value": "demo-bastion"}],
        },
        {
            "InstanceId": f"i-{short_region}112233445566",
            "State": {"Code": 16, "Name": "running"},
            "Placement": {"AvailabilityZone": f"{region}b"},
            "PrivateIpAddress": "10.0.2.34",
            "LaunchTime": datetime(2024, 6, 11, 14, 0, tzinfo=timezone.utc),
            "Tags": [
                {"Key": "Name", "Value": "demo-app-1"},
                {"Key": "AV_Scan", "Value": "false"},
            ],
        },
        {
            "InstanceId": f"i-{short_region}998877665544",
            "State": {"Code": 80, "Name": "stopped"},
            "Placement": {"AvailabilityZone": f"{region}c"},
            "PrivateIpAddress": "10.0.3.10",
            "LaunchTime": datetime(2023, 11, 20, 9, 15, tzinfo=timezone.utc),
            "Tags": [
                {"Key": "Name", "Value": "demo-app-2"},
                {"Key": "AV_Scan", "Value": "true"},
            ],
        },
    ]


def _missing(field: str) -> Any:
    raise MissingFieldError(field)


def _to_utc(value: Any) -> datetime | None:
    match value:
        case datetime():
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)
        case int() | float() if not isinstance(value, bool):
            try:
                return datetime.fromtimestamp(value, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                return None
        case str():
            try:
                return _to_utc(datetime.fromisoformat(value))
            except ValueError:
                return None
        case _:
            return None


def _collect_tags(tags: Iterable[dict[str, str]]) -> dict[str, str]:
    collected = {tag.get("Key") or "": tag.get("Value") or "" for tag in tags}
    return dict(sorted(collected.items()))


class MockEc2Service:
    """Serves `build_mock_instances`; provider filters are not applied."""

    def __init__(self, region: str = "us-west-1") -> None:
        self.region = region

    def list_instances(self, filters: Sequence[ProviderFilter] = ()) -> list[dict[str, Any]]:
        return build_mock_instances(self.region)
