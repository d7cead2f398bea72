from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

NAME_TAG = "Name"


class InstanceState(Enum):
    UNKNOWN = "unknown"
    PENDING = "pending"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting down"
    TERMINATED = "terminated"
    STOPPING = "stopping"
    STOPPED = "stopped"

    @classmethod
    def from_code(cls, code: int | None) -> InstanceState:
        """Map an EC2 state code to a state; only the low byte is significant."""
        if code is None:
            return cls.UNKNOWN
        return _STATE_BY_CODE.get(code & 0xFF, cls.UNKNOWN)

    def __str__(self) -> str:
        return self.value


_STATE_BY_CODE = {
    0: InstanceState.PENDING,
    16: InstanceState.RUNNING,
    32: InstanceState.SHUTTING_DOWN,
    48: InstanceState.TERMINATED,
    64: InstanceState.STOPPING,
    80: InstanceState.STOPPED,
}


@dataclass(slots=True, frozen=True)
class InstanceRecord:
    instance_id: str
    state: InstanceState
    availability_zone: str
    private_ip: str
    launch_time: datetime
    private_dns: str | None = None
    public_ip: str | None = None
    public_dns: str | None = None
    tags: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", MappingProxyType(dict(sorted(self.tags.items()))))

    @property
    def name(self) -> str | None:
        return self.tags.get(NAME_TAG)

    @property
    def display_name(self) -> str:
        return self.name or self.instance_id

    def to_short_string(self) -> str:
        return f"{self.name or ''} ({self.instance_id}, {self.state})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.instance_id,
            "state": str(self.state),
            "availability_zone": self.availability_zone,
            "private_ip": self.private_ip,
            "private_dns": self.private_dns,
            "public_ip": self.public_ip,
            "public_dns": self.public_dns,
            "launch_time": self.launch_time.isoformat(),
            "tags": dict(self.tags),
        }
