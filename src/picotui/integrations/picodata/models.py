"""Pydantic models for Picodata HTTP API payloads.

Every model is an immutable snapshot of what the server returned. A refresh
replaces snapshots wholesale, nothing is patched in place. The wire format
uses camelCase names which are mapped onto snake_case attributes.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PicodataModel(BaseModel):
    """Base model for Picodata API payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class StateVariant(str, Enum):
    """Lifecycle state of an instance or replicaset."""

    ONLINE = "Online"
    OFFLINE = "Offline"
    EXPELLED = "Expelled"

    def __str__(self) -> str:
        return self.value


class MemoryInfo(PicodataModel):
    """Memory usage in bytes."""

    usable: int = Field(ge=0)
    used: int = Field(ge=0)

    @property
    def ratio(self) -> float:
        """Fraction of usable memory in use, clamped to [0, 1]."""
        if self.usable <= 0:
            return 0.0
        return min(self.used / self.usable, 1.0)


class InstanceInfo(PicodataModel):
    """A single cluster node."""

    name: str
    binary_address: str
    http_address: str = ""
    pg_address: str = ""
    version: str
    failure_domain: dict[str, str] = Field(default_factory=dict)
    is_leader: bool = False
    current_state: StateVariant
    target_state: StateVariant


class ReplicasetInfo(PicodataModel):
    """A set of instances replicating the same data."""

    name: str
    uuid: str = ""
    version: str = ""
    state: StateVariant
    instance_count: int = 0
    memory: MemoryInfo
    capacity_usage: float = 0.0
    instances: list[InstanceInfo] = Field(default_factory=list)

    @property
    def leader(self) -> InstanceInfo | None:
        """The replicaset leader, if the server reported one."""
        return next((instance for instance in self.instances if instance.is_leader), None)


class TierInfo(PicodataModel):
    """A named group of replicasets sharing a replication factor."""

    name: str
    rf: int
    bucket_count: int = 0
    can_vote: bool = Field(default=False, alias="can_vote")
    instance_count: int = 0
    replicaset_count: int = 0
    services: list[str] = Field(default_factory=list)
    memory: MemoryInfo
    capacity_usage: float = 0.0
    replicasets: list[ReplicasetInfo] = Field(default_factory=list)


class ClusterInfo(PicodataModel):
    """Cluster-wide aggregate returned by ``GET /api/v1/cluster``."""

    cluster_name: str
    cluster_version: str
    # The server spells this field without the second "n".
    current_instance_version: str = Field(alias="currentInstaceVersion")
    replicasets_count: int = 0
    instances_current_state_online: int = 0
    instances_current_state_offline: int = 0
    memory: MemoryInfo
    capacity_usage: float = 0.0
    plugins: list[str] = Field(default_factory=list)

    @property
    def instances_total(self) -> int:
        """Online plus offline instance count."""
        return self.instances_current_state_online + self.instances_current_state_offline


class UiConfig(PicodataModel):
    """Web UI configuration returned by ``GET /api/v1/config``."""

    is_auth_enabled: bool = False


class LoginRequest(PicodataModel):
    """Credentials posted to ``/api/v1/session``."""

    username: str
    password: str


class TokenResponse(PicodataModel):
    """Token pair returned by a successful login."""

    auth: str
    refresh: str = ""


class ErrorResponse(PicodataModel):
    """Error body the server may attach to non-2xx responses."""

    error: str | None = None
    error_message: str | None = None
