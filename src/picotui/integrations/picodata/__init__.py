"""Picodata integration - HTTP client and API models."""

from picotui.integrations.picodata.client import PicodataClient
from picotui.integrations.picodata.exceptions import (
    PicodataAPIError,
    PicodataAuthError,
    PicodataConnectionError,
    PicodataError,
    PicodataParseError,
)
from picotui.integrations.picodata.models import (
    ClusterInfo,
    InstanceInfo,
    MemoryInfo,
    ReplicasetInfo,
    StateVariant,
    TierInfo,
    TokenResponse,
    UiConfig,
)

__all__ = [
    "ClusterInfo",
    "InstanceInfo",
    "MemoryInfo",
    "PicodataAPIError",
    "PicodataAuthError",
    "PicodataClient",
    "PicodataConnectionError",
    "PicodataError",
    "PicodataParseError",
    "ReplicasetInfo",
    "StateVariant",
    "TierInfo",
    "TokenResponse",
    "UiConfig",
]
