"""Requests sent to the API worker and the results it sends back.

Each variant is a plain frozen dataclass. ``ApiRequest`` and ``ApiResponse``
are unions of those variants and are dispatched with ``isinstance``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from picotui.integrations.picodata.models import ClusterInfo, TierInfo, TokenResponse, UiConfig

# =============================================================================
# Requests
# =============================================================================


@dataclass(frozen=True)
class GetConfig:
    """Fetch the web UI configuration."""


@dataclass(frozen=True)
class Login:
    """Log in, adopt the returned token and optionally persist it."""

    username: str
    password: str = field(repr=False)
    remember_me: bool = False


@dataclass(frozen=True)
class SetToken:
    """Adopt a previously saved token without contacting the server."""

    auth: str = field(repr=False)
    refresh: str = field(repr=False)


@dataclass(frozen=True)
class GetClusterInfo:
    """Fetch the cluster aggregate."""


@dataclass(frozen=True)
class GetTiers:
    """Fetch the tier/replicaset/instance topology."""


@dataclass(frozen=True)
class Shutdown:
    """Stop the worker loop."""


ApiRequest = GetConfig | Login | SetToken | GetClusterInfo | GetTiers | Shutdown

# =============================================================================
# Responses
# =============================================================================


@dataclass(frozen=True)
class ConfigResult:
    value: UiConfig | None = None
    error: str | None = None


@dataclass(frozen=True)
class LoginResult:
    value: TokenResponse | None = field(default=None, repr=False)
    error: str | None = None


@dataclass(frozen=True)
class ClusterInfoResult:
    value: ClusterInfo | None = None
    error: str | None = None


@dataclass(frozen=True)
class TiersResult:
    value: tuple[TierInfo, ...] | None = None
    error: str | None = None


ApiResponse = ConfigResult | LoginResult | ClusterInfoResult | TiersResult
