"""Background API worker and its request/response messages."""

from picotui.worker.api_worker import ApiWorker
from picotui.worker.messages import (
    ApiRequest,
    ApiResponse,
    ClusterInfoResult,
    ConfigResult,
    GetClusterInfo,
    GetConfig,
    GetTiers,
    Login,
    LoginResult,
    SetToken,
    Shutdown,
    TiersResult,
)

__all__ = [
    "ApiRequest",
    "ApiResponse",
    "ApiWorker",
    "ClusterInfoResult",
    "ConfigResult",
    "GetClusterInfo",
    "GetConfig",
    "GetTiers",
    "Login",
    "LoginResult",
    "SetToken",
    "Shutdown",
    "TiersResult",
]
