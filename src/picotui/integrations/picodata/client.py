"""Picodata HTTP API client."""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from picotui.integrations.picodata.exceptions import (
    PicodataAPIError,
    PicodataAuthError,
    PicodataConnectionError,
    PicodataParseError,
)
from picotui.integrations.picodata.models import (
    ClusterInfo,
    ErrorResponse,
    LoginRequest,
    TierInfo,
    TokenResponse,
    UiConfig,
)
from picotui.logging.config import WIRE_LOGGER_NAME, get_logger

logger = structlog.get_logger()
wire = get_logger(WIRE_LOGGER_NAME)

ModelT = TypeVar("ModelT", bound=BaseModel)

CONFIG_ENDPOINT = "/api/v1/config"
SESSION_ENDPOINT = "/api/v1/session"
CLUSTER_ENDPOINT = "/api/v1/cluster"
TIERS_ENDPOINT = "/api/v1/tiers"

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"

_TIERS_ADAPTER = TypeAdapter(list[TierInfo])


def _status_line(response: httpx.Response) -> str:
    """Render ``401 Unauthorized`` style status text."""
    if response.reason_phrase:
        return f"{response.status_code} {response.reason_phrase}"
    return str(response.status_code)


class PicodataClient:
    """HTTP client for the Picodata web API.

    The client holds at most one bearer token. Authenticated GETs send it as
    ``Authorization: Bearer <token>`` and omit the header when no token is
    held. Every call is logged to the ``picotui.wire`` logger, which only
    reaches a file when debug mode is on.

    Example:
        ```python
        from picotui.integrations.picodata import PicodataClient

        with PicodataClient("http://localhost:8080") as client:
            if client.get_config().is_auth_enabled:
                client.login("admin", "secret")
            tiers = client.get_tiers()
        ```
    """

    def __init__(
        self,
        base_url: str,
        connect_timeout: float = 5.0,
        request_timeout: float = 10.0,
        verify_ssl: bool = False,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the Picodata API client.

        Args:
            base_url: Server URL, trailing slashes are stripped.
            connect_timeout: Seconds allowed to establish a connection.
            request_timeout: Seconds allowed for the whole response.
            verify_ssl: Verify TLS certificates.
            transport: Optional httpx transport, used by tests.
        """
        self.base_url = base_url.rstrip("/")
        self._auth_token: str | None = None

        client_kwargs: dict[str, Any] = {
            "base_url": self.base_url,
            "timeout": httpx.Timeout(request_timeout, connect=connect_timeout),
            "verify": verify_ssl,
            "headers": {"Content-Type": "application/json"},
        }
        if transport is not None:
            client_kwargs["transport"] = transport

        self._client = httpx.Client(**client_kwargs)

        logger.info("Picodata API client initialized", base_url=self.base_url)

    @property
    def auth_token(self) -> str | None:
        """The bearer token currently held, if any."""
        return self._auth_token

    def set_auth_token(self, token: str | None) -> None:
        """Adopt a bearer token for subsequent authenticated calls."""
        self._auth_token = token

    def _auth_headers(self) -> dict[str, str]:
        if self._auth_token:
            return {"Authorization": f"Bearer {self._auth_token}"}
        return {}

    def _send(
        self,
        method: str,
        endpoint: str,
        *,
        authenticated: bool,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request, mapping transport failures to PicodataConnectionError."""
        log = logger.bind(method=method, endpoint=endpoint)
        headers = self._auth_headers() if authenticated else {}

        try:
            log.debug("Picodata API request")
            response = self._client.request(method, endpoint, headers=headers, json=json)
            log.debug("Picodata API response", status=response.status_code)
            return response
        except httpx.TimeoutException as e:
            log.error("Picodata request timeout", error=str(e))
            wire.debug(f"  TIMEOUT: {e}")
            raise PicodataConnectionError(
                message=f"Request to {self.base_url}{endpoint} timed out: {e}",
                endpoint=endpoint,
                original_error=e,
            ) from e
        except httpx.TransportError as e:
            log.error("Picodata connection error", error=str(e))
            wire.debug(f"  CONNECT ERROR: {e}")
            raise PicodataConnectionError(
                message=f"Failed to connect to {self.base_url}: {e}",
                endpoint=endpoint,
                original_error=e,
            ) from e

    def _raise_for_status(self, response: httpx.Response, endpoint: str, what: str) -> None:
        """Raise PicodataAPIError (or PicodataAuthError) for non-2xx responses."""
        if response.is_success:
            return

        text = response.text
        wire.debug(f"  ERROR {response.status_code}: {text}")
        message = f"Failed to get {what}: {_status_line(response)} - {text}"

        if response.status_code in (401, 403):
            raise PicodataAuthError(
                message=message,
                status_code=response.status_code,
                body=text,
                endpoint=endpoint,
            )
        raise PicodataAPIError(
            message=message,
            status_code=response.status_code,
            body=text,
            endpoint=endpoint,
        )

    def _parse(self, model: type[ModelT], text: str, endpoint: str, what: str) -> ModelT:
        try:
            return model.model_validate_json(text)
        except ValidationError as e:
            wire.debug(f"  PARSE ERROR: {e}")
            logger.warning("Picodata response did not match schema", endpoint=endpoint)
            raise PicodataParseError(f"Failed to parse {what}: {e}", endpoint=endpoint) from e

    def _get(self, endpoint: str, what: str, *, authenticated: bool = True) -> str:
        wire.debug(f"GET {self.base_url}{endpoint}")
        response = self._send("GET", endpoint, authenticated=authenticated)
        self._raise_for_status(response, endpoint, what)
        wire.debug(f"  OK {response.status_code}: {response.text}")
        return response.text

    # =========================================================================
    # API calls
    # =========================================================================

    def get_config(self) -> UiConfig:
        """Fetch the web UI configuration (whether auth is enabled)."""
        text = self._get(CONFIG_ENDPOINT, "config", authenticated=False)
        return self._parse(UiConfig, text, CONFIG_ENDPOINT, "config")

    def login(self, username: str, password: str) -> TokenResponse:
        """Exchange credentials for a token pair and adopt the auth token.

        Raises:
            PicodataAuthError: On 401, with the message "Invalid username or password".
            PicodataAPIError: On any other non-2xx status.
            PicodataConnectionError: If the server cannot be reached.
            PicodataParseError: If the token body is malformed.
        """
        wire.debug(f"POST {self.base_url}{SESSION_ENDPOINT} (user={username})")
        payload = LoginRequest(username=username, password=password).model_dump(by_alias=True)
        response = self._send("POST", SESSION_ENDPOINT, authenticated=False, json=payload)

        if not response.is_success:
            text = response.text
            wire.debug(f"  ERROR {response.status_code}: {text}")
            if response.status_code == 401:
                raise PicodataAuthError(
                    message=INVALID_CREDENTIALS_MESSAGE,
                    status_code=401,
                    body=text,
                    endpoint=SESSION_ENDPOINT,
                )
            message = f"Login failed: {_status_line(response)} - {text}"
            try:
                error = ErrorResponse.model_validate_json(text)
            except ValidationError:
                error = None
            if error is not None and error.error_message:
                message = error.error_message
            raise PicodataAPIError(
                message=message,
                status_code=response.status_code,
                body=text,
                endpoint=SESSION_ENDPOINT,
            )

        wire.debug(f"  OK {response.status_code}: (tokens received)")
        tokens = self._parse(TokenResponse, response.text, SESSION_ENDPOINT, "tokens")
        self._auth_token = tokens.auth
        logger.info("Logged in to Picodata", username=username)
        return tokens

    def get_cluster_info(self) -> ClusterInfo:
        """Fetch the cluster aggregate."""
        text = self._get(CLUSTER_ENDPOINT, "cluster info")
        return self._parse(ClusterInfo, text, CLUSTER_ENDPOINT, "cluster info")

    def get_tiers(self) -> list[TierInfo]:
        """Fetch all tiers with nested replicasets and instances, in server order."""
        text = self._get(TIERS_ENDPOINT, "tiers")
        try:
            return _TIERS_ADAPTER.validate_json(text)
        except ValidationError as e:
            wire.debug(f"  PARSE ERROR: {e}")
            logger.warning("Picodata response did not match schema", endpoint=TIERS_ENDPOINT)
            raise PicodataParseError(f"Failed to parse tiers: {e}", endpoint=TIERS_ENDPOINT) from e

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()
        logger.debug("Picodata API client closed")

    def __enter__(self) -> PicodataClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
