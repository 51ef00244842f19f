"""Background thread that owns the HTTP client.

The render loop never performs network I/O. It puts requests on
``ApiWorker.requests`` and drains results from ``ApiWorker.responses``
without blocking. Requests are handled strictly one at a time, in order, so a
``Login`` (including token adoption) completes before anything queued after
it runs. The bearer token lives only inside the worker thread.
"""

from __future__ import annotations

import queue
import threading

import httpx
import structlog

from picotui.core.exceptions import TokenStoreError
from picotui.core.tokens import TokenStore, normalize_url
from picotui.integrations.picodata.client import PicodataClient
from picotui.integrations.picodata.exceptions import PicodataError
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

logger = structlog.get_logger()


class ApiWorker:
    """Single-consumer request processor running on a daemon thread.

    Example:
        ```python
        worker = ApiWorker("http://localhost:8080").start()
        worker.submit(GetConfig())
        result = worker.responses.get(timeout=10)
        worker.shutdown()
        ```
    """

    def __init__(
        self,
        base_url: str,
        token_store: TokenStore | None = None,
        connect_timeout: float = 5.0,
        request_timeout: float = 10.0,
        verify_ssl: bool = False,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the worker. The thread is not started until start().

        Args:
            base_url: Picodata HTTP API URL.
            token_store: Where remembered tokens are persisted. None disables persistence.
            connect_timeout: Seconds allowed to establish a connection.
            request_timeout: Seconds allowed for a whole response.
            verify_ssl: Verify TLS certificates.
            transport: Optional httpx transport, used by tests.
        """
        self.base_url = normalize_url(base_url)
        self.requests: queue.Queue[ApiRequest] = queue.Queue()
        self.responses: queue.Queue[ApiResponse] = queue.Queue()

        self._token_store = token_store
        self._client_kwargs = {
            "connect_timeout": connect_timeout,
            "request_timeout": request_timeout,
            "verify_ssl": verify_ssl,
            "transport": transport,
        }
        self._closed = threading.Event()
        self._thread = threading.Thread(target=self._run, name="picotui-api-worker", daemon=True)

    @property
    def closed(self) -> bool:
        """True once the consumer has gone away; results are then dropped."""
        return self._closed.is_set()

    def start(self) -> ApiWorker:
        """Start the worker thread."""
        self._thread.start()
        logger.debug("API worker started", base_url=self.base_url)
        return self

    def is_alive(self) -> bool:
        """Whether the worker thread is running."""
        return self._thread.is_alive()

    def submit(self, request: ApiRequest) -> None:
        """Queue a request. Never blocks."""
        self.requests.put(request)

    def shutdown(self) -> None:
        """Stop accepting results and ask the loop to exit.

        An HTTP call already in flight is not cancelled. Its result is dropped.
        """
        self._closed.set()
        self.requests.put(Shutdown())

    def join(self, timeout: float | None = None) -> None:
        """Wait for the worker thread to finish."""
        if self._thread.is_alive():
            self._thread.join(timeout)

    def _emit(self, response: ApiResponse) -> None:
        if self._closed.is_set():
            logger.debug("Dropping API result, receiver closed", result=type(response).__name__)
            return
        self.responses.put(response)

    def _run(self) -> None:
        with PicodataClient(self.base_url, **self._client_kwargs) as client:
            while True:
                request = self.requests.get()
                if isinstance(request, Shutdown):
                    logger.debug("API worker shutting down")
                    break
                response = self._handle(client, request)
                if response is not None:
                    self._emit(response)

    def _handle(self, client: PicodataClient, request: ApiRequest) -> ApiResponse | None:
        """Execute one request and wrap its outcome in a result variant."""
        log = logger.bind(request=type(request).__name__)

        if isinstance(request, SetToken):
            client.set_auth_token(request.auth)
            self._persist_tokens(request.auth, request.refresh)
            log.debug("Adopted saved token")
            return None

        if isinstance(request, GetConfig):
            try:
                return ConfigResult(value=client.get_config())
            except PicodataError as e:
                log.warning("Config request failed", error=str(e))
                return ConfigResult(error=str(e))

        if isinstance(request, Login):
            try:
                tokens = client.login(request.username, request.password)
            except PicodataError as e:
                log.warning("Login failed", username=request.username, error=str(e))
                return LoginResult(error=str(e))
            if request.remember_me:
                self._persist_tokens(tokens.auth, tokens.refresh)
            return LoginResult(value=tokens)

        if isinstance(request, GetClusterInfo):
            try:
                return ClusterInfoResult(value=client.get_cluster_info())
            except PicodataError as e:
                log.warning("Cluster info request failed", error=str(e))
                return ClusterInfoResult(error=str(e))

        if isinstance(request, GetTiers):
            try:
                return TiersResult(value=tuple(client.get_tiers()))
            except PicodataError as e:
                log.warning("Tiers request failed", error=str(e))
                return TiersResult(error=str(e))

        raise TypeError(f"Unknown API request: {request!r}")

    def _persist_tokens(self, auth: str, refresh: str) -> None:
        if self._token_store is None:
            return
        try:
            self._token_store.save(self.base_url, auth, refresh)
        except TokenStoreError as e:
            logger.warning("Failed to save session tokens", error=str(e))
