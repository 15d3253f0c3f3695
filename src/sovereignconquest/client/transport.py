"""HTTP transport for the Sovereign Conquest API."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx

from sovereignconquest.client.errors import ApiError, AuthenticationError, TransportError
from sovereignconquest.client.session_store import SessionStore


logger = logging.getLogger(__name__)

API_PREFIX = "/api"
DEFAULT_TIMEOUT_SECONDS = 15.0

# (field name, (filename or None, content[, content type]))
FilePart = Tuple[str, Tuple[Any, ...]]


def extract_error_message(response: httpx.Response) -> str:
    """Human readable message for a failed response.

    JSON bodies contribute their ``error`` (or ``message``) field, falling
    back to the serialized body; anything else contributes its raw text.
    """
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, Mapping):
            for key in ("error", "message"):
                value = data.get(key)
                if isinstance(value, str) and value:
                    return value
        if data is not None:
            return json.dumps(data)
    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


class Transport:
    """Issues authenticated request/response exchanges.

    The bearer token is read from the :class:`SessionStore` on every call,
    so a cleared session never leaks a stale credential. Any 401 runs the
    registered unauthorized hooks before :class:`AuthenticationError` is
    raised.
    """

    def __init__(
        self,
        base_url: str,
        store: SessionStore,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
        api_prefix: str = API_PREFIX,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix
        self._store = store
        self._http = http_client
        self._timeout = timeout
        self._unauthorized_hooks: List[Callable[[AuthenticationError], None]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def add_unauthorized_hook(self, hook: Callable[[AuthenticationError], None]) -> None:
        """Register a synchronous callback invoked on every 401."""
        self._unauthorized_hooks.append(hook)

    def _ensure_http_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
        return self._http

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}{self.api_prefix}/{endpoint.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self._store.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _send(
        self,
        endpoint: str,
        method: str,
        *,
        payload: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, str]] = None,
        files: Optional[Sequence[FilePart]] = None,
    ) -> httpx.Response:
        http_client = self._ensure_http_client()
        kwargs: Dict[str, Any] = {"headers": self._headers()}
        if files:
            kwargs["data"] = dict(data or {})
            kwargs["files"] = list(files)
        elif payload is not None:
            kwargs["json"] = dict(payload)

        try:
            response = await http_client.request(method, self.url_for(endpoint), **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("transport.network_error endpoint=%s error=%s", endpoint, exc)
            raise TransportError(endpoint, "Unable to reach the server") from exc

        logger.debug(
            "transport.request method=%s endpoint=%s status=%s",
            method,
            endpoint,
            response.status_code,
        )
        if not response.is_success:
            self._raise_for_status(endpoint, response)
        return response

    def _raise_for_status(self, endpoint: str, response: httpx.Response) -> None:
        message = extract_error_message(response)
        try:
            data: Any = response.json()
        except ValueError:
            data = response.text
        logger.warning(
            "transport.error endpoint=%s status=%s message=%s",
            endpoint,
            response.status_code,
            message,
        )
        if response.status_code == 401:
            error = AuthenticationError(endpoint, 401, message, data)
            for hook in list(self._unauthorized_hooks):
                hook(error)
            raise error
        raise ApiError(endpoint, response.status_code, message, data)

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        payload: Optional[Mapping[str, Any]] = None,
        *,
        data: Optional[Mapping[str, str]] = None,
        files: Optional[Sequence[FilePart]] = None,
    ) -> Any:
        """Perform a JSON exchange and return the decoded body.

        ``files`` switches the request to multipart encoding with ``data`` as
        the plain form fields; otherwise ``payload`` is sent as JSON.

        Raises:
            AuthenticationError: the server answered 401.
            ApiError: any other non-success status.
            TransportError: the server was unreachable or the body was not JSON.
        """
        response = await self._send(
            endpoint, method.upper(), payload=payload, data=data, files=files
        )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("transport.malformed_body endpoint=%s", endpoint)
            raise TransportError(endpoint, "Malformed response from server") from exc

    async def download(self, endpoint: str) -> bytes:
        """Fetch a binary resource (message attachments)."""
        response = await self._send(endpoint, "GET")
        return response.content
