"""
Async authenticated-request client.

Generic request machinery used by the delegated upload transport: URL
construction, credentials, retries with exponential backoff and error
classification.
"""
import json
import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional, Any, Awaitable, TypeVar
from urllib.parse import urlencode, quote

import aiohttp

from .config import HttpApiConfig
from .errors import parse_error_response
from .prefix import ClientPrefix
from ..abort import AbortSignal
from ..exceptions import (
    MatrixHttpError,
    ConnectionError,
    ProtocolError,
    RemoteError,
    MatrixError,
)
from ..logging import get_logger

T = TypeVar('T')


@dataclass
class HttpResponse:
    """A completed HTTP exchange."""
    status: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> Optional[str]:
        for key, value in self.headers.items():
            if key.lower() == 'content-type':
                return value
        return None

    def json(self) -> Any:
        """
        Parse the body as JSON.

        Raises:
            ProtocolError: If the body is empty or not valid JSON
        """
        if not self.text:
            raise ProtocolError("No response body.")
        try:
            return json.loads(self.text)
        except ValueError as e:
            raise ProtocolError(f"Invalid JSON in response body: {e}") from e


class HttpApi:
    """
    Asynchronous client for authenticated homeserver requests.

    Features:
    - Access token as bearer header or ``access_token`` query parameter
    - Automatic retry with exponential backoff (connection failures,
      429/502/503/504, ``M_LIMIT_EXCEEDED`` with ``retry_after_ms``)
    - Cancellation through an AbortSignal
    - Connection pooling through one aiohttp session

    Example:
        >>> config = HttpApiConfig.default("https://matrix.example.org", "syt_token")
        >>> async with HttpApi(config) as api:
        ...     whoami = await api.authed_request("GET", "/account/whoami")
    """

    def __init__(self, config: HttpApiConfig, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the client.

        Args:
            config: Client configuration
            session: Optional shared session; it is not closed by this client
        """
        self._config = config
        self._session = session
        self._owns_session = session is None
        self._closed = False
        self._logger = get_logger('mxcontent.api')

    @property
    def config(self) -> HttpApiConfig:
        """Get current configuration."""
        return self._config

    async def __aenter__(self) -> 'HttpApi':
        await self.get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def get_session(self) -> aiohttp.ClientSession:
        """Ensure session is created and open."""
        if self._closed:
            raise ConnectionError("Client is closed")
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(**self._config.get_connector_kwargs())
            self._session = aiohttp.ClientSession(
                connector=connector,
                **self._config.get_session_kwargs()
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close client and release resources."""
        self._closed = True
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def get_url(
        self,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        prefix: Optional[str] = None,
        base_url: Optional[str] = None
    ) -> str:
        """
        Build a full request URL.

        Query values are percent-encoded; ``None`` values are dropped.
        """
        base = (base_url or self._config.base_url).rstrip('/')
        url = f"{base}{prefix if prefix is not None else ClientPrefix.V3}{path}"
        params = {k: v for k, v in (query or {}).items() if v is not None}
        if params:
            url += '?' + urlencode(params, quote_via=quote)
        return url

    def auth_query_and_headers(
        self,
        query: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        """Return copies of ``query`` and ``headers`` carrying the access token."""
        query = dict(query or {})
        headers = dict(headers or {})
        token = self._config.access_token
        if token:
            if self._config.use_authorization_header:
                headers.setdefault('Authorization', f"Bearer {token}")
            else:
                query.setdefault('access_token', token)
        return query, headers

    async def authed_request(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        body: Any = None,
        prefix: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        abort_signal: Optional[AbortSignal] = None
    ) -> Any:
        """
        Make a request carrying the access token.

        See ``request`` for arguments and return value.
        """
        query, headers = self.auth_query_and_headers(query, headers)
        return await self.request(
            method, path, query, body,
            prefix=prefix, headers=headers, abort_signal=abort_signal
        )

    async def request(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, Any]] = None,
        body: Any = None,
        prefix: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        abort_signal: Optional[AbortSignal] = None
    ) -> Any:
        """
        Make a request, retrying transient failures.

        Bodies that cannot be replayed (streams) are sent once.

        Args:
            method: HTTP method
            path: Path below the prefix, e.g. ``/upload``
            query: Query parameters
            body: ``dict``/``list`` (sent as JSON), ``bytes``/``str``, an async
                iterable of bytes, or None
            prefix: Path prefix (defaults to the client API prefix)
            headers: Extra request headers
            abort_signal: Cancels the request (and any pending retry wait)

        Returns:
            The parsed body when ``only_data`` is configured, otherwise an
            HttpResponse

        Raises:
            AbortError: If the signal fired
            ConnectionError: If no response could be obtained
            MatrixError, HTTPError: For responses with status >= 400
            ProtocolError: For unparseable bodies when ``only_data`` is set
        """
        url = self.get_url(path, query, prefix)
        headers = dict(headers or {})
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
            headers.setdefault('Content-Type', 'application/json')
        replayable = body is None or isinstance(body, (bytes, bytearray, str))

        attempt = 0
        while True:
            try:
                response = await self._abortable(
                    self._send(method, url, body, headers), abort_signal
                )
            except ConnectionError as e:
                delay = self._retry_delay(e, attempt) if replayable else None
                if delay is None:
                    self._logger.error(f"{method} {path} failed: {e}")
                    raise
                error: MatrixHttpError = e
            else:
                if response.status < 400:
                    return response.json() if self._config.only_data else response
                error = parse_error_response(response.status, response.text, response.content_type)
                delay = self._retry_delay(error, attempt) if replayable else None
                if delay is None:
                    raise error

            self._logger.warning(
                f"Retrying {method} {path} in {delay:.2f}s after {error}, attempt {attempt + 1}"
            )
            await self._abortable(asyncio.sleep(delay), abort_signal)
            attempt += 1

    def _retry_delay(self, error: MatrixHttpError, attempt: int) -> Optional[float]:
        """Seconds to wait before retrying, or None if the error is final."""
        retry = self._config.retry
        if attempt >= retry.max_retries:
            return None
        if isinstance(error, ConnectionError):
            return retry.calculate_delay(attempt)
        if isinstance(error, RemoteError) and error.http_status in retry.retry_on_status:
            if isinstance(error, MatrixError) and error.errcode == 'M_LIMIT_EXCEEDED':
                retry_after_ms = error.data.get('retry_after_ms')
                if isinstance(retry_after_ms, (int, float)):
                    return retry_after_ms / 1000
            return retry.calculate_delay(attempt)
        return None

    async def _send(self, method: str, url: str, body: Any, headers: Dict[str, str]) -> HttpResponse:
        session = await self.get_session()
        self._logger.debug(f"{method} {url.split('?', 1)[0]}")
        try:
            async with session.request(
                method,
                url,
                data=body,
                headers=headers,
                proxy=self._config.get_proxy(),
                timeout=self._config.timeout.to_aiohttp_timeout()
            ) as response:
                raw = await response.read()
                return HttpResponse(
                    status=response.status,
                    text=raw.decode('utf-8', errors='replace'),
                    headers=dict(response.headers)
                )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise ConnectionError("request failed", e) from e

    async def _abortable(self, awaitable: Awaitable[T], signal: Optional[AbortSignal]) -> T:
        """Await ``awaitable``, cancelling it when ``signal`` fires."""
        if signal is None:
            return await awaitable
        if signal.aborted:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise signal.reason

        task = asyncio.ensure_future(awaitable)
        remove = signal.add_listener(lambda reason: task.cancel())
        try:
            return await task
        except asyncio.CancelledError:
            if signal.aborted:
                raise signal.reason
            raise
        finally:
            remove()
