"""
ContentRepoClient - High-level async client for the media content repository.

Example:
    >>> config = HttpApiConfig.default("https://matrix.example.org", "syt_token")
    >>> async with ContentRepoClient(config) as client:
    ...     future = client.upload_content(Path("cat.png"))
    ...     body = await future
"""
import asyncio
from typing import Any, List, Optional

import aiohttp

from .core.api import HttpApi, HttpApiConfig, MediaPrefix, UPLOAD_PATH
from .core.upload import (
    UploadCoordinator,
    UploadRegistry,
    UploadOptions,
    Upload,
    ContentUri,
    StreamingTransport,
    DelegatedTransport,
)
from .core.upload.timeout import Scheduler
from .core.logging import get_logger

logger = get_logger('mxcontent.client')


class ContentRepoClient:
    """
    Uploads content to a homeserver and keeps track of uploads in flight.

    Uses the streaming transport when ``config.streaming`` is set (the
    default) and the delegated transport otherwise. The response shape
    defaults come from ``config.upload_defaults``.
    """

    def __init__(
        self,
        config: HttpApiConfig,
        session: Optional[aiohttp.ClientSession] = None,
        api: Optional[HttpApi] = None,
        scheduler: Optional[Scheduler] = None
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration
            session: Optional shared aiohttp session
            api: Optional authenticated-request client (built from config
                and session when omitted)
            scheduler: Optional delayed-callback scheduler for the stall
                watchdog (defaults to the running loop)
        """
        self._config = config
        self._api = api or HttpApi(config, session=session)
        self._registry = UploadRegistry()
        self._coordinator = UploadCoordinator(
            config,
            streaming_transport=StreamingTransport(self._api, scheduler=scheduler),
            delegated_transport=DelegatedTransport(self._api, config),
            registry=self._registry
        )

    @property
    def config(self) -> HttpApiConfig:
        return self._config

    @property
    def api(self) -> HttpApi:
        return self._api

    async def __aenter__(self) -> 'ContentRepoClient':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Abort remaining uploads and close the HTTP session."""
        remaining = len(self._registry)
        if remaining:
            logger.warning(f"Closing client with {remaining} upload(s) in flight")
        await self._coordinator.aclose()
        await self._api.close()

    def upload_content(self, payload: Any, options: Optional[UploadOptions] = None) -> asyncio.Future:
        """
        Upload content to the homeserver.

        Must be called from a running event loop; the returned future is the
        reference accepted by ``cancel_upload``.

        Args:
            payload: ``bytes``/``str``, a ``Path``, a binary file object, an
                async iterable of bytes, or a ``NamedPayload``
            options: Per-call UploadOptions

        Returns:
            Future resolving to the raw body, the parsed body or the
            ``content_uri``, depending on options and ``config.upload_defaults``

        Example:
            >>> future = client.upload_content(
            ...     b"hello", UploadOptions(name="hello.txt", only_content_uri=True)
            ... )
            >>> await future
            'mxc://example.org/AQwafuaFswefuhsfAFAgsw'
        """
        return self._coordinator.upload(payload, options)

    def cancel_upload(self, promise: asyncio.Future) -> bool:
        """
        Cancel an upload in flight.

        Returns:
            True if the upload was found and aborted, False if it is unknown
            or already settled
        """
        return self._registry.cancel(promise)

    def get_current_uploads(self) -> List[Upload]:
        """In-flight uploads, oldest first."""
        return self._registry.list()

    def get_content_uri(self) -> ContentUri:
        """Base URL, path and query parameters of the upload endpoint."""
        params = {}
        if self._config.access_token:
            params['access_token'] = self._config.access_token
        return ContentUri(
            base=self._config.base_url,
            path=MediaPrefix.R0 + UPLOAD_PATH,
            params=params
        )
