"""
Streaming upload transport.

Sends the payload through aiohttp as a chunked body generator, which gives
fine-grained progress and lets the stall watchdog abort the transfer.
"""
import asyncio
import json
import time
from typing import AsyncIterator, Dict, Optional, Tuple

import aiohttp

from ..events import ProgressChannel
from ..models import UploadRequest
from ..payload import Payload
from ..protocols import UploadResponse
from ..timeout import TimeoutSupervisor, Scheduler
from ...abort import AbortController
from ...api.errors import parse_error_response, classify
from ...api.http_api import HttpApi
from ...api.prefix import MediaPrefix, UPLOAD_PATH
from ...exceptions import AbortError, ProtocolError, UploadTimeoutError
from ...logging import get_logger

# (status, body, content type); status 0 means the transfer was torn down
TransportOutcome = Tuple[int, str, Optional[str]]


class StreamingTransport:
    """
    Uploads with a streaming aiohttp request.

    Responsibilities:
    - Build the upload URL and headers (credential as header or query)
    - Stream the payload, publishing a progress tick per chunk
    - Keep the timeout supervisor renewed while progress flows
    - Validate the response (status 0, empty body, error status, JSON)
    """

    name = 'streaming'

    def __init__(self, api: HttpApi, scheduler: Optional[Scheduler] = None):
        """
        Initialize the transport.

        Args:
            api: Client providing the session, URL building and configuration
            scheduler: Optional delayed-callback scheduler for the watchdog
                (defaults to the running event loop)
        """
        self._api = api
        self._scheduler = scheduler
        self._logger = get_logger('mxcontent.upload.streaming')

    def build_url(self, file_name: Optional[str] = None) -> str:
        query = {'filename': file_name} if file_name else {}
        query, _ = self._api.auth_query_and_headers(query)
        return self._api.get_url(UPLOAD_PATH, query, prefix=MediaPrefix.R0)

    def build_headers(self, content_type: str, size: int = 0) -> Dict[str, str]:
        _, headers = self._api.auth_query_and_headers(headers={'Content-Type': content_type})
        if size:
            headers['Content-Length'] = str(size)
        return headers

    async def send(
        self,
        request: UploadRequest,
        progress: ProgressChannel,
        controller: AbortController
    ) -> UploadResponse:
        """
        Upload the payload.

        Raises:
            AbortError: On cancellation, timeout, or a status-0 outcome
            ConnectionError: If the transfer failed without an HTTP response
            ProtocolError: If the response body is empty or not JSON
            MatrixError, HTTPError: For status >= 400
        """
        config = self._api.config
        supervisor = TimeoutSupervisor(
            lambda: controller.abort(UploadTimeoutError(config.upload_timeout)),
            timeout=config.upload_timeout,
            scheduler=self._scheduler
        )
        unsubscribe = progress.subscribe(lambda tick: supervisor.renew())
        supervisor.arm()

        task = asyncio.ensure_future(self._transfer(request, progress))
        remove_listener = controller.signal.add_listener(lambda reason: task.cancel())
        try:
            try:
                outcome = await task
            except asyncio.CancelledError:
                if not controller.signal.aborted:
                    raise
                outcome = (0, '', None)
            except Exception as e:
                error = classify(e, controller.signal.aborted)
                if error is e:
                    raise
                raise error from e
        finally:
            supervisor.disarm()
            remove_listener()
            unsubscribe()

        return self._complete(outcome, controller)

    def _complete(self, outcome: TransportOutcome, controller: AbortController) -> UploadResponse:
        status, body, content_type = outcome

        if status == 0:
            raise controller.signal.reason or AbortError("Upload aborted by transport")
        if not body:
            raise ProtocolError("No response body.")
        if status >= 400:
            raise parse_error_response(status, body, content_type)

        try:
            data = json.loads(body)
        except ValueError as e:
            raise ProtocolError(f"Invalid JSON in response body: {e}") from e
        return UploadResponse(body=body, data=data)

    async def _transfer(self, request: UploadRequest, progress: ProgressChannel) -> TransportOutcome:
        payload: Payload = request.payload
        config = self._api.config
        session = await self._api.get_session()

        url = self.build_url(request.file_name)
        headers = self.build_headers(request.content_type, payload.size)
        timeout = aiohttp.ClientTimeout(
            total=None,
            connect=config.timeout.connect,
            sock_connect=config.timeout.sock_connect
        )

        upload_start = time.time()
        self._logger.debug(f"Streaming upload {request.upload.id} to {url.split('?', 1)[0]}")

        async with session.post(
            url,
            data=self._body(payload, progress, config.chunk_size),
            headers=headers,
            proxy=config.get_proxy(),
            timeout=timeout
        ) as response:
            raw = await response.read()
            upload_time = time.time() - upload_start
            self._logger.debug(
                f"Upload {request.upload.id} answered HTTP {response.status} after {upload_time:.2f}s"
            )
            return (
                response.status,
                raw.decode('utf-8', errors='replace'),
                response.headers.get('Content-Type')
            )

    async def _body(self, payload: Payload, progress: ProgressChannel, chunk_size: int) -> AsyncIterator[bytes]:
        loaded = 0
        async for chunk in payload.chunks(chunk_size):
            yield chunk
            loaded += len(chunk)
            progress.emit(loaded, payload.size)
