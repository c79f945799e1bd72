"""
Upload coordinator.

Orchestrates one upload: normalizes inputs, picks the transport, wires
progress and cancellation, and settles the completion future exactly once.
"""
import asyncio
import itertools
import json
import time
from typing import Any, Optional, Set, Tuple

from .events import ProgressChannel
from .models import Upload, UploadOptions, UploadRequest, UploadResult
from .payload import Payload, DEFAULT_CONTENT_TYPE
from .protocols import TransportStrategy, UploadResponse
from .registry import UploadRegistry
from ..abort import AbortController
from ..api.config import HttpApiConfig
from ..api.errors import classify
from ..exceptions import AbortError, MatrixHttpError, ProtocolError
from ..logging import get_logger

logger = get_logger('mxcontent.upload.coordinator')


class UploadCoordinator:
    """
    Coordinates content uploads.

    Uses dependency injection for the transports and the registry, making it:
    - Testable (mock transports)
    - Extensible (swap transports)

    The transport is chosen per call from ``config.streaming``: the streaming
    transport when it is available, the delegated one otherwise.
    """

    def __init__(
        self,
        config: HttpApiConfig,
        streaming_transport: Optional[TransportStrategy] = None,
        delegated_transport: Optional[TransportStrategy] = None,
        registry: Optional[UploadRegistry] = None
    ):
        """
        Initialize upload coordinator.

        Args:
            config: Client configuration (response defaults, capability flag)
            streaming_transport: Transport used when streaming is available
            delegated_transport: Fallback transport
            registry: Shared registry of in-flight uploads
        """
        if streaming_transport is None and delegated_transport is None:
            raise ValueError("At least one transport is required")
        self._config = config
        self._streaming = streaming_transport
        self._delegated = delegated_transport
        self._registry = registry if registry is not None else UploadRegistry()
        self._ids = itertools.count(1)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def registry(self) -> UploadRegistry:
        return self._registry

    def select_transport(self) -> TransportStrategy:
        """Pick the transport for a new upload."""
        if self._config.streaming and self._streaming is not None:
            return self._streaming
        return self._delegated or self._streaming

    def response_shape(self, options: UploadOptions) -> Tuple[bool, bool]:
        """
        Resolve ``(raw_response, only_content_uri)`` for a call.

        An explicit ``only_content_uri=True`` switches off a configured
        raw-response default, since the caller asked for a specific shape.
        """
        defaults = self._config.upload_defaults
        only_content_uri = (
            options.only_content_uri
            if options.only_content_uri is not None
            else defaults.only_content_uri
        )
        raw_response = options.raw_response
        if raw_response is None:
            raw_response = defaults.raw_response and not options.only_content_uri
        return raw_response, only_content_uri

    def upload(self, payload: Any, options: Optional[UploadOptions] = None) -> asyncio.Future:
        """
        Start an upload.

        Must be called from a running event loop. The handle is registered
        before this returns and before any I/O starts.

        Args:
            payload: Bytes, str, Path, file object, async iterable or NamedPayload
            options: Per-call options

        Returns:
            Future resolving to the UploadResult, or rejecting with an error
            of the taxonomy. Cancelling the future aborts the upload.

        Raises:
            TypeError: If the payload type is not supported
        """
        options = options or UploadOptions()
        body = Payload.wrap(payload)
        loop = asyncio.get_running_loop()

        content_type = options.content_type or body.content_type or DEFAULT_CONTENT_TYPE
        file_name = (options.name or body.name) if options.include_filename else None
        controller = options.abort_controller or AbortController()
        raw_response, only_content_uri = self.response_shape(options)
        transport = self.select_transport()

        future = loop.create_future()
        upload = Upload(
            id=next(self._ids),
            abort_controller=controller,
            promise=future,
            total=body.size
        )
        self._registry.register(upload)
        logger.debug(
            f"Starting upload {upload.id} via {transport.name} "
            f"({body.size or 'unknown'} bytes, {content_type})"
        )

        channel = ProgressChannel()
        channel.subscribe(upload.update)
        if options.progress_handler is not None:
            channel.subscribe(options.progress_handler)

        def on_abort(reason: AbortError):
            self._settle(upload, error=reason)

        remove_listener = controller.signal.add_listener(on_abort)

        def on_done(fut: asyncio.Future):
            remove_listener()
            self._registry.remove(upload)
            if fut.cancelled():
                controller.abort()

        future.add_done_callback(on_done)

        if not future.done():
            request = UploadRequest(upload, body, content_type, file_name)
            task = loop.create_task(
                self._run(transport, request, channel, controller, raw_response, only_content_uri)
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return future

    async def _run(
        self,
        transport: TransportStrategy,
        request: UploadRequest,
        channel: ProgressChannel,
        controller: AbortController,
        raw_response: bool,
        only_content_uri: bool
    ) -> None:
        upload = request.upload
        upload_start = time.time()
        try:
            response = await transport.send(request, channel, controller)
            result = self._shape(response, raw_response, only_content_uri)
        except asyncio.CancelledError:
            controller.abort()
            raise
        except MatrixHttpError as e:
            self._settle(upload, error=e)
        except Exception as e:
            self._settle(upload, error=classify(e, controller.signal.aborted))
        else:
            upload_time = time.time() - upload_start
            logger.info(f"Upload {upload.id} completed in {upload_time:.2f}s ({upload.loaded} bytes sent)")
            self._settle(upload, result=result)

    def _settle(
        self,
        upload: Upload,
        result: Optional[UploadResult] = None,
        error: Optional[BaseException] = None
    ) -> None:
        self._registry.remove(upload)
        future = upload.promise
        if future.done():
            return
        if error is None:
            future.set_result(result)
        elif isinstance(error, AbortError):
            logger.warning(f"Upload {upload.id} aborted: {error}")
            future.set_exception(error)
        else:
            logger.error(f"Upload {upload.id} failed: {error}")
            future.set_exception(error)

    @staticmethod
    def _shape(response: UploadResponse, raw_response: bool, only_content_uri: bool) -> UploadResult:
        if raw_response:
            return response.body if response.body is not None else json.dumps(response.data)
        if only_content_uri:
            data = response.data
            if not isinstance(data, dict) or 'content_uri' not in data:
                raise ProtocolError("Response does not contain a content_uri")
            return data['content_uri']
        return response.data

    async def aclose(self) -> None:
        """Abort every in-flight upload and wait for the transports to stop."""
        for upload in self._registry.list():
            upload.abort_controller.abort()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
