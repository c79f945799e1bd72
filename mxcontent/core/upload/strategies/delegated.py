"""
Delegated upload transport.

Hands the upload to the authenticated-request machinery. Progress is
coarse (one tick on completion) and retry/backoff belongs to the delegate.
"""
from typing import Any

from ..events import ProgressChannel
from ..models import UploadRequest
from ..payload import Payload
from ..protocols import AuthedRequester, UploadResponse
from ...abort import AbortController
from ...api.config import HttpApiConfig
from ...api.prefix import Method, MediaPrefix, UPLOAD_PATH
from ...logging import get_logger


class DelegatedTransport:
    """Uploads through ``AuthedRequester.authed_request``."""

    name = 'delegated'

    def __init__(self, requester: AuthedRequester, config: HttpApiConfig):
        self._requester = requester
        self._config = config
        self._logger = get_logger('mxcontent.upload.delegated')

    async def send(
        self,
        request: UploadRequest,
        progress: ProgressChannel,
        controller: AbortController
    ) -> UploadResponse:
        """
        Upload the payload.

        Errors raised by the delegate propagate unchanged.
        """
        payload: Payload = request.payload
        query = {'filename': request.file_name} if request.file_name else {}

        self._logger.debug(f"Delegating upload {request.upload.id}")
        response: Any = await self._requester.authed_request(
            Method.POST,
            UPLOAD_PATH,
            query,
            payload.as_body(self._config.chunk_size),
            prefix=MediaPrefix.R0,
            headers={'Content-Type': request.content_type},
            abort_signal=controller.signal
        )

        if payload.size:
            progress.emit(payload.size, payload.size)

        if self._config.only_data:
            return UploadResponse(body=None, data=response)
        return UploadResponse(body=response.text, data=response.json())
