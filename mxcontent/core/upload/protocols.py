"""
Protocol definitions for the upload module.

Defines the interfaces the coordinator depends on, so transports and the
authenticated-request collaborator can be swapped or mocked.
"""
from typing import Protocol, Dict, Any, Optional

from .events import ProgressChannel
from .models import UploadRequest
from ..abort import AbortController, AbortSignal


class UploadResponse:
    """
    Validated outcome of a successful upload.

    Attributes:
        body: Raw response body text (None if the transport only has the
            parsed body)
        data: Parsed JSON body
    """

    __slots__ = ('body', 'data')

    def __init__(self, body: Optional[str], data: Any):
        self.body = body
        self.data = data

    def __repr__(self) -> str:
        return f"UploadResponse(body={self.body!r}, data={self.data!r})"


class TransportStrategy(Protocol):
    """
    Protocol for upload transports.

    Sends the payload, publishes progress on the channel and returns the
    validated response, or raises an error of the taxonomy. Must stop
    promptly once the controller's signal fires.
    """

    name: str

    async def send(
        self,
        request: UploadRequest,
        progress: ProgressChannel,
        controller: AbortController
    ) -> UploadResponse:
        ...


class AuthedRequester(Protocol):
    """Protocol for the generic authenticated-request collaborator."""

    async def authed_request(
        self,
        method: str,
        path: str,
        query: Optional[Dict[str, str]] = None,
        body: Any = None,
        prefix: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        abort_signal: Optional[AbortSignal] = None
    ) -> Any:
        ...
