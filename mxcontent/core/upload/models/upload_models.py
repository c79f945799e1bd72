"""
Data models for the upload module.

Uses dataclasses for type-safe data structures.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Callable, Union

from ...abort import AbortController


@dataclass(frozen=True)
class UploadProgress:
    """
    Upload progress information.

    Attributes:
        loaded: Bytes handed to the transport so far
        total: Total payload size; 0 means unknown, not empty
    """
    loaded: int
    total: int = 0

    @property
    def percentage(self) -> Optional[float]:
        """Returns upload progress as percentage, or None if the size is unknown."""
        if self.total == 0:
            return None
        return (self.loaded / self.total) * 100


ProgressHandler = Callable[[UploadProgress], None]


@dataclass
class UploadOptions:
    """
    Per-call upload options.

    Attributes:
        name: File name sent to the server; defaults to the payload's name
        include_filename: Send the file name at all. Disable for encrypted
            uploads where the name must not leak
        content_type: Content type; defaults to the payload's declared type,
            then ``application/octet-stream``
        progress_handler: Called with an UploadProgress on every progress tick
        abort_controller: Controller used to cancel this upload; a fresh one
            is created when omitted
        raw_response: Resolve to the raw body text. None uses the configured
            default
        only_content_uri: Resolve to the ``content_uri`` only. Ignored when
            raw_response is set. None uses the configured default
    """
    name: Optional[str] = None
    include_filename: bool = True
    content_type: Optional[str] = None
    progress_handler: Optional[ProgressHandler] = None
    abort_controller: Optional[AbortController] = None
    raw_response: Optional[bool] = None
    only_content_uri: Optional[bool] = None


@dataclass(eq=False)
class Upload:
    """
    Bookkeeping record of one in-flight upload.

    Compared by identity; the registry keys it on ``id``.
    """
    id: int
    abort_controller: AbortController
    promise: Optional[asyncio.Future] = None
    loaded: int = 0
    total: int = 0

    def update(self, progress: UploadProgress):
        """Apply a progress tick."""
        self.loaded = progress.loaded
        self.total = progress.total

    @property
    def progress(self) -> UploadProgress:
        return UploadProgress(self.loaded, self.total)


@dataclass(frozen=True)
class ContentUri:
    """
    Location of the content repository upload endpoint.

    The parameters must be kept with base and path; the resource is not
    guaranteed to be reachable without them.
    """
    base: str
    path: str
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def url(self) -> str:
        return f"{self.base}{self.path}"

    def to_dict(self) -> Dict[str, Any]:
        return {'base': self.base, 'path': self.path, 'params': dict(self.params)}


@dataclass(frozen=True)
class UploadRequest:
    """Everything a transport strategy needs to send one upload."""
    upload: Upload
    payload: Any
    content_type: str
    file_name: Optional[str] = None


UploadResult = Union[Dict[str, Any], str]
