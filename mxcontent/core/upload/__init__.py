"""
Upload module for content repository uploads.

Provides the coordinator, the registry of in-flight uploads and the
pluggable transports.
"""
from .coordinator import UploadCoordinator
from .registry import UploadRegistry
from .events import ProgressChannel
from .timeout import TimeoutSupervisor, DEFAULT_UPLOAD_TIMEOUT
from .payload import Payload, NamedPayload, DEFAULT_CONTENT_TYPE
from .models import UploadOptions, Upload, UploadProgress, ContentUri, UploadRequest, UploadResult
from .protocols import TransportStrategy, AuthedRequester, UploadResponse
from .strategies import StreamingTransport, DelegatedTransport

__all__ = [
    # Main classes
    'UploadCoordinator',
    'UploadRegistry',
    'ProgressChannel',
    'TimeoutSupervisor',
    'DEFAULT_UPLOAD_TIMEOUT',

    # Payloads
    'Payload',
    'NamedPayload',
    'DEFAULT_CONTENT_TYPE',

    # Models
    'UploadOptions',
    'Upload',
    'UploadProgress',
    'ContentUri',
    'UploadRequest',
    'UploadResult',

    # Transports
    'TransportStrategy',
    'AuthedRequester',
    'UploadResponse',
    'StreamingTransport',
    'DelegatedTransport',
]
