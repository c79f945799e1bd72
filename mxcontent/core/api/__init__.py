"""Homeserver HTTP API: configuration, request machinery and error classification."""
from .config import (
    HttpApiConfig,
    DeploymentTarget,
    UploadDefaults,
    ProxyConfig,
    SSLConfig,
    TimeoutConfig,
    RetryConfig,
)
from .errors import parse_error_response, classify, is_abort
from .http_api import HttpApi, HttpResponse
from .prefix import Method, ClientPrefix, MediaPrefix, UPLOAD_PATH

__all__ = [
    # Client
    'HttpApi',
    'HttpResponse',

    # Configuration
    'HttpApiConfig',
    'DeploymentTarget',
    'UploadDefaults',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'RetryConfig',

    # Errors
    'parse_error_response',
    'classify',
    'is_abort',

    # Constants
    'Method',
    'ClientPrefix',
    'MediaPrefix',
    'UPLOAD_PATH',
]
