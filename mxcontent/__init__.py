"""
mxcontent - Async Python client for Matrix content repository uploads.

Usage:
    >>> from mxcontent import ContentRepoClient, HttpApiConfig, UploadOptions
    >>>
    >>> config = HttpApiConfig.default("https://matrix.example.org", "syt_token")
    >>> async with ContentRepoClient(config) as client:
    ...     future = client.upload_content(b"hello", UploadOptions(name="hello.txt"))
    ...     print(await future)
"""
import logging

from .client import ContentRepoClient
from .core.abort import AbortController, AbortSignal
from .core.api import (
    HttpApi,
    HttpApiConfig,
    DeploymentTarget,
    UploadDefaults,
    ProxyConfig,
    SSLConfig,
    TimeoutConfig,
    RetryConfig,
)
from .core.upload import (
    UploadOptions,
    Upload,
    UploadProgress,
    ContentUri,
    NamedPayload,
)
from .core.exceptions import (
    MatrixHttpError,
    AbortError,
    UploadTimeoutError,
    ConnectionError,
    ProtocolError,
    RemoteError,
    MatrixError,
    HTTPError,
)

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for mxcontent modules.

    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'mxcontent',
        'mxcontent.abort',
        'mxcontent.api',
        'mxcontent.client',
        'mxcontent.upload.coordinator',
        'mxcontent.upload.registry',
        'mxcontent.upload.events',
        'mxcontent.upload.streaming',
        'mxcontent.upload.delegated',
        'mxcontent.upload.timeout',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'ContentRepoClient',
    'HttpApi',
    'AbortController',
    'AbortSignal',
    'HttpApiConfig',
    'DeploymentTarget',
    'UploadDefaults',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'RetryConfig',
    'UploadOptions',
    'Upload',
    'UploadProgress',
    'ContentUri',
    'NamedPayload',
    'MatrixHttpError',
    'AbortError',
    'UploadTimeoutError',
    'ConnectionError',
    'ProtocolError',
    'RemoteError',
    'MatrixError',
    'HTTPError',
    'setup_logging',
]
