"""
HTTP API configuration module.

Provides the configuration consumed by the content repository client.
Open for extension through custom configurations.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, Tuple
import logging
import ssl


class DeploymentTarget(Enum):
    """Where the client is hosted; only used to pick upload defaults."""

    INTERACTIVE = 'interactive'
    HEADLESS = 'headless'


@dataclass
class UploadDefaults:
    """
    Default response shape for uploads.

    Per-call UploadOptions override these. Documented defaults per target:

    - INTERACTIVE (browser-like front ends): only the content URI
    - HEADLESS (services and scripts): the raw response body

    ``raw_response`` wins over ``only_content_uri`` when both are set.
    """
    raw_response: bool = True
    only_content_uri: bool = False

    @classmethod
    def for_target(cls, target: DeploymentTarget) -> 'UploadDefaults':
        """Return the documented defaults for a deployment target."""
        if target is DeploymentTarget.INTERACTIVE:
            return cls(raw_response=False, only_content_uri=True)
        return cls(raw_response=True, only_content_uri=False)


@dataclass
class ProxyConfig:
    """
    Proxy configuration.

    Supports HTTP and HTTPS proxies.
    """
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def to_aiohttp_proxy(self) -> Optional[str]:
        """Convert to aiohttp proxy format."""
        if not self.url:
            return None

        if self.username and self.password and '://' in self.url:
            protocol, rest = self.url.split('://', 1)
            return f"{protocol}://{self.username}:{self.password}@{rest}"

        return self.url


@dataclass
class SSLConfig:
    """SSL/TLS configuration."""
    verify: bool = True
    ca_file: Optional[str] = None
    check_hostname: bool = True

    def create_ssl_context(self):
        """Create SSL context from configuration (False disables verification)."""
        if not self.verify:
            return False

        context = ssl.create_default_context()
        if self.ca_file:
            context.load_verify_locations(self.ca_file)
        context.check_hostname = self.check_hostname
        return context


@dataclass
class TimeoutConfig:
    """
    Timeout configuration for plain requests.

    Uploads are not bounded by ``total``; they rely on the stall watchdog
    configured by ``HttpApiConfig.upload_timeout``.
    """
    total: float = 300.0
    connect: float = 30.0
    sock_connect: float = 30.0

    def to_aiohttp_timeout(self):
        """Convert to aiohttp ClientTimeout."""
        import aiohttp
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_connect=self.sock_connect
        )


@dataclass
class RetryConfig:
    """
    Retry configuration.

    Controls retry behavior of the authenticated-request machinery.
    Uploads sent through the streaming transport are never retried.
    """
    max_retries: int = 4
    base_delay: float = 0.25
    max_delay: float = 16.0
    exponential_base: float = 2.0
    retry_on_status: Tuple[int, ...] = (429, 502, 503, 504)

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt number."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        return min(delay, self.max_delay)


@dataclass
class HttpApiConfig:
    """
    Complete client configuration.

    Attributes:
        base_url: Homeserver base URL, e.g. ``https://matrix.example.org``
        access_token: Access token sent with every authenticated request
        use_authorization_header: Send the token as ``Authorization: Bearer``
            instead of the ``access_token`` query parameter
        only_data: Authenticated requests resolve to the parsed body rather
            than an HttpResponse
        streaming: Whether the streaming upload transport is available;
            when False uploads go through the authenticated-request machinery
        upload_timeout: Seconds without upload progress before the transfer
            is aborted
        chunk_size: Bytes per chunk when streaming a payload
        log_level: Level for the mxcontent loggers, applied with
            ``setup_logging(config.log_level)``
    """
    base_url: str = ''
    access_token: Optional[str] = None
    use_authorization_header: bool = True
    only_data: bool = False
    streaming: bool = True
    upload_timeout: float = 30.0
    chunk_size: int = 64 * 1024

    user_agent: str = 'mxcontent/1.0.0'
    extra_headers: Dict[str, str] = field(default_factory=dict)

    proxy: Optional[ProxyConfig] = None
    ssl: SSLConfig = field(default_factory=SSLConfig)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    upload_defaults: UploadDefaults = field(default_factory=UploadDefaults)

    log_level: int = logging.INFO

    def __post_init__(self):
        self.base_url = (self.base_url or '').rstrip('/')
        if not self.base_url:
            raise ValueError("base_url is required")
        if self.upload_timeout <= 0:
            raise ValueError("upload_timeout must be positive")
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

    @classmethod
    def default(cls, base_url: str, access_token: Optional[str] = None, **kwargs) -> 'HttpApiConfig':
        """Create default configuration."""
        return cls(base_url=base_url, access_token=access_token, **kwargs)

    @classmethod
    def for_target(
        cls,
        target: DeploymentTarget,
        base_url: str,
        access_token: Optional[str] = None,
        **kwargs
    ) -> 'HttpApiConfig':
        """Create configuration with the upload defaults of a deployment target."""
        return cls(
            base_url=base_url,
            access_token=access_token,
            upload_defaults=UploadDefaults.for_target(target),
            **kwargs
        )

    @classmethod
    def with_proxy(cls, base_url: str, proxy_url: str, **kwargs) -> 'HttpApiConfig':
        """Create configuration with proxy."""
        return cls(base_url=base_url, proxy=ProxyConfig(url=proxy_url), **kwargs)

    @classmethod
    def insecure(cls, base_url: str, **kwargs) -> 'HttpApiConfig':
        """Create configuration with SSL verification disabled."""
        return cls(
            base_url=base_url,
            ssl=SSLConfig(verify=False, check_hostname=False),
            **kwargs
        )

    def get_connector_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp TCPConnector."""
        return {'ssl': self.ssl.create_ssl_context()}

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp ClientSession."""
        return {
            'headers': {'User-Agent': self.user_agent, **self.extra_headers},
        }

    def get_proxy(self) -> Optional[str]:
        return self.proxy.to_aiohttp_proxy() if self.proxy else None
