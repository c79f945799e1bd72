"""Upload transports using Strategy Pattern."""
from .streaming import StreamingTransport
from .delegated import DelegatedTransport

__all__ = [
    'StreamingTransport',
    'DelegatedTransport',
]
