"""
Exceptions raised by content repository operations.

Every failure of an upload surfaces as one of these, through the rejected
completion future.
"""
from typing import Optional, Any, Dict


class MatrixHttpError(Exception):
    """Base exception for all content repository errors."""

    name = "MatrixHttpError"

    def __init__(self, message: str, error_code: Optional[int] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            error_code: Numeric error code (if available)
        """
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class AbortError(MatrixHttpError):
    """
    The transfer was cancelled before it completed.

    Raised for caller-initiated cancellation, for a transport that was torn
    down mid-flight and for stalled transfers (see UploadTimeoutError).
    ``name`` keeps the literal tag callers may match on.
    """

    name = "AbortError"

    def __init__(self, message: str = "Aborted", reason: str = "cancelled") -> None:
        self.reason = reason
        super().__init__(message)


class UploadTimeoutError(AbortError):
    """No progress was reported within the timeout window."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Timeout: no progress for {timeout:g}s", reason="timeout")


class ConnectionError(MatrixHttpError):
    """No usable HTTP response was obtained."""

    name = "ConnectionError"

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.__cause__ = cause


class ProtocolError(MatrixHttpError):
    """A response arrived but its body is empty or not valid JSON."""

    name = "ProtocolError"


class RemoteError(MatrixHttpError):
    """The server answered with a status >= 400."""

    name = "RemoteError"

    def __init__(self, message: str, http_status: int) -> None:
        self.http_status = http_status
        super().__init__(message, error_code=http_status)


class MatrixError(RemoteError):
    """
    Structured error response from the server.

    Attributes:
        errcode: Server-declared error code (e.g. ``M_TOO_LARGE``)
        error: Human readable message from the server
        data: The full decoded error body
    """

    name = "MatrixError"

    def __init__(self, data: Dict[str, Any], http_status: int) -> None:
        self.data = data
        self.errcode: Optional[str] = data.get('errcode')
        self.error: Optional[str] = data.get('error')
        message = self.error or "Unknown message"
        if self.errcode:
            message = f"{self.errcode}: {message}"
        super().__init__(f"MatrixError: [{http_status}] {message}", http_status)


class HTTPError(RemoteError):
    """Unstructured (non-JSON) error response from the server."""

    name = "HTTPError"

    def __init__(self, message: str, http_status: int, body: Optional[str] = None) -> None:
        self.body = body
        super().__init__(message, http_status)
