"""
Error classification.

Turns failed transport outcomes into the exception taxonomy of
``mxcontent.core.exceptions``.
"""
import asyncio
import json
from typing import Optional

from ..exceptions import (
    MatrixHttpError,
    AbortError,
    ConnectionError,
    MatrixError,
    HTTPError,
)


def _media_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    return content_type.split(';', 1)[0].strip().lower()


def parse_error_response(
    status: int,
    body: Optional[str],
    content_type: Optional[str] = None
) -> MatrixHttpError:
    """
    Build the exception for an HTTP response with status >= 400.

    A JSON object body becomes a MatrixError carrying ``errcode``/``error``.
    Anything else becomes an HTTPError; ``text/plain`` bodies are included in
    its message. Without a Content-Type header the body is sniffed for JSON.

    Args:
        status: HTTP status code
        body: Response body text
        content_type: Value of the Content-Type header, if any

    Returns:
        The exception to reject with (never raised here)
    """
    media_type = _media_type(content_type)

    if media_type is None or media_type == 'application/json':
        try:
            data = json.loads(body) if body else None
        except ValueError:
            data = None
        if isinstance(data, dict):
            return MatrixError(data, status)

    if media_type == 'text/plain' or (media_type is None and body):
        return HTTPError(f"Server returned {status} error: {body}", status, body=body)

    return HTTPError(f"Server returned {status} error", status, body=body)


def is_abort(exc: BaseException, aborted: bool = False) -> bool:
    """
    Whether ``exc`` means the transfer was cancelled.

    Args:
        exc: The exception to inspect
        aborted: Whether the upload's abort signal has fired; a
            CancelledError only counts as an abort in that case
    """
    if isinstance(exc, AbortError):
        return True
    return aborted and isinstance(exc, asyncio.CancelledError)


def classify(exc: BaseException, aborted: bool = False) -> MatrixHttpError:
    """
    Map any failure to the error taxonomy.

    Aborts take precedence over generic wrapping; already classified errors
    pass through unchanged; everything else is a ConnectionError wrapping the
    original exception.
    """
    if is_abort(exc, aborted):
        if isinstance(exc, AbortError):
            return exc
        return AbortError()
    if isinstance(exc, MatrixHttpError):
        return exc
    return ConnectionError("request failed", exc)
