"""
Cooperative cancellation primitives.

An AbortController owns an AbortSignal. Firing the controller notifies every
listener of the signal exactly once, with the reason (an AbortError).
"""
from typing import Callable, List, Optional

from .exceptions import AbortError
from .logging import get_logger

logger = get_logger('mxcontent.abort')

AbortListener = Callable[[AbortError], None]


class AbortSignal:
    """Read-only view of an AbortController's state."""

    def __init__(self):
        self._aborted = False
        self._reason: Optional[AbortError] = None
        self._listeners: List[AbortListener] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Optional[AbortError]:
        return self._reason

    def add_listener(self, callback: AbortListener) -> Callable[[], None]:
        """
        Register a callback fired on abort.

        If the signal has already fired the callback runs immediately.

        Returns:
            A function that removes the listener again
        """
        if self._aborted:
            callback(self._reason)
            return lambda: None

        self._listeners.append(callback)

        def remove():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def raise_if_aborted(self):
        if self._aborted:
            raise self._reason

    def _fire(self, reason: AbortError):
        self._aborted = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        for callback in listeners:
            try:
                callback(reason)
            except Exception:
                logger.exception("Abort listener failed")


class AbortController:
    """
    Cancels an in-flight operation.

    Example:
        >>> controller = AbortController()
        >>> future = client.upload_content(b"...", UploadOptions(abort_controller=controller))
        >>> controller.abort()
    """

    def __init__(self):
        self._signal = AbortSignal()

    @property
    def signal(self) -> AbortSignal:
        return self._signal

    def abort(self, reason: Optional[AbortError] = None) -> bool:
        """
        Fire the signal. Calling it again is a no-op.

        Args:
            reason: Error to reject with; defaults to AbortError("Aborted")

        Returns:
            True if this call fired the signal
        """
        if self._signal.aborted:
            return False
        self._signal._fire(reason or AbortError())
        return True
