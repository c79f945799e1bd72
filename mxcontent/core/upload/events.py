"""Progress event channel using Observer Pattern."""
from typing import Callable, List

from .models import UploadProgress
from ..logging import get_logger

logger = get_logger('mxcontent.upload.events')

ProgressSubscriber = Callable[[UploadProgress], None]


class ProgressChannel:
    """
    Fan-out of progress ticks for a single upload.

    Subscribers are independent: the handle update, the caller's progress
    handler and the timeout renewal each subscribe separately.
    """

    def __init__(self):
        self._subscribers: List[ProgressSubscriber] = []
        self._last_loaded = 0

    def subscribe(self, callback: ProgressSubscriber) -> Callable[[], None]:
        """Registers a subscriber; returns a function that unsubscribes it."""
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: ProgressSubscriber) -> None:
        self._subscribers = [cb for cb in self._subscribers if cb is not callback]

    def emit(self, loaded: int, total: int = 0) -> UploadProgress:
        """
        Publishes a tick to every subscriber.

        ``loaded`` never goes backwards and never exceeds a known ``total``.
        A failing subscriber is logged and does not stop the others.
        """
        loaded = max(loaded, self._last_loaded)
        if total:
            loaded = min(loaded, total)
        self._last_loaded = loaded

        progress = UploadProgress(loaded=loaded, total=total)
        for callback in list(self._subscribers):
            try:
                callback(progress)
            except Exception:
                logger.exception("Progress subscriber failed")
        return progress
