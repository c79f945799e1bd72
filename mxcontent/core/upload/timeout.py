"""
Stall watchdog for uploads.

The deadline is armed when the transfer starts and pushed back on every
progress tick; it only fires after a full window without progress.
"""
import asyncio
from typing import Callable, Optional, Protocol

from ..logging import get_logger

logger = get_logger('mxcontent.upload.timeout')

DEFAULT_UPLOAD_TIMEOUT = 30.0


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything offering cancellable delayed callbacks (an event loop does)."""

    def call_later(self, delay: float, callback: Callable[..., None], *args) -> TimerHandle: ...


class TimeoutSupervisor:
    """
    Per-upload watchdog.

    Example:
        >>> supervisor = TimeoutSupervisor(lambda: controller.abort(UploadTimeoutError(30)))
        >>> supervisor.arm()
        >>> channel.subscribe(lambda progress: supervisor.renew())
        >>> ...
        >>> supervisor.disarm()
    """

    def __init__(
        self,
        on_timeout: Callable[[], None],
        timeout: float = DEFAULT_UPLOAD_TIMEOUT,
        scheduler: Optional[Scheduler] = None
    ):
        self._on_timeout = on_timeout
        self._timeout = timeout
        self._scheduler = scheduler
        self._timer: Optional[TimerHandle] = None
        self._finished = False
        self.fired = False

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def active(self) -> bool:
        return self._timer is not None

    def arm(self) -> None:
        """Start (or restart) the deadline. Ignored once disarmed or fired."""
        if self._finished:
            return
        if self._timer is not None:
            self._timer.cancel()
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._timer = scheduler.call_later(self._timeout, self._fire)

    def renew(self) -> None:
        """Push the deadline back by a full window."""
        if self._timer is not None:
            self.arm()

    def disarm(self) -> None:
        """Cancel the deadline for good; later calls are no-ops."""
        if self._finished:
            return
        self._finished = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._timer = None
        self.fired = True
        logger.warning(f"Upload stalled: no progress for {self._timeout:g}s, aborting")
        self._on_timeout()
