"""
Registry of in-flight uploads.

Keyed by each handle's monotonically increasing id. All operations are
synchronous, so they are atomic on the single-threaded event loop.
"""
import asyncio
from typing import Dict, List, Optional

from .models import Upload
from ..logging import get_logger

logger = get_logger('mxcontent.upload.registry')


class UploadRegistry:
    """
    In-flight uploads in insertion order.

    Example:
        >>> registry = UploadRegistry()
        >>> registry.register(upload)
        >>> registry.cancel(upload.promise)
        True
    """

    def __init__(self):
        self._uploads: Dict[int, Upload] = {}

    def __len__(self) -> int:
        return len(self._uploads)

    def __contains__(self, upload: Upload) -> bool:
        return self._uploads.get(upload.id) is upload

    def register(self, upload: Upload) -> None:
        """
        Add a handle.

        Raises:
            ValueError: If a handle with the same id is already registered
        """
        if upload.id in self._uploads:
            raise ValueError(f"Upload {upload.id} is already registered")
        self._uploads[upload.id] = upload
        logger.debug(f"Registered upload {upload.id} ({len(self._uploads)} in flight)")

    def remove(self, upload: Upload) -> bool:
        """Remove a handle; removing an absent handle is a no-op."""
        if self._uploads.get(upload.id) is not upload:
            return False
        del self._uploads[upload.id]
        logger.debug(f"Removed upload {upload.id} ({len(self._uploads)} in flight)")
        return True

    def get(self, upload_id: int) -> Optional[Upload]:
        return self._uploads.get(upload_id)

    def find_by_promise(self, promise: asyncio.Future) -> Optional[Upload]:
        """Find the handle whose completion future is ``promise``."""
        for upload in self._uploads.values():
            if upload.promise is promise:
                return upload
        return None

    def list(self) -> List[Upload]:
        """Snapshot of the in-flight handles, oldest first."""
        return list(self._uploads.values())

    def cancel(self, promise: asyncio.Future) -> bool:
        """
        Abort the upload whose completion future is ``promise``.

        Returns:
            True if an in-flight upload was found, False otherwise (including
            when it has already settled)
        """
        upload = self.find_by_promise(promise)
        if upload is None:
            return False
        logger.info(f"Cancelling upload {upload.id}")
        upload.abort_controller.abort()
        return True
