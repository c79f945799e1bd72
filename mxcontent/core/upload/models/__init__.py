"""Upload models."""
from .upload_models import (
    UploadProgress,
    ProgressHandler,
    UploadOptions,
    Upload,
    ContentUri,
    UploadRequest,
    UploadResult,
)

__all__ = [
    'UploadProgress',
    'ProgressHandler',
    'UploadOptions',
    'Upload',
    'ContentUri',
    'UploadRequest',
    'UploadResult',
]
