"""
Repository-layer exceptions for metric store and upload storage flows.
"""

from __future__ import annotations


class StorageError(Exception):
    """Raised when the metric store fails (connectivity, constraint violation)."""


class UploadRepositoryError(Exception):
    """Base exception for upload bookkeeping and file storage failures."""


class UploadValidationError(UploadRepositoryError):
    """Raised when an upload payload is rejected before parsing."""


class FileStorageError(UploadRepositoryError):
    """Raised when storing or deleting an uploaded file fails."""


class FileUploadNotFoundError(UploadRepositoryError):
    """Raised when a referenced file upload does not exist."""
