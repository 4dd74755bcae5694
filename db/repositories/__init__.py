"""
Repository layer exports.
"""

from db.repositories.errors import (
    FileStorageError,
    FileUploadNotFoundError,
    StorageError,
    UploadRepositoryError,
    UploadValidationError,
)
from db.repositories.file_upload_repository import FileUploadRepository
from db.repositories.storage import FileStorageBackend, LocalFileStorage
from db.repositories.types import StoredFileMetadata, UploadFileInput

__all__ = [
    "FileUploadRepository",
    "UploadFileInput",
    "StoredFileMetadata",
    "FileStorageBackend",
    "LocalFileStorage",
    "StorageError",
    "UploadRepositoryError",
    "UploadValidationError",
    "FileStorageError",
    "FileUploadNotFoundError",
]
