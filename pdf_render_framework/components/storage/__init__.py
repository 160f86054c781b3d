"""
Storage component for the PDF Render Framework.

Writes rendered PDFs and trace documents to disk.
"""
from .file_storage import (
    FileStorage,
    FilePathError,
    FileExistsError,
    SerializationError
)

__all__ = [
    "FileStorage",
    "FilePathError",
    "FileExistsError",
    "SerializationError",
]
