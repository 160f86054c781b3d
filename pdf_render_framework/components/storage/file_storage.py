"""
File system storage component for rendered output.

This module provides the `FileStorage` class, which writes rendered PDFs and
trace documents to disk. It integrates with the `ConfigurationManager` to
determine the base storage path used for relative filenames, and supports
automatic filename generation.
"""
import json
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TYPE_CHECKING, Union

from pdf_render_framework.core.exceptions import StorageError
if TYPE_CHECKING:
    from pdf_render_framework.core.config import ConfigurationManager
from pdf_render_framework.core.logger import get_logger

logger = get_logger(__name__)


# --- Storage-Specific Exceptions ---

class FilePathError(StorageError):
    """Raised for errors related to file paths, such as an empty filename."""
    def __init__(self, message: str):
        super().__init__(message=message)


class FileExistsError(FilePathError):
    """
    Raised when attempting to save a file that already exists, and `overwrite` is False.

    Attributes:
        path (str): The full path to the file that already exists.
    """
    def __init__(self, path: str):
        super().__init__(f"File already exists at path: {path}. Set overwrite=True to replace it.")
        self.path = path


class SerializationError(StorageError):
    """Raised when a trace document cannot be encoded as JSON."""
    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        full_message = f"Serialization error: {message}"
        if original_exception:
            full_message += f" (Original exception: {str(original_exception)})"
        super().__init__(message=full_message)
        self.original_exception = original_exception


class FileStorage:
    """
    Writes rendered PDFs and JSON trace documents to the local file system.

    Absolute filenames are used as given; relative ones are placed under
    `base_path`.
    """
    DEFAULT_STORAGE_PATH = "rendered_pdfs"

    def __init__(self, config: Optional['ConfigurationManager'] = None):
        """
        Initializes the FileStorage.

        Args:
            config (Optional[ConfigurationManager]): Source of `components.file_storage.base_path`.
                                                     If None, the default path is used.
        Raises:
            StorageError: If the base path cannot be created or accessed.
        """
        configured_base_path = config.get('components.file_storage.base_path') if config else None

        # components/storage/file_storage.py -> pdf_render_framework/
        project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

        if configured_base_path:
            if os.path.isabs(configured_base_path):
                self.base_path = configured_base_path
            else:
                self.base_path = os.path.join(project_root, configured_base_path)
            logger.info(f"FileStorage initialized with configured base_path: {self.base_path}")
        else:
            self.base_path = os.path.join(project_root, self.DEFAULT_STORAGE_PATH)
            logger.info(f"FileStorage initialized with default base_path: {self.base_path}")

        try:
            os.makedirs(self.base_path, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create or access base directory '{self.base_path}': {e}", exc_info=True)
            raise StorageError(message=f"Failed to create or access base directory '{self.base_path}': {e}")

    def _get_full_path(self, filename: str, extension: str) -> str:
        """Resolves `filename` against base_path and makes sure it ends with `extension`."""
        if not filename or not filename.strip():
            raise FilePathError("Filename cannot be empty.")
        filename = filename.strip()
        _, ext = os.path.splitext(filename)
        if ext.lower() != extension.lower():
            filename = filename + extension
        if os.path.isabs(filename):
            return filename
        return os.path.join(self.base_path, filename)

    def _generate_filename(self, prefix: Optional[str]) -> str:
        prefix = prefix if prefix and prefix.strip() else "render"
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        return f"{prefix}_{timestamp}_{uuid.uuid4().hex[:6]}"

    def _write(self, full_path: str, payload: Union[bytes, str], overwrite: bool) -> str:
        if not overwrite and os.path.exists(full_path):
            logger.warning(f"File already exists at {full_path} and overwrite is False.")
            raise FileExistsError(path=full_path)
        mode, encoding = ("wb", None) if isinstance(payload, bytes) else ("w", "utf-8")
        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, mode, encoding=encoding) as f:
                f.write(payload)
        except OSError as e:
            logger.error(f"Failed to write file '{full_path}': {e}", exc_info=True)
            raise StorageError(message=f"Failed to write file '{full_path}': {e}")
        logger.debug(f"Wrote {len(payload)} bytes to {full_path}")
        return full_path

    def save_pdf(self, data: bytes, filename: Optional[str] = None, filename_prefix: Optional[str] = "render",
                 overwrite: bool = False) -> str:
        """
        Saves rendered PDF bytes.

        Args:
            data (bytes): The PDF content.
            filename (Optional[str]): Target file; `.pdf` is appended when missing. Generated when None.
            filename_prefix (Optional[str]): Prefix for generated filenames.
            overwrite (bool): Replace an existing file.

        Returns:
            str: The full path to the saved file.

        Raises:
            FileExistsError: If overwrite is False and the file already exists.
            StorageError: For other IO/OS errors.
        """
        resolved = filename if filename and filename.strip() else self._generate_filename(filename_prefix)
        return self._write(self._get_full_path(resolved, ".pdf"), data, overwrite)

    def save_json(self, data: Union[Dict[str, Any], List[Any]], filename: Optional[str] = None,
                  filename_prefix: Optional[str] = "trace", overwrite: bool = False) -> str:
        """
        Saves a dictionary or list (e.g. a trace document) as JSON.

        Raises:
            FileExistsError: If overwrite is False and the file already exists.
            SerializationError: If the data cannot be encoded as JSON.
            StorageError: For other IO/OS errors.
        """
        resolved = filename if filename and filename.strip() else self._generate_filename(filename_prefix)
        try:
            payload = json.dumps(data, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(message=f"Failed to serialize data to JSON for file '{resolved}'.", original_exception=e)
        return self._write(self._get_full_path(resolved, ".json"), payload, overwrite)
