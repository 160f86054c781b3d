"""
Components sub-package for the PDF Render Framework.

This package contains the building blocks of a render: the engine process,
the protocol transport, the renderer with its readiness stages, diagnostics
collectors, and output storage.

The `__all__` variable defines the public API of this sub-package,
making key components directly importable from `pdf_render_framework.components`.
"""

# Re-export key components for easier access.
from .renderer.pdf_renderer import PdfRenderer
from .renderer.options import RendererOptions
from .storage.file_storage import (
    FileStorage,
    FilePathError,
    FileExistsError,
    SerializationError
)

__all__ = [
    "PdfRenderer",
    "RendererOptions",
    "FileStorage",
    "FilePathError",        # Exporting storage-specific exceptions
    "FileExistsError",      # as they might be useful for users of FileStorage
    "SerializationError",
]
