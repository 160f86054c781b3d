"""
Custom exception classes for the PDF Render Framework.
"""
from typing import Optional


class PdfRenderFrameworkError(Exception):
    """
    Base class for all custom exceptions in the PDF Render Framework.

    Attributes:
        message (str): A human-readable description of the error.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


# --- Configuration Related Exceptions ---
class ConfigurationError(PdfRenderFrameworkError):
    """
    Raised for errors related to application configuration, such as renderer
    options that fail validation or paper dimensions that are not decimals.
    """
    def __init__(self, message: str):
        super().__init__(message)


# --- Component Related Exceptions ---
class ComponentError(PdfRenderFrameworkError):
    """
    A general base class for errors originating from within a specific component
    (e.g., Engine, Protocol, Renderer, Storage).

    Attributes:
        component_name (str): Name of the component where the error originated.
    """
    def __init__(self, component_name: str, message: str):
        full_message = f"Error in component '{component_name}': {message}"
        super().__init__(full_message)
        self.component_name = component_name


class EngineError(ComponentError):
    """Raised for errors around the browser engine process (discovery, ports, spawning)."""
    def __init__(self, message: str):
        super().__init__(component_name="Engine", message=message)


class BinaryNotFoundError(EngineError):
    """
    Raised when no known engine binary could be located and none was supplied.
    Fatal: aborts before any render job starts.
    """
    def __init__(self, searched: Optional[list] = None):
        message = (
            "Couldn't detect an installed Chrome/Chromium binary! "
            "Set 'chrome_binary' to pass a custom location."
        )
        super().__init__(message)
        self.searched = list(searched or [])


class ResourceError(EngineError):
    """Raised when a local port cannot be allocated or the engine process cannot be spawned."""
    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        if original_exception:
            message += f" (Original exception: {str(original_exception)})"
        super().__init__(message)
        self.original_exception = original_exception


class ProtocolError(ComponentError):
    """Raised for errors in the remote-debugging protocol transport."""
    def __init__(self, message: str):
        super().__init__(component_name="Protocol", message=message)


class UnreachableError(ProtocolError):
    """
    Raised when the engine's debugging port never became reachable within the timeout.

    Attributes:
        host (str): Host that was probed.
        port (int): Port that was probed.
        timeout_ms (int): Budget that was exhausted.
    """
    def __init__(self, host: str, port: int, timeout_ms: int):
        super().__init__(f"Debugging endpoint {host}:{port} not reachable after {timeout_ms}ms.")
        self.host = host
        self.port = port
        self.timeout_ms = timeout_ms


class RendererError(ComponentError):
    """Raised for errors specific to the Renderer component."""
    def __init__(self, message: str):
        super().__init__(component_name="Renderer", message=message)


class RenderError(RendererError):
    """
    Raised when a single render job fails during one of its stages.

    Attributes:
        stage (str): Name of the stage that failed (e.g. "navigating", "capturing").
        cause (Optional[BaseException]): The underlying error reported by the engine or session.
    """
    def __init__(self, stage: str, cause: Optional[BaseException] = None):
        message = f"Render failed during stage '{stage}'"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.stage = stage
        self.cause = cause


class StorageError(ComponentError):
    """Raised for errors specific to the Storage component (writing PDFs and trace files)."""
    def __init__(self, message: str):
        super().__init__(component_name="Storage", message=message)


# --- Warnings ---
class CompatibilityWarning(UserWarning):
    """Issued when the connected engine reports a version known to break PDF rendering."""
