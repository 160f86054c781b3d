from .config import get_config, config_manager, ConfigurationManager, ConfigError, ConfigFileNotFoundError, InvalidYamlError
from .exceptions import (
    PdfRenderFrameworkError,
    ConfigurationError,
    ComponentError,
    EngineError,
    BinaryNotFoundError,
    ResourceError,
    ProtocolError,
    UnreachableError,
    RendererError,
    RenderError,
    StorageError,
    CompatibilityWarning,
)
from .logger import setup_logging, get_logger, log_duration

__all__ = [
    # Config
    "get_config",
    "config_manager",
    "ConfigurationManager",
    "ConfigError",
    "ConfigFileNotFoundError",
    "InvalidYamlError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_duration",
    # Exceptions
    "PdfRenderFrameworkError",
    "ConfigurationError",
    "ComponentError",
    "EngineError",
    "BinaryNotFoundError",
    "ResourceError",
    "ProtocolError",
    "UnreachableError",
    "RendererError",
    "RenderError",
    "StorageError",
    "CompatibilityWarning",
]
