"""
Short Sileo Common Utilities

Exception hierarchy, logging setup and error-handling decorators shared
by the store modules.
"""

from .exceptions import (
    StoreError, CatalogError, MalformedCatalogError, DuplicateSourceError,
    SourceNotFoundError, PackageNotFoundError, RetrievalError,
    SideEffectFailure, ConfigError, InvalidConfigError,
)
from .decorators import handle_errors, timed
from .logging_config import setup_logging, get_logger, LogContext

__all__ = [
    # Exceptions
    "StoreError", "CatalogError", "MalformedCatalogError", "DuplicateSourceError",
    "SourceNotFoundError", "PackageNotFoundError", "RetrievalError",
    "SideEffectFailure", "ConfigError", "InvalidConfigError",
    # Decorators
    "handle_errors", "timed",
    # Logging
    "setup_logging", "get_logger", "LogContext",
]
