"""
Short Sileo Exception Hierarchy

Provides clear, actionable error messages with structured information
for logging, user feedback, and programmatic error handling.
"""

from typing import Optional, Dict, Any


class StoreError(Exception):
    """
    Base exception for all Short Sileo errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context as key-value pairs
        cause: Original exception that caused this error
        recoverable: Whether the error is recoverable
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable

    def __str__(self):
        s = f"[{self.code}] {self.message}"
        if self.details:
            s += f" (details: {self.details})"
        if self.cause:
            s += f" caused by: {self.cause}"
        return s

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# Catalog errors
# =============================================================================

class CatalogError(StoreError):
    """Base for catalog-related errors."""
    pass


class MalformedCatalogError(CatalogError):
    """Catalog JSON is absent, not an object, or fails to parse."""
    def __init__(self, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Malformed catalog: {reason}",
            code="MALFORMED_CATALOG",
            details={"reason": reason},
            cause=cause,
        )


class DuplicateSourceError(CatalogError):
    """A source with the same id is already registered."""
    def __init__(self, source_id: str):
        super().__init__(
            f"Repository source '{source_id}' already exists",
            code="DUPLICATE_SOURCE",
            details={"source_id": source_id},
        )


class SourceNotFoundError(CatalogError):
    """Repository source does not exist."""
    def __init__(self, source_id: str):
        super().__init__(
            f"Repository source '{source_id}' not found",
            code="SOURCE_NOT_FOUND",
            details={"source_id": source_id},
        )


class PackageNotFoundError(CatalogError):
    """Package does not exist in the catalog."""
    def __init__(self, package_id: str):
        super().__init__(
            f"Package '{package_id}' not found",
            code="PACKAGE_NOT_FOUND",
            details={"package_id": package_id},
        )


# =============================================================================
# Retrieval errors
# =============================================================================

class RetrievalError(StoreError):
    """Fetching a remote catalog failed."""
    def __init__(self, url: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to retrieve {url}: {reason}",
            code="RETRIEVAL_FAILED",
            details={"url": url, "reason": reason},
            cause=cause,
        )


# =============================================================================
# Side effects
# =============================================================================

class SideEffectFailure(StoreError):
    """An external side effect (opening a link) failed."""
    def __init__(self, url: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Could not open {url}: {reason}",
            code="SIDE_EFFECT_FAILED",
            details={"url": url, "reason": reason},
            cause=cause,
        )


# =============================================================================
# Configuration errors
# =============================================================================

class ConfigError(StoreError):
    """Base for configuration errors."""
    pass


class InvalidConfigError(ConfigError):
    """Invalid configuration."""
    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration: {field}={value}: {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value), "reason": reason},
        )
