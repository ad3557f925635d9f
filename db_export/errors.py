"""Error types for db-export."""

from typing import Optional, Dict, Any


class ExportError(Exception):
    """Base exception for export errors."""

    stage = "export"

    def __init__(self, message: str, code: str = "EXPORT_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for reporting."""
        return {
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "details": self.details,
        }


class ProviderError(ExportError):
    """Catalog provider I/O or query failure."""

    stage = "fetch"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="PROVIDER_ERROR", details=details)


class BuildError(ExportError):
    """Empty or inconsistent catalog data."""

    stage = "build"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="BUILD_ERROR", details=details)


class RenderError(ExportError):
    """A value or object could not be rendered safely."""

    stage = "render"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="RENDER_ERROR", details=details)


class WriteError(ExportError):
    """Output destination is not writable."""

    stage = "write"

    def __init__(self, message: str, path: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if path:
            details["path"] = path
        super().__init__(message, code="WRITE_ERROR", details=details)
        self.path = path
