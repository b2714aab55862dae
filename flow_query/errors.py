"""
Exception hierarchy for the flow query toolkit.

The pure compilers never raise; these are used by the guards, the ingestion
path and the configuration loader.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SchemaResolution


class FlowQueryError(Exception):
    """Base class for all flow query errors."""


class UnsafeFilterError(FlowQueryError):
    """Raised when a custom filter contains a forbidden SQL pattern."""


class ConfigError(FlowQueryError):
    """Raised when the configuration file cannot be used."""


class SchemaResolutionError(FlowQueryError):
    """Raised when an uploaded file cannot be mapped to the canonical schema.

    Attributes:
        resolution: The failed SchemaResolution, for manual mapping
    """

    def __init__(self, resolution: 'SchemaResolution', message: str = ""):
        self.resolution = resolution
        if not message:
            missing = ", ".join(resolution.missing_columns)
            message = f"Missing required columns: {missing}"
        super().__init__(message)
