"""
Common utilities and configurations for dimension versioning library.
"""

from .config import (
    AttributePolicy,
    DimensionConfig,
    DeduplicationConfig,
    DimensionRegistry,
    ProcessingMetrics,
    ValidationResult
)
from .exceptions import (
    DimensionalProcessingError,
    NaturalKeyNotFound,
    InvalidAsOfDate,
    AmbiguousCurrentVersion,
    ConcurrentModification,
    DimensionValidationError,
    VersionWriteError,
    DeduplicationError,
    ConfigurationError
)
from .models import AsOfRecord, DimensionVersion, ChangeType, ChangeResult, ApplyResult
from .utils import coerce_date, build_record

__all__ = [
    "AttributePolicy",
    "DimensionConfig",
    "DeduplicationConfig",
    "DimensionRegistry",
    "ProcessingMetrics",
    "ValidationResult",
    "DimensionalProcessingError",
    "NaturalKeyNotFound",
    "InvalidAsOfDate",
    "AmbiguousCurrentVersion",
    "ConcurrentModification",
    "DimensionValidationError",
    "VersionWriteError",
    "DeduplicationError",
    "ConfigurationError",
    "AsOfRecord",
    "DimensionVersion",
    "ChangeType",
    "ChangeResult",
    "ApplyResult",
    "coerce_date",
    "build_record"
]
