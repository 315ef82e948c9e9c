"""
Dimension Versioning Library

Slowly Changing Dimension (Type 1 / Type 2) versioning for the banking
analytics warehouse: applies "current truth" records to versioned
dimensions and keeps each natural key's history contiguous.

Main Components:
- DimensionVersionManager: Applies as-of records and answers history queries
- NaturalKeyResolver: Resolves natural keys to current or point-in-time versions
- SurrogateKeyAllocator: Issues per-dimension surrogate keys
- InMemoryDimensionStore / SqlDimensionStore: Dimension stores

Author: Data Engineering Team
Version: 1.0.0
"""

from .scd_type2.version_manager import DimensionVersionManager
from .scd_type2.historical_data_deduplicator import HistoricalDataDeduplicator
from .key_resolution.key_resolver import NaturalKeyResolver
from .key_resolution.surrogate_key_allocator import SurrogateKeyAllocator, DatabaseSequenceAllocator
from .storage.memory_store import InMemoryDimensionStore
from .storage.sql_store import SqlDimensionStore
from .common.config import DimensionConfig, DeduplicationConfig, DimensionRegistry, AttributePolicy
from .common.models import AsOfRecord, DimensionVersion, ChangeType, ApplyResult
from .common.banking_dimensions import banking_dimensions, banking_registry
from .common.exceptions import (
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

__version__ = "1.0.0"
__author__ = "Data Engineering Team"

__all__ = [
    "DimensionVersionManager",
    "HistoricalDataDeduplicator",
    "NaturalKeyResolver",
    "SurrogateKeyAllocator",
    "DatabaseSequenceAllocator",
    "InMemoryDimensionStore",
    "SqlDimensionStore",
    "DimensionConfig",
    "DeduplicationConfig",
    "DimensionRegistry",
    "AttributePolicy",
    "AsOfRecord",
    "DimensionVersion",
    "ChangeType",
    "ApplyResult",
    "banking_dimensions",
    "banking_registry",
    "DimensionalProcessingError",
    "NaturalKeyNotFound",
    "InvalidAsOfDate",
    "AmbiguousCurrentVersion",
    "ConcurrentModification",
    "DimensionValidationError",
    "VersionWriteError",
    "DeduplicationError",
    "ConfigurationError"
]
