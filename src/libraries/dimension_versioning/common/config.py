"""
Configuration classes for dimension versioning library.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Iterable
from enum import Enum

from .exceptions import ConfigurationError


class AttributePolicy(Enum):
    """How a tracked attribute reacts to a change."""
    TYPE1 = "type1"
    TYPE2 = "type2"


class DeduplicationStrategy(Enum):
    """Enumeration of available same-date conflict strategies."""
    LATEST = "latest"
    EARLIEST = "earliest"
    REJECT = "reject"


SUPPORTED_COLUMN_TYPES = ("string", "integer", "numeric", "boolean", "date")


@dataclass
class DimensionConfig:
    """Configuration for one versioned dimension."""

    # Required parameters
    dimension_id: str
    table_name: str
    natural_key_column: str
    surrogate_key_column: str  # Surrogate key column name (e.g., customer_sk, branch_sk, etc.)
    type2_columns: List[str]

    # Optional parameters
    type1_columns: List[str] = field(default_factory=list)
    schema: Optional[str] = None
    column_types: Dict[str, str] = field(default_factory=dict)
    case_insensitive_columns: List[str] = field(default_factory=list)
    trim_strings: bool = True

    # Standard column names
    effective_from_column: str = "effective_from_date"
    effective_to_column: str = "effective_to_date"
    is_current_column: str = "is_current_record"

    # Concurrency and hashing
    max_attempts: int = 3
    hash_algorithm: str = "sha256"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.dimension_id:
            raise ValueError("dimension_id is required")
        if not self.table_name:
            raise ValueError("table_name is required")
        if not self.natural_key_column:
            raise ValueError("natural_key_column is required")
        if not self.surrogate_key_column:
            raise ValueError("surrogate_key_column is required")
        if not self.type2_columns and not self.type1_columns:
            raise ValueError("at least one tracked column is required")
        if self.max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        if self.hash_algorithm.lower() not in ("sha256", "md5"):
            raise ValueError(f"Unsupported hash algorithm: {self.hash_algorithm}")

        overlap = set(self.type1_columns) & set(self.type2_columns)
        if overlap:
            raise ValueError(f"columns tracked as both TYPE1 and TYPE2: {sorted(overlap)}")

        reserved = {
            self.natural_key_column,
            self.surrogate_key_column,
            self.effective_from_column,
            self.effective_to_column,
            self.is_current_column,
        }
        clashing = reserved & set(self.tracked_columns)
        if clashing:
            raise ValueError(f"tracked columns clash with key or date columns: {sorted(clashing)}")

        untracked = set(self.case_insensitive_columns) - set(self.tracked_columns)
        if untracked:
            raise ValueError(f"case_insensitive_columns must be tracked: {sorted(untracked)}")

        for col_name, col_type in self.column_types.items():
            if col_type not in SUPPORTED_COLUMN_TYPES:
                raise ValueError(f"Unsupported column type '{col_type}' for column {col_name}")

    @property
    def tracked_columns(self) -> List[str]:
        """TYPE-2 columns followed by TYPE-1 columns, duplicates removed."""
        return list(dict.fromkeys(list(self.type2_columns) + list(self.type1_columns)))

    @property
    def qualified_table_name(self) -> str:
        if self.schema:
            return f"{self.schema}.{self.table_name}"
        return self.table_name

    def policy_for(self, column: str) -> AttributePolicy:
        """
        Get the tracking policy of a column.

        Args:
            column: Tracked column name

        Returns:
            AttributePolicy for the column
        """
        if column in self.type2_columns:
            return AttributePolicy.TYPE2
        if column in self.type1_columns:
            return AttributePolicy.TYPE1
        raise ConfigurationError(
            f"Column '{column}' is not tracked by dimension '{self.dimension_id}'",
            config_field=column
        )

    def column_type(self, column: str) -> str:
        return self.column_types.get(column, "string")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DimensionConfig":
        """
        Build a configuration from a plain dictionary (e.g. parsed JSON).

        Args:
            data: Mapping of field names to values

        Returns:
            DimensionConfig instance
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration fields: {sorted(unknown)}")
        return cls(**data)


@dataclass
class DeduplicationConfig:
    """Configuration for batch preparation before versioning."""

    deduplication_strategy: str = "latest"

    def __post_init__(self):
        """Validate configuration after initialization."""
        valid_strategies = [strategy.value for strategy in DeduplicationStrategy]
        if self.deduplication_strategy not in valid_strategies:
            raise ValueError(f"deduplication_strategy must be one of {valid_strategies}")


class DimensionRegistry:
    """Lookup of dimension configurations by dimension_id."""

    def __init__(self, dimensions: Iterable[DimensionConfig] = ()):
        self._dimensions: Dict[str, DimensionConfig] = {}
        for dimension in dimensions:
            self.register(dimension)

    def register(self, dimension: DimensionConfig) -> None:
        if dimension.dimension_id in self._dimensions:
            raise ConfigurationError(
                f"Dimension '{dimension.dimension_id}' is already registered",
                config_field="dimension_id"
            )
        self._dimensions[dimension.dimension_id] = dimension

    def get(self, dimension_id: str) -> DimensionConfig:
        try:
            return self._dimensions[dimension_id]
        except KeyError:
            raise ConfigurationError(
                f"Unknown dimension '{dimension_id}'", config_field="dimension_id"
            ) from None

    def __contains__(self, dimension_id: str) -> bool:
        return dimension_id in self._dimensions

    def __iter__(self):
        return iter(self._dimensions.values())

    def __len__(self) -> int:
        return len(self._dimensions)

    def ids(self) -> List[str]:
        return list(self._dimensions)


@dataclass
class ProcessingMetrics:
    """Metrics for batch processing operations."""

    records_processed: int = 0
    new_entities: int = 0
    type1_updates: int = 0
    type2_versions: int = 0
    unchanged: int = 0
    records_with_errors: int = 0
    retries: int = 0
    processing_time_seconds: float = 0.0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "records_processed": self.records_processed,
            "new_entities": self.new_entities,
            "type1_updates": self.type1_updates,
            "type2_versions": self.type2_versions,
            "unchanged": self.unchanged,
            "records_with_errors": self.records_with_errors,
            "retries": self.retries,
            "processing_time_seconds": self.processing_time_seconds,
            "errors": list(self.errors)
        }


@dataclass
class ValidationResult:
    """Result of data validation."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning message."""
        self.warnings.append(warning)

    def to_dict(self) -> Dict[str, Any]:
        """Convert validation result to dictionary."""
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings
        }
