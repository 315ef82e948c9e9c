"""
Custom exceptions for the dimension versioning library.
"""


class DimensionalProcessingError(Exception):
    """Base exception for dimension versioning library."""

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class NaturalKeyNotFound(DimensionalProcessingError):
    """Raised when a natural key has never been loaded into a dimension."""

    def __init__(self, dimension_id: str, natural_key: str):
        super().__init__(
            f"Natural key '{natural_key}' not found in dimension '{dimension_id}'",
            "NATURAL_KEY_NOT_FOUND"
        )
        self.dimension_id = dimension_id
        self.natural_key = natural_key


class InvalidAsOfDate(DimensionalProcessingError):
    """Raised when a record is dated before the current version's effective_from."""

    def __init__(self, dimension_id: str, natural_key: str, as_of_date, effective_from):
        super().__init__(
            f"As-of date {as_of_date} for '{natural_key}' in dimension '{dimension_id}' "
            f"is earlier than current version effective_from {effective_from}",
            "INVALID_AS_OF_DATE"
        )
        self.dimension_id = dimension_id
        self.natural_key = natural_key
        self.as_of_date = as_of_date
        self.effective_from = effective_from


class AmbiguousCurrentVersion(DimensionalProcessingError):
    """Raised when the store holds more than one current version for a natural key."""

    def __init__(self, dimension_id: str, natural_key: str, surrogate_keys: list = None):
        self.surrogate_keys = list(surrogate_keys or [])
        super().__init__(
            f"Found {len(self.surrogate_keys)} current versions for '{natural_key}' "
            f"in dimension '{dimension_id}': {self.surrogate_keys}",
            "AMBIGUOUS_CURRENT_VERSION"
        )
        self.dimension_id = dimension_id
        self.natural_key = natural_key


class ConcurrentModification(DimensionalProcessingError):
    """Raised when a conditional write finds the expected version no longer current."""

    def __init__(self, dimension_id: str, natural_key: str, attempts: int = None):
        message = f"Concurrent modification of '{natural_key}' in dimension '{dimension_id}'"
        if attempts is not None:
            message += f" after {attempts} attempts"
        super().__init__(message, "CONCURRENT_MODIFICATION")
        self.dimension_id = dimension_id
        self.natural_key = natural_key
        self.attempts = attempts


class DimensionValidationError(DimensionalProcessingError):
    """Exception raised when an incoming record fails validation."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, "DIMENSION_VALIDATION_ERROR")
        self.validation_errors = validation_errors or []


class VersionWriteError(DimensionalProcessingError):
    """Exception raised when the dimension store fails to apply a write."""

    def __init__(self, message: str, processing_step: str = None):
        super().__init__(message, "VERSION_WRITE_ERROR")
        self.processing_step = processing_step


class DeduplicationError(DimensionalProcessingError):
    """Exception raised when deduplication fails."""

    def __init__(self, message: str, deduplication_strategy: str = None):
        super().__init__(message, "DEDUPLICATION_ERROR")
        self.deduplication_strategy = deduplication_strategy


class ConfigurationError(DimensionalProcessingError):
    """Exception raised when configuration is invalid."""

    def __init__(self, message: str, config_field: str = None):
        super().__init__(message, "CONFIGURATION_ERROR")
        self.config_field = config_field
