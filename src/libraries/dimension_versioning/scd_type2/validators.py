"""
Data validation utilities for SCD processing.
"""

from datetime import date
from decimal import Decimal
from typing import List
import logging

from ..common.config import DimensionConfig, ValidationResult
from ..common.models import AsOfRecord, DimensionVersion
from .date_manager import DateManager

logger = logging.getLogger(__name__)

_EXPECTED_TYPES = {
    "string": (str,),
    "integer": (int,),
    "numeric": (int, float, Decimal),
    "boolean": (bool,),
    "date": (date,),
}


class RecordValidator:
    """Validates incoming records before they reach the change detector."""

    def __init__(self, config: DimensionConfig):
        """
        Initialize RecordValidator with configuration.

        Args:
            config: Dimension configuration
        """
        self.config = config

    def validate_record(self, record: AsOfRecord) -> ValidationResult:
        """
        Validate one incoming record.

        Args:
            record: Incoming record

        Returns:
            ValidationResult with validation status and errors
        """
        result = ValidationResult(is_valid=True)

        if record.dimension_id != self.config.dimension_id:
            result.add_error(
                f"Record for dimension '{record.dimension_id}' sent to '{self.config.dimension_id}'"
            )

        self._validate_natural_key(record, result)
        self._validate_as_of_date(record, result)
        self._validate_columns(record, result)
        self._validate_data_types(record, result)

        if not result.is_valid:
            logger.info(f"Record '{record.natural_key}' failed validation: {result.errors}")
        return result

    def _validate_natural_key(self, record: AsOfRecord, result: ValidationResult) -> None:
        if record.natural_key is None or not str(record.natural_key).strip():
            result.add_error("Natural key is null or blank")

    def _validate_as_of_date(self, record: AsOfRecord, result: ValidationResult) -> None:
        if not isinstance(record.as_of_date, date):
            result.add_error(f"as_of_date must be a date, got {type(record.as_of_date).__name__}")

    def _validate_columns(self, record: AsOfRecord, result: ValidationResult) -> None:
        """Every tracked column must be present; untracked columns are not accepted."""
        tracked = set(self.config.tracked_columns)
        missing = tracked - set(record.attributes)
        if missing:
            result.add_error(f"Missing tracked attributes: {sorted(missing)}")
        unknown = set(record.attributes) - tracked
        if unknown:
            result.add_error(f"Unknown attributes: {sorted(unknown)}")

    def _validate_data_types(self, record: AsOfRecord, result: ValidationResult) -> None:
        for column, value in record.attributes.items():
            if value is None or column not in self.config.tracked_columns:
                continue
            col_type = self.config.column_type(column)
            expected = _EXPECTED_TYPES[col_type]
            if col_type in ("integer", "numeric") and isinstance(value, bool):
                result.add_error(f"Attribute {column} expects {col_type}, got bool")
            elif not isinstance(value, expected):
                result.add_error(
                    f"Attribute {column} expects {col_type}, got {type(value).__name__}"
                )


class VersionChainValidator:
    """Checks the stored history of one natural key against the versioning invariants."""

    def __init__(self, config: DimensionConfig):
        self.config = config

    def validate_chain(self, versions: List[DimensionVersion]) -> ValidationResult:
        """
        Validate a version chain.

        Args:
            versions: All versions of one natural key

        Returns:
            ValidationResult listing every violated invariant
        """
        result = ValidationResult(is_valid=True)
        if not versions:
            return result

        ordered = sorted(versions, key=lambda v: (v.effective_from, v.surrogate_key))

        natural_keys = {v.natural_key for v in ordered}
        if len(natural_keys) > 1:
            result.add_error(f"Chain mixes natural keys: {sorted(natural_keys)}")

        current = [v.surrogate_key for v in ordered if v.is_current]
        if len(current) > 1:
            result.add_error(f"Found {len(current)} current versions: {current}")
        elif not current:
            result.add_error("No current version")

        surrogate_keys = [v.surrogate_key for v in ordered]
        if len(set(surrogate_keys)) != len(surrogate_keys):
            result.add_error(f"Duplicate surrogate keys: {surrogate_keys}")

        for error in DateManager.validate_date_consistency(ordered):
            result.add_error(error)

        zero_length = [v.surrogate_key for v in ordered
                       if v.effective_to is not None and v.effective_to == v.effective_from]
        if zero_length:
            result.add_warning(f"Versions superseded on their first day: {zero_length}")

        return result
