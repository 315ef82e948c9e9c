"""
Utility functions for dimension versioning library.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping

from .config import DimensionConfig
from .exceptions import DimensionValidationError
from .models import AsOfRecord


def coerce_date(value: Any, field_name: str = "as_of_date") -> date:
    """
    Convert a date-like value to a ``date``.

    Args:
        value: date, datetime or ISO-8601 string
        field_name: Name used in error messages

    Returns:
        date value
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            raise DimensionValidationError(f"Invalid {field_name}: {value!r}") from None
    raise DimensionValidationError(f"Invalid {field_name}: {value!r}")


def normalize_value(config: DimensionConfig, column: str, value: Any) -> Any:
    """
    Normalize an attribute value for comparison.

    Strings are trimmed when ``trim_strings`` is set and case-folded for
    case-insensitive columns. Every other value is compared as-is.
    """
    if isinstance(value, str):
        if config.trim_strings:
            value = value.strip()
        if column in config.case_insensitive_columns:
            value = value.casefold()
    return value


def clean_attributes(config: DimensionConfig, attributes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Produce the attribute set that is stored on a version.

    Only tracked columns are kept, in configuration order; strings are
    trimmed when ``trim_strings`` is set and numeric columns hold ``Decimal``
    values, so they compare exactly with what a SQL store reads back.
    """
    cleaned = {}
    for column in config.tracked_columns:
        value = attributes.get(column)
        if isinstance(value, str) and config.trim_strings:
            value = value.strip()
        elif (config.column_type(column) == "numeric" and isinstance(value, (int, float))
              and not isinstance(value, bool)):
            value = Decimal(str(value))
        cleaned[column] = value
    return cleaned


def build_record(dimension_id: str, natural_key: Any, as_of_date: Any,
                 attributes: Mapping[str, Any]) -> AsOfRecord:
    """
    Build an AsOfRecord from loosely typed input (e.g. parsed JSON).

    Args:
        dimension_id: Target dimension
        natural_key: Natural key, converted to string
        as_of_date: date, datetime or ISO string
        attributes: Attribute mapping

    Returns:
        AsOfRecord
    """
    if natural_key is None or str(natural_key).strip() == "":
        raise DimensionValidationError("natural_key is required")
    return AsOfRecord(
        dimension_id=dimension_id,
        natural_key=str(natural_key).strip(),
        as_of_date=coerce_date(as_of_date),
        attributes=dict(attributes or {})
    )


def coerce_attributes(config: DimensionConfig, attributes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Convert JSON-style attribute values to the configured column types.

    Dates arrive as ISO strings and numerics as strings or floats; both are
    converted so that comparisons against stored values are exact.

    Args:
        config: Dimension configuration
        attributes: Raw attribute mapping

    Returns:
        New attribute mapping
    """
    converted = {}
    for column, value in attributes.items():
        col_type = config.column_type(column)
        if value is None or col_type == "string":
            converted[column] = value
        elif col_type == "date":
            converted[column] = coerce_date(value, column)
        elif col_type == "numeric" and not isinstance(value, bool):
            try:
                converted[column] = Decimal(str(value))
            except InvalidOperation:
                raise DimensionValidationError(f"Invalid numeric value for {column}: {value!r}") from None
        else:
            converted[column] = value
    return converted
