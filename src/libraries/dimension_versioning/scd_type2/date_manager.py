"""
Date management utilities for SCD processing.
"""

from datetime import date
from typing import Iterable, List, Optional
import logging

from ..common.config import DimensionConfig
from ..common.exceptions import InvalidAsOfDate
from ..common.models import AsOfRecord, DimensionVersion

logger = logging.getLogger(__name__)


class DateManager:
    """Manages effective date handling for SCD processing."""

    def __init__(self, config: DimensionConfig):
        """
        Initialize DateManager with configuration.

        Args:
            config: Dimension configuration
        """
        self.config = config

    def check_as_of_date(self, record: AsOfRecord, current: Optional[DimensionVersion]) -> None:
        """
        Reject records dated before the current version became effective.

        Backdated corrections need an explicit repair path; they are never
        spliced into the middle of a version chain.

        Args:
            record: Incoming record
            current: Current version, if any
        """
        if current is not None and record.as_of_date < current.effective_from:
            logger.error(
                f"Rejected backdated record for '{record.natural_key}': "
                f"{record.as_of_date} < {current.effective_from}"
            )
            raise InvalidAsOfDate(self.config.dimension_id, record.natural_key,
                                  record.as_of_date, current.effective_from)

    def open_version(self, record: AsOfRecord, surrogate_key: int, attributes: dict) -> DimensionVersion:
        """
        Build an open version starting at the record's as-of date.

        Args:
            record: Incoming record
            surrogate_key: Key allocated for the version
            attributes: Cleaned attribute set

        Returns:
            Open DimensionVersion
        """
        return DimensionVersion(
            dimension_id=self.config.dimension_id,
            surrogate_key=surrogate_key,
            natural_key=record.natural_key,
            attributes=dict(attributes),
            effective_from=record.as_of_date,
            effective_to=None,
            is_current=True,
        )

    @staticmethod
    def version_as_of(versions: Iterable[DimensionVersion], as_of: date) -> Optional[DimensionVersion]:
        """
        Pick the version whose [effective_from, effective_to) range covers a date.

        Args:
            versions: Versions of one natural key
            as_of: Point in time

        Returns:
            Covering version or None
        """
        for version in versions:
            if version.covers(as_of):
                return version
        return None

    @staticmethod
    def validate_date_consistency(versions: List[DimensionVersion]) -> List[str]:
        """
        Validate date ranges of one natural key's versions.

        Args:
            versions: Versions ordered by effective_from

        Returns:
            List of validation errors
        """
        errors = []
        for version in versions:
            if version.effective_from is None:
                errors.append(f"Version {version.surrogate_key} has null effective_from")
                continue
            if version.effective_to is not None and version.effective_to < version.effective_from:
                errors.append(
                    f"Version {version.surrogate_key} ends ({version.effective_to}) "
                    f"before it starts ({version.effective_from})"
                )
            if version.is_current != (version.effective_to is None):
                errors.append(
                    f"Version {version.surrogate_key} is_current={version.is_current} "
                    f"disagrees with effective_to={version.effective_to}"
                )

        for previous, following in zip(versions, versions[1:]):
            if previous.effective_to is None:
                errors.append(
                    f"Version {previous.surrogate_key} is open but followed by {following.surrogate_key}"
                )
            elif previous.effective_to != following.effective_from:
                kind = "gap" if previous.effective_to < following.effective_from else "overlap"
                errors.append(
                    f"Date {kind} between versions {previous.surrogate_key} "
                    f"({previous.effective_to}) and {following.surrogate_key} ({following.effective_from})"
                )
        return errors
