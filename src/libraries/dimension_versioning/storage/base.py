"""
Dimension store contract used by the version writer and resolver.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

from ..common.config import DimensionConfig
from ..common.models import DimensionVersion


class DimensionStore(ABC):
    """
    Persistent home of dimension versions.

    Every write is atomic and conditional. When the condition does not hold
    the store raises ConcurrentModification and applies nothing, so callers
    can re-read and retry.
    """

    @abstractmethod
    def fetch_current(self, config: DimensionConfig, natural_key: str) -> List[DimensionVersion]:
        """Return every version flagged current for the natural key (normally zero or one)."""

    @abstractmethod
    def fetch_versions(self, config: DimensionConfig, natural_key: str) -> List[DimensionVersion]:
        """Return all versions of the natural key ordered by effective_from ascending."""

    @abstractmethod
    def insert_first_version(self, config: DimensionConfig, version: DimensionVersion) -> None:
        """Insert an open version, provided no current version exists for its natural key."""

    @abstractmethod
    def update_in_place(self, config: DimensionConfig, natural_key: str,
                        surrogate_key: int, attributes: Dict[str, Any]) -> None:
        """Overwrite attributes of a version, provided it is still current."""

    @abstractmethod
    def supersede(self, config: DimensionConfig, expected_surrogate_key: int,
                  close_date: date, new_version: DimensionVersion) -> None:
        """Close the expected current version and insert its successor in one transaction."""

    @abstractmethod
    def max_surrogate_key(self, config: DimensionConfig) -> Optional[int]:
        """Highest surrogate key ever written to the dimension, or None when empty."""

    @abstractmethod
    def natural_keys(self, config: DimensionConfig) -> List[str]:
        """All natural keys present in the dimension."""
