"""
Thread-safe in-process dimension store.
"""

from collections import defaultdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional
import logging
import threading

from ..common.config import DimensionConfig
from ..common.exceptions import ConcurrentModification, VersionWriteError
from ..common.models import DimensionVersion
from .base import DimensionStore

logger = logging.getLogger(__name__)


class InMemoryDimensionStore(DimensionStore):
    """Keeps versions in dictionaries guarded by a single lock."""

    def __init__(self):
        self._lock = threading.Lock()
        # dimension_id -> surrogate_key -> version
        self._versions: Dict[str, Dict[int, DimensionVersion]] = defaultdict(dict)
        # dimension_id -> natural_key -> surrogate keys
        self._by_natural_key: Dict[str, Dict[str, List[int]]] = defaultdict(lambda: defaultdict(list))

    def fetch_current(self, config: DimensionConfig, natural_key: str) -> List[DimensionVersion]:
        with self._lock:
            return [v.copy() for v in self._iter_versions(config, natural_key) if v.is_current]

    def fetch_versions(self, config: DimensionConfig, natural_key: str) -> List[DimensionVersion]:
        with self._lock:
            versions = [v.copy() for v in self._iter_versions(config, natural_key)]
        return sorted(versions, key=lambda v: (v.effective_from, v.surrogate_key))

    def insert_first_version(self, config: DimensionConfig, version: DimensionVersion) -> None:
        with self._lock:
            if any(v.is_current for v in self._iter_versions(config, version.natural_key)):
                raise ConcurrentModification(config.dimension_id, version.natural_key)
            self._put(config, version)

    def update_in_place(self, config: DimensionConfig, natural_key: str,
                        surrogate_key: int, attributes: Dict[str, Any]) -> None:
        with self._lock:
            existing = self._versions[config.dimension_id].get(surrogate_key)
            if existing is None or not existing.is_current:
                raise ConcurrentModification(config.dimension_id, natural_key)
            existing.attributes.update(attributes)

    def supersede(self, config: DimensionConfig, expected_surrogate_key: int,
                  close_date: date, new_version: DimensionVersion) -> None:
        with self._lock:
            existing = self._versions[config.dimension_id].get(expected_surrogate_key)
            if existing is None or not existing.is_current:
                raise ConcurrentModification(config.dimension_id, new_version.natural_key)
            if new_version.surrogate_key in self._versions[config.dimension_id]:
                raise VersionWriteError(
                    f"Surrogate key {new_version.surrogate_key} already used in "
                    f"dimension '{config.dimension_id}'", processing_step="supersede"
                )
            existing.effective_to = close_date
            existing.is_current = False
            self._put(config, new_version)

    def max_surrogate_key(self, config: DimensionConfig) -> Optional[int]:
        with self._lock:
            keys = self._versions[config.dimension_id].keys()
            return max(keys) if keys else None

    def natural_keys(self, config: DimensionConfig) -> List[str]:
        with self._lock:
            return list(self._by_natural_key[config.dimension_id])

    def load_versions(self, config: DimensionConfig, versions: Iterable[DimensionVersion]) -> int:
        """
        Bulk-load versions as-is, bypassing the versioning rules.

        Intended for seeding a store from an existing warehouse extract.

        Args:
            config: Dimension configuration
            versions: Versions to load

        Returns:
            Number of versions loaded
        """
        count = 0
        with self._lock:
            for version in versions:
                self._put(config, version)
                count += 1
        logger.info(f"Bulk-loaded {count} versions into dimension '{config.dimension_id}'")
        return count

    def _iter_versions(self, config: DimensionConfig, natural_key: str):
        table = self._versions[config.dimension_id]
        for surrogate_key in self._by_natural_key[config.dimension_id].get(natural_key, []):
            yield table[surrogate_key]

    def _put(self, config: DimensionConfig, version: DimensionVersion) -> None:
        table = self._versions[config.dimension_id]
        if version.surrogate_key in table:
            raise VersionWriteError(
                f"Surrogate key {version.surrogate_key} already used in "
                f"dimension '{config.dimension_id}'", processing_step="insert"
            )
        table[version.surrogate_key] = version.copy()
        self._by_natural_key[config.dimension_id][version.natural_key].append(version.surrogate_key)
