"""
Natural key resolution against the dimension store.
"""

from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging
import time

from ..common.config import DimensionRegistry
from ..common.exceptions import AmbiguousCurrentVersion, NaturalKeyNotFound
from ..common.models import DimensionVersion
from ..common.utils import coerce_date
from ..scd_type2.date_manager import DateManager
from ..storage.base import DimensionStore

logger = logging.getLogger(__name__)


class NaturalKeyResolver:
    """Maps natural keys to versions. Read-only."""

    def __init__(self, store: DimensionStore, registry: DimensionRegistry):
        """
        Initialize NaturalKeyResolver with a store and the dimension registry.

        Args:
            store: Dimension store
            registry: Dimension configurations
        """
        self.store = store
        self.registry = registry

    def resolve(self, dimension_id: str, natural_key: str) -> Optional[DimensionVersion]:
        """
        Find the current version of a natural key.

        Args:
            dimension_id: Dimension identifier
            natural_key: Natural key

        Returns:
            Current version, or None if the key was never loaded
        """
        config = self.registry.get(dimension_id)
        current = self.store.fetch_current(config, natural_key)
        if len(current) > 1:
            logger.error(f"Integrity violation: {len(current)} current versions for "
                         f"'{natural_key}' in '{dimension_id}'")
            raise AmbiguousCurrentVersion(dimension_id, natural_key,
                                          [v.surrogate_key for v in current])
        if not current:
            return None
        version = current[0]
        if not version.is_current or version.effective_to is not None:
            raise AmbiguousCurrentVersion(dimension_id, natural_key, [version.surrogate_key])
        return version

    def require(self, dimension_id: str, natural_key: str) -> DimensionVersion:
        """Like ``resolve`` but raises NaturalKeyNotFound for unknown keys."""
        version = self.resolve(dimension_id, natural_key)
        if version is None:
            raise NaturalKeyNotFound(dimension_id, natural_key)
        return version

    def versions(self, dimension_id: str, natural_key: str) -> List[DimensionVersion]:
        return self.store.fetch_versions(self.registry.get(dimension_id), natural_key)

    def version_as_of(self, dimension_id: str, natural_key: str,
                      as_of: date) -> Optional[DimensionVersion]:
        """
        Find the version in effect on a date.

        Args:
            dimension_id: Dimension identifier
            natural_key: Natural key
            as_of: Point in time

        Returns:
            Covering version or None
        """
        return DateManager.version_as_of(self.versions(dimension_id, natural_key), as_of)

    def surrogate_key_as_of(self, dimension_id: str, natural_key: str,
                            as_of: date) -> Optional[int]:
        version = self.version_as_of(dimension_id, natural_key, as_of)
        return version.surrogate_key if version else None

    def resolve_fact_keys(self, dimension_id: str, rows: Iterable[Mapping[str, Any]],
                          natural_key_field: str, date_field: str,
                          surrogate_key_field: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Attach point-in-time surrogate keys to fact rows.

        Args:
            dimension_id: Dimension identifier
            rows: Fact rows
            natural_key_field: Field holding the dimension's natural key
            date_field: Field holding the business date
            surrogate_key_field: Output field (defaults to the dimension's
                surrogate key column)

        Returns:
            New list of rows with the surrogate key field set (None when unresolved)
        """
        start_time = time.time()
        config = self.registry.get(dimension_id)
        output_field = surrogate_key_field or config.surrogate_key_column

        history_cache: Dict[str, List[DimensionVersion]] = {}
        resolved_rows = []
        unresolved = 0
        for row in rows:
            natural_key = row.get(natural_key_field)
            surrogate_key = None
            if natural_key is not None:
                natural_key = str(natural_key)
                if natural_key not in history_cache:
                    history_cache[natural_key] = self.store.fetch_versions(config, natural_key)
                version = DateManager.version_as_of(history_cache[natural_key],
                                                    coerce_date(row.get(date_field), date_field))
                surrogate_key = version.surrogate_key if version else None
            if surrogate_key is None:
                unresolved += 1
            resolved = dict(row)
            resolved[output_field] = surrogate_key
            resolved_rows.append(resolved)

        if unresolved:
            logger.warning(f"Found {unresolved} unresolved keys for dimension '{dimension_id}'")
        logger.info(f"Resolved {len(resolved_rows) - unresolved}/{len(resolved_rows)} fact keys "
                    f"in {time.time() - start_time:.2f} seconds")
        return resolved_rows
