"""
Surrogate key allocation for new dimension versions.
"""

from typing import Callable, Dict, Optional
import logging
import threading

from ..common.config import DimensionConfig

logger = logging.getLogger(__name__)


class SurrogateKeyAllocator:
    """
    Issues monotonically increasing surrogate keys per dimension.

    The counter of a dimension is seeded on first use from ``high_water_mark``
    (normally the store's highest surrogate key). Keys handed out are never
    issued again, even when the write they were drawn for fails.
    """

    def __init__(self, high_water_mark: Optional[Callable[[str], Optional[int]]] = None):
        """
        Initialize SurrogateKeyAllocator.

        Args:
            high_water_mark: Callable returning the highest key already in use
                for a dimension_id, or None for an empty dimension
        """
        self._high_water_mark = high_water_mark
        self._lock = threading.Lock()
        self._last_issued: Dict[str, int] = {}

    def next(self, dimension_id: str) -> int:
        """
        Issue the next surrogate key of a dimension.

        Args:
            dimension_id: Dimension identifier

        Returns:
            New surrogate key
        """
        with self._lock:
            last = self._last_issued.get(dimension_id)
            if last is None:
                last = self._seed(dimension_id)
            key = last + 1
            self._last_issued[dimension_id] = key
            return key

    def advance_past(self, dimension_id: str, value: int) -> int:
        """
        Make sure subsequent keys are greater than ``value``.

        Used after bulk loads that wrote explicit keys.

        Args:
            dimension_id: Dimension identifier
            value: Highest key known to be in use

        Returns:
            The next key that will be issued
        """
        with self._lock:
            last = self._last_issued.get(dimension_id)
            if last is None:
                last = self._seed(dimension_id)
            self._last_issued[dimension_id] = max(last, int(value))
            logger.info(f"Advanced '{dimension_id}' key counter to {self._last_issued[dimension_id]}")
            return self._last_issued[dimension_id] + 1

    def peek(self, dimension_id: str) -> Optional[int]:
        """Last key issued for a dimension, or None before first use."""
        with self._lock:
            return self._last_issued.get(dimension_id)

    def _seed(self, dimension_id: str) -> int:
        seed = 0
        if self._high_water_mark is not None:
            seed = self._high_water_mark(dimension_id) or 0
        logger.info(f"Seeded '{dimension_id}' key counter at {seed}")
        return seed


class DatabaseSequenceAllocator:
    """
    Pass-through allocator drawing keys from database sequences.

    Its only duty beyond delegation is ``sync``, which moves each sequence
    past bulk-loaded keys before live loading starts.
    """

    def __init__(self, store, registry):
        """
        Args:
            store: SqlDimensionStore on PostgreSQL
            registry: DimensionRegistry
        """
        self.store = store
        self.registry = registry

    def next(self, dimension_id: str) -> int:
        return self.store.next_sequence_value(self.registry.get(dimension_id))

    def sync(self, dimension: DimensionConfig) -> int:
        return self.store.sync_sequence(dimension)

    def sync_all(self) -> Dict[str, int]:
        return {dimension.dimension_id: self.sync(dimension) for dimension in self.registry}
