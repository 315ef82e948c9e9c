"""
Version lifecycle writes for SCD processing.
"""

from typing import Any, Dict, Optional
import logging

from ..common.config import DimensionConfig
from ..common.models import ApplyResult, AsOfRecord, ChangeResult, ChangeType, DimensionVersion
from ..storage.base import DimensionStore
from .date_manager import DateManager

logger = logging.getLogger(__name__)


class VersionWriter:
    """Applies a change verdict to the dimension store."""

    def __init__(self, config: DimensionConfig, store: DimensionStore, allocator):
        """
        Initialize VersionWriter.

        Args:
            config: Dimension configuration
            store: Dimension store
            allocator: Object with ``next(dimension_id) -> int``
        """
        self.config = config
        self.store = store
        self.allocator = allocator
        self.date_manager = DateManager(config)

    def write(self, record: AsOfRecord, current: Optional[DimensionVersion],
              change: ChangeResult, attributes: Dict[str, Any]) -> ApplyResult:
        """
        Persist the outcome of a change verdict.

        Args:
            record: Incoming record
            current: Current version the verdict was computed against
            change: Change detector verdict
            attributes: Cleaned incoming attributes

        Returns:
            ApplyResult describing the write
        """
        if change.change_type is ChangeType.NEW_ENTITY:
            return self._insert_new_entity(record, attributes)

        self.date_manager.check_as_of_date(record, current)

        if change.change_type is ChangeType.NO_CHANGE:
            return ApplyResult(record, ChangeType.NO_CHANGE, surrogate_key=current.surrogate_key)
        if change.change_type is ChangeType.TYPE1_UPDATE:
            return self._update_type1(record, current, change, attributes)
        return self._create_new_version(record, current, attributes)

    def _insert_new_entity(self, record: AsOfRecord, attributes: Dict[str, Any]) -> ApplyResult:
        surrogate_key = self.allocator.next(self.config.dimension_id)
        version = self.date_manager.open_version(record, surrogate_key, attributes)
        self.store.insert_first_version(self.config, version)
        logger.info(f"Created '{record.natural_key}' in '{self.config.dimension_id}' "
                    f"as version {surrogate_key} from {record.as_of_date}")
        return ApplyResult(record, ChangeType.NEW_ENTITY, surrogate_key=surrogate_key)

    def _update_type1(self, record: AsOfRecord, current: DimensionVersion,
                      change: ChangeResult, attributes: Dict[str, Any]) -> ApplyResult:
        changes = {column: attributes.get(column) for column in change.type1_changes}
        self.store.update_in_place(self.config, record.natural_key, current.surrogate_key, changes)
        logger.info(f"Overwrote {sorted(changes)} on version {current.surrogate_key} "
                    f"of '{record.natural_key}'")
        return ApplyResult(record, ChangeType.TYPE1_UPDATE, surrogate_key=current.surrogate_key)

    def _create_new_version(self, record: AsOfRecord, current: DimensionVersion,
                            attributes: Dict[str, Any]) -> ApplyResult:
        surrogate_key = self.allocator.next(self.config.dimension_id)
        version = self.date_manager.open_version(record, surrogate_key, attributes)
        self.store.supersede(self.config, current.surrogate_key, record.as_of_date, version)
        logger.info(f"Closed version {current.surrogate_key} of '{record.natural_key}' at "
                    f"{record.as_of_date}, opened version {surrogate_key}")
        return ApplyResult(record, ChangeType.TYPE2_VERSION, surrogate_key=surrogate_key,
                           closed_surrogate_key=current.surrogate_key)
