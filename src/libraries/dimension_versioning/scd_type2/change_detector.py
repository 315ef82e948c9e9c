"""
Change detection between a current version and incoming attributes.
"""

from typing import Any, Mapping, Optional
import logging

from ..common.config import AttributePolicy, DimensionConfig
from ..common.models import ChangeResult, ChangeType, DimensionVersion
from ..common.utils import normalize_value

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Classifies incoming attributes as NEW_ENTITY, NO_CHANGE, TYPE1_UPDATE or TYPE2_VERSION."""

    def __init__(self, config: DimensionConfig):
        """
        Initialize ChangeDetector with configuration.

        Args:
            config: Dimension configuration
        """
        self.config = config

    def detect(self, current: Optional[DimensionVersion],
               attributes: Mapping[str, Any]) -> ChangeResult:
        """
        Compare incoming attributes with the current version.

        Comparison is attribute by attribute after normalization. A null on
        one side and a value on the other is a change. Numbers compare
        exactly.

        Args:
            current: Current version, or None when the key is unknown
            attributes: Incoming tracked attributes

        Returns:
            ChangeResult with verdict and changed column names
        """
        if current is None:
            return ChangeResult(ChangeType.NEW_ENTITY)

        type1_changes = []
        type2_changes = []
        for column in self.config.tracked_columns:
            if self.values_equal(column, current.attributes.get(column), attributes.get(column)):
                continue
            if self.config.policy_for(column) is AttributePolicy.TYPE2:
                type2_changes.append(column)
            else:
                type1_changes.append(column)

        if type2_changes:
            change_type = ChangeType.TYPE2_VERSION
        elif type1_changes:
            change_type = ChangeType.TYPE1_UPDATE
        else:
            change_type = ChangeType.NO_CHANGE

        if change_type is not ChangeType.NO_CHANGE:
            logger.debug(
                f"'{current.natural_key}' {change_type.value}: "
                f"type2={type2_changes} type1={type1_changes}"
            )
        return ChangeResult(change_type, type1_changes=type1_changes, type2_changes=type2_changes)

    def values_equal(self, column: str, left: Any, right: Any) -> bool:
        left = normalize_value(self.config, column, left)
        right = normalize_value(self.config, column, right)
        if left is None or right is None:
            return left is None and right is None
        # bool is an int subclass; True must not equal 1 for flag columns
        if isinstance(left, bool) != isinstance(right, bool):
            return False
        return left == right
