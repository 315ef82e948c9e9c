"""
Record and version types shared by the versioning components.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional


class ChangeType(Enum):
    """Verdict of the change detector."""
    NO_CHANGE = "no_change"
    TYPE1_UPDATE = "type1_update"
    TYPE2_VERSION = "type2_version"
    NEW_ENTITY = "new_entity"


@dataclass(frozen=True)
class AsOfRecord:
    """One incoming "current truth" record for an entity."""

    dimension_id: str
    natural_key: str
    as_of_date: date
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DimensionVersion:
    """One materialized version of one entity."""

    dimension_id: str
    surrogate_key: int
    natural_key: str
    attributes: Dict[str, Any]
    effective_from: date
    effective_to: Optional[date] = None
    is_current: bool = True

    def covers(self, as_of: date) -> bool:
        """True when ``as_of`` falls inside [effective_from, effective_to)."""
        if as_of < self.effective_from:
            return False
        return self.effective_to is None or as_of < self.effective_to

    def closed(self, effective_to: date) -> "DimensionVersion":
        return replace(self, attributes=dict(self.attributes),
                       effective_to=effective_to, is_current=False)

    def copy(self) -> "DimensionVersion":
        return replace(self, attributes=dict(self.attributes))


@dataclass
class ChangeResult:
    """Classified difference between a current version and incoming attributes."""

    change_type: ChangeType
    type1_changes: List[str] = field(default_factory=list)
    type2_changes: List[str] = field(default_factory=list)

    @property
    def changed_columns(self) -> List[str]:
        return self.type2_changes + self.type1_changes


@dataclass
class ApplyResult:
    """Outcome of applying one record."""

    record: AsOfRecord
    change_type: ChangeType
    surrogate_key: Optional[int] = None
    closed_surrogate_key: Optional[int] = None
    attempts: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dimension_id": self.record.dimension_id,
            "natural_key": self.record.natural_key,
            "as_of_date": self.record.as_of_date.isoformat(),
            "change_type": self.change_type.value,
            "surrogate_key": self.surrogate_key,
            "closed_surrogate_key": self.closed_surrogate_key,
            "attempts": self.attempts
        }
