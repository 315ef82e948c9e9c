"""
SCD Type 2 processing modules.
"""

from .version_manager import DimensionVersionManager, VersionHistory
from .historical_data_deduplicator import HistoricalDataDeduplicator
from .change_detector import ChangeDetector
from .version_writer import VersionWriter
from .hash_manager import HashManager
from .date_manager import DateManager
from .validators import RecordValidator, VersionChainValidator

__all__ = [
    "DimensionVersionManager",
    "VersionHistory",
    "HistoricalDataDeduplicator",
    "ChangeDetector",
    "VersionWriter",
    "HashManager",
    "DateManager",
    "RecordValidator",
    "VersionChainValidator"
]
