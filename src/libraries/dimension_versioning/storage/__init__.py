"""
Dimension store implementations.

The Delta Lake store lives in ``storage.delta_store`` and is imported
explicitly so that Spark is only loaded where it is used.
"""

from .base import DimensionStore
from .memory_store import InMemoryDimensionStore
from .sql_store import SqlDimensionStore

__all__ = [
    "DimensionStore",
    "InMemoryDimensionStore",
    "SqlDimensionStore"
]
