"""
Hash management utilities for SCD processing.
"""

from datetime import date
from decimal import Decimal
from typing import Any, List, Mapping
import hashlib
import logging

from ..common.config import DimensionConfig
from ..common.utils import normalize_value

logger = logging.getLogger(__name__)

NULL_MARKER = "\x00null"


class HashManager:
    """Computes fingerprints of normalized tracked attributes."""

    def __init__(self, config: DimensionConfig):
        """
        Initialize HashManager with configuration.

        Args:
            config: Dimension configuration
        """
        self.config = config
        self.hash_algorithm = config.hash_algorithm.lower()

        # Validate hash algorithm
        if self.hash_algorithm not in ["sha256", "md5"]:
            raise ValueError(f"Unsupported hash algorithm: {self.hash_algorithm}")

    def compute_scd_hash(self, attributes: Mapping[str, Any]) -> str:
        """
        Compute the fingerprint of all tracked attributes.

        Args:
            attributes: Attribute mapping

        Returns:
            Hex digest
        """
        return self._digest(self.get_hash_columns(), attributes)

    def get_hash_columns(self) -> List[str]:
        """
        Get list of columns used for hash computation.

        Returns:
            List of unique column names
        """
        return self.config.tracked_columns

    def _digest(self, columns: List[str], attributes: Mapping[str, Any]) -> str:
        parts = [self._encode(normalize_value(self.config, c, attributes.get(c))) for c in columns]
        payload = "|".join(parts).encode("utf-8")
        if self.hash_algorithm == "sha256":
            return hashlib.sha256(payload).hexdigest()
        return hashlib.md5(payload).hexdigest()

    @staticmethod
    def _encode(value: Any) -> str:
        # Values that compare equal must encode equally (1 == 1.0 == Decimal("1.00")).
        if value is None:
            return NULL_MARKER
        if isinstance(value, bool):
            return f"b:{value}"
        if isinstance(value, (int, float, Decimal)):
            return f"n:{Decimal(str(value)).normalize()}"
        if isinstance(value, date):
            return f"d:{value.isoformat()}"
        return f"s:{value}"
