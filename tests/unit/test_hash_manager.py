"""
Unit tests for HashManager.
"""

import pytest
from datetime import date
from decimal import Decimal

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from libraries.dimension_versioning.scd_type2.hash_manager import HashManager
from libraries.dimension_versioning.common.config import DimensionConfig


class TestHashManager:
    """Test cases for HashManager."""

    @pytest.fixture
    def config(self):
        """Create dimension configuration for testing."""
        return DimensionConfig(
            dimension_id="collateral",
            table_name="dim_collateral",
            natural_key_column="collateral_nk",
            surrogate_key_column="collateral_sk",
            type2_columns=["market_value", "valuation_date"],
            type1_columns=["description"],
            column_types={"market_value": "numeric", "valuation_date": "date"},
            case_insensitive_columns=["description"]
        )

    @pytest.fixture
    def hash_manager(self, config):
        """Create HashManager instance."""
        return HashManager(config)

    @pytest.fixture
    def attributes(self):
        return {"market_value": Decimal("250000.00"), "valuation_date": date(2024, 3, 1),
                "description": "Residential property"}

    def test_init_unsupported_algorithm(self, config):
        """Test initialization with unsupported hash algorithm."""
        config.hash_algorithm = "sha1"

        with pytest.raises(ValueError, match="Unsupported hash algorithm"):
            HashManager(config)

    def test_hash_is_deterministic(self, hash_manager, attributes):
        """The same attributes always hash the same."""
        assert hash_manager.compute_scd_hash(attributes) == hash_manager.compute_scd_hash(dict(attributes))
        assert len(hash_manager.compute_scd_hash(attributes)) == 64

    def test_md5_algorithm(self, config, attributes):
        """Test md5 digests."""
        config.hash_algorithm = "md5"

        assert len(HashManager(config).compute_scd_hash(attributes)) == 32

    def test_equal_numbers_hash_equally(self, hash_manager, attributes):
        """Numerically equal values produce the same hash."""
        other = dict(attributes, market_value=250000)

        assert hash_manager.compute_scd_hash(attributes) == hash_manager.compute_scd_hash(other)

    def test_normalized_strings_hash_equally(self, hash_manager, attributes):
        """Trimmed and case-folded strings produce the same hash."""
        other = dict(attributes, description="  RESIDENTIAL property ")

        assert hash_manager.compute_scd_hash(attributes) == hash_manager.compute_scd_hash(other)

    def test_null_differs_from_text(self, hash_manager, attributes):
        """None does not collide with any string value."""
        with_null = dict(attributes, description=None)
        with_text = dict(attributes, description="None")

        assert hash_manager.compute_scd_hash(with_null) != hash_manager.compute_scd_hash(with_text)

    def test_get_hash_columns(self, hash_manager):
        """Test hash columns follow tracked column order."""
        assert hash_manager.get_hash_columns() == ["market_value", "valuation_date", "description"]
