"""
Unit tests for ChangeDetector.
"""

import pytest
from datetime import date
from decimal import Decimal

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from libraries.dimension_versioning.scd_type2.change_detector import ChangeDetector
from libraries.dimension_versioning.common.config import DimensionConfig
from libraries.dimension_versioning.common.models import ChangeType, DimensionVersion


class TestChangeDetector:
    """Test cases for ChangeDetector."""

    @pytest.fixture
    def config(self):
        """Create dimension configuration for testing."""
        return DimensionConfig(
            dimension_id="customer",
            table_name="dim_customer",
            natural_key_column="customer_nk",
            surrogate_key_column="customer_sk",
            type2_columns=["risk_rating", "annual_income"],
            type1_columns=["full_name", "is_pep"],
            column_types={"annual_income": "numeric", "is_pep": "boolean"},
            case_insensitive_columns=["risk_rating"]
        )

    @pytest.fixture
    def detector(self, config):
        """Create ChangeDetector instance."""
        return ChangeDetector(config)

    @pytest.fixture
    def current(self):
        """Create the current version of C001."""
        return DimensionVersion(
            dimension_id="customer",
            surrogate_key=1,
            natural_key="C001",
            attributes={"risk_rating": "LOW", "annual_income": Decimal("50000.00"),
                        "full_name": "Alice Ng", "is_pep": False},
            effective_from=date(2024, 1, 1)
        )

    def attrs(self, **overrides):
        values = {"risk_rating": "LOW", "annual_income": Decimal("50000.00"),
                  "full_name": "Alice Ng", "is_pep": False}
        values.update(overrides)
        return values

    def test_new_entity(self, detector):
        """No current version means a new entity."""
        result = detector.detect(None, self.attrs())

        assert result.change_type is ChangeType.NEW_ENTITY
        assert result.changed_columns == []

    def test_no_change(self, detector, current):
        """Identical attributes produce NO_CHANGE."""
        result = detector.detect(current, self.attrs())

        assert result.change_type is ChangeType.NO_CHANGE

    def test_type1_change(self, detector, current):
        """A TYPE-1 column change alone produces TYPE1_UPDATE."""
        result = detector.detect(current, self.attrs(full_name="Alice Ng-Smith"))

        assert result.change_type is ChangeType.TYPE1_UPDATE
        assert result.type1_changes == ["full_name"]
        assert result.type2_changes == []

    def test_type2_change(self, detector, current):
        """A TYPE-2 column change produces TYPE2_VERSION."""
        result = detector.detect(current, self.attrs(risk_rating="HIGH"))

        assert result.change_type is ChangeType.TYPE2_VERSION
        assert result.type2_changes == ["risk_rating"]

    def test_type2_wins_over_type1(self, detector, current):
        """Mixed changes are classified as TYPE2_VERSION."""
        result = detector.detect(current, self.attrs(risk_rating="HIGH", full_name="Alice N."))

        assert result.change_type is ChangeType.TYPE2_VERSION
        assert result.changed_columns == ["risk_rating", "full_name"]

    def test_null_versus_value_is_change(self, detector, current):
        """A value becoming null is a change."""
        result = detector.detect(current, self.attrs(full_name=None))

        assert result.change_type is ChangeType.TYPE1_UPDATE

    def test_null_versus_null_is_no_change(self, detector, current):
        """Null on both sides is no change."""
        current.attributes["full_name"] = None

        result = detector.detect(current, self.attrs(full_name=None))

        assert result.change_type is ChangeType.NO_CHANGE

    def test_whitespace_is_ignored(self, detector, current):
        """Leading and trailing whitespace does not count as a change."""
        result = detector.detect(current, self.attrs(full_name="  Alice Ng "))

        assert result.change_type is ChangeType.NO_CHANGE

    def test_case_insensitive_column(self, detector, current):
        """Case differences are ignored only for configured columns."""
        assert detector.detect(current, self.attrs(risk_rating="low")).change_type is ChangeType.NO_CHANGE
        assert detector.detect(current, self.attrs(full_name="alice ng")).change_type is ChangeType.TYPE1_UPDATE

    def test_numeric_exact_comparison(self, detector, current):
        """Numbers compare by value, without tolerance."""
        assert detector.detect(current, self.attrs(annual_income=Decimal("50000"))).change_type \
            is ChangeType.NO_CHANGE
        assert detector.detect(current, self.attrs(annual_income=Decimal("50000.01"))).change_type \
            is ChangeType.TYPE2_VERSION

    def test_bool_is_not_int(self, detector, current):
        """A boolean flag does not equal the integer 0."""
        result = detector.detect(current, self.attrs(is_pep=0))

        assert result.change_type is ChangeType.TYPE1_UPDATE

    def test_values_equal(self, detector):
        """Test direct value comparison."""
        assert detector.values_equal("full_name", "Bob", " Bob ")
        assert not detector.values_equal("full_name", "Bob", None)
        assert detector.values_equal("full_name", None, None)
