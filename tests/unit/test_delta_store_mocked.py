"""
Unit tests for DeltaDimensionStore with mocked Spark session and Delta table.
This version avoids Java dependency issues for development.
"""

import pytest
from datetime import date
from unittest.mock import Mock, MagicMock, patch
from pyspark.sql.types import StructType, StructField, StringType, LongType, DateType, BooleanType

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from libraries.dimension_versioning.storage.delta_store import (
    DeltaDimensionStore,
    MERGE_KEY_COLUMN,
    USER_METADATA_CONF
)
from libraries.dimension_versioning.common.config import DimensionConfig
from libraries.dimension_versioning.common.exceptions import ConcurrentModification, VersionWriteError
from libraries.dimension_versioning.common.models import DimensionVersion

MODULE = 'libraries.dimension_versioning.storage.delta_store'


class FakeDeltaConflict(Exception):
    """Stands in for the JVM-backed Delta conflict exception."""


class TestDeltaDimensionStoreMocked:
    """Test cases for DeltaDimensionStore with mocked Spark session."""

    @pytest.fixture
    def config(self):
        return DimensionConfig(
            dimension_id="branch",
            table_name="dim_branch",
            schema="banking_dw",
            natural_key_column="branch_nk",
            surrogate_key_column="branch_sk",
            type2_columns=["branch_status"],
            type1_columns=["branch_name"]
        )

    @pytest.fixture
    def mock_spark(self):
        """Create mocked Spark session exposing the target table schema."""
        mock_spark = Mock()
        mock_spark.table.return_value.schema = StructType([
            StructField("branch_sk", LongType(), False),
            StructField("branch_nk", StringType(), False),
            StructField("branch_status", StringType(), True),
            StructField("branch_name", StringType(), True),
            StructField("effective_from_date", DateType(), False),
            StructField("effective_to_date", DateType(), True),
            StructField("is_current_record", BooleanType(), False),
        ])
        return mock_spark

    @pytest.fixture
    def mock_delta_table(self):
        return MagicMock()

    @pytest.fixture
    def store(self, mock_spark, mock_delta_table):
        """Create DeltaDimensionStore with Delta and column functions patched."""
        with patch(f'{MODULE}.DeltaTable') as mock_delta_cls, \
             patch(f'{MODULE}.DeltaConcurrentModificationException', FakeDeltaConflict), \
             patch(f'{MODULE}.col') as mock_col, \
             patch(f'{MODULE}.lit') as mock_lit, \
             patch(f'{MODULE}.spark_max') as mock_max:
            mock_delta_cls.forName.return_value = mock_delta_table
            mock_col.side_effect = lambda name: MagicMock(name=f"col({name})")
            mock_lit.side_effect = lambda value: ("lit", value)
            mock_max.return_value = MagicMock()
            yield DeltaDimensionStore(mock_spark)

    @pytest.fixture
    def new_version(self):
        return DimensionVersion("branch", 8, "B01", {"branch_status": "CLOSED", "branch_name": "Main St"},
                                date(2024, 7, 1))

    def set_metrics(self, mock_delta_table, metrics):
        history = mock_delta_table.history.return_value
        rows = [{"operationMetrics": metrics}] if metrics is not None else []
        history.filter.return_value.select.return_value.collect.return_value = rows

    def test_insert_first_version(self, store, config, mock_spark, mock_delta_table, new_version):
        """A successful insert tags the commit and reads one inserted row."""
        self.set_metrics(mock_delta_table, {"numTargetRowsInserted": "1"})

        store.insert_first_version(config, new_version)

        tag = mock_spark.conf.set.call_args[0]
        assert tag[0] == USER_METADATA_CONF
        assert tag[1].startswith("dimension-versioning:")
        mock_spark.conf.unset.assert_called_once_with(USER_METADATA_CONF)
        merge = mock_delta_table.alias.return_value.merge
        assert "target.is_current_record = true" in merge.call_args[0][1]
        merge.return_value.whenNotMatchedInsert.return_value.execute.assert_called_once()

    def test_insert_first_version_existing_current(self, store, config, mock_delta_table, new_version):
        """Nothing inserted means another writer created the key first."""
        self.set_metrics(mock_delta_table, {"numTargetRowsInserted": "0"})

        with pytest.raises(ConcurrentModification):
            store.insert_first_version(config, new_version)

    def test_staged_rows_carry_merge_key(self, store, config, mock_spark, mock_delta_table, new_version):
        """Supersede stages a close row keyed by the expected version and an insert row."""
        self.set_metrics(mock_delta_table, {"numTargetRowsUpdated": "1", "numTargetRowsInserted": "1"})

        store.supersede(config, 5, date(2024, 7, 1), new_version)

        rows, schema = mock_spark.createDataFrame.call_args[0]
        assert schema.fieldNames()[-1] == MERGE_KEY_COLUMN
        assert [row[-1] for row in rows] == [5, None]
        assert rows[0][:2] == (8, "B01")

    def test_supersede_success(self, store, config, mock_delta_table, new_version):
        """One closed and one inserted row is a successful supersede."""
        self.set_metrics(mock_delta_table, {"numTargetRowsUpdated": "1", "numTargetRowsInserted": "1"})

        store.supersede(config, 5, date(2024, 7, 1), new_version)

        merge = mock_delta_table.alias.return_value.merge.return_value
        update_kwargs = merge.whenMatchedUpdate.call_args[1]
        assert update_kwargs["condition"] == "target.is_current_record = true"
        assert update_kwargs["set"]["effective_to_date"] == ("lit", date(2024, 7, 1))
        assert update_kwargs["set"]["is_current_record"] == ("lit", False)
        mock_delta_table.delete.assert_not_called()

    def test_supersede_lost_race_removes_orphan(self, store, config, mock_delta_table, new_version):
        """An insert without a close is undone and reported as a conflict."""
        self.set_metrics(mock_delta_table, {"numTargetRowsUpdated": "0", "numTargetRowsInserted": "1"})

        with pytest.raises(ConcurrentModification):
            store.supersede(config, 5, date(2024, 7, 1), new_version)

        mock_delta_table.delete.assert_called_once_with("branch_sk = 8")

    def test_supersede_orphan_delete_failure(self, store, config, mock_delta_table, new_version):
        """A failed orphan cleanup is a write error naming the orphan, not a retryable conflict."""
        self.set_metrics(mock_delta_table, {"numTargetRowsUpdated": "0", "numTargetRowsInserted": "1"})
        mock_delta_table.delete.side_effect = RuntimeError("storage unavailable")

        with pytest.raises(VersionWriteError) as exc_info:
            store.supersede(config, 5, date(2024, 7, 1), new_version)

        assert exc_info.value.processing_step == "supersede_compensation"
        assert "8" in exc_info.value.message

    def test_update_in_place(self, store, config, mock_delta_table):
        """TYPE-1 updates are conditioned on the version still being current."""
        self.set_metrics(mock_delta_table, {"numUpdatedRows": "1"})

        store.update_in_place(config, "B01", 5, {"branch_name": "Main Street"})

        kwargs = mock_delta_table.update.call_args[1]
        assert kwargs["condition"] == "branch_sk = 5 AND is_current_record = true"
        assert kwargs["set"] == {"branch_name": ("lit", "Main Street")}

    def test_update_in_place_not_current(self, store, config, mock_delta_table):
        """Updating a version that is no longer current is a conflict."""
        self.set_metrics(mock_delta_table, None)

        with pytest.raises(ConcurrentModification):
            store.update_in_place(config, "B01", 5, {"branch_name": "Main Street"})

    def test_delta_conflict_mapped(self, store, config, mock_spark, mock_delta_table):
        """Delta commit conflicts become ConcurrentModification."""
        mock_delta_table.update.side_effect = FakeDeltaConflict("conflict")

        with pytest.raises(ConcurrentModification):
            store.update_in_place(config, "B01", 5, {"branch_name": "Main Street"})

        mock_spark.conf.unset.assert_called_once_with(USER_METADATA_CONF)

    def test_other_failures_mapped(self, store, config, mock_delta_table):
        """Other write failures become VersionWriteError."""
        mock_delta_table.update.side_effect = RuntimeError("disk full")

        with pytest.raises(VersionWriteError) as exc_info:
            store.update_in_place(config, "B01", 5, {"branch_name": "Main Street"})

        assert exc_info.value.processing_step == "update_in_place"

    def test_fetch_versions(self, store, config, mock_spark):
        """Rows are converted to DimensionVersion objects."""
        row = Mock()
        row.asDict.return_value = {
            "branch_sk": 5, "branch_nk": "B01", "branch_status": "OPEN", "branch_name": "Main St",
            "effective_from_date": date(2024, 1, 1), "effective_to_date": None,
            "is_current_record": True,
        }
        mock_spark.table.return_value.filter.return_value.orderBy.return_value.collect.return_value = [row]

        versions = store.fetch_versions(config, "B01")

        mock_spark.table.assert_called_with("banking_dw.dim_branch")
        assert versions == [DimensionVersion("branch", 5, "B01",
                                             {"branch_status": "OPEN", "branch_name": "Main St"},
                                             date(2024, 1, 1), None, True)]

    def test_max_surrogate_key(self, store, config, mock_spark):
        """Test reading the highest surrogate key."""
        mock_spark.table.return_value.agg.return_value.collect.return_value = [{"max_sk": 42}]

        assert store.max_surrogate_key(config) == 42

    def test_max_surrogate_key_empty(self, store, config, mock_spark):
        """An empty table has no highest key."""
        mock_spark.table.return_value.agg.return_value.collect.return_value = [{"max_sk": None}]

        assert store.max_surrogate_key(config) is None
