"""
Delta Lake dimension store for Spark/Databricks environments.
"""

from datetime import date
from typing import Any, Dict, List, Optional
import logging
import threading
import uuid

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.functions import col, lit, max as spark_max
from pyspark.sql.types import LongType, StructField, StructType
from delta.tables import DeltaTable
from delta.exceptions import DeltaConcurrentModificationException

from ..common.config import DimensionConfig
from ..common.exceptions import ConcurrentModification, VersionWriteError
from ..common.models import DimensionVersion
from .base import DimensionStore

logger = logging.getLogger(__name__)

MERGE_KEY_COLUMN = "_merge_key"
USER_METADATA_CONF = "spark.databricks.delta.commitInfo.userMetadata"


class DeltaDimensionStore(DimensionStore):
    """
    Dimension store over Delta tables.

    Close-and-insert runs as one MERGE (staged updates pattern), so both rows
    land in a single commit. Each commit is tagged with user metadata and its
    operation metrics are read back from the table history to detect a
    version closed by another writer in the meantime.
    """

    def __init__(self, spark: SparkSession, history_depth: int = 50):
        """
        Initialize DeltaDimensionStore with a Spark session.

        Args:
            spark: Spark session
            history_depth: Number of recent commits searched for write metrics
        """
        self.spark = spark
        self.history_depth = history_depth
        # commit user metadata is session-wide configuration
        self._commit_lock = threading.Lock()

        logger.info("Initialized DeltaDimensionStore")

    def fetch_current(self, config: DimensionConfig, natural_key: str) -> List[DimensionVersion]:
        rows = (self.spark.table(config.qualified_table_name)
                .filter((col(config.natural_key_column) == natural_key) &
                        (col(config.is_current_column) == lit(True)))
                .orderBy(config.surrogate_key_column)
                .collect())
        return [self._to_version(config, row) for row in rows]

    def fetch_versions(self, config: DimensionConfig, natural_key: str) -> List[DimensionVersion]:
        rows = (self.spark.table(config.qualified_table_name)
                .filter(col(config.natural_key_column) == natural_key)
                .orderBy(config.effective_from_column, config.surrogate_key_column)
                .collect())
        return [self._to_version(config, row) for row in rows]

    def insert_first_version(self, config: DimensionConfig, version: DimensionVersion) -> None:
        logger.info(f"Inserting first version of '{version.natural_key}' into {config.qualified_table_name}")
        staged = self._staged_dataframe(config, [(version, None)])
        merge_condition = (
            f"target.{config.natural_key_column} = source.{config.natural_key_column} "
            f"AND target.{config.is_current_column} = true"
        )

        def run(delta_table: DeltaTable) -> None:
            (delta_table.alias("target")
             .merge(staged.alias("source"), merge_condition)
             .whenNotMatchedInsert(values=self._insert_values(config))
             .execute())

        metrics = self._commit(config, version.natural_key, run, "insert_first_version")
        if int(metrics.get("numTargetRowsInserted", 0)) != 1:
            raise ConcurrentModification(config.dimension_id, version.natural_key)

    def update_in_place(self, config: DimensionConfig, natural_key: str,
                        surrogate_key: int, attributes: Dict[str, Any]) -> None:
        logger.info(f"Updating version {surrogate_key} of '{natural_key}' in place")
        condition = (
            f"{config.surrogate_key_column} = {int(surrogate_key)} "
            f"AND {config.is_current_column} = true"
        )

        def run(delta_table: DeltaTable) -> None:
            delta_table.update(condition=condition,
                               set={name: lit(value) for name, value in attributes.items()})

        metrics = self._commit(config, natural_key, run, "update_in_place")
        if int(metrics.get("numUpdatedRows", 0)) != 1:
            raise ConcurrentModification(config.dimension_id, natural_key)

    def supersede(self, config: DimensionConfig, expected_surrogate_key: int,
                  close_date: date, new_version: DimensionVersion) -> None:
        logger.info(f"Superseding version {expected_surrogate_key} of '{new_version.natural_key}'")
        # The close row matches the expected version; the insert row carries a
        # null merge key so it never matches and is inserted.
        staged = self._staged_dataframe(config, [
            (new_version, int(expected_surrogate_key)),
            (new_version, None),
        ])

        def run(delta_table: DeltaTable) -> None:
            (delta_table.alias("target")
             .merge(staged.alias("source"),
                    f"target.{config.surrogate_key_column} = source.{MERGE_KEY_COLUMN}")
             .whenMatchedUpdate(
                 condition=f"target.{config.is_current_column} = true",
                 set={config.effective_to_column: lit(close_date),
                      config.is_current_column: lit(False)})
             .whenNotMatchedInsert(
                 condition=f"source.{MERGE_KEY_COLUMN} IS NULL",
                 values=self._insert_values(config))
             .execute())

        metrics = self._commit(config, new_version.natural_key, run, "supersede")
        closed = int(metrics.get("numTargetRowsUpdated", 0))
        inserted = int(metrics.get("numTargetRowsInserted", 0))
        if closed == 1 and inserted == 1:
            return

        logger.warning(
            f"Supersede of {expected_surrogate_key} closed {closed} and inserted {inserted} rows; "
            f"removing orphan version {new_version.surrogate_key}"
        )
        if inserted:
            try:
                self._delta_table(config).delete(
                    f"{config.surrogate_key_column} = {int(new_version.surrogate_key)}"
                )
            except Exception as e:
                logger.error(
                    f"Orphan version {new_version.surrogate_key} of '{new_version.natural_key}' "
                    f"left in {config.qualified_table_name}, repair required: {str(e)}"
                )
                raise VersionWriteError(
                    f"Failed to remove orphan version {new_version.surrogate_key}: {str(e)}",
                    processing_step="supersede_compensation"
                ) from e
        raise ConcurrentModification(config.dimension_id, new_version.natural_key)

    def max_surrogate_key(self, config: DimensionConfig) -> Optional[int]:
        value = (self.spark.table(config.qualified_table_name)
                 .agg(spark_max(col(config.surrogate_key_column)).alias("max_sk"))
                 .collect()[0]["max_sk"])
        return int(value) if value is not None else None

    def natural_keys(self, config: DimensionConfig) -> List[str]:
        rows = (self.spark.table(config.qualified_table_name)
                .select(config.natural_key_column)
                .distinct()
                .orderBy(config.natural_key_column)
                .collect())
        return [row[config.natural_key_column] for row in rows]

    def _delta_table(self, config: DimensionConfig) -> DeltaTable:
        return DeltaTable.forName(self.spark, config.qualified_table_name)

    def _commit(self, config: DimensionConfig, natural_key: str, run, step: str) -> Dict[str, str]:
        """
        Run one tagged Delta write and return its operation metrics.

        Args:
            config: Dimension configuration
            natural_key: Natural key being written
            run: Callable performing the write against the DeltaTable
            step: Name of the write for error reporting

        Returns:
            Operation metrics of the commit
        """
        token = f"dimension-versioning:{uuid.uuid4().hex}"
        delta_table = self._delta_table(config)
        with self._commit_lock:
            self.spark.conf.set(USER_METADATA_CONF, token)
            try:
                run(delta_table)
            except DeltaConcurrentModificationException as e:
                logger.warning(f"Delta commit conflict during {step} of '{natural_key}': {str(e)}")
                raise ConcurrentModification(config.dimension_id, natural_key) from e
            except Exception as e:
                logger.error(f"Delta write failed during {step}: {str(e)}")
                raise VersionWriteError(f"Delta write failed during {step}: {str(e)}",
                                        processing_step=step) from e
            finally:
                self.spark.conf.unset(USER_METADATA_CONF)

        return self._commit_metrics(delta_table, token)

    def _commit_metrics(self, delta_table: DeltaTable, token: str) -> Dict[str, str]:
        rows = (delta_table.history(self.history_depth)
                .filter(col("userMetadata") == token)
                .select("operationMetrics")
                .collect())
        if not rows:
            # no commit means the write touched nothing
            return {}
        return dict(rows[0]["operationMetrics"] or {})

    def _staged_dataframe(self, config: DimensionConfig, entries) -> DataFrame:
        target_schema = self.spark.table(config.qualified_table_name).schema
        schema = StructType(list(target_schema.fields) +
                            [StructField(MERGE_KEY_COLUMN, LongType(), True)])
        rows = []
        for version, merge_key in entries:
            values = self._to_row(config, version)
            rows.append(tuple(values.get(field.name) for field in target_schema.fields) + (merge_key,))
        return self.spark.createDataFrame(rows, schema)

    def _insert_values(self, config: DimensionConfig) -> Dict[str, str]:
        columns = [config.surrogate_key_column, config.natural_key_column,
                   *config.tracked_columns, config.effective_from_column,
                   config.effective_to_column, config.is_current_column]
        return {name: f"source.{name}" for name in columns}

    def _to_row(self, config: DimensionConfig, version: DimensionVersion) -> Dict[str, Any]:
        row = {
            config.surrogate_key_column: version.surrogate_key,
            config.natural_key_column: version.natural_key,
            config.effective_from_column: version.effective_from,
            config.effective_to_column: version.effective_to,
            config.is_current_column: version.is_current,
        }
        for col_name in config.tracked_columns:
            row[col_name] = version.attributes.get(col_name)
        return row

    def _to_version(self, config: DimensionConfig, row) -> DimensionVersion:
        data = row.asDict()
        return DimensionVersion(
            dimension_id=config.dimension_id,
            surrogate_key=int(data[config.surrogate_key_column]),
            natural_key=data[config.natural_key_column],
            attributes={col_name: data.get(col_name) for col_name in config.tracked_columns},
            effective_from=data[config.effective_from_column],
            effective_to=data[config.effective_to_column],
            is_current=bool(data[config.is_current_column]),
        )
