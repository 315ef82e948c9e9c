"""
SQL dimension store built on SQLAlchemy Core.

Targets the PostgreSQL warehouse (``banking_dw``); SQLite works for local
runs and tests. Each write runs in its own transaction.
"""

from datetime import date
from typing import Any, Dict, Iterable, List, Optional
import logging

from sqlalchemy import (
    BigInteger, Boolean, Column, Date, Index, MetaData, Numeric,
    String, Table, and_, func, insert, select, text, true, update
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..common.config import DimensionConfig
from ..common.exceptions import ConcurrentModification, ConfigurationError, VersionWriteError
from ..common.models import DimensionVersion
from .base import DimensionStore

logger = logging.getLogger(__name__)

_COLUMN_TYPES = {
    "string": lambda: String(255),
    "integer": lambda: BigInteger(),
    "numeric": lambda: Numeric(20, 6),
    "boolean": lambda: Boolean(),
    "date": lambda: Date(),
}


class SqlDimensionStore(DimensionStore):
    """Dimension store over a relational database."""

    def __init__(self, engine: Engine, reflect: bool = False):
        """
        Initialize SqlDimensionStore.

        Args:
            engine: SQLAlchemy engine
            reflect: Load table definitions from the database instead of
                deriving them from the dimension configuration
        """
        self.engine = engine
        self.reflect = reflect
        self.metadata = MetaData()
        self._tables: Dict[str, Table] = {}

        logger.info(f"Initialized SqlDimensionStore on dialect: {engine.dialect.name}")

    @property
    def is_postgresql(self) -> bool:
        return self.engine.dialect.name == "postgresql"

    def table_for(self, config: DimensionConfig) -> Table:
        """
        Get (and cache) the table object of a dimension.

        Args:
            config: Dimension configuration

        Returns:
            SQLAlchemy Table
        """
        table = self._tables.get(config.dimension_id)
        if table is not None:
            return table

        if self.reflect:
            table = Table(config.table_name, self.metadata, schema=config.schema,
                          autoload_with=self.engine)
            expected = {config.natural_key_column, config.surrogate_key_column,
                        config.effective_from_column, config.effective_to_column,
                        config.is_current_column, *config.tracked_columns}
            missing = expected - set(table.c.keys())
            if missing:
                raise ConfigurationError(
                    f"Table {config.qualified_table_name} is missing columns: {sorted(missing)}"
                )
        else:
            table = self._define_table(config)

        self._tables[config.dimension_id] = table
        return table

    def create_tables(self, configs: Iterable[DimensionConfig]) -> List[str]:
        """
        Create dimension tables (and the current-row uniqueness index) if absent.

        Args:
            configs: Dimension configurations

        Returns:
            Qualified names of the tables handled
        """
        tables = [self.table_for(config) for config in configs]
        self.metadata.create_all(self.engine, tables=tables, checkfirst=True)
        names = [table.fullname for table in tables]
        logger.info(f"Ensured dimension tables exist: {names}")
        return names

    def fetch_current(self, config: DimensionConfig, natural_key: str) -> List[DimensionVersion]:
        table = self.table_for(config)
        stmt = (select(table)
                .where(and_(table.c[config.natural_key_column] == natural_key,
                            table.c[config.is_current_column] == true()))
                .order_by(table.c[config.surrogate_key_column]))
        with self.engine.connect() as conn:
            return [self._to_version(config, row) for row in conn.execute(stmt)]

    def fetch_versions(self, config: DimensionConfig, natural_key: str) -> List[DimensionVersion]:
        table = self.table_for(config)
        stmt = (select(table)
                .where(table.c[config.natural_key_column] == natural_key)
                .order_by(table.c[config.effective_from_column],
                          table.c[config.surrogate_key_column]))
        with self.engine.connect() as conn:
            return [self._to_version(config, row) for row in conn.execute(stmt)]

    def insert_first_version(self, config: DimensionConfig, version: DimensionVersion) -> None:
        table = self.table_for(config)
        try:
            with self.engine.begin() as conn:
                self._lock_natural_key(conn, config, version.natural_key)
                existing = conn.execute(
                    select(func.count())
                    .select_from(table)
                    .where(and_(table.c[config.natural_key_column] == version.natural_key,
                                table.c[config.is_current_column] == true()))
                ).scalar_one()
                if existing:
                    raise ConcurrentModification(config.dimension_id, version.natural_key)
                conn.execute(insert(table).values(**self._to_row(config, version)))
        except IntegrityError as e:
            logger.warning(f"Insert of '{version.natural_key}' lost a race: {e.orig}")
            raise ConcurrentModification(config.dimension_id, version.natural_key) from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert first version: {str(e)}")
            raise VersionWriteError(f"Failed to insert first version: {str(e)}",
                                    processing_step="insert_first_version") from e

    def update_in_place(self, config: DimensionConfig, natural_key: str,
                        surrogate_key: int, attributes: Dict[str, Any]) -> None:
        table = self.table_for(config)
        try:
            with self.engine.begin() as conn:
                self._lock_natural_key(conn, config, natural_key)
                result = conn.execute(
                    update(table)
                    .where(and_(table.c[config.surrogate_key_column] == surrogate_key,
                                table.c[config.is_current_column] == true()))
                    .values(**attributes)
                )
                if result.rowcount != 1:
                    raise ConcurrentModification(config.dimension_id, natural_key)
        except SQLAlchemyError as e:
            logger.error(f"Failed to update version {surrogate_key}: {str(e)}")
            raise VersionWriteError(f"Failed to update version {surrogate_key}: {str(e)}",
                                    processing_step="update_in_place") from e

    def supersede(self, config: DimensionConfig, expected_surrogate_key: int,
                  close_date: date, new_version: DimensionVersion) -> None:
        table = self.table_for(config)
        try:
            with self.engine.begin() as conn:
                self._lock_natural_key(conn, config, new_version.natural_key)
                result = conn.execute(
                    update(table)
                    .where(and_(table.c[config.surrogate_key_column] == expected_surrogate_key,
                                table.c[config.is_current_column] == true()))
                    .values(**{config.effective_to_column: close_date,
                               config.is_current_column: False})
                )
                if result.rowcount != 1:
                    # rolls back with the surrounding transaction
                    raise ConcurrentModification(config.dimension_id, new_version.natural_key)
                conn.execute(insert(table).values(**self._to_row(config, new_version)))
        except IntegrityError as e:
            logger.warning(f"Supersede of {expected_surrogate_key} lost a race: {e.orig}")
            raise ConcurrentModification(config.dimension_id, new_version.natural_key) from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to supersede version {expected_surrogate_key}: {str(e)}")
            raise VersionWriteError(f"Failed to supersede version {expected_surrogate_key}: {str(e)}",
                                    processing_step="supersede") from e

    def max_surrogate_key(self, config: DimensionConfig) -> Optional[int]:
        table = self.table_for(config)
        with self.engine.connect() as conn:
            value = conn.execute(select(func.max(table.c[config.surrogate_key_column]))).scalar()
        return int(value) if value is not None else None

    def natural_keys(self, config: DimensionConfig) -> List[str]:
        table = self.table_for(config)
        stmt = (select(table.c[config.natural_key_column])
                .distinct()
                .order_by(table.c[config.natural_key_column]))
        with self.engine.connect() as conn:
            return [row[0] for row in conn.execute(stmt)]

    def sync_sequence(self, config: DimensionConfig) -> int:
        """
        Advance the surrogate key sequence past the highest loaded key.

        On PostgreSQL this resets the SERIAL/BIGSERIAL sequence of the
        surrogate key column; elsewhere there is no sequence and the next
        free key is only reported.

        Args:
            config: Dimension configuration

        Returns:
            The next surrogate key that will be issued
        """
        current_max = self.max_surrogate_key(config) or 0
        if not self.is_postgresql:
            logger.info(f"No sequence for {config.qualified_table_name}; next key is {current_max + 1}")
            return current_max + 1

        table_name = config.qualified_table_name
        with self.engine.begin() as conn:
            conn.execute(
                text(f"""
                    SELECT setval(
                        pg_get_serial_sequence(:table_name, :column_name),
                        COALESCE((SELECT MAX({config.surrogate_key_column}) FROM {table_name}), 0) + 1,
                        false
                    )
                """),
                {"table_name": table_name, "column_name": config.surrogate_key_column}
            )
        logger.info(f"Reset sequence of {table_name}.{config.surrogate_key_column} to {current_max + 1}")
        return current_max + 1

    def next_sequence_value(self, config: DimensionConfig) -> int:
        """
        Draw the next value of the surrogate key sequence (PostgreSQL only).

        Args:
            config: Dimension configuration

        Returns:
            Next surrogate key
        """
        if not self.is_postgresql:
            raise ConfigurationError(
                f"Database sequences are not available on dialect '{self.engine.dialect.name}'"
            )
        with self.engine.begin() as conn:
            value = conn.execute(
                text("SELECT nextval(pg_get_serial_sequence(:table_name, :column_name))"),
                {"table_name": config.qualified_table_name,
                 "column_name": config.surrogate_key_column}
            ).scalar_one()
        return int(value)

    def _define_table(self, config: DimensionConfig) -> Table:
        columns = [
            Column(config.surrogate_key_column, BigInteger, primary_key=True, autoincrement=False),
            Column(config.natural_key_column, String(36), nullable=False),
        ]
        for col_name in config.tracked_columns:
            columns.append(Column(col_name, _COLUMN_TYPES[config.column_type(col_name)]()))
        columns.extend([
            Column(config.effective_from_column, Date, nullable=False),
            Column(config.effective_to_column, Date),
            Column(config.is_current_column, Boolean, nullable=False, default=True),
        ])
        table = Table(config.table_name, self.metadata, *columns, schema=config.schema)

        current_flag = table.c[config.is_current_column] == true()
        Index(
            f"uq_{config.table_name}_current_nk",
            table.c[config.natural_key_column],
            unique=True,
            postgresql_where=current_flag,
            sqlite_where=current_flag,
        )
        return table

    def _lock_natural_key(self, conn: Connection, config: DimensionConfig, natural_key: str) -> None:
        # Serializes writers of one natural key until the transaction ends.
        if self.is_postgresql:
            conn.execute(
                select(func.pg_advisory_xact_lock(
                    func.hashtext(f"{config.qualified_table_name}:{natural_key}")
                ))
            )

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
        mapping = row._mapping
        return DimensionVersion(
            dimension_id=config.dimension_id,
            surrogate_key=int(mapping[config.surrogate_key_column]),
            natural_key=mapping[config.natural_key_column],
            attributes={col_name: mapping[col_name] for col_name in config.tracked_columns},
            effective_from=mapping[config.effective_from_column],
            effective_to=mapping[config.effective_to_column],
            is_current=bool(mapping[config.is_current_column]),
        )
