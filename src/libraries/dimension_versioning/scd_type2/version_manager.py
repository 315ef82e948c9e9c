"""
Dimension Version Manager: orchestrates resolve, detect and write per record.
"""

from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, Iterable, Iterator, Optional, Union
import logging
import time

from ..common.config import (
    DeduplicationConfig, DimensionConfig, DimensionRegistry, ProcessingMetrics, ValidationResult
)
from ..common.exceptions import (
    AmbiguousCurrentVersion, ConcurrentModification, DimensionalProcessingError,
    DimensionValidationError
)
from ..common.models import ApplyResult, AsOfRecord, ChangeType, DimensionVersion
from ..common.utils import clean_attributes, coerce_date
from ..key_resolution.key_resolver import NaturalKeyResolver
from ..key_resolution.surrogate_key_allocator import SurrogateKeyAllocator
from ..storage.base import DimensionStore
from .change_detector import ChangeDetector
from .historical_data_deduplicator import HistoricalDataDeduplicator
from .validators import RecordValidator, VersionChainValidator
from .version_writer import VersionWriter

logger = logging.getLogger(__name__)


@dataclass
class _DimensionComponents:
    config: DimensionConfig
    validator: RecordValidator
    detector: ChangeDetector
    writer: VersionWriter
    chain_validator: VersionChainValidator


class VersionHistory:
    """
    Versions of one natural key, ordered by effective_from.

    Nothing is read until iteration starts; every new iteration reads the
    store again.
    """

    def __init__(self, store: DimensionStore, config: DimensionConfig, natural_key: str):
        self.store = store
        self.config = config
        self.natural_key = natural_key

    def __iter__(self) -> Iterator[DimensionVersion]:
        for version in self.store.fetch_versions(self.config, self.natural_key):
            yield version


class DimensionVersionManager:
    """Applies as-of records to versioned dimensions and answers history queries."""

    def __init__(self, store: DimensionStore,
                 dimensions: Union[DimensionRegistry, Iterable[DimensionConfig]],
                 allocator=None, deduplication_config: DeduplicationConfig = None):
        """
        Initialize DimensionVersionManager.

        Args:
            store: Dimension store
            dimensions: Registry or iterable of dimension configurations
            allocator: Surrogate key allocator; defaults to an in-process
                counter seeded from the store
            deduplication_config: Batch preparation settings
        """
        self.store = store
        self.registry = (dimensions if isinstance(dimensions, DimensionRegistry)
                         else DimensionRegistry(dimensions))
        self.allocator = allocator or SurrogateKeyAllocator(
            lambda dimension_id: store.max_surrogate_key(self.registry.get(dimension_id))
        )
        self.resolver = NaturalKeyResolver(store, self.registry)
        self.deduplicator = HistoricalDataDeduplicator(self.registry, deduplication_config)
        self._components: Dict[str, _DimensionComponents] = {}

        logger.info(f"Initialized DimensionVersionManager for dimensions: {self.registry.ids()}")

    def apply(self, record: AsOfRecord) -> ApplyResult:
        """
        Apply one record: resolve, detect, write, retrying lost races.

        Args:
            record: Incoming as-of record

        Returns:
            ApplyResult with the verdict and affected surrogate keys
        """
        record = self._normalized(record)
        components = self._components_for(record.dimension_id)
        config = components.config

        validation_result = components.validator.validate_record(record)
        if not validation_result.is_valid:
            raise DimensionValidationError(
                f"Validation failed for '{record.natural_key}': {validation_result.errors}",
                validation_result.errors
            )
        attributes = clean_attributes(config, record.attributes)

        for attempt in range(1, config.max_attempts + 1):
            current = self.resolver.resolve(record.dimension_id, record.natural_key)
            change = components.detector.detect(current, attributes)
            try:
                result = components.writer.write(record, current, change, attributes)
            except ConcurrentModification:
                logger.warning(f"Lost race on '{record.natural_key}' in '{record.dimension_id}' "
                               f"(attempt {attempt}/{config.max_attempts})")
                continue
            result.attempts = attempt
            return result

        logger.error(f"Giving up on '{record.natural_key}' after {config.max_attempts} attempts")
        raise ConcurrentModification(record.dimension_id, record.natural_key,
                                     attempts=config.max_attempts)

    def apply_batch(self, records: Iterable[AsOfRecord],
                    raise_on_error: bool = False) -> ProcessingMetrics:
        """
        Apply a batch of records in as-of order per natural key.

        Rejected records are counted and reported in the metrics. An
        ambiguous current version stops processing of that natural key only.

        Args:
            records: Incoming records
            raise_on_error: Raise the first record error instead of collecting it

        Returns:
            ProcessingMetrics for the batch
        """
        logger.info("🚀 ENTER: apply_batch")
        start_time = time.time()
        metrics = ProcessingMetrics()
        halted = set()

        for record in self.deduplicator.prepare(self._normalized(r) for r in records):
            key = (record.dimension_id, record.natural_key)
            metrics.records_processed += 1
            if key in halted:
                metrics.records_with_errors += 1
                metrics.errors.append(f"Skipped '{record.natural_key}' on {record.as_of_date}: "
                                      f"natural key halted for repair")
                continue
            try:
                result = self.apply(record)
            except DimensionalProcessingError as e:
                if isinstance(e, AmbiguousCurrentVersion):
                    halted.add(key)
                if isinstance(e, ConcurrentModification):
                    metrics.retries += (e.attempts or 1) - 1
                metrics.records_with_errors += 1
                metrics.errors.append(f"{e.error_code}: {e.message}")
                if raise_on_error:
                    logger.info("🏁 EXIT: apply_batch (with error)")
                    raise
                continue
            self._count(metrics, result)

        metrics.processing_time_seconds = time.time() - start_time
        logger.info(f"Batch completed. Metrics: {metrics.to_dict()}")
        logger.info("🏁 EXIT: apply_batch")
        return metrics

    def current_version(self, dimension_id: str, natural_key: str) -> Optional[DimensionVersion]:
        return self.resolver.resolve(dimension_id, natural_key)

    def version_as_of(self, dimension_id: str, natural_key: str,
                      as_of: Union[date, str]) -> Optional[DimensionVersion]:
        return self.resolver.version_as_of(dimension_id, natural_key, coerce_date(as_of, "as_of"))

    def all_versions(self, dimension_id: str, natural_key: str) -> VersionHistory:
        return VersionHistory(self.store, self.registry.get(dimension_id), natural_key)

    def verify(self, dimension_id: str) -> Dict[str, ValidationResult]:
        """
        Check every version chain of a dimension.

        Args:
            dimension_id: Dimension identifier

        Returns:
            Mapping of natural key to ValidationResult, for invalid chains only
        """
        components = self._components_for(dimension_id)
        violations = {}
        natural_keys = self.store.natural_keys(components.config)
        for natural_key in natural_keys:
            versions = self.store.fetch_versions(components.config, natural_key)
            result = components.chain_validator.validate_chain(versions)
            if not result.is_valid:
                violations[natural_key] = result
        logger.info(f"Verified {len(natural_keys)} natural keys in '{dimension_id}', "
                    f"{len(violations)} with violations")
        return violations

    def _components_for(self, dimension_id: str) -> _DimensionComponents:
        components = self._components.get(dimension_id)
        if components is None:
            config = self.registry.get(dimension_id)
            components = _DimensionComponents(
                config=config,
                validator=RecordValidator(config),
                detector=ChangeDetector(config),
                writer=VersionWriter(config, self.store, self.allocator),
                chain_validator=VersionChainValidator(config),
            )
            self._components[dimension_id] = components
        return components

    @staticmethod
    def _normalized(record: AsOfRecord) -> AsOfRecord:
        # Natural keys are compared as trimmed strings.
        natural_key = record.natural_key
        if isinstance(natural_key, str) and natural_key != natural_key.strip():
            return replace(record, natural_key=natural_key.strip())
        return record

    @staticmethod
    def _count(metrics: ProcessingMetrics, result: ApplyResult) -> None:
        metrics.retries += result.attempts - 1
        if result.change_type is ChangeType.NEW_ENTITY:
            metrics.new_entities += 1
        elif result.change_type is ChangeType.TYPE1_UPDATE:
            metrics.type1_updates += 1
        elif result.change_type is ChangeType.TYPE2_VERSION:
            metrics.type2_versions += 1
        else:
            metrics.unchanged += 1
