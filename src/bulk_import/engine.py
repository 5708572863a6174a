"""
Reconciliation engine.

Folds a loaded staging table into its target table under one of the merge
modes. Every check that can fail on caller input (mode, keys, column types)
runs while planning, before the first mutating statement; the plan itself
then runs inside a single storage transaction.
"""

import logging
import time
from collections.abc import Mapping

from opentelemetry import trace

from utils.tracing import add_span_event, trace_operation

from .catalog import TypeCatalog
from .errors import BulkImportError, ColumnNotFoundError
from .index import IndexAdvisor
from .mapping import ColumnMapping, KeySet
from .modes import MergeMode, MergeModeValidator
from .staging import StagingSet
from .statements import MergePlan, OperationKind, plan_merge

logger = logging.getLogger(__name__)

DEFAULT_TIMESTAMP_COLUMN = "updated_at"


def as_column_mapping(mapping: ColumnMapping | Mapping[str, str | None]) -> ColumnMapping:
    if isinstance(mapping, ColumnMapping):
        return mapping
    return ColumnMapping(mapping)


def as_key_set(keys: KeySet | Mapping[str, str]) -> KeySet:
    if isinstance(keys, KeySet):
        return keys
    return KeySet(keys)


class ReconciliationEngine:
    """Plans and executes staging-to-target merges."""

    def __init__(
        self,
        storage,
        catalog: TypeCatalog | None = None,
        advisor: IndexAdvisor | None = None,
        metrics=None,
        timestamp_column: str | None = DEFAULT_TIMESTAMP_COLUMN,
    ):
        """
        Initialize reconciliation engine.

        Args:
            storage: StorageEngine handle for the target database
            catalog: Type catalog (default: TypeCatalog over storage)
            advisor: Index advisor (default: IndexAdvisor over storage)
            metrics: Optional ImportMetrics
            timestamp_column: Target column whose newer staged value marks a row
                as changed in update mode; None always uses the full value diff
        """
        self.storage = storage
        self.catalog = catalog or TypeCatalog(storage)
        self.advisor = advisor or IndexAdvisor(storage)
        self.metrics = metrics
        self.timestamp_column = timestamp_column

    def plan(
        self,
        target: str,
        staging: StagingSet | str,
        mapping: ColumnMapping | Mapping[str, str | None],
        keys: KeySet | Mapping[str, str],
        mode: MergeMode | str,
    ) -> MergePlan:
        """
        Validate inputs and build the merge plan without mutating anything.

        Raises:
            UnknownMergeModeError: If mode is not supported
            ColumnNotFoundError: If keys or mapped columns cannot be resolved
            SchemaLookupError: If the target relation cannot be inspected
        """
        mode = MergeModeValidator.validate(mode)
        mapping = as_column_mapping(mapping)
        keys = as_key_set(keys)
        keys.validate_against(mapping)

        if isinstance(staging, StagingSet):
            for source in mapping.source_columns:
                if source not in staging.columns:
                    raise ColumnNotFoundError(source, f"staging table {staging.name}")
            staging_name = staging.name
        else:
            staging_name = staging

        types = self.catalog.resolve(target)

        plan = plan_merge(
            mode,
            target,
            staging_name,
            mapping,
            keys,
            types,
            timestamp_column=self.timestamp_column,
        )
        logger.debug(f"Planned merge: {plan.to_dict()}")
        return plan

    def execute(self, plan: MergePlan) -> dict[OperationKind, int]:
        """
        Run a plan in one transaction.

        Returns:
            Affected rows per operation kind

        Raises:
            StorageOperationError: If any statement fails; nothing is committed
        """
        counts: dict[OperationKind, int] = {}

        try:
            with self.storage.transaction():
                for recommendation in plan.indexes:
                    self.advisor.ensure(
                        plan.staging, recommendation.column_names, recommendation.casts
                    )

                for operation in plan.operations:
                    rows = self.storage.execute(operation)
                    counts[operation.kind] = counts.get(operation.kind, 0) + rows
                    add_span_event(
                        "operation_executed", operation=operation.kind.value, rows=rows
                    )
                    logger.info(f"{operation.describe()}: {rows} rows")
        except Exception:
            # Index DDL rolled back with the transaction
            self.advisor.forget(plan.staging)
            raise

        return counts

    def reconcile(
        self,
        target: str,
        staging: StagingSet | str,
        mapping: ColumnMapping | Mapping[str, str | None],
        keys: KeySet | Mapping[str, str],
        mode: MergeMode | str = MergeMode.APPEND,
    ) -> int:
        """
        Merge a staging table into its target.

        Args:
            target: Target table ("table" or "schema.table")
            staging: Loaded staging table (or its name)
            mapping: Source -> target column mapping
            keys: Identity columns (source -> target)
            mode: append, update or replace

        Returns:
            Total rows inserted and updated

        Raises:
            ConfigurationError: On an invalid mode, mapping or key set
            SchemaLookupError: If the target relation cannot be inspected
            StorageOperationError: If a statement fails (after rollback)
        """
        start_time = time.time()
        mode_label = mode.value if isinstance(mode, MergeMode) else str(mode)

        with trace_operation(
            "reconcile", kind=trace.SpanKind.INTERNAL, target=target, mode=mode_label
        ) as span:
            try:
                plan = self.plan(target, staging, mapping, keys, mode)
                logger.info(
                    f"Reconciling {plan.staging} -> {target} with mode {plan.mode.value} "
                    f"({len(plan.operations)} operations)"
                )
                counts = self.execute(plan)
            except BulkImportError as e:
                logger.error(f"Reconciliation of {target} failed: {e}")
                if self.metrics is not None:
                    self.metrics.record_run(
                        target, mode_label, success=False, duration=time.time() - start_time
                    )
                raise

            total = sum(counts.values())
            span.set_attribute("rows_affected", total)

        duration = time.time() - start_time
        logger.info(
            f"Reconciliation of {target} complete: {total} rows affected "
            f"({', '.join(f'{kind.value}={rows}' for kind, rows in counts.items())}) "
            f"in {duration:.2f}s"
        )
        if self.metrics is not None:
            self.metrics.record_run(
                target,
                plan.mode.value,
                success=True,
                duration=duration,
                rows={kind.value: rows for kind, rows in counts.items()},
            )
        return total
