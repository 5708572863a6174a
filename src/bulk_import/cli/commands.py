"""
CLI command implementations.
"""

import argparse
import logging

import psycopg2

from utils.metrics import ImportMetrics
from utils.sql_safety import validate_schema_table

from ..engine import ReconciliationEngine
from ..errors import BulkImportError, ConfigurationError
from ..importer import import_from_csv
from ..index import IndexAdvisor
from ..mapping import ColumnMapping, KeySet
from ..modes import MergeMode, MergeModeValidator
from ..staging import (
    CopyOptions,
    StagingSet,
    build_copy_sql,
    build_create_staging_sql,
    staging_table_name,
)
from ..storage import PostgresStorageEngine
from .credentials import CredentialsError, get_credentials_from_vault_or_env

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION_ERROR = 2


def cmd_load(args: argparse.Namespace) -> int:
    """
    Load a file into a staging table and merge it into the target

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit code
    """
    try:
        try:
            validate_schema_table(args.table)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        mapping = ColumnMapping.parse(args.columns)
        keys = KeySet.parse(args.keys)
        keys.validate_against(mapping)
        mode = MergeModeValidator.validate(args.mode)
        options = CopyOptions(
            format=args.format,
            delimiter=args.delimiter,
            null=args.null,
            header=not args.no_header and args.format == "csv",
            encoding=args.encoding,
        )
    except ConfigurationError as e:
        logger.error(f"Invalid arguments: {e}")
        return EXIT_CONFIGURATION_ERROR

    timestamp_column = None if args.full_diff else args.timestamp_column

    try:
        config = get_credentials_from_vault_or_env(args)
    except CredentialsError as e:
        logger.error(str(e))
        return EXIT_CONFIGURATION_ERROR

    try:
        connection = psycopg2.connect(
            host=config['host'],
            port=config['port'],
            database=config['database'],
            user=config['username'],
            password=config['password'],
        )
    except psycopg2.Error as e:
        logger.error(f"Failed to connect to PostgreSQL: {e}")
        return EXIT_FAILURE

    logger.info(f"Connected to PostgreSQL {config['host']}:{config['port']}/{config['database']}")
    metrics = ImportMetrics()

    try:
        if args.dry_run:
            print_plan(connection, args.table, mapping, keys, mode, options, timestamp_column)
        else:
            rows = import_from_csv(
                connection,
                args.table,
                args.file,
                mapping,
                keys,
                mode=mode,
                options=options,
                timestamp_column=timestamp_column,
                metrics=metrics,
            )
            print(f"{rows} rows imported into {args.table} ({mode.value})")
    except ConfigurationError as e:
        logger.error(f"Import rejected: {e}")
        return EXIT_CONFIGURATION_ERROR
    except BulkImportError as e:
        logger.error(f"Import failed: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))
        return EXIT_FAILURE
    finally:
        connection.close()
        if args.pushgateway:
            metrics.push(args.pushgateway)

    return EXIT_OK


def print_plan(
    connection,
    target: str,
    mapping: ColumnMapping,
    keys: KeySet,
    mode: MergeMode,
    options: CopyOptions,
    timestamp_column: str | None,
) -> None:
    """Print the statements an import would run, without running them."""
    storage = PostgresStorageEngine(connection)
    engine = ReconciliationEngine(storage, timestamp_column=timestamp_column)
    staging = StagingSet(
        name=staging_table_name(target), columns=tuple(mapping.source_columns), target=target
    )

    try:
        plan = engine.plan(target, staging, mapping, keys, mode)

        print(f"-- Merge plan for {target} ({plan.mode.value})")
        print(build_create_staging_sql(staging).as_string(connection) + ";")
        print(build_copy_sql(staging, options).as_string(connection) + ";")
        for recommendation in plan.indexes:
            ddl = IndexAdvisor.generate_index_ddl(recommendation)
            print(ddl.as_string(connection) + ";")
        for operation in plan.operations:
            print(storage.render(operation) + ";")
    finally:
        # The metadata lookup opened a transaction
        connection.rollback()
