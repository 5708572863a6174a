"""
Command-line argument parser configuration.
"""

import argparse

from ..modes import MergeMode


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="bulk-import",
        description="Bulk import delimited files into existing PostgreSQL tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Append new customers (file columns have the same names as the table)
  bulk-import load --table customers --file customers.csv --columns id,name,email --keys id

  # Rename columns, skip one, update changed rows
  bulk-import load --table public.customers --file export.csv \\
      --columns "Id=id,Name=name,Notes=,Modified=updated_at" --keys Id=id --mode update

  # Semicolon separated file without header, replacing the table contents
  bulk-import load --table rates --file rates.txt --columns code,rate --keys code \\
      --mode replace --delimiter ";" --no-header

  # Show the statements an update would run
  bulk-import load --table customers --file customers.csv --columns id,name --keys id \\
      --mode update --dry-run
        """,
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=None,
        help='Logging level (default: LOG_LEVEL env var or INFO)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Load command ==========
    load_parser = subparsers.add_parser('load', help='Load a file and merge it into a table')
    load_parser.add_argument(
        '--table',
        required=True,
        help='Target table (table or schema.table)'
    )
    load_parser.add_argument(
        '--file',
        required=True,
        help='Delimited input file'
    )
    load_parser.add_argument(
        '--columns',
        required=True,
        help='File columns in order: src[=target],... ("src=" loads without writing)'
    )
    load_parser.add_argument(
        '--keys',
        required=True,
        help='Key columns: src[=target],...'
    )
    load_parser.add_argument(
        '--mode',
        choices=[mode.value for mode in MergeMode],
        default=MergeMode.APPEND.value,
        help='Merge mode (default: append)'
    )
    load_parser.add_argument(
        '--timestamp-column',
        default='updated_at',
        help='Target column marking newer rows in update mode (default: updated_at)'
    )
    load_parser.add_argument(
        '--full-diff',
        action='store_true',
        help='Always compare all values in update mode, ignoring the timestamp column'
    )
    load_parser.add_argument(
        '--format',
        choices=['csv', 'text'],
        default='csv',
        help='File format (default: csv)'
    )
    load_parser.add_argument('--delimiter', default=',', help='Column separator (default: ,)')
    load_parser.add_argument('--null', default='', help='NULL marker (default: empty string)')
    load_parser.add_argument('--encoding', default='utf-8', help='File encoding (default: utf-8)')
    load_parser.add_argument(
        '--no-header',
        action='store_true',
        help='File has no header line (csv only; text files never have one)'
    )
    load_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Print the planned statements without loading or merging'
    )
    load_parser.add_argument(
        '--pushgateway',
        help='Prometheus Pushgateway address to push run metrics to'
    )
    load_parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch credentials from HashiCorp Vault'
    )
    # Database options
    load_parser.add_argument('--host', help='PostgreSQL host')
    load_parser.add_argument('--port', help='PostgreSQL port')
    load_parser.add_argument('--database', help='PostgreSQL database name')
    load_parser.add_argument('--user', help='PostgreSQL username')
    load_parser.add_argument('--password', help='PostgreSQL password')

    return parser
