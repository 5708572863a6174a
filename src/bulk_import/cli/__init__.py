"""
Command-line interface for bulk imports.

Available commands:
- load: Load a delimited file and merge it into an existing table
"""

import os
import sys

from utils.logging import configure_from_env
from utils.tracing import initialize_tracing, shutdown_tracing

from .commands import cmd_load
from .credentials import get_credentials_from_vault_or_env
from .parser import create_parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the bulk-import CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_from_env(args.log_level)

    if args.command != 'load':
        parser.print_help()
        return 1

    if os.getenv("OTLP_ENDPOINT") or os.getenv("TRACE_CONSOLE"):
        initialize_tracing()

    try:
        return cmd_load(args)
    finally:
        shutdown_tracing()


__all__ = [
    'main',
    'cmd_load',
    'create_parser',
    'get_credentials_from_vault_or_env',
]


if __name__ == '__main__':
    sys.exit(main())
