"""Tabstore CLI entry points.

This module exposes commands for importing, listing, paging, and deleting
datasets. It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from cli.run_spec_command import (
    add_run_spec_command,
    check_run_spec_command,
    run_run_spec_command,
)
from core.config import TabstoreConfig
from core.constants import SUPPORTED_RAGGED_POLICIES
from core.errors import TabstoreError
from core.output_format import format_dataset_row, format_page_lines
from store.tabstore_client import TabstoreClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="tabstore", description="Tabular dataset store CLI")
    parser.add_argument("--db-path", help="Override TABSTORE_DB_PATH for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_init_command(subparsers)
    _add_import_command(subparsers)
    _add_datasets_command(subparsers)
    _add_page_command(subparsers)
    _add_delete_command(subparsers)
    add_run_spec_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Tabstore CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "run-spec" and args.check:
            return check_run_spec_command(args)
        client = _build_client(args.db_path)
        try:
            return _dispatch_command(client, args)
        finally:
            client.close()
    except TabstoreError as error:
        print(f"error[{error.kind}]: {error}", file=sys.stderr)
        return 1


def _dispatch_command(client: TabstoreClient, args: argparse.Namespace) -> int:
    if args.command == "init":
        print(client.config.db_path)
        return 0
    if args.command == "import":
        return _run_import_command(client, args)
    if args.command == "datasets":
        return _run_datasets_command(client)
    if args.command == "page":
        return _run_page_command(client, args)
    if args.command == "delete":
        return _run_delete_command(client, args)
    if args.command == "run-spec":
        return run_run_spec_command(client, args)
    raise ValueError(f"Unsupported command: {args.command}")


def _build_client(db_path: str | None) -> TabstoreClient:
    """Build SDK client with optional store path override.

    Args:
        db_path: Optional override path.

    Returns:
        Configured SDK client.
    """
    config = TabstoreConfig.from_env()
    if db_path:
        config = replace(config, db_path=Path(db_path).expanduser().resolve())
    return TabstoreClient(config)


def _run_import_command(client: TabstoreClient, args: argparse.Namespace) -> int:
    """Handle import command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    dataset = client.import_file(
        args.source,
        name=args.name,
        sheet_name=args.sheet,
        ragged_policy=args.ragged_policy,
    )
    print(format_dataset_row(dataset))
    return 0


def _run_datasets_command(client: TabstoreClient) -> int:
    for dataset in client.list_datasets():
        print(format_dataset_row(dataset))
    return 0


def _run_page_command(client: TabstoreClient, args: argparse.Namespace) -> int:
    """Handle page command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    page = client.page(args.dataset_id, page_index=args.page, page_size=args.page_size)
    for line in format_page_lines(page):
        print(line)
    return 0


def _run_delete_command(client: TabstoreClient, args: argparse.Namespace) -> int:
    client.delete_dataset(args.dataset_id)
    print(f"deleted {args.dataset_id}")
    return 0


def _add_init_command(subparsers: Any) -> None:
    """Register init subcommand."""
    subparsers.add_parser("init", help="Create the store if needed and print its path")


def _add_import_command(subparsers: Any) -> None:
    """Register import subcommand."""
    parser = subparsers.add_parser("import", help="Import a CSV or spreadsheet as a dataset")
    parser.add_argument("source", help="CSV/XLSX path or s3://bucket/key.csv")
    parser.add_argument("--name", help="Dataset name; defaults to the file name")
    parser.add_argument("--sheet", help="Spreadsheet sheet to import")
    parser.add_argument(
        "--ragged-policy",
        choices=SUPPORTED_RAGGED_POLICIES,
        help="Handling for rows whose width differs from the header",
    )


def _add_datasets_command(subparsers: Any) -> None:
    """Register datasets subcommand."""
    subparsers.add_parser("datasets", help="List datasets, most recent first")


def _add_page_command(subparsers: Any) -> None:
    """Register page subcommand."""
    parser = subparsers.add_parser("page", help="Print one page of dataset rows")
    parser.add_argument("dataset_id", type=int, help="Dataset id")
    parser.add_argument("--page", type=int, default=0, help="0-based page index")
    parser.add_argument("--page-size", type=int, help="Rows per page")


def _add_delete_command(subparsers: Any) -> None:
    """Register delete subcommand."""
    parser = subparsers.add_parser("delete", help="Delete a dataset and its cells")
    parser.add_argument("dataset_id", type=int, help="Dataset id")
