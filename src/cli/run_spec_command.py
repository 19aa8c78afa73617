"""Run-spec CLI command wiring.

This module registers the run-spec subcommand. Full runs go through the
shared execution engine; ``--check`` only validates the YAML file.
"""

from __future__ import annotations

import argparse
from typing import Any

from core.run_spec import load_run_spec
from core.run_spec_execution import execute_run_spec_file
from store.tabstore_client import TabstoreClient


def add_run_spec_command(subparsers: Any) -> None:
    """Register run-spec subcommand."""
    parser = subparsers.add_parser(
        "run-spec",
        help="Run a declarative YAML import/page/delete pipeline",
    )
    parser.add_argument("spec_file", help="Path to YAML run-spec file")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate the run-spec and list its steps without executing them",
    )


def check_run_spec_command(args: argparse.Namespace) -> int:
    """Validate a run-spec and print its steps without opening a store."""
    spec = load_run_spec(args.spec_file)
    for index, step in enumerate(spec.steps, start=1):
        print(f"step {index}: {step.command}")
    return 0


def run_run_spec_command(client: TabstoreClient, args: argparse.Namespace) -> int:
    """Handle run-spec command invocation."""
    for line in execute_run_spec_file(client, args.spec_file):
        print(line)
    return 0
