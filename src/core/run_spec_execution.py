"""Shared run-spec execution engine for CLI and SDK workflows.

This module maps validated run-spec steps to client operations so different
entry points can execute one declarative pipeline path without drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from core.errors import TabstoreRunSpecError
from core.output_format import format_dataset_row, format_page_lines
from core.run_spec import RunSpec, RunSpecStep, load_run_spec
from core.run_spec_fields import (
    int_with_default,
    optional_int,
    optional_ragged_policy,
    optional_string,
    required_int,
    required_string,
)
from core.types import Dataset, Page, RaggedPolicy


class RunSpecClient(Protocol):
    """Client API contract required by run-spec execution."""

    def with_db_path(self, db_path: str) -> Any: ...

    def import_file(
        self,
        source_uri: str,
        name: str | None = None,
        sheet_name: str | None = None,
        ragged_policy: RaggedPolicy | None = None,
    ) -> Dataset: ...

    def list_datasets(self) -> list[Dataset]: ...

    def page(self, dataset_id: int, page_index: int = 0, page_size: int | None = None) -> Page: ...

    def delete_dataset(self, dataset_id: int) -> None: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class RunSpecExecutionContext:
    """In-memory context used to execute run-spec steps."""

    client: RunSpecClient


def execute_run_spec_file(client: RunSpecClient, spec_file: str) -> tuple[str, ...]:
    """Load and execute a run-spec file, returning printable output lines."""
    spec = load_run_spec(spec_file)
    return execute_run_spec(client, spec)


def execute_run_spec(client: RunSpecClient, spec: RunSpec) -> tuple[str, ...]:
    """Execute a parsed run-spec object and return output lines.

    Steps run in order; the first failing step aborts the run. When the
    spec names its own store, a dedicated client is opened and closed.
    """
    if not spec.defaults.db_path:
        return _execute_steps(RunSpecExecutionContext(client=client), spec)
    scoped_client = client.with_db_path(spec.defaults.db_path)
    try:
        return _execute_steps(RunSpecExecutionContext(client=scoped_client), spec)
    finally:
        scoped_client.close()


def _execute_steps(context: RunSpecExecutionContext, spec: RunSpec) -> tuple[str, ...]:
    output_lines: list[str] = []
    for step in spec.steps:
        output_lines.extend(_execute_step(context, step))
    return tuple(output_lines)


def _execute_step(context: RunSpecExecutionContext, step: RunSpecStep) -> tuple[str, ...]:
    if step.command == "import":
        return (_execute_import_step(context, step),)
    if step.command == "datasets":
        return tuple(format_dataset_row(item) for item in context.client.list_datasets())
    if step.command == "page":
        return _execute_page_step(context, step)
    if step.command == "delete":
        return (_execute_delete_step(context, step),)
    raise TabstoreRunSpecError(f"Unsupported run-spec command '{step.command}'.")


def _execute_import_step(context: RunSpecExecutionContext, step: RunSpecStep) -> str:
    dataset = context.client.import_file(
        required_string(step.args, "source"),
        name=optional_string(step.args, "name"),
        sheet_name=optional_string(step.args, "sheet"),
        ragged_policy=optional_ragged_policy(step.args),
    )
    return format_dataset_row(dataset)


def _execute_page_step(context: RunSpecExecutionContext, step: RunSpecStep) -> tuple[str, ...]:
    page = context.client.page(
        required_int(step.args, "dataset_id"),
        page_index=int_with_default(step.args, "page", 0),
        page_size=optional_int(step.args, "page_size"),
    )
    return format_page_lines(page)


def _execute_delete_step(context: RunSpecExecutionContext, step: RunSpecStep) -> str:
    dataset_id = required_int(step.args, "dataset_id")
    context.client.delete_dataset(dataset_id)
    return f"deleted {dataset_id}"
