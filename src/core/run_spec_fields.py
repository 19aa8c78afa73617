"""Type-safe field parsing helpers for run-spec execution.

This module centralizes primitive parsing so run-spec executors can stay
concise and produce consistent validation errors across CLI and SDK flows.
"""

from __future__ import annotations

from typing import Mapping

from core.config import parse_ragged_policy
from core.errors import TabstoreConfigError, TabstoreRunSpecError
from core.types import RaggedPolicy


def required_string(args: Mapping[str, object], field_name: str) -> str:
    """Read a required string field from a run-spec step."""
    value = optional_string(args, field_name)
    if value is None:
        raise TabstoreRunSpecError(f"Run-spec step is missing required field '{field_name}'.")
    return value


def optional_string(args: Mapping[str, object], field_name: str) -> str | None:
    """Read an optional string field from a run-spec step."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    raise TabstoreRunSpecError(f"Run-spec field '{field_name}' must be a string when provided.")


def optional_int(args: Mapping[str, object], field_name: str) -> int | None:
    """Read an optional integer field from a run-spec step."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TabstoreRunSpecError(f"Run-spec field '{field_name}' must be an integer.")
    return value


def required_int(args: Mapping[str, object], field_name: str) -> int:
    """Read a required integer field from a run-spec step."""
    value = optional_int(args, field_name)
    if value is None:
        raise TabstoreRunSpecError(f"Run-spec step is missing required field '{field_name}'.")
    return value


def int_with_default(args: Mapping[str, object], field_name: str, default_value: int) -> int:
    """Read an integer field while preserving explicit zero values."""
    value = optional_int(args, field_name)
    return default_value if value is None else value


def optional_ragged_policy(args: Mapping[str, object]) -> RaggedPolicy | None:
    """Parse an optional ``ragged_policy`` field from step arguments."""
    value = optional_string(args, "ragged_policy")
    if value is None:
        return None
    try:
        return parse_ragged_policy(value)
    except TabstoreConfigError as error:
        raise TabstoreRunSpecError(str(error)) from error
