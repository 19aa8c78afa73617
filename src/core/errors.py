"""Tabstore exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type carrying a stable ``kind``
so callers can branch on the failure category without parsing messages.
"""

from __future__ import annotations

from typing import Literal

ErrorKind = Literal[
    "config",
    "dependency",
    "io",
    "parse",
    "storage",
    "schema_mismatch",
    "not_found",
    "corrupt",
    "invalid",
]


class TabstoreError(Exception):
    """Base exception for all Tabstore failures."""

    default_kind: ErrorKind = "storage"

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.kind: ErrorKind = kind or self.default_kind


class TabstoreConfigError(TabstoreError):
    """Raised for invalid runtime configuration."""

    default_kind: ErrorKind = "config"


class TabstoreStorageError(TabstoreError):
    """Raised for store open, schema, and transaction failures."""

    default_kind: ErrorKind = "storage"


class TabstoreImportError(TabstoreError):
    """Raised for source parsing and import failures."""

    default_kind: ErrorKind = "parse"


class TabstoreQueryError(TabstoreError):
    """Raised for page query failures."""

    default_kind: ErrorKind = "invalid"


class TabstoreNotFoundError(TabstoreQueryError):
    """Raised when a referenced dataset id does not exist."""

    default_kind: ErrorKind = "not_found"


class TabstoreDependencyError(TabstoreError):
    """Raised when an optional runtime dependency is missing."""

    default_kind: ErrorKind = "dependency"


class TabstoreRunSpecError(TabstoreError):
    """Raised for invalid or unsupported run-spec configuration."""

    default_kind: ErrorKind = "config"


class TabstoreDispatchError(TabstoreError):
    """Raised when work is submitted to a dispatcher that has shut down."""

    default_kind: ErrorKind = "invalid"
