"""Runtime configuration model for Tabstore.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_DB_PATH,
    DEFAULT_MAX_WORKERS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_RAGGED_POLICY,
    SUPPORTED_RAGGED_POLICIES,
)
from core.errors import TabstoreConfigError
from core.types import RaggedPolicy


@dataclass(frozen=True)
class TabstoreConfig:
    """Validated runtime configuration.

    Attributes:
        db_path: Location of the SQLite store file.
        page_size: Default number of rows per served page.
        max_workers: Size of the shared reader worker pool.
        ragged_policy: How rows wider or narrower than the header are handled.
        s3_region: Optional default AWS region for S3 sources.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    db_path: Path
    page_size: int = DEFAULT_PAGE_SIZE
    max_workers: int = DEFAULT_MAX_WORKERS
    ragged_policy: RaggedPolicy = DEFAULT_RAGGED_POLICY
    s3_region: str | None = None
    s3_profile: str | None = None

    @classmethod
    def from_env(cls) -> "TabstoreConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            TabstoreConfigError: If environment values are invalid.
        """
        db_path_value = os.getenv("TABSTORE_DB_PATH", str(DEFAULT_DB_PATH))
        page_size = _parse_positive_int(
            "TABSTORE_PAGE_SIZE", os.getenv("TABSTORE_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))
        )
        max_workers = _parse_positive_int(
            "TABSTORE_WORKERS", os.getenv("TABSTORE_WORKERS", str(DEFAULT_MAX_WORKERS))
        )
        ragged_policy = parse_ragged_policy(
            os.getenv("TABSTORE_RAGGED_POLICY", DEFAULT_RAGGED_POLICY)
        )
        return cls(
            db_path=Path(db_path_value).expanduser().resolve(),
            page_size=page_size,
            max_workers=max_workers,
            ragged_policy=ragged_policy,
            s3_region=os.getenv("TABSTORE_S3_REGION"),
            s3_profile=os.getenv("TABSTORE_S3_PROFILE"),
        )


def parse_ragged_policy(raw_value: str) -> RaggedPolicy:
    """Validate a ragged-row policy name.

    Args:
        raw_value: Policy name from env, CLI, or run-spec.

    Returns:
        Normalized policy literal.

    Raises:
        TabstoreConfigError: If the policy is unknown.
    """
    normalized = raw_value.strip().lower()
    if normalized == "pad":
        return "pad"
    if normalized == "reject":
        return "reject"
    raise TabstoreConfigError(
        f"Invalid ragged row policy '{raw_value}'. "
        f"Use one of: {', '.join(SUPPORTED_RAGGED_POLICIES)}."
    )


def _parse_positive_int(env_name: str, raw_value: str) -> int:
    """Parse a positive integer environment value.

    Args:
        env_name: Variable name used in error messages.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer greater than zero.

    Raises:
        TabstoreConfigError: If value is not a positive integer.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise TabstoreConfigError(
            f"Invalid {env_name} value: expected integer, got '{raw_value}'. "
            f"Set {env_name} to a numeric value."
        ) from error
    if value <= 0:
        raise TabstoreConfigError(
            f"Invalid {env_name} value: expected a value greater than zero, got {value}."
        )
    return value
