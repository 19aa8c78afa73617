"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_TABSTORE_ENV_VARS = (
    "TABSTORE_DB_PATH",
    "TABSTORE_PAGE_SIZE",
    "TABSTORE_WORKERS",
    "TABSTORE_RAGGED_POLICY",
    "TABSTORE_S3_REGION",
    "TABSTORE_S3_PROFILE",
)


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def isolated_tabstore_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep developer TABSTORE_* settings out of tests and default the store into tmp_path.

    Tests also run from the project root so relative fixture paths in run-specs resolve.
    """
    monkeypatch.chdir(Path(__file__).resolve().parent.parent)
    for env_name in _TABSTORE_ENV_VARS:
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.setenv("TABSTORE_DB_PATH", str(tmp_path / "default-store.db"))
