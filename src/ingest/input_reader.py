"""Tabular source readers for import.

This module reads CSV files, spreadsheet sheets, or S3-hosted CSV objects
into a header plus a lazy row stream. Rows are produced on demand so the
import pipeline can consume arbitrarily long sources inside one transaction.
"""

from __future__ import annotations

import csv
import io
import zipfile
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Generator, Iterable, Iterator

from core.config import TabstoreConfig
from core.constants import (
    CSV_ENCODING,
    DEFAULT_DATASET_NAME,
    GENERATED_COLUMN_PREFIX,
    SPREADSHEET_EXTENSIONS,
)
from core.errors import TabstoreDependencyError, TabstoreImportError
from core.s3_uri import parse_s3_uri
from core.types import TabularSource


def read_tabular_source(
    source_uri: str,
    config: TabstoreConfig,
    sheet_name: str | None = None,
) -> TabularSource:
    """Open a tabular source and read its header.

    Args:
        source_uri: Local CSV/XLSX path or ``s3://bucket/key.csv`` URI.
        config: Runtime configuration for S3 session defaults.
        sheet_name: Spreadsheet sheet to read; the active sheet when omitted.

    Returns:
        Source with header and lazy row iterator.

    Raises:
        TabstoreImportError: ``io`` when the source is missing,
            ``parse`` when the header cannot be read.
        TabstoreDependencyError: If S3 support is requested without boto3.
    """
    if source_uri.startswith("s3://"):
        return _read_s3_csv_source(source_uri, config)
    source_path = Path(source_uri).expanduser()
    if not source_path.is_file():
        raise TabstoreImportError(
            f"Failed to read source at {source_path}: file does not exist. "
            "Provide an existing CSV or spreadsheet file.",
            kind="io",
        )
    if source_path.suffix.lower() in SPREADSHEET_EXTENSIONS:
        return _read_spreadsheet_source(source_path, sheet_name)
    return _read_csv_source(source_path)


def dataset_name_for(source_path: Path) -> str:
    """Derive a dataset display name from a file name."""
    return source_path.stem.strip() or DEFAULT_DATASET_NAME


def _read_csv_source(source_path: Path) -> TabularSource:
    """Read a local CSV file lazily.

    Args:
        source_path: CSV file path.

    Returns:
        Source whose rows are streamed from the open file.
    """
    rows = _iter_csv_file(source_path)
    header = _read_header(rows, source_path)
    return TabularSource(
        name=dataset_name_for(source_path),
        source_uri=str(source_path),
        header=tuple(header),
        rows=rows,
    )


def _iter_csv_file(source_path: Path) -> Generator[list[str], None, None]:
    with source_path.open("r", encoding=CSV_ENCODING, newline="") as handle:
        yield from _iter_csv_records(handle)


def _iter_csv_records(stream: Iterable[str]) -> Generator[list[str], None, None]:
    for record in csv.reader(stream):
        if record:
            yield record


def _read_header(rows: Iterator[list[str]], source: Path | str) -> list[str]:
    try:
        header = next(rows, None)
    except (csv.Error, UnicodeDecodeError) as error:
        raise TabstoreImportError(
            f"Failed to read header from {source}: {error}. "
            "Save the file as UTF-8 CSV and retry the import.",
            kind="parse",
        ) from error
    if not header:
        raise TabstoreImportError(
            f"Failed to read {source}: csv header is required. "
            "Add a header row naming each column.",
            kind="parse",
        )
    return header


def _read_spreadsheet_source(source_path: Path, sheet_name: str | None) -> TabularSource:
    """Read one sheet of a spreadsheet lazily.

    Args:
        source_path: Workbook path.
        sheet_name: Sheet to read; the active sheet when omitted.

    Returns:
        Source with the first sheet row as header.
    """
    workbook = _load_workbook(source_path)
    try:
        worksheet = workbook[sheet_name] if sheet_name else workbook.active
    except KeyError as error:
        workbook.close()
        raise TabstoreImportError(
            f"Sheet '{sheet_name}' not found in {source_path}. "
            f"Available sheets: {', '.join(workbook.sheetnames)}.",
            kind="parse",
        ) from error
    rows = _iter_sheet_rows(workbook, worksheet)
    raw_header = next(rows, None)
    if raw_header is None:
        workbook.close()
        raise TabstoreImportError(
            f"Sheet '{worksheet.title}' in {source_path} is empty; a header row is required.",
            kind="parse",
        )
    header = tuple(
        value if value else f"{GENERATED_COLUMN_PREFIX}{index + 1}"
        for index, value in enumerate(raw_header)
    )
    return TabularSource(
        name=str(worksheet.title) if sheet_name else dataset_name_for(source_path),
        source_uri=f"{source_path}#{worksheet.title}",
        header=header,
        rows=rows,
    )


def _load_workbook(source_path: Path) -> Any:
    from openpyxl import load_workbook
    from openpyxl.utils.exceptions import InvalidFileException

    try:
        return load_workbook(source_path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError) as error:
        raise TabstoreImportError(
            f"Failed to open spreadsheet {source_path}: {error}. "
            "Save the workbook as .xlsx and retry the import.",
            kind="parse",
        ) from error


def _iter_sheet_rows(workbook: Any, worksheet: Any) -> Generator[list[str], None, None]:
    try:
        for raw_row in worksheet.iter_rows(values_only=True):
            if all(value is None for value in raw_row):
                continue
            yield [spreadsheet_text(value) for value in raw_row]
    finally:
        workbook.close()


def spreadsheet_text(value: object) -> str:
    """Render one spreadsheet cell value as stored text.

    Args:
        value: Cell value from openpyxl.

    Returns:
        Text form; empty cells become an empty string.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _read_s3_csv_source(source_uri: str, config: TabstoreConfig) -> TabularSource:
    """Download a CSV object from S3 and stream its rows.

    Args:
        source_uri: ``s3://bucket/key`` URI.
        config: Runtime config with optional region/profile.

    Returns:
        Source whose rows are parsed from the downloaded body.

    Raises:
        TabstoreImportError: If the object cannot be downloaded or decoded.
    """
    location = parse_s3_uri(source_uri)
    s3_client = _create_s3_client(config)
    try:
        body = s3_client.get_object(Bucket=location.bucket, Key=location.key)["Body"].read()
    except Exception as error:
        raise TabstoreImportError(
            f"Failed to download {source_uri}: {error}. "
            "Check AWS credentials and the object key, then retry the import.",
            kind="io",
        ) from error
    try:
        text = body.decode(CSV_ENCODING)
    except UnicodeDecodeError as error:
        raise TabstoreImportError(
            f"Failed to decode {source_uri} as UTF-8: {error}. "
            "Upload the object as UTF-8 CSV and retry the import.",
            kind="parse",
        ) from error
    rows = _iter_csv_records(io.StringIO(text, newline=""))
    header = _read_header(rows, source_uri)
    return TabularSource(
        name=dataset_name_for(Path(location.key)),
        source_uri=source_uri,
        header=tuple(header),
        rows=rows,
    )


def _create_s3_client(config: TabstoreConfig) -> Any:
    """Create a boto3 S3 client.

    Args:
        config: Runtime config containing optional profile/region.

    Returns:
        Boto3 S3 client.

    Raises:
        TabstoreDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise TabstoreDependencyError(
            "S3 support requires boto3, but it is not installed. "
            "Install boto3 to import from s3:// sources."
        ) from error
    session_kwargs = _build_boto3_session_kwargs(config)
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")


def _build_boto3_session_kwargs(config: TabstoreConfig) -> dict[str, str]:
    kwargs: dict[str, str] = {}
    if config.s3_profile:
        kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        kwargs["region_name"] = config.s3_region
    return kwargs
