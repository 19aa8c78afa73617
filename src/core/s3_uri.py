"""S3 URI parsing helpers.

Source readers use it to turn ``s3://bucket/key`` into a bucket and key
before downloading a CSV object with boto3.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import TabstoreImportError


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 object location."""

    bucket: str
    key: str


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 object URI.

    Args:
        uri: URI in format ``s3://bucket/key``.

    Returns:
        Parsed bucket and key pair.

    Raises:
        TabstoreImportError: If bucket or key is missing.
    """
    stripped_uri = uri.removeprefix("s3://")
    bucket, _, key = stripped_uri.partition("/")
    if not bucket or not key or key.endswith("/"):
        raise TabstoreImportError(
            f"Invalid S3 URI '{uri}': expected s3://bucket/key pointing at one object. "
            "Provide both bucket and object key.",
            kind="parse",
        )
    return S3Location(bucket=bucket, key=key)
