"""S3-compatible object storage client (boto3).

Works against AWS as well as MinIO-style endpoints: path-style addressing
and SigV4 signing. Credentials come from ``AWS_ACCESS_KEY_ID`` and
``AWS_SECRET_ACCESS_KEY`` in the process environment.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import urlsplit

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from crossrel.core.result import Err, Ok, Result

from .errors import CredentialError, RemoteConnectionError, UploadError

__all__ = [
    "Boto3Storage",
    "Credentials",
    "ObjectStorage",
    "StorageFactory",
    "endpoint_url",
]

ACCESS_KEY_VAR = "AWS_ACCESS_KEY_ID"
SECRET_KEY_VAR = "AWS_SECRET_ACCESS_KEY"
DEFAULT_REGION = "us-east-1"

_MISSING_BUCKET_CODES = frozenset({"404", "NoSuchBucket", "NotFound"})


@dataclass(frozen=True, slots=True)
class Credentials:
    access_key: str
    secret_key: str

    def __repr__(self) -> str:
        return f"Credentials(access_key={self.access_key!r}, secret_key='***')"

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> Result[Credentials, CredentialError]:
        access_key = environ.get(ACCESS_KEY_VAR, "")
        secret_key = environ.get(SECRET_KEY_VAR, "")
        if not access_key or not secret_key:
            return Err(CredentialError(variables=(ACCESS_KEY_VAR, SECRET_KEY_VAR)))
        return Ok(cls(access_key=access_key, secret_key=secret_key))


class ObjectStorage(Protocol):
    def bucket_exists(self, bucket: str) -> Result[bool, RemoteConnectionError]: ...

    def create_bucket(self, bucket: str) -> Result[None, RemoteConnectionError]: ...

    def put_object(self, bucket: str, key: str, source: Path) -> Result[None, UploadError]: ...


type StorageFactory = Callable[
    [str, str | None, Credentials, float | None],
    Result[ObjectStorage, RemoteConnectionError],
]


def endpoint_url(endpoint: str) -> str:
    """Normalise an endpoint to ``scheme://host[:port]``.

    TLS is used only when the configured endpoint starts with ``https``.
    """
    parts = urlsplit(endpoint if "://" in endpoint else f"//{endpoint}")
    host = parts.netloc or parts.path
    scheme = "https" if endpoint.startswith("https") else "http"
    return f"{scheme}://{host}"


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class Boto3Storage:
    """Thin Result-returning wrapper around a boto3 S3 client."""

    def __init__(self, client: Any, *, host: str, region: str | None = None) -> None:
        self._client = client
        self.host = host
        self.region = region

    @classmethod
    def connect(
        cls,
        endpoint: str,
        region: str | None,
        credentials: Credentials,
        timeout: float | None = None,
    ) -> Result[ObjectStorage, RemoteConnectionError]:
        url = endpoint_url(endpoint)
        options: dict[str, object] = {
            "signature_version": "s3v4",
            "s3": {"addressing_style": "path"},
        }
        if timeout:
            options["connect_timeout"] = timeout
            options["read_timeout"] = timeout
        try:
            client = boto3.client(
                "s3",
                endpoint_url=url,
                aws_access_key_id=credentials.access_key,
                aws_secret_access_key=credentials.secret_key,
                region_name=region or DEFAULT_REGION,
                config=Config(**options),
            )
        except (BotoCoreError, ValueError) as e:
            return Err(RemoteConnectionError(host=url, reason=f"failed to create S3 client: {e}"))
        return Ok(cls(client, host=url, region=region))

    def bucket_exists(self, bucket: str) -> Result[bool, RemoteConnectionError]:
        try:
            self._client.head_bucket(Bucket=bucket)
        except ClientError as e:
            if _error_code(e) in _MISSING_BUCKET_CODES:
                return Ok(False)
            return Err(RemoteConnectionError(host=self.host, reason=f"bucket check error: {e}"))
        except BotoCoreError as e:
            return Err(RemoteConnectionError(host=self.host, reason=f"bucket check error: {e}"))
        return Ok(True)

    def create_bucket(self, bucket: str) -> Result[None, RemoteConnectionError]:
        kwargs: dict[str, object] = {"Bucket": bucket}
        if self.region and self.region != DEFAULT_REGION:
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            self._client.create_bucket(**kwargs)
        except (ClientError, BotoCoreError) as e:
            reason = f"failed to create bucket: {e}"
            return Err(RemoteConnectionError(host=self.host, reason=reason))
        return Ok(None)

    def put_object(self, bucket: str, key: str, source: Path) -> Result[None, UploadError]:
        try:
            with source.open("rb") as body:
                self._client.put_object(Bucket=bucket, Key=key, Body=body)
        except (OSError, ClientError, BotoCoreError) as e:
            destination = f"s3://{bucket}/{key}"
            return Err(UploadError(source=source, destination=destination, reason=str(e)))
        return Ok(None)
