"""S3-compatible object store backed by boto3.

Objects are uploaded public-read: the published builds are downloaded
directly from the bucket URL.
"""

from __future__ import annotations

import builtins
import mimetypes
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from relbuild.core.config import StoreConfig
from relbuild.core.errors import ConfigError, StoreError
from relbuild.core.result import Err, Ok, Result
from relbuild.store.base import MAX_LIST_KEYS, StoreObject

__all__ = ["S3Store", "has_store_credentials"]

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def has_store_credentials(config: StoreConfig, env: Mapping[str, str]) -> bool:
    return bool(env.get(config.access_env)) and bool(env.get(config.secret_env))


def _content_type(name: str) -> str:
    if name.endswith(".js"):
        return "application/javascript"
    guessed, _ = mimetypes.guess_type(name)
    return guessed or "application/octet-stream"


class S3Store:
    """RemoteStore over an S3 bucket."""

    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self.bucket = bucket

    @classmethod
    def from_config(
        cls, config: StoreConfig, env: Mapping[str, str]
    ) -> Result[S3Store, ConfigError]:
        """Create a client from the credentials named in config."""
        if not has_store_credentials(config, env):
            return Err(
                ConfigError(
                    "credentials",
                    "remote store credentials are not set",
                    hint=f"set {config.access_env} and {config.secret_env}",
                )
            )
        client = boto3.client(
            "s3",
            aws_access_key_id=env[config.access_env],
            aws_secret_access_key=env[config.secret_env],
            region_name=config.region,
            endpoint_url=config.endpoint_url,
        )
        return Ok(cls(client, config.bucket))

    def list(self, prefix: str) -> Result[builtins.list[StoreObject], StoreError]:
        try:
            resp = self._client.list_objects_v2(
                Bucket=self.bucket, Prefix=prefix, MaxKeys=MAX_LIST_KEYS
            )
        except (BotoCoreError, ClientError) as e:
            return Err(StoreError("list", str(e), key=prefix))

        # TODO: follow ContinuationToken once a prefix outgrows one page.
        if resp.get("IsTruncated"):
            return Err(
                StoreError(
                    "list",
                    f"listing truncated at {MAX_LIST_KEYS} keys; paging is not implemented",
                    key=prefix,
                )
            )
        return Ok(
            [StoreObject(key=obj["Key"], size=int(obj.get("Size", 0))) for obj in resp.get("Contents", [])]
        )

    def exists(self, key: str) -> Result[bool, StoreError]:
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                return Ok(False)
            return Err(StoreError("exists", str(e), key=key))
        except BotoCoreError as e:
            return Err(StoreError("exists", str(e), key=key))
        return Ok(True)

    def upload(self, local_path: Path, key: str) -> Result[None, StoreError]:
        try:
            self._client.upload_file(
                str(local_path),
                self.bucket,
                key,
                ExtraArgs={"ACL": "public-read", "ContentType": _content_type(key)},
            )
        except (BotoCoreError, ClientError, OSError) as e:
            return Err(StoreError("upload", f"{local_path}: {e}", key=key))
        return Ok(None)

    def upload_string(self, key: str, content: str) -> Result[None, StoreError]:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content.encode("utf-8"),
                ACL="public-read",
                ContentType=_content_type(key),
            )
        except (BotoCoreError, ClientError) as e:
            return Err(StoreError("upload", str(e), key=key))
        return Ok(None)

    def delete(self, key: str) -> Result[None, StoreError]:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            return Err(StoreError("delete", str(e), key=key))
        return Ok(None)
