"""Read-only object store access for transcript blobs.

``ObjectStore`` is the capability the services depend on; ``S3ObjectStore``
implements it on top of boto3 and maps botocore failures onto
``ObjectNotFoundError`` (the key is absent) and ``StoreUnavailableError``
(anything else: network, permissions, service errors).
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from transcript_backend import config
from transcript_backend.errors import ObjectNotFoundError, StoreUnavailableError
from transcript_backend.observability import record_store_request

logger = logging.getLogger("transcript_viewer.store")

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


@dataclass(frozen=True)
class ObjectRef:
    key: str
    size: int = 0
    last_modified: Optional[datetime] = None


class ObjectStore(Protocol):
    def list_keys(self, prefix: str) -> list[str]: ...

    def list_objects(self, prefix: str) -> list[ObjectRef]: ...

    def get_object(self, key: str) -> bytes: ...

    def check_health(self) -> bool: ...


def _error_code(exc: ClientError) -> str:
    error = exc.response.get("Error", {}) if isinstance(exc.response, dict) else {}
    code = str(error.get("Code") or "")
    if code:
        return code
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return str(status or "")


class S3ObjectStore:

    def __init__(
        self,
        bucket: str,
        *,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        force_path_style: bool = True,
        key_prefix: str = "",
        client: Any | None = None,
    ) -> None:
        self.bucket = bucket
        self.key_prefix = key_prefix
        if client is None:
            client_config = Config(s3={"addressing_style": "path" if force_path_style else "auto"})
            client = boto3.session.Session(region_name=region).client(
                "s3",
                endpoint_url=endpoint_url,
                config=client_config,
            )
        self.client = client

    @classmethod
    def from_config(cls) -> "S3ObjectStore":
        return cls(
            config.S3_BUCKET,
            region=config.AWS_REGION,
            endpoint_url=config.S3_ENDPOINT,
            force_path_style=config.S3_FORCE_PATH_STYLE,
            key_prefix=config.S3_KEY_PREFIX,
        )

    def _full_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _strip_prefix(self, key: str) -> str:
        if self.key_prefix and key.startswith(self.key_prefix):
            return key[len(self.key_prefix):]
        return key

    def _iter_pages(self, prefix: str) -> Iterable[dict]:
        paginator = self.client.get_paginator("list_objects_v2")
        return paginator.paginate(Bucket=self.bucket, Prefix=self._full_key(prefix))

    def list_objects(self, prefix: str) -> list[ObjectRef]:
        started = time.perf_counter()
        refs: list[ObjectRef] = []
        try:
            for page in self._iter_pages(prefix):
                for item in page.get("Contents", []) or []:
                    key = item.get("Key")
                    if not key:
                        continue
                    refs.append(
                        ObjectRef(
                            key=self._strip_prefix(key),
                            size=int(item.get("Size") or 0),
                            last_modified=item.get("LastModified"),
                        )
                    )
        except ClientError as exc:
            record_store_request("list", "error", (time.perf_counter() - started) * 1000)
            if _error_code(exc) == "NoSuchBucket":
                logger.warning("Bucket %s does not exist", self.bucket)
            raise StoreUnavailableError("list", _error_code(exc) or str(exc)) from exc
        except BotoCoreError as exc:
            record_store_request("list", "error", (time.perf_counter() - started) * 1000)
            raise StoreUnavailableError("list", str(exc)) from exc
        record_store_request("list", "ok", (time.perf_counter() - started) * 1000)
        return refs

    def list_keys(self, prefix: str) -> list[str]:
        return [ref.key for ref in self.list_objects(prefix)]

    def get_object(self, key: str) -> bytes:
        started = time.perf_counter()
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._full_key(key))
            body = response.get("Body")
            if body is None:
                raise ObjectNotFoundError(key)
            data = body.read()
        except ClientError as exc:
            code = _error_code(exc)
            if code in _NOT_FOUND_CODES:
                record_store_request("get", "not_found", (time.perf_counter() - started) * 1000)
                raise ObjectNotFoundError(key) from exc
            record_store_request("get", "error", (time.perf_counter() - started) * 1000)
            raise StoreUnavailableError("get", code or str(exc)) from exc
        except BotoCoreError as exc:
            record_store_request("get", "error", (time.perf_counter() - started) * 1000)
            raise StoreUnavailableError("get", str(exc)) from exc
        record_store_request("get", "ok", (time.perf_counter() - started) * 1000)
        return data

    def check_health(self) -> bool:
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except (ClientError, BotoCoreError) as exc:
            logger.warning("Object store health check failed for bucket %s: %s", self.bucket, exc)
            return False
        return True
