import io
import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from botocore.exceptions import ClientError, EndpointConnectionError

from transcript_backend import config
from transcript_backend.errors import ObjectNotFoundError, StoreUnavailableError
from transcript_backend.storage.object_store import S3ObjectStore


def _client_error(code: str, operation: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class _FakePaginator:
    def __init__(self, pages, error=None) -> None:
        self.pages = pages
        self.error = error
        self.calls: list[dict] = []

    def paginate(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return iter(self.pages)


class _FakeS3Client:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.paginator = _FakePaginator([])
        self.get_error: Exception | None = None
        self.head_error: Exception | None = None
        self.get_calls: list[dict] = []

    def get_paginator(self, name: str):
        assert name == "list_objects_v2"
        return self.paginator

    def get_object(self, **kwargs):
        self.get_calls.append(kwargs)
        if self.get_error is not None:
            raise self.get_error
        key = kwargs["Key"]
        if key not in self.objects:
            raise _client_error("NoSuchKey")
        return {"Body": io.BytesIO(self.objects[key])}

    def head_bucket(self, **kwargs):
        if self.head_error is not None:
            raise self.head_error
        return {}


class S3ObjectStoreTests(unittest.TestCase):
    def _store(self, key_prefix: str = "") -> tuple[S3ObjectStore, _FakeS3Client]:
        client = _FakeS3Client()
        return S3ObjectStore("transcripts-bucket", key_prefix=key_prefix, client=client), client

    def test_get_object_reads_body(self) -> None:
        store, client = self._store()
        client.objects["sess-1.jsonl"] = b'{"uuid": "a"}'

        self.assertEqual(store.get_object("sess-1.jsonl"), b'{"uuid": "a"}')
        self.assertEqual(client.get_calls[0]["Bucket"], "transcripts-bucket")

    def test_missing_key_maps_to_not_found(self) -> None:
        store, _ = self._store()

        with self.assertRaises(ObjectNotFoundError):
            store.get_object("missing.jsonl")

    def test_access_denied_maps_to_store_unavailable(self) -> None:
        store, client = self._store()
        client.get_error = _client_error("AccessDenied")

        with self.assertRaises(StoreUnavailableError) as ctx:
            store.get_object("sess-1.jsonl")

        self.assertIn("AccessDenied", str(ctx.exception))

    def test_transport_error_maps_to_store_unavailable(self) -> None:
        store, client = self._store()
        client.get_error = EndpointConnectionError(endpoint_url="http://localhost:4566")

        with self.assertRaises(StoreUnavailableError):
            store.get_object("sess-1.jsonl")

    def test_list_keys_walks_all_pages(self) -> None:
        store, client = self._store()
        client.paginator.pages = [
            {"Contents": [{"Key": "sess-1.jsonl", "Size": 10}]},
            {"Contents": [{"Key": "sess-1/agent-x.jsonl", "Size": 5}]},
            {},
        ]

        self.assertEqual(store.list_keys("sess-1"), ["sess-1.jsonl", "sess-1/agent-x.jsonl"])
        self.assertEqual(client.paginator.calls[0], {"Bucket": "transcripts-bucket", "Prefix": "sess-1"})

    def test_key_prefix_is_applied_and_stripped(self) -> None:
        store, client = self._store(key_prefix="env/prod/")
        modified = datetime(2026, 2, 1, 5, 0, tzinfo=timezone.utc)
        client.paginator.pages = [
            {"Contents": [{"Key": "env/prod/sess-1.jsonl", "Size": 10, "LastModified": modified}]}
        ]
        client.objects["env/prod/sess-1.jsonl"] = b"{}"

        refs = store.list_objects("sess-1")

        self.assertEqual(client.paginator.calls[0]["Prefix"], "env/prod/sess-1")
        self.assertEqual(refs[0].key, "sess-1.jsonl")
        self.assertEqual(refs[0].size, 10)
        self.assertEqual(refs[0].last_modified, modified)
        self.assertEqual(store.get_object("sess-1.jsonl"), b"{}")

    def test_listing_failure_maps_to_store_unavailable(self) -> None:
        store, client = self._store()
        client.paginator.error = _client_error("NoSuchBucket", "ListObjectsV2")

        with self.assertRaises(StoreUnavailableError):
            store.list_keys("sess-1")

    def test_health_check_reports_failures_as_false(self) -> None:
        store, client = self._store()
        self.assertTrue(store.check_health())

        client.head_error = EndpointConnectionError(endpoint_url="http://localhost:4566")
        self.assertFalse(store.check_health())

    def test_from_config_reads_store_settings(self) -> None:
        with patch.multiple(
            config,
            S3_BUCKET="configured-bucket",
            S3_KEY_PREFIX="team/",
            S3_ENDPOINT="http://localhost:4566",
        ):
            store = S3ObjectStore.from_config()

        self.assertEqual(store.bucket, "configured-bucket")
        self.assertEqual(store.key_prefix, "team/")
        self.assertEqual(store.client.meta.endpoint_url, "http://localhost:4566")


if __name__ == "__main__":
    unittest.main()
