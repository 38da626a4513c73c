"""Tests for the blob store and invokers."""

import pytest
from datetime import datetime, timedelta, UTC

from importflow.domain.errors import AuthorizationError, DependencyError, ValidationError
from importflow.integrations.blob_store import LocalBlobStore
from importflow.integrations.invoker import InlineInvoker, ThreadPoolInvoker

KEY = "user-1/acct-1/2024/01/original/up-1_jan.csv"


class TestLocalBlobStore:
    """Tests for the filesystem blob store."""

    def test_signed_upload_round_trip(self, blob_store):
        url = blob_store.put_with_signed_url(KEY, "text/csv", 300)

        bucket, key = blob_store.upload(url, b"date,description,amount\n")

        assert (bucket, key) == (blob_store.bucket, KEY)
        assert blob_store.get_content(bucket, key) == b"date,description,amount\n"

    def test_tampered_url_is_rejected(self, blob_store):
        url = blob_store.put_with_signed_url(KEY, "text/csv", 300)

        with pytest.raises(AuthorizationError):
            blob_store.upload(url.replace("up-1_jan", "up-2_jan"), b"x")

    def test_expired_url_is_rejected(self, tmp_path):
        now = [datetime(2024, 1, 15, 12, 0, tzinfo=UTC)]
        store = LocalBlobStore(tmp_path, "bucket", "secret", clock=lambda: now[0])
        url = store.put_with_signed_url(KEY, "text/csv", 300)
        now[0] += timedelta(seconds=301)

        with pytest.raises(ValidationError) as excinfo:
            store.upload(url, b"x")

        assert "expired" in str(excinfo.value)

    def test_other_secret_is_rejected(self, tmp_path, blob_store):
        url = blob_store.put_with_signed_url(KEY, "text/csv", 300)
        other = LocalBlobStore(blob_store.root, blob_store.bucket, "other-secret")

        with pytest.raises(AuthorizationError):
            other.upload(url, b"x")

    def test_malformed_url(self, blob_store):
        with pytest.raises(ValidationError):
            blob_store.upload("https://example.com/file.csv", b"x")

    def test_missing_file_is_dependency_error(self, blob_store):
        with pytest.raises(DependencyError):
            blob_store.get_content(blob_store.bucket, KEY)

    def test_delete(self, blob_store):
        blob_store.put_content(blob_store.bucket, KEY, b"x")

        blob_store.delete(blob_store.bucket, KEY)

        with pytest.raises(DependencyError):
            blob_store.get_content(blob_store.bucket, KEY)

    def test_keys_cannot_escape_bucket(self, blob_store):
        with pytest.raises(ValidationError):
            blob_store.put_content(blob_store.bucket, "../outside.csv", b"x")


class TestInlineInvoker:
    """Tests for in-process invocation."""

    def test_handler_receives_payload(self):
        received = []
        invoker = InlineInvoker()
        invoker.register("stage", received.append)

        invoker.invoke_fire_and_forget("stage", {"upload_id": "up-1"})

        assert received == [{"upload_id": "up-1"}]

    def test_handler_failure_is_recorded(self):
        def fail(payload):
            raise RuntimeError("boom")

        invoker = InlineInvoker()
        invoker.register("stage", fail)

        invoker.invoke_fire_and_forget("stage", {"upload_id": "up-1"})

        ref, payload, error = invoker.failures[0]
        assert ref == "stage"
        assert payload == {"upload_id": "up-1"}
        assert str(error) == "boom"

    def test_unknown_function(self):
        with pytest.raises(DependencyError):
            InlineInvoker().invoke_fire_and_forget("missing", {})

    def test_payload_must_be_json(self):
        invoker = InlineInvoker()
        invoker.register("stage", lambda payload: None)

        with pytest.raises(DependencyError):
            invoker.invoke_fire_and_forget("stage", {"when": datetime.now(UTC)})


def test_thread_pool_invoker_runs_handler():
    received = []
    invoker = ThreadPoolInvoker(max_workers=1)
    invoker.register("stage", received.append)

    invoker.invoke_fire_and_forget("stage", {"n": 1})
    invoker.invoke_fire_and_forget("stage", {"n": 2})
    invoker.shutdown(wait=True)

    assert received == [{"n": 1}, {"n": 2}]
    assert invoker.failures == []
    # Finished handlers are not kept around
    assert invoker.pending == set()


def test_thread_pool_invoker_after_shutdown():
    invoker = ThreadPoolInvoker(max_workers=1)
    invoker.register("stage", lambda payload: None)
    invoker.shutdown()

    with pytest.raises(DependencyError):
        invoker.invoke_fire_and_forget("stage", {})
