"""
Tests for the artifact storage chain.

Remote object storage is exercised against httpx.MockTransport.
"""

import base64
import json
import os

import httpx
import pytest

from quoteflow.services.storage import (
    InlinePayloadStorage,
    LocalFilesystemStorage,
    RemoteObjectStorage,
    StorageError,
    StorageStrategyChain,
)

PDF = b"%PDF-1.7\nbody"


def remote_storage(handler, **kwargs):
    return RemoteObjectStorage(
        "https://objects.test/bucket/",
        token="secret",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestRemoteObjectStorage:

    @pytest.mark.asyncio
    async def test_put_with_bearer_token(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = request.content
            return httpx.Response(200, json={"url": "https://cdn.test/q.pdf", "id": "obj-1"})

        stored = await remote_storage(handler).attempt(PDF, "quote-Q2026-0001.pdf")

        assert seen["method"] == "PUT"
        assert seen["url"] == "https://objects.test/bucket/quotes/quote-Q2026-0001.pdf"
        assert seen["auth"] == "Bearer secret"
        assert seen["body"] == PDF
        assert stored.locator == "https://cdn.test/q.pdf"
        assert stored.storage_id == "obj-1"

    @pytest.mark.asyncio
    async def test_locator_defaults_to_object_url(self):
        stored = await remote_storage(lambda request: httpx.Response(201)).attempt(PDF, "a.pdf")

        assert stored.locator == "https://objects.test/bucket/quotes/a.pdf"
        assert stored.storage_id == "quotes/a.pdf"

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        with pytest.raises(httpx.HTTPStatusError):
            await remote_storage(lambda request: httpx.Response(503)).attempt(PDF, "a.pdf")

    def test_unavailable_without_url(self):
        assert RemoteObjectStorage(None).is_available() is False

    @pytest.mark.asyncio
    async def test_delete_tolerates_missing_object(self):
        methods = []

        def handler(request):
            methods.append(request.method)
            return httpx.Response(404)

        await remote_storage(handler).delete("quotes/a.pdf")

        assert methods == ["DELETE"]

    @pytest.mark.asyncio
    async def test_delete_unconfigured_raises(self):
        with pytest.raises(StorageError):
            await RemoteObjectStorage(None).delete("quotes/a.pdf")


class TestLocalFilesystemStorage:

    @pytest.mark.asyncio
    async def test_writes_file(self, tmp_path):
        storage = LocalFilesystemStorage(str(tmp_path / "nested" / "quotes"))

        stored = await storage.attempt(PDF, "quote-Q2026-0001.pdf")

        path = tmp_path / "nested" / "quotes" / "quote-Q2026-0001.pdf"
        assert path.read_bytes() == PDF
        assert stored.locator == path.as_posix()
        assert stored.strategy == "local"

    def test_unavailable_in_serverless(self, tmp_path):
        assert LocalFilesystemStorage(str(tmp_path), serverless=True).is_available() is False

    @pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0, reason="root can write anywhere")
    def test_unavailable_when_not_writable(self, tmp_path):
        locked = tmp_path / "locked"
        locked.mkdir()
        locked.chmod(0o500)
        try:
            assert LocalFilesystemStorage(str(locked / "quotes")).is_available() is False
        finally:
            locked.chmod(0o700)


class TestInlinePayloadStorage:

    def test_data_uri(self):
        uri = InlinePayloadStorage().encode(PDF)

        assert uri.startswith("data:application/pdf;base64,")
        assert base64.b64decode(uri.split(",", 1)[1]) == PDF


class TestStorageStrategyChain:

    @pytest.mark.asyncio
    async def test_remote_success_wins(self, tmp_path):
        chain = StorageStrategyChain([
            remote_storage(lambda request: httpx.Response(200, json={"id": "obj-9"})),
            LocalFilesystemStorage(str(tmp_path)),
        ])

        outcome = await chain.store(PDF, "a.pdf", quote_id="q1")

        assert outcome.strategy == "remote"
        assert outcome.storage_id == "obj-9"
        assert outcome.warnings == []
        assert not (tmp_path / "a.pdf").exists()
        assert outcome.inline_payload.startswith("data:application/pdf;base64,")

    @pytest.mark.asyncio
    async def test_remote_failure_falls_back_to_local(self, tmp_path, caplog):
        chain = StorageStrategyChain([
            remote_storage(lambda request: httpx.Response(500, text="boom")),
            LocalFilesystemStorage(str(tmp_path)),
        ])

        with caplog.at_level("WARNING"):
            outcome = await chain.store(PDF, "a.pdf", quote_id="q1")

        assert outcome.strategy == "local"
        assert outcome.locator == (tmp_path / "a.pdf").as_posix()
        assert outcome.degraded is True
        assert [w.strategy for w in outcome.warnings] == ["remote"]
        assert any(getattr(r, "quote_id", None) == "q1" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_connection_error_falls_back(self, tmp_path):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        chain = StorageStrategyChain([remote_storage(handler), LocalFilesystemStorage(str(tmp_path))])

        outcome = await chain.store(PDF, "a.pdf")

        assert outcome.strategy == "local"
        assert outcome.warnings[0].strategy == "remote"

    @pytest.mark.asyncio
    async def test_serverless_without_remote_uses_inline(self, tmp_path):
        chain = StorageStrategyChain([
            RemoteObjectStorage(None),
            LocalFilesystemStorage(str(tmp_path), serverless=True),
        ])

        outcome = await chain.store(PDF, "a.pdf")

        assert outcome.strategy == "inline"
        assert outcome.locator == outcome.inline_payload
        assert outcome.storage_id is None
        # Skipped strategies are not failures
        assert outcome.warnings == []
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_everything_fails_still_returns_inline(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"")
        chain = StorageStrategyChain([
            remote_storage(lambda request: httpx.Response(502)),
            # A file where the directory should be makes the write fail
            LocalFilesystemStorage(str(blocker / "quotes")),
        ])

        outcome = await chain.store(PDF, "a.pdf")

        assert outcome.strategy == "inline"
        assert [w.strategy for w in outcome.warnings] == ["remote", "local"]

    def test_from_settings(self, tmp_path):
        class FakeSettings:
            OBJECT_STORAGE_URL = "https://objects.test"
            OBJECT_STORAGE_TOKEN = None
            OBJECT_STORAGE_FOLDER = "docs"
            LOCAL_STORAGE_DIR = str(tmp_path)
            SERVERLESS = False

        chain = StorageStrategyChain.from_settings(FakeSettings())

        assert [s.name for s in chain.strategies] == ["remote", "local"]
        assert chain.get("remote").folder == "docs"
        assert chain.get("missing") is None

    @pytest.mark.asyncio
    async def test_delete_unknown_strategy(self):
        with pytest.raises(StorageError):
            await StorageStrategyChain([]).delete("remote", "x")

    @pytest.mark.asyncio
    async def test_delete_sends_remote_delete(self):
        requests = []

        def handler(request):
            requests.append((request.method, request.url.path))
            return httpx.Response(204)

        chain = StorageStrategyChain([remote_storage(handler)])
        await chain.delete("remote", "quotes/a.pdf")

        assert requests == [("DELETE", "/bucket/quotes/a.pdf")]
