"""Tests for the Supabase blob store."""

import json

import httpx
import pytest

from app.factfinder.exceptions import StorageError
from app.factfinder.services.storage_service import SupabaseStorage


class StorageHandler:
    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"Key": "fact-finders/u123/1-a.pdf"})


async def run_with(handler, action):
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        storage = SupabaseStorage(
            "https://project.supabase.co/",
            "service-role-key",
            "fact-finders",
            client=client,
        )
        return await action(storage)


class TestSupabaseStorage:
    """Tests for SupabaseStorage put/remove."""

    @pytest.mark.asyncio
    async def test_put_without_overwrite(self):
        """Test that uploads are sent with upsert disabled."""
        handler = StorageHandler()

        await run_with(
            handler,
            lambda s: s.put("u123/1-a.pdf", b"%PDF-1.4", "application/pdf"),
        )

        request = handler.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://project.supabase.co/storage/v1/object/fact-finders/u123/1-a.pdf"
        assert request.headers["x-upsert"] == "false"
        assert request.headers["Content-Type"] == "application/pdf"
        assert request.headers["Authorization"] == "Bearer service-role-key"
        assert request.headers["apikey"] == "service-role-key"
        assert request.content == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_put_with_overwrite(self):
        handler = StorageHandler()

        await run_with(
            handler,
            lambda s: s.put("u123/1-a.pdf", b"x", "application/pdf", overwrite=True),
        )

        assert handler.requests[0].headers["x-upsert"] == "true"

    @pytest.mark.asyncio
    async def test_put_conflict(self):
        with pytest.raises(StorageError):
            await run_with(
                StorageHandler(status_code=409),
                lambda s: s.put("u123/1-a.pdf", b"x", "application/pdf"),
            )

    @pytest.mark.asyncio
    async def test_put_transport_error(self):
        def refuse(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(StorageError):
            await run_with(refuse, lambda s: s.put("u123/1-a.pdf", b"x", "application/pdf"))

    @pytest.mark.asyncio
    async def test_remove(self):
        handler = StorageHandler()

        await run_with(handler, lambda s: s.remove("u123/1-a.pdf"))

        request = handler.requests[0]
        assert request.method == "DELETE"
        assert str(request.url) == "https://project.supabase.co/storage/v1/object/fact-finders"
        assert json.loads(request.content) == {"prefixes": ["u123/1-a.pdf"]}

    @pytest.mark.asyncio
    async def test_remove_failure(self):
        with pytest.raises(StorageError):
            await run_with(StorageHandler(status_code=500), lambda s: s.remove("u123/1-a.pdf"))

    def test_from_settings(self, settings):
        storage = SupabaseStorage.from_settings(settings)

        assert storage.base_api_url == "http://localhost:54321/storage/v1"
        assert storage.bucket == "fact-finders"
