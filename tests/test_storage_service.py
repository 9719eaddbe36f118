"""
Cliente do Supabase Storage contra um transporte httpx simulado.
"""

import json

import httpx
import pytest

from backend.services.exceptions import DownloadFailed, ObjectNotFound, UploadFailed
from backend.services.storage_service import SupabaseStorage, public_object_url


def make_storage(handler, requests=None):
    def recording(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    return SupabaseStorage(
        "https://proj.supabase.co/",
        "service-key",
        "resumes",
        transport=httpx.MockTransport(recording),
    )


async def test_download_returns_content_with_service_headers():
    seen = []
    async with make_storage(lambda r: httpx.Response(200, content=b"%PDF-1.4"), seen) as storage:
        data = await storage.download("123_cv.pdf")

    assert data == b"%PDF-1.4"
    assert seen[0].url == "https://proj.supabase.co/storage/v1/object/resumes/123_cv.pdf"
    assert seen[0].headers["Authorization"] == "Bearer service-key"
    assert seen[0].headers["apikey"] == "service-key"


@pytest.mark.parametrize("status", [400, 404])
async def test_download_missing_object(status):
    async with make_storage(lambda r: httpx.Response(status, json={"error": "not_found"})) as storage:
        with pytest.raises(ObjectNotFound):
            await storage.download("sumiu.pdf")


async def test_download_server_error():
    async with make_storage(lambda r: httpx.Response(500)) as storage:
        with pytest.raises(DownloadFailed):
            await storage.download("cv.pdf")


async def test_download_network_error():
    def handler(request):
        raise httpx.ConnectError("sem rede", request=request)

    async with make_storage(handler) as storage:
        with pytest.raises(DownloadFailed):
            await storage.download("cv.pdf")


async def test_upload_does_not_overwrite():
    seen = []
    async with make_storage(lambda r: httpx.Response(200, json={"Key": "resumes/cv.pdf"}), seen) as storage:
        path = await storage.upload("cv.pdf", b"%PDF")

    assert path == "cv.pdf"
    assert seen[0].method == "POST"
    assert seen[0].headers["x-upsert"] == "false"
    assert seen[0].headers["Content-Type"] == "application/pdf"
    assert seen[0].content == b"%PDF"


async def test_upload_conflict_raises():
    async with make_storage(lambda r: httpx.Response(409, json={"error": "Duplicate"})) as storage:
        with pytest.raises(UploadFailed):
            await storage.upload("cv.pdf", b"%PDF")


async def test_remove_sends_prefixes_and_skips_empty():
    seen = []
    async with make_storage(lambda r: httpx.Response(200, json=[]), seen) as storage:
        await storage.remove(["a.pdf", None, "b.pdf"])
        await storage.remove([])

    assert len(seen) == 1
    assert seen[0].method == "DELETE"
    assert json.loads(seen[0].content) == {"prefixes": ["a.pdf", "b.pdf"]}


async def test_remove_failure_is_only_logged():
    async with make_storage(lambda r: httpx.Response(500)) as storage:
        await storage.remove(["a.pdf"])


async def test_signed_url():
    handler = lambda r: httpx.Response(200, json={"signedURL": "/object/sign/resumes/cv.pdf?token=abc"})
    async with make_storage(handler) as storage:
        url = await storage.create_signed_url("cv.pdf", 600)

    assert url == "https://proj.supabase.co/storage/v1/object/sign/resumes/cv.pdf?token=abc"


def test_public_object_url():
    url = public_object_url("https://proj.supabase.co/", "marketing", "banner 1.png")
    assert url == "https://proj.supabase.co/storage/v1/object/public/marketing/banner%201.png"
