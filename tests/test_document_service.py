import base64

import pytest

from backend.services.document_service import fetch_encoded
from backend.services.exceptions import DownloadFailed, MissingStoragePath, ObjectNotFound
from tests.fakes import FakeStorage


class BrokenStorage:
    def __init__(self, error):
        self.error = error

    async def download(self, path):
        raise self.error


async def test_raw_pdf_is_base64_encoded():
    storage = FakeStorage({"cv.pdf": b"%PDF-1.4 abc"})

    encoded = await fetch_encoded(storage, "cv.pdf")

    assert base64.b64decode(encoded) == b"%PDF-1.4 abc"


async def test_data_uri_object_is_stripped():
    storage = FakeStorage({"cv.pdf": b"data:application/pdf;base64,JVBERi0xLjQ="})

    assert await fetch_encoded(storage, "cv.pdf") == "JVBERi0xLjQ="


async def test_missing_path_does_not_download():
    storage = FakeStorage()

    with pytest.raises(MissingStoragePath):
        await fetch_encoded(storage, None)
    assert storage.downloads == []


async def test_empty_object_fails():
    storage = FakeStorage({"vazio.pdf": b""})

    with pytest.raises(DownloadFailed):
        await fetch_encoded(storage, "vazio.pdf")


async def test_unexpected_errors_become_download_failed():
    with pytest.raises(DownloadFailed):
        await fetch_encoded(BrokenStorage(ConnectionError("reset")), "cv.pdf")


async def test_not_found_is_propagated_as_is():
    with pytest.raises(ObjectNotFound):
        await fetch_encoded(BrokenStorage(ObjectNotFound("sumiu")), "cv.pdf")
