# tests/test_ingestion.py
import os

import pytest
import requests

from conftest import FailingEmbedder, words
from docmemory.errors import ValidationError
from docmemory.memory import loader
from docmemory.memory.loader import decode_url, fetch_pdf_text, file_name_from_url, load_pdf_text
from docmemory.workflow import ingestion
from docmemory.workflow.ingestion import ingest_document


URL = "https://files.example.com/handbooks/handbook.pdf"


@pytest.fixture
def pdf_text(monkeypatch):
    """Replace remote fetch with a settable text source."""

    state = {"text": words(1536), "calls": []}

    def fake_fetch(url, temp_dir=None):
        state["calls"].append(url)
        if isinstance(state["text"], Exception):
            raise state["text"]
        return state["text"]

    monkeypatch.setattr(ingestion, "fetch_pdf_text", fake_fetch)

    return state


class TestIngestDocument:

    def test_chunks_stored_with_provenance_keys(self, context, pdf_text):
        result = ingest_document(URL, context)

        keys = [r.key for r in result.memoryRecords]

        assert result.url == URL
        assert keys == ["handbook.pdf-1-3", "handbook.pdf-2-3", "handbook.pdf-3-3"]
        assert all(r.collection == "blob" for r in result.memoryRecords)

        for record in result.memoryRecords:
            assert context.memory.get("blob", record.key) == record.text

    def test_document_row_registered(self, context, pdf_text):
        ingest_document(URL, context)

        doc = context.documents.get("docs", "handbook.pdf")

        assert doc.description == "handbook.pdf"
        assert doc.location == URL

    def test_percent_encoded_url_decoded(self, context, pdf_text):
        result = ingest_document("https%3A%2F%2Ffiles.example.com%2Fhandbooks%2Fhandbook.pdf", context)

        assert result.url == URL
        assert pdf_text["calls"] == [URL]

    def test_empty_url_rejected(self, context, pdf_text):
        with pytest.raises(ValidationError):
            ingest_document("   ", context)

        assert pdf_text["calls"] == []

    def test_extraction_failure_yields_empty_records(self, context, pdf_text):
        pdf_text["text"] = requests.HTTPError("404 Client Error")

        result = ingest_document(URL, context)

        assert result.memoryRecords == []
        assert context.documents.get("docs", "handbook.pdf") is None

    def test_empty_document_yields_empty_records(self, context, pdf_text):
        pdf_text["text"] = "  \n "

        result = ingest_document(URL, context)

        assert result.memoryRecords == []

    def test_persistence_failure_yields_empty_records(self, context, pdf_text):
        context.memory._embedder = FailingEmbedder()

        result = ingest_document(URL, context)

        assert result.url == URL
        assert result.memoryRecords == []

    def test_reingest_drops_stale_chunks(self, context, pdf_text):
        ingest_document(URL, context)

        pdf_text["text"] = words(600, prefix="v")

        result = ingest_document(URL, context)

        assert [r.key for r in result.memoryRecords] == ["handbook.pdf-1-2", "handbook.pdf-2-2"]
        assert context.memory.get("blob", "handbook.pdf-1-3") is None
        assert context.memory.get("blob", "handbook.pdf-3-3") is None
        assert len(context.documents.get_all("docs")) == 1

    def test_failed_cleanup_aborts_reingest(self, context, pdf_text, monkeypatch):
        ingest_document(URL, context)

        monkeypatch.setattr(context.memory, "delete_document", lambda collection, document: False)
        pdf_text["text"] = "short text"

        result = ingest_document(URL, context)

        assert result.memoryRecords == []
        assert context.memory.get("blob", "handbook.pdf-1-1") is None
        assert context.memory.get("blob", "handbook.pdf-2-3") is not None


class FakeResponse:

    def __init__(self, blocks, status_error=None):
        self._blocks = blocks
        self._status_error = status_error

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self._status_error:
            raise self._status_error

    def iter_content(self, chunk_size=None):
        return iter(self._blocks)


class FakePage:

    def __init__(self, text):
        self._text = text

    def extract_text(self):
        return self._text


class TestLoader:

    def test_url_helpers(self):
        assert decode_url("https%3A%2F%2Fa.com%2Fx%20y.pdf") == "https://a.com/x y.pdf"
        assert file_name_from_url("https://a.com/path/to/report.pdf?v=2") == "report.pdf"
        assert file_name_from_url("https://a.com/") == ""

    def test_pages_joined_in_order(self, monkeypatch):
        class FakeReader:
            def __init__(self, path):
                self.pages = [FakePage("first"), FakePage(""), FakePage("second")]

        monkeypatch.setattr(loader, "PdfReader", FakeReader)

        assert load_pdf_text("ignored.pdf") == "first\nsecond"

    def test_fetch_removes_scratch_file(self, monkeypatch, tmp_path):
        monkeypatch.setattr(loader.requests, "get", lambda *a, **k: FakeResponse([b"%PDF", b"-1.4"]))
        monkeypatch.setattr(loader, "load_pdf_text", lambda path: open(path, "rb").read().decode())

        assert fetch_pdf_text(URL, temp_dir=str(tmp_path)) == "%PDF-1.4"
        assert os.listdir(tmp_path) == []

    def test_scratch_file_removed_on_http_error(self, monkeypatch, tmp_path):
        monkeypatch.setattr(
            loader.requests,
            "get",
            lambda *a, **k: FakeResponse([], status_error=requests.HTTPError("404")),
        )

        with pytest.raises(requests.HTTPError):
            fetch_pdf_text(URL, temp_dir=str(tmp_path))

        assert os.listdir(tmp_path) == []

    def test_oversized_download_rejected(self, monkeypatch, tmp_path):
        monkeypatch.setattr(loader.requests, "get", lambda *a, **k: FakeResponse([b"x" * 10, b"x" * 10]))

        with pytest.raises(ValueError):
            loader.download_to(URL, str(tmp_path / "f.pdf"), max_bytes=15)

    def test_concurrent_fetches_use_distinct_files(self, monkeypatch, tmp_path):
        seen = []

        def fake_download(url, path):
            seen.append(path)
            return 0

        monkeypatch.setattr(loader, "download_to", fake_download)
        monkeypatch.setattr(loader, "load_pdf_text", lambda path: "")

        fetch_pdf_text(URL, temp_dir=str(tmp_path))
        fetch_pdf_text(URL, temp_dir=str(tmp_path))

        assert len(set(seen)) == 2
