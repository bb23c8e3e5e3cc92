# docmemory/workflow/ingestion.py
import logging
from typing import List

from docmemory.config import BLOB_COLLECTION, DOC_COLLECTION, MAX_CHUNK_SIZE
from docmemory.context import ServiceContext
from docmemory.errors import ProviderError, ValidationError
from docmemory.memory.chunker import chunk_text
from docmemory.memory.keys import ChunkKey
from docmemory.memory.loader import decode_url, fetch_pdf_text, file_name_from_url
from docmemory.models import IngestResponse, MemoryRecord
from docmemory.observability.posthog_client import posthog_client

logger = logging.getLogger(__name__)


def persist_document(
    context: ServiceContext,
    url: str,
    file_name: str,
    text: str,
) -> List[MemoryRecord]:
    """
    Register the document and store its chunks as ``{file}-{i}-{total}``.

    Earlier chunks of the same document are dropped first, so re-ingesting
    never leaves records of a previous chunk count behind. When they cannot
    be dropped nothing is written and ProviderError is raised.
    """

    if not context.memory.delete_document(BLOB_COLLECTION, file_name):
        raise ProviderError(
            f"Previous chunks of '{file_name}' could not be removed",
            provider="vector_store",
        )

    context.documents.upsert(DOC_COLLECTION, file_name, file_name, url)

    chunks = chunk_text(text, MAX_CHUNK_SIZE)

    records = []

    for i, chunk in enumerate(chunks, 1):

        key = ChunkKey(document=file_name, index=i, total=len(chunks))

        record = MemoryRecord(collection=BLOB_COLLECTION, key=str(key), text=chunk)

        context.memory.save(record.collection, record.key, record.text)

        records.append(record)

    return records


def _report(request_id: str, error: Exception):

    posthog_client.track_error(
        distinct_id=request_id,
        error_type=type(error).__name__,
        error_message=str(error),
        endpoint="/doc/ingest",
    )


def ingest_document(
    url: str,
    context: ServiceContext,
    request_id: str = "ingestion",
) -> IngestResponse:
    """
    Fetch a remote PDF, chunk it and store the chunks.

    Fetch, extraction and persistence faults are logged and turn into an
    empty record list; only an empty URL is rejected.
    """

    url = decode_url(url)

    if not url:
        raise ValidationError("Document URL is required")

    file_name = file_name_from_url(url)

    try:

        text = fetch_pdf_text(url, temp_dir=context.temp_dir)

    except Exception as e:

        logger.error(
            "document_extract_failed",
            extra={
                "url": url,
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )

        _report(request_id, e)

        return IngestResponse(url=url, memoryRecords=[])

    if not file_name or not text.strip():

        logger.warning(
            "document_empty",
            extra={"url": url, "file_name": file_name},
        )

        return IngestResponse(url=url, memoryRecords=[])

    try:

        records = persist_document(context, url, file_name, text)

    except Exception as e:

        logger.error(
            "document_ingest_failed",
            extra={
                "url": url,
                "file_name": file_name,
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )

        _report(request_id, e)

        return IngestResponse(url=url, memoryRecords=[])

    logger.info(
        "Document ingestion complete",
        extra={"url": url, "file_name": file_name, "records": len(records)},
    )

    return IngestResponse(url=url, memoryRecords=records)
