from fastapi import APIRouter, Depends, Request, Response, status
import logging
import time

from typing import List

from docmemory.context import ServiceContext
from docmemory.errors import NotFoundError, ValidationError
from docmemory.memory.keys import document_of
from docmemory.models import (
    Completion,
    CompletionResponse,
    DeleteDocResponse,
    Doc,
    HealthResponse,
    IngestResponse,
    MemoryRecord,
    Query,
    SummarizeRequest,
)
from docmemory.observability.posthog_client import posthog_client
from docmemory.workflow.ingestion import ingest_document
from docmemory.workflow.query import answer_query
from docmemory.workflow.summarize import summarize


# ============================================================
# LOGGER
# ============================================================

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================
# DEPENDENCIES
# ============================================================

def get_context(request: Request) -> ServiceContext:

    context = getattr(request.app.state, "context", None)

    if context is None:
        raise RuntimeError("Service context not initialized")

    return context


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


# ============================================================
# HEALTH
# ============================================================

@router.get("/health", response_model=HealthResponse)
def health_check(context: ServiceContext = Depends(get_context)):

    return HealthResponse(
        status="healthy",
        collections=context.memory.list_collections(),
    )


# ============================================================
# SUMMARIZE
# ============================================================

@router.post("/summarize", response_model=CompletionResponse)
def summarize_text(
    payload: SummarizeRequest,
    request: Request,
    context: ServiceContext = Depends(get_context),
):

    start_time = time.time()

    result = summarize(payload, context.completion)

    posthog_client.track_summarize(
        distinct_id=_request_id(request),
        chunks=len(result.summaries),
        completions=len(result.summaries) + (1 if len(result.summaries) != 1 else 0),
        latency=time.time() - start_time,
    )

    return result


# ============================================================
# DOCUMENTS
# ============================================================

@router.post("/doc/ingest/{url:path}", response_model=IngestResponse)
def ingest(
    url: str,
    request: Request,
    context: ServiceContext = Depends(get_context),
):

    start_time = time.time()

    result = ingest_document(url, context, request_id=_request_id(request))

    if result.memoryRecords:

        posthog_client.track_document_ingested(
            distinct_id=_request_id(request),
            url=result.url,
            file_name=document_of(result.memoryRecords[0].key),
            records=len(result.memoryRecords),
            latency=time.time() - start_time,
        )

    return result


@router.get("/doc/{collection}", response_model=List[Doc])
def get_docs(collection: str, context: ServiceContext = Depends(get_context)):

    docs = context.documents.get_all(collection)

    if not docs:
        raise NotFoundError(f"No documents in collection '{collection}'")

    return docs


@router.get("/doc/{collection}/{key}", response_model=Doc)
def get_doc(collection: str, key: str, context: ServiceContext = Depends(get_context)):

    doc = context.documents.get(collection, key)

    if doc is None:
        raise NotFoundError(f"Document '{key}' not found in '{collection}'")

    return doc


@router.post("/doc", response_model=Doc, status_code=status.HTTP_201_CREATED)
def post_doc(
    doc: Doc,
    response: Response,
    context: ServiceContext = Depends(get_context),
):

    if not doc.collection or not doc.key:
        raise ValidationError("collection and key are required")

    inserted = context.documents.upsert(
        doc.collection, doc.key, doc.description, doc.location
    )

    response.headers["Location"] = f"/doc/{inserted.collection}/{inserted.key}"

    return inserted


@router.delete("/doc/{collection}/{key}", response_model=DeleteDocResponse)
def delete_doc(collection: str, key: str, context: ServiceContext = Depends(get_context)):

    affected = context.documents.delete(collection, key)

    if affected == 0:
        raise NotFoundError(f"Document '{key}' not found in '{collection}'")

    return DeleteDocResponse(collection=collection, key=key)


# ============================================================
# MEMORY
# ============================================================

@router.get("/gpt/memory/{collection}/{id}", response_model=MemoryRecord)
def get_memory(collection: str, id: str, context: ServiceContext = Depends(get_context)):

    text = context.memory.get(collection, id)

    if not text:
        raise NotFoundError(f"Memory '{id}' not found in '{collection}'")

    return MemoryRecord(collection=collection, key=id, text=text)


@router.post("/gpt/memory", response_model=MemoryRecord)
def post_memory(memory: MemoryRecord, context: ServiceContext = Depends(get_context)):

    if not memory.collection or not memory.key:
        raise ValidationError("collection and key are required")

    stored_key = context.memory.save(memory.collection, memory.key, memory.text)

    if not stored_key:
        raise ValidationError("Memory was not stored")

    return memory


@router.delete("/gpt/memory", response_model=MemoryRecord)
def delete_memory(
    memory: MemoryRecord,
    request: Request,
    context: ServiceContext = Depends(get_context),
):

    if not context.memory.delete(memory.collection, memory.key):

        posthog_client.track_error(
            distinct_id=_request_id(request),
            error_type="MemoryDeleteFailed",
            error_message=f"{memory.collection}/{memory.key}",
            endpoint="/gpt/memory",
        )

        raise ValidationError("Memory could not be deleted")

    return memory


# ============================================================
# QUERY
# ============================================================

@router.post("/gpt/query", response_model=Completion)
def post_query(
    query: Query,
    request: Request,
    context: ServiceContext = Depends(get_context),
):

    start_time = time.time()

    result = answer_query(query, context.memory, context.completion)

    posthog_client.track_query(
        distinct_id=_request_id(request),
        collection=query.collection,
        limit=query.limit,
        latency=time.time() - start_time,
    )

    return result
