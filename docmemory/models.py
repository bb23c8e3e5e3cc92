# docmemory/models.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from docmemory.config import (
    DEFAULT_MIN_RELEVANCE_SCORE,
    DEFAULT_QUERY_LIMIT,
    DEFAULT_QUERY_MAX_TOKENS,
)


class MemoryRecord(BaseModel):
    """A keyed text memory inside a collection."""
    collection: str
    key: str
    text: str = ""
    metadata: Optional[str] = None


class Query(BaseModel):
    """Retrieval-augmented query against one collection."""
    collection: str
    query: str
    maxTokens: int = DEFAULT_QUERY_MAX_TOKENS
    limit: int = DEFAULT_QUERY_LIMIT
    minRelevanceScore: float = DEFAULT_MIN_RELEVANCE_SCORE


class Completion(BaseModel):
    """Answer to a Query."""
    query: str
    text: str
    usage: Optional[Dict[str, Any]] = None


class SummarizeRequest(BaseModel):
    """
    Summarization input.

    Every field defaults to empty/zero so that a missing field is reported
    by the pipeline as a bad request instead of a schema error.
    """
    prompt: str = ""
    content: Optional[str] = ""
    chunk_size: int = 0
    max_tokens: int = 0
    temperature: float = 0.0


class Summary(BaseModel):
    """One chunk and the completion produced for it."""
    content: str
    summary: str


class CompletionResponse(BaseModel):
    """Result of a summarization."""
    content: str
    summaries: List[Summary] = Field(default_factory=list)


class Doc(BaseModel):
    """Document metadata row."""
    collection: str
    key: str
    description: str = ""
    location: str = ""


class IngestResponse(BaseModel):
    """Result of ingesting a remote document."""
    url: str
    memoryRecords: List[MemoryRecord] = Field(default_factory=list)


class DeleteDocResponse(BaseModel):
    """Identity of a deleted document."""
    collection: str
    key: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    collections: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Body of every error response."""
    detail: str
    error_code: str
    request_id: Optional[str] = None
