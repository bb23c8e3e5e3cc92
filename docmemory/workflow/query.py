# docmemory/workflow/query.py
import logging

from docmemory.errors import ValidationError
from docmemory.llm.client import CompletionEngine
from docmemory.memory.store import MemoryStore
from docmemory.models import Completion, Query
from docmemory.prompts.prompt_builder import build_context
from docmemory.prompts.system_prompts import RAG_PROMPT_TEMPLATE

logger = logging.getLogger(__name__)


def validate_query(query: Query):

    if not query.collection or not query.query:
        raise ValidationError("collection and query are required")

    if query.maxTokens <= 0:
        raise ValidationError(f"maxTokens must be positive, got {query.maxTokens}")

    if query.limit < 0:
        raise ValidationError(f"limit must not be negative, got {query.limit}")

    if not 0.0 <= query.minRelevanceScore <= 1.0:
        raise ValidationError(
            f"minRelevanceScore must be between 0 and 1, got {query.minRelevanceScore}"
        )


def answer_query(
    query: Query,
    memory: MemoryStore,
    completion: CompletionEngine,
) -> Completion:
    """
    Answer a query using retrieval-augmented generation.

    Retrieved chunks are injected as ``data`` next to the literal query as
    ``input``. No match above the relevance threshold still produces a
    completion, with empty retrieved text.
    """

    validate_query(query)

    results = memory.search(
        collection=query.collection,
        query=query.query,
        limit=query.limit,
        min_relevance_score=query.minRelevanceScore,
    )

    if not results:
        logger.info(
            "No memories above relevance threshold",
            extra={
                "collection": query.collection,
                "min_relevance_score": query.minRelevanceScore,
            },
        )

    result = completion.complete(
        RAG_PROMPT_TEMPLATE,
        {
            "input": query.query,
            "data": build_context(r.text for r in results),
        },
        max_tokens=query.maxTokens,
    )

    return Completion(query=query.query, text=result.text, usage=result.usage)
