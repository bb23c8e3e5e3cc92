# docmemory/workflow/summarize.py
"""
Recursive summarization under a token budget.

- no content       → the prompt is the whole template, one completion
- one chunk        → one completion with <TEXT> replaced by the chunk
- several chunks   → one completion per chunk, then one completion over
                     the concatenated chunk results
"""

import logging
from typing import List, Optional

from docmemory.errors import ValidationError
from docmemory.llm.client import CompletionEngine
from docmemory.memory.chunker import chunk_text
from docmemory.models import CompletionResponse, SummarizeRequest, Summary
from docmemory.prompts.prompt_builder import bind_text, build_context
from docmemory.prompts.system_prompts import TEXT_VARIABLE

logger = logging.getLogger(__name__)


def validate_summarize_request(request: SummarizeRequest):

    missing = []

    if not request.prompt:
        missing.append("prompt")

    if not request.chunk_size:
        missing.append("chunk_size")

    if not request.max_tokens:
        missing.append("max_tokens")

    if not request.temperature:
        missing.append("temperature")

    if missing:
        raise ValidationError(
            "Missing or zero required fields: " + ", ".join(missing)
        )

    if request.chunk_size < 0 or request.max_tokens < 0:
        raise ValidationError("chunk_size and max_tokens must be positive")


def summarize(
    request: SummarizeRequest,
    completion: CompletionEngine,
) -> CompletionResponse:

    validate_summarize_request(request)

    def run(template: str, text: Optional[str] = None) -> str:

        return completion.complete(
            template,
            {TEXT_VARIABLE: text} if text is not None else None,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        ).text

    if not (request.content or "").strip():
        return CompletionResponse(content=run(request.prompt), summaries=[])

    chunks = chunk_text(request.content, request.chunk_size)

    template = bind_text(request.prompt)

    # One completion at a time, in chunk order
    chunk_completions: List[str] = []

    for chunk in chunks:
        chunk_completions.append(run(template, chunk))

    if len(chunks) == 1:
        return CompletionResponse(
            content=chunk_completions[0],
            summaries=[
                Summary(content=request.content, summary=chunk_completions[0])
            ],
        )

    combined = build_context(chunk_completions)

    final = run(template, combined)

    logger.info(
        "Summarization completed",
        extra={
            "chunks": len(chunks),
            "chunk_size": request.chunk_size,
            "completions": len(chunks) + 1,
        },
    )

    return CompletionResponse(
        content=final,
        summaries=[
            Summary(content=chunk, summary=summary)
            for chunk, summary in zip(chunks, chunk_completions)
        ],
    )
