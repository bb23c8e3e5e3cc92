# docmemory/context.py
"""
Service context shared by every pipeline.

Built once at startup and handed to the routes through a FastAPI
dependency. Holds the provider capabilities and the two stores.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from docmemory.config import Settings
from docmemory.documents.repository import DocumentRepository
from docmemory.llm.client import CompletionEngine, LLMClient
from docmemory.memory.embedder import Embedder, EmbeddingGenerator
from docmemory.memory.qdrant_client import QdrantVectorDB, create_qdrant_client
from docmemory.memory.store import MemoryStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:

    embedder: EmbeddingGenerator
    completion: CompletionEngine
    memory: MemoryStore
    documents: DocumentRepository
    settings: Optional[Settings] = None
    temp_dir: Optional[str] = None


def build_context(settings: Settings) -> ServiceContext:

    embedder = Embedder(
        deployment=settings.ada_deployment_name,
        endpoint=settings.endpoint,
        api_key=settings.api_key,
        api_version=settings.api_version,
    )

    completion = LLMClient(
        deployment=settings.gpt_deployment_name,
        endpoint=settings.endpoint,
        api_key=settings.api_key,
        api_version=settings.api_version,
    )

    qdrant = create_qdrant_client(
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key,
        path=settings.vector_store_path,
    )

    documents = DocumentRepository(settings.sqlite_db_path)
    documents.initialize()

    logger.info(
        "Service context built",
        extra={
            "gpt_deployment": settings.gpt_deployment_name,
            "embedding_deployment": settings.ada_deployment_name,
            "vector_store": settings.qdrant_url or settings.vector_store_path,
        },
    )

    return ServiceContext(
        embedder=embedder,
        completion=completion,
        memory=MemoryStore(QdrantVectorDB(qdrant), embedder),
        documents=documents,
        settings=settings,
        temp_dir=settings.temp_dir,
    )
