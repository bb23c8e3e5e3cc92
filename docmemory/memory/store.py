import json
import logging
import threading
import time
import uuid

from dataclasses import dataclass
from typing import List, Optional

from qdrant_client.http.models import (
    PointStruct,
    PointIdsList,
    Filter,
    FieldCondition,
    MatchValue,
    FilterSelector,
)

from docmemory.errors import ProviderError
from docmemory.memory.embedder import EmbeddingGenerator
from docmemory.memory.keys import doc_id_of, document_of
from docmemory.memory.qdrant_client import QdrantVectorDB


logger = logging.getLogger(__name__)

# Point ids must be UUIDs; keys map onto them deterministically
_KEY_NAMESPACE = uuid.UUID("6f1c9a52-3d0e-4b8a-9a57-2f4c1d7e8b90")

# Extra candidates fetched so score ties at the limit resolve by insertion order
_TIE_OVERFETCH = 10


def point_id(collection: str, key: str) -> str:
    return str(uuid.uuid5(_KEY_NAMESPACE, f"{collection}/{key}"))


@dataclass
class MemoryQueryResult:

    key: str
    text: str
    relevance_score: float
    metadata: Optional[str] = None


class MemoryStore:
    """
    Keyed text memory with similarity search.

    All operations are scoped by collection. A key is unique within its
    collection; saving an existing key removes the previous record first.
    """

    def __init__(self, vector_db: QdrantVectorDB, embedder: EmbeddingGenerator):

        self._db = vector_db
        self._embedder = embedder
        self._write_lock = threading.Lock()
        self._last_inserted = 0


    # ============================================================
    # LOOKUP
    # ============================================================

    def get(self, collection: str, key: str) -> Optional[str]:

        if not self._db.collection_exists(collection):
            return None

        try:

            records = self._db.client.retrieve(
                collection_name=collection,
                ids=[point_id(collection, key)],
                with_payload=True,
            )

        except Exception as e:

            logger.error(
                "Memory lookup failed",
                extra={"collection": collection, "key": key, "error": str(e)},
            )

            raise ProviderError(
                f"Memory lookup failed: {e}", provider="vector_store"
            ) from e

        if not records:
            return None

        return (records[0].payload or {}).get("text")


    # ============================================================
    # SAVE
    # ============================================================

    def save(self, collection: str, key: str, text: str) -> str:
        """
        Store ``text`` under ``key`` and return the stored key.

        Metadata ``{"docID": <first key segment>}`` is attached as JSON.
        """

        doc_id = doc_id_of(key)

        embedding = self._embedder.embed([text])[0]

        try:

            self._db.ensure_collection(collection, len(embedding))

            pid = point_id(collection, key)

            with self._write_lock:

                existing = self._db.client.retrieve(
                    collection_name=collection,
                    ids=[pid],
                    with_payload=False,
                )

                if existing:

                    self._db.client.delete(
                        collection_name=collection,
                        points_selector=PointIdsList(points=[pid]),
                    )

                self._last_inserted = max(time.time_ns(), self._last_inserted + 1)

                self._db.client.upsert(
                    collection_name=collection,
                    points=[
                        PointStruct(
                            id=pid,
                            vector=embedding.tolist(),
                            payload={
                                "key": key,
                                "text": text,
                                "description": doc_id,
                                "metadata": json.dumps({"docID": doc_id}),
                                "doc_id": doc_id,
                                "document": document_of(key),
                                "inserted_at": self._last_inserted,
                            },
                        )
                    ],
                )

        except Exception as e:

            logger.error(
                "Memory save failed",
                extra={"collection": collection, "key": key, "error": str(e)},
            )

            raise ProviderError(
                f"Memory save failed: {e}", provider="vector_store"
            ) from e

        logger.info(
            "Memory saved",
            extra={
                "collection": collection,
                "key": key,
                "replaced": bool(existing),
            },
        )

        return key


    # ============================================================
    # DELETE
    # ============================================================

    def delete(self, collection: str, key: str) -> bool:
        """
        Remove a record. Absent keys succeed; store faults are logged and
        reported as False.
        """

        try:

            if not self._db.collection_exists(collection):
                return True

            pid = point_id(collection, key)

            with self._write_lock:

                existing = self._db.client.retrieve(
                    collection_name=collection,
                    ids=[pid],
                    with_payload=False,
                )

                if existing:

                    self._db.client.delete(
                        collection_name=collection,
                        points_selector=PointIdsList(points=[pid]),
                    )

            return True

        except Exception as e:

            logger.error(
                "memory_delete_failed",
                extra={
                    "collection": collection,
                    "key": key,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )

            return False


    def delete_document(self, collection: str, document: str) -> bool:
        """
        Remove every chunk of ``document`` from ``collection``.
        """

        try:

            if not self._db.collection_exists(collection):
                return True

            with self._write_lock:

                self._db.client.delete(
                    collection_name=collection,
                    points_selector=FilterSelector(
                        filter=Filter(
                            must=[
                                FieldCondition(
                                    key="document",
                                    match=MatchValue(value=document),
                                )
                            ]
                        )
                    ),
                )

            logger.info(
                "Document chunks deleted",
                extra={"collection": collection, "document": document},
            )

            return True

        except Exception as e:

            logger.error(
                "document_chunks_delete_failed",
                extra={
                    "collection": collection,
                    "document": document,
                    "error": str(e),
                },
                exc_info=True,
            )

            return False


    # ============================================================
    # SEARCH
    # ============================================================

    def search(
        self,
        collection: str,
        query: str,
        limit: int,
        min_relevance_score: float,
    ) -> List[MemoryQueryResult]:
        """
        At most ``limit`` records with relevance >= ``min_relevance_score``,
        best first. Equal scores keep insertion order.
        """

        if limit <= 0 or not self._db.collection_exists(collection):
            return []

        embedding = self._embedder.embed([query])[0]

        try:

            response = self._db.client.query_points(
                collection_name=collection,
                query=embedding.tolist(),
                limit=limit + _TIE_OVERFETCH,
                score_threshold=min_relevance_score,
                with_payload=True,
            )

        except Exception as e:

            logger.error(
                "Memory search failed",
                extra={"collection": collection, "error": str(e)},
            )

            raise ProviderError(
                f"Memory search failed: {e}", provider="vector_store"
            ) from e

        hits = [
            hit for hit in response.points
            if hit.score >= min_relevance_score
        ]

        hits.sort(
            key=lambda hit: (
                -hit.score,
                (hit.payload or {}).get("inserted_at", 0),
                (hit.payload or {}).get("key", ""),
            )
        )

        results = []

        for hit in hits[:limit]:

            payload = hit.payload or {}

            results.append(
                MemoryQueryResult(
                    key=payload.get("key", ""),
                    text=payload.get("text", ""),
                    relevance_score=float(hit.score),
                    metadata=payload.get("metadata"),
                )
            )

        logger.info(
            "Memory search completed",
            extra={
                "collection": collection,
                "limit": limit,
                "min_relevance_score": min_relevance_score,
                "results": len(results),
            },
        )

        return results


    def list_collections(self) -> List[str]:
        return self._db.list_collections()
