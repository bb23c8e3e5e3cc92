import logging
import threading
from typing import List, Optional

from qdrant_client import QdrantClient

from qdrant_client.http.models import (
    Distance,
    VectorParams,
    PayloadSchemaType,
)

logger = logging.getLogger(__name__)

# Payload fields filtered on by the memory store
_INDEXED_FIELDS = ("doc_id", "document")


def create_qdrant_client(
    url: Optional[str] = None,
    api_key: Optional[str] = None,
    path: Optional[str] = None,
) -> QdrantClient:
    """
    Remote client when a URL is configured, embedded on-disk store otherwise.
    ``path=":memory:"`` gives an in-process store.
    """

    if url:
        return QdrantClient(url=url, api_key=api_key, timeout=60.0)

    if path == ":memory:" or not path:
        return QdrantClient(location=":memory:")

    return QdrantClient(path=path)


class QdrantVectorDB:
    """
    Qdrant wrapper owning collection lifecycle.

    One Qdrant collection per logical memory collection. Collections are
    created on first write, once the embedding dimension is known.
    """

    def __init__(self, client: QdrantClient):

        self._client = client
        self._known = set()
        self._lock = threading.Lock()

    @property
    def client(self) -> QdrantClient:
        return self._client

    def collection_exists(self, name: str) -> bool:

        if name in self._known:
            return True

        exists = self._client.collection_exists(collection_name=name)

        if exists:
            self._known.add(name)

        return exists

    def ensure_collection(self, name: str, dim: int):
        """
        Ensures collection exists AND payload indexes exist.
        """

        with self._lock:

            if self.collection_exists(name):
                return

            self._client.create_collection(
                collection_name=name,
                vectors_config=VectorParams(
                    size=dim,
                    distance=Distance.COSINE,
                ),
            )

            logger.info(
                "Qdrant collection created",
                extra={"collection": name, "dimension": dim},
            )

            for field in _INDEXED_FIELDS:

                try:

                    self._client.create_payload_index(
                        collection_name=name,
                        field_name=field,
                        field_schema=PayloadSchemaType.KEYWORD,
                    )

                except Exception as e:
                    # Embedded mode has no payload indexes
                    logger.debug(
                        "Payload index skipped",
                        extra={"collection": name, "field": field, "error": str(e)},
                    )

            self._known.add(name)

    def list_collections(self) -> List[str]:

        return sorted(
            c.name for c in self._client.get_collections().collections
        )
