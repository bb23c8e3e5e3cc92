# docmemory/memory/embedder.py

"""
Embedding generation against an Azure OpenAI embedding deployment.

Guarantees:
• Always returns numpy float32 array of shape (len(texts), dimension)
• Always normalized (cosine-ready)
• Batched processing
• Provider failures surface as ProviderError
"""

import logging
import numpy as np
from typing import List, Optional, Protocol

from openai import AzureOpenAI

from docmemory.config import EMBED_BATCH_SIZE
from docmemory.errors import ProviderError

logger = logging.getLogger(__name__)

# Known output sizes of the embedding models deployments usually point at
_MODEL_DIMENSIONS = {
    "text-embedding-ada-002": 1536,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}

DEFAULT_DIMENSION = 1536


class EmbeddingGenerator(Protocol):
    """Capability: compute embeddings for text."""

    def embed(self, texts: List[str]) -> np.ndarray:
        ...

    def get_dimension(self) -> int:
        ...


def normalize(vectors: np.ndarray) -> np.ndarray:

    norms = np.linalg.norm(vectors, axis=1, keepdims=True)

    return vectors / np.clip(norms, 1e-10, None)


class Embedder:
    """
    Azure OpenAI embedding generator.

    The deployment name is passed as the model; the vector size is taken
    from the known model table and corrected from the first response.
    """

    def __init__(
        self,
        deployment: str,
        endpoint: str,
        api_key: str,
        api_version: str,
        dimension: Optional[int] = None,
        client: Optional[AzureOpenAI] = None,
    ):

        self._deployment = deployment

        self._dimension = dimension or _MODEL_DIMENSIONS.get(
            deployment, DEFAULT_DIMENSION
        )

        self._client = client or AzureOpenAI(
            azure_endpoint=endpoint,
            api_key=api_key,
            api_version=api_version,
        )

        logger.info(
            "Embedding client initialized",
            extra={
                "deployment": deployment,
                "dimension": self._dimension,
            }
        )

    # ============================================================
    # PUBLIC API
    # ============================================================

    def embed(
        self,
        texts: List[str],
        batch_size: int = EMBED_BATCH_SIZE
    ) -> np.ndarray:

        if not texts:

            return np.empty(
                (0, self._dimension),
                dtype="float32"
            )

        try:

            all_embeddings = []

            for start in range(0, len(texts), batch_size):

                batch = texts[start:start + batch_size]

                response = self._client.embeddings.create(
                    model=self._deployment,
                    input=batch,
                )

                batch_embeddings = np.array(
                    [item.embedding for item in response.data],
                    dtype="float32"
                )

                all_embeddings.append(normalize(batch_embeddings))

            embeddings = np.vstack(all_embeddings)

        except Exception as e:

            logger.error(
                "Embedding generation failed",
                extra={"error": str(e), "texts": len(texts)}
            )

            raise ProviderError(
                f"Embedding generation failed: {e}",
                provider="embedding",
            ) from e

        self._dimension = embeddings.shape[1]

        logger.debug(
            "Embedding completed",
            extra={
                "texts": len(texts),
                "dimension": self._dimension,
            }
        )

        return embeddings

    def get_dimension(self) -> int:
        return self._dimension
