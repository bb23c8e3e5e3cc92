# tests/conftest.py
import hashlib
import os
import re
import sys

import numpy as np
import pytest
from fastapi.testclient import TestClient

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from docmemory.context import ServiceContext
from docmemory.documents.repository import DocumentRepository
from docmemory.llm.client import CompletionResult
from docmemory.main import create_app
from docmemory.prompts.prompt_builder import render_template
from docmemory.memory.qdrant_client import QdrantVectorDB, create_qdrant_client
from docmemory.memory.store import MemoryStore


class FakeEmbedder:
    """
    Deterministic bag-of-words embedder.

    Identical texts embed identically; texts without shared words are
    (almost) orthogonal.
    """

    def __init__(self, dimension: int = 512):
        self.dimension = dimension
        self.calls = 0

    def embed(self, texts):

        self.calls += 1

        vectors = np.zeros((len(texts), self.dimension), dtype="float32")

        for row, text in enumerate(texts):

            for word in re.findall(r"\w+", text.lower()):
                digest = hashlib.md5(word.encode("utf-8")).hexdigest()
                vectors[row, int(digest, 16) % self.dimension] += 1.0

            if not vectors[row].any():
                vectors[row, 0] = 1.0

        norms = np.linalg.norm(vectors, axis=1, keepdims=True)

        return vectors / norms

    def get_dimension(self):
        return self.dimension


class FailingEmbedder(FakeEmbedder):

    def embed(self, texts):
        from docmemory.errors import ProviderError
        raise ProviderError("embedding service unavailable", provider="embedding")


class FakeCompletion:
    """Records every call and answers ``completion-<n>``."""

    def __init__(self):
        self.calls = []

    def complete(self, template, variables=None, max_tokens=256, temperature=0.0):

        self.calls.append(
            {
                "template": template,
                "prompt": render_template(template, variables),
                "variables": dict(variables or {}),
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )

        n = len(self.calls)

        return CompletionResult(
            text=f"completion-{n}",
            usage={"prompt_tokens": 10, "completion_tokens": n, "total_tokens": 10 + n},
        )


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def memory_store(embedder):
    """Memory store over an in-process Qdrant."""
    return MemoryStore(QdrantVectorDB(create_qdrant_client(path=":memory:")), embedder)


@pytest.fixture
def repository():
    repo = DocumentRepository(":memory:")
    repo.initialize()
    yield repo
    repo.close()


@pytest.fixture
def context(embedder, completion, memory_store, repository, tmp_path):
    return ServiceContext(
        embedder=embedder,
        completion=completion,
        memory=memory_store,
        documents=repository,
        temp_dir=str(tmp_path),
    )


@pytest.fixture
def client(context):
    """
    FastAPI test client wired to the fake context.
    """
    return TestClient(create_app(context), raise_server_exceptions=False)


def words(count: int, prefix: str = "w") -> str:
    """``count`` distinct words without punctuation."""
    return " ".join(f"{prefix}{i:05d}" for i in range(count))
