# tests/test_memory_store.py
import json

from docmemory.memory.qdrant_client import QdrantVectorDB, create_qdrant_client
from docmemory.memory.store import MemoryStore


class TestSaveAndGet:

    def test_save_returns_key(self, memory_store):
        assert memory_store.save("blob", "policy.pdf-1-2", "Employees get 20 days of leave.") == "policy.pdf-1-2"

    def test_get_returns_text(self, memory_store):
        memory_store.save("blob", "policy.pdf-1-2", "Employees get 20 days of leave.")

        assert memory_store.get("blob", "policy.pdf-1-2") == "Employees get 20 days of leave."

    def test_get_absent_key(self, memory_store):
        memory_store.save("blob", "a-1-1", "text")

        assert memory_store.get("blob", "missing") is None

    def test_get_absent_collection(self, memory_store):
        assert memory_store.get("nowhere", "a-1-1") is None

    def test_second_save_overwrites(self, memory_store):
        """Saving a key twice keeps only the second text."""
        memory_store.save("blob", "k-1-1", "first version")
        memory_store.save("blob", "k-1-1", "second version")

        assert memory_store.get("blob", "k-1-1") == "second version"

        results = memory_store.search("blob", "second version", limit=10, min_relevance_score=0.0)
        assert [r.key for r in results] == ["k-1-1"]

    def test_metadata_carries_doc_id(self, memory_store):
        memory_store.save("blob", "benefits.pdf-3-7", "Dental coverage details")

        result = memory_store.search("blob", "Dental coverage details", limit=1, min_relevance_score=0.5)[0]

        assert json.loads(result.metadata) == {"docID": "benefits.pdf"}

    def test_collections_are_isolated(self, memory_store):
        memory_store.save("one", "k", "alpha")
        memory_store.save("two", "k", "beta")

        assert memory_store.get("one", "k") == "alpha"
        assert memory_store.get("two", "k") == "beta"


class TestDelete:

    def test_delete_existing(self, memory_store):
        memory_store.save("blob", "k-1-1", "text")

        assert memory_store.delete("blob", "k-1-1") is True
        assert memory_store.get("blob", "k-1-1") is None

    def test_delete_absent_key_succeeds(self, memory_store):
        memory_store.save("blob", "k-1-1", "text")

        assert memory_store.delete("blob", "other") is True

    def test_delete_absent_collection_succeeds(self, memory_store):
        assert memory_store.delete("nowhere", "k") is True

    def test_delete_fault_returns_false(self, embedder):
        class BrokenClient:
            def collection_exists(self, collection_name):
                raise ConnectionError("store unreachable")

        store = MemoryStore(QdrantVectorDB(BrokenClient()), embedder)

        assert store.delete("blob", "k") is False

    def test_delete_document_removes_all_chunks(self, memory_store):
        memory_store.save("blob", "a.pdf-1-2", "alpha one")
        memory_store.save("blob", "a.pdf-2-2", "alpha two")
        memory_store.save("blob", "b.pdf-1-1", "beta")

        assert memory_store.delete_document("blob", "a.pdf") is True

        assert memory_store.get("blob", "a.pdf-1-2") is None
        assert memory_store.get("blob", "a.pdf-2-2") is None
        assert memory_store.get("blob", "b.pdf-1-1") == "beta"


class TestSearch:

    def test_threshold_filters_unrelated(self, memory_store):
        memory_store.save("blob", "k1", "vacation days accrue monthly")
        memory_store.save("blob", "k2", "parking garage opens early")

        results = memory_store.search("blob", "vacation days accrue monthly", limit=5, min_relevance_score=0.77)

        assert [r.key for r in results] == ["k1"]
        assert all(r.relevance_score >= 0.77 for r in results)

    def test_limit_caps_results(self, memory_store):
        for i in range(5):
            memory_store.save("blob", f"k{i}", "identical text")

        results = memory_store.search("blob", "identical text", limit=3, min_relevance_score=0.5)

        assert len(results) == 3

    def test_ordered_by_descending_relevance(self, memory_store):
        memory_store.save("blob", "partial", "retirement plan matching")
        memory_store.save("blob", "exact", "retirement plan matching contributions")

        results = memory_store.search(
            "blob", "retirement plan matching contributions", limit=2, min_relevance_score=0.1
        )

        assert [r.key for r in results] == ["exact", "partial"]
        assert results[0].relevance_score >= results[1].relevance_score

    def test_ties_keep_insertion_order(self, memory_store):
        for key in ("c", "a", "b"):
            memory_store.save("blob", key, "same words everywhere")

        results = memory_store.search("blob", "same words everywhere", limit=3, min_relevance_score=0.5)

        assert [r.key for r in results] == ["c", "a", "b"]

    def test_empty_collection(self, memory_store):
        assert memory_store.search("nowhere", "anything", limit=3, min_relevance_score=0.0) == []

    def test_zero_limit(self, memory_store):
        memory_store.save("blob", "k", "text")

        assert memory_store.search("blob", "text", limit=0, min_relevance_score=0.0) == []


class TestQdrantFactory:

    def test_embedded_store_on_disk(self, tmp_path, embedder):
        store = MemoryStore(
            QdrantVectorDB(create_qdrant_client(path=str(tmp_path / "vectors"))),
            embedder,
        )

        store.save("docs", "k", "persisted text")

        assert store.get("docs", "k") == "persisted text"
        assert store.list_collections() == ["docs"]
