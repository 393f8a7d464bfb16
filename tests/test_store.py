# tests/test_store.py
from types import SimpleNamespace

import numpy as np
import pytest
from qdrant_client.http.models import CollectionStatus

from support_chat.exceptions import IndexNotReadyError, VectorIndexError
from support_chat.memory.qdrant_client import QdrantVectorDB
from support_chat.memory.store import VectorStore, point_id_for
from support_chat.models import VectorEntry

from conftest import DIMENSION


def vector(*leading):
    values = [0.0] * DIMENSION
    values[: len(leading)] = leading
    return values


def entry(key, values, **metadata):
    return VectorEntry(
        id=key,
        values=values,
        metadata={"text": f"text of {key}", **metadata},
    )


class TestVectorStore:

    def test_query_returns_chunk_keys_in_descending_score(self, store):
        store.upsert([
            entry("doc_a_chunk_0", vector(0.3, 0.954), document_id="doc_a", category="general"),
            entry("doc_a_chunk_1", vector(1.0), document_id="doc_a", category="general"),
            entry("doc_b_chunk_0", vector(0.8, 0.6), document_id="doc_b", category="billing"),
        ])

        results = store.query(np.array(vector(1.0), dtype="float32"), top_k=3)

        assert [r.id for r in results] == ["doc_a_chunk_1", "doc_b_chunk_0", "doc_a_chunk_0"]
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert results[0].score == pytest.approx(1.0, abs=1e-4)
        assert results[0].text == "text of doc_a_chunk_1"

    def test_category_filter(self, store):
        store.upsert([
            entry("doc_a_chunk_0", vector(1.0), document_id="doc_a", category="general"),
            entry("doc_b_chunk_0", vector(0.8, 0.6), document_id="doc_b", category="billing"),
        ])

        results = store.query(vector(1.0), top_k=5, payload_filter={"category": "billing"})

        assert [r.id for r in results] == ["doc_b_chunk_0"]
        assert results[0].metadata["category"] == "billing"

    def test_top_k_limits_results(self, store):
        store.upsert([
            entry(f"doc_a_chunk_{i}", vector(1.0, i / 10), document_id="doc_a")
            for i in range(6)
        ])

        assert len(store.query(vector(1.0), top_k=2)) == 2

    def test_upsert_is_idempotent_per_chunk_key(self, store):
        store.upsert([entry("doc_a_chunk_0", vector(1.0), document_id="doc_a")])
        store.upsert([entry("doc_a_chunk_0", vector(1.0), document_id="doc_a")])

        assert store.get_stats()["total_vectors"] == 1

    def test_delete_document_removes_only_its_chunks(self, store):
        store.upsert([
            entry("doc_a_chunk_0", vector(1.0), document_id="doc_a"),
            entry("doc_a_chunk_1", vector(0.9, 0.1), document_id="doc_a"),
            entry("doc_b_chunk_0", vector(0.8, 0.6), document_id="doc_b"),
        ])

        assert store.delete_document("doc_a") is True

        remaining = store.query(vector(1.0), top_k=10)
        assert [r.id for r in remaining] == ["doc_b_chunk_0"]

    def test_delete_unknown_document_returns_false(self, store):
        assert store.delete_document("doc_missing") is False

    def test_stats(self, store):
        store.upsert([entry("doc_a_chunk_0", vector(1.0), document_id="doc_a")])

        stats = store.get_stats()

        assert stats["total_vectors"] == 1
        assert stats["dimension"] == DIMENSION
        assert stats["status"] == "green"

    def test_point_ids_are_stable_uuids(self):
        assert point_id_for("doc_a_chunk_0") == point_id_for("doc_a_chunk_0")
        assert point_id_for("doc_a_chunk_0") != point_id_for("doc_a_chunk_1")


# ============================================================
# FAILURE PATHS (fake Qdrant client)
# ============================================================

class FakeQdrant:

    def __init__(self, statuses=None):
        self.statuses = list(statuses or [CollectionStatus.GREEN])
        self.created = []
        self.payload_indexes = []

    def get_collections(self):
        return SimpleNamespace(collections=[])

    def create_collection(self, collection_name, vectors_config):
        self.created.append(collection_name)

    def create_payload_index(self, collection_name, field_name, field_schema):
        self.payload_indexes.append(field_name)

    def get_collection(self, collection_name):
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return SimpleNamespace(status=status, points_count=0)

    def upsert(self, **kwargs):
        raise ConnectionError("qdrant unreachable")

    def query_points(self, **kwargs):
        raise ConnectionError("qdrant unreachable")


class TestIndexReadiness:

    def test_creates_collection_and_payload_indexes(self):
        fake = FakeQdrant()

        QdrantVectorDB(dim=8, client=fake, collection="support", sleep=lambda s: None)

        assert fake.created == ["support"]
        assert fake.payload_indexes == ["document_id", "category"]

    def test_waits_until_green(self):
        sleeps = []
        fake = FakeQdrant([CollectionStatus.YELLOW, CollectionStatus.YELLOW, CollectionStatus.GREEN])

        QdrantVectorDB(
            dim=8,
            client=fake,
            collection="support",
            max_attempts=5,
            backoff_seconds=0.5,
            sleep=sleeps.append,
        )

        assert sleeps == [0.5, 1.0]

    def test_gives_up_after_max_attempts(self):
        sleeps = []
        fake = FakeQdrant([CollectionStatus.YELLOW])

        with pytest.raises(IndexNotReadyError) as exc_info:
            QdrantVectorDB(
                dim=8,
                client=fake,
                collection="support",
                max_attempts=3,
                backoff_seconds=0.1,
                sleep=sleeps.append,
            )

        assert len(sleeps) == 2
        assert exc_info.value.details["attempts"] == 3
        assert isinstance(exc_info.value, VectorIndexError)

    def test_write_failure_raises_index_error(self):
        store = VectorStore(QdrantVectorDB(dim=8, client=FakeQdrant(), sleep=lambda s: None))

        with pytest.raises(VectorIndexError, match="unreachable"):
            store.upsert([VectorEntry(id="doc_chunk_0", values=[1.0] * 8, metadata={})])

    def test_read_failure_raises_index_error(self):
        store = VectorStore(QdrantVectorDB(dim=8, client=FakeQdrant(), sleep=lambda s: None))

        with pytest.raises(VectorIndexError):
            store.query([1.0] * 8)
