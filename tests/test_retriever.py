# tests/test_retriever.py
from unittest.mock import Mock

from support_chat.memory.retriever import search_documents
from support_chat.models import SearchResult


REFUND_DOC = (
    "A refund is issued to the original payment method within ten business days "
    "once the returned item has been inspected."
)
SHIPPING_DOC = (
    "Standard shipping takes three to five business days and express shipping "
    "arrives the next business day."
)


def test_returns_only_relevant_chunks(embedder, store, ingest_text):
    ingest_text(REFUND_DOC, category="returns", document_id="doc_refund")
    ingest_text(SHIPPING_DOC, category="general", document_id="doc_shipping")

    results = search_documents("How long does a refund take?", embedder, store)

    assert [r.id for r in results] == ["doc_refund_chunk_0"]
    assert results[0].score >= 0.7
    assert results[0].metadata["category"] == "returns"


def test_nothing_relevant_returns_empty_list(embedder, store, ingest_text):
    ingest_text(REFUND_DOC, category="returns")

    assert search_documents("Do you sell gift cards?", embedder, store) == []


def test_category_restricts_search(embedder, store, ingest_text):
    ingest_text(REFUND_DOC, category="returns", document_id="doc_refund")

    results = search_documents(
        "refund please",
        embedder,
        store,
        category="billing",
    )

    assert results == []


def test_min_score_filter_keeps_index_order():
    embedder = Mock()
    embedder.embed_one.return_value = [1.0, 0.0]

    store = Mock()
    store.query.return_value = [
        SearchResult(id="a_chunk_0", score=0.93),
        SearchResult(id="b_chunk_0", score=0.81),
        SearchResult(id="c_chunk_0", score=0.6),
        SearchResult(id="d_chunk_0", score=0.4),
    ]

    results = search_documents("query", embedder, store, top_k=4, min_score=0.6)

    assert [r.id for r in results] == ["a_chunk_0", "b_chunk_0", "c_chunk_0"]
    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)

    store.query.assert_called_once_with([1.0, 0.0], top_k=4, payload_filter=None)


def test_category_becomes_payload_filter():
    embedder = Mock()
    embedder.embed_one.return_value = [1.0]
    store = Mock()
    store.query.return_value = []

    search_documents("q", embedder, store, top_k=3, category="technical")

    store.query.assert_called_once_with([1.0], top_k=3, payload_filter={"category": "technical"})
