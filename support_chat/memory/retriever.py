# support_chat/memory/retriever.py
import logging
from typing import List, Optional

from support_chat.config import SEARCH_MIN_SCORE, TOP_K
from support_chat.models import SearchResult

logger = logging.getLogger(__name__)


def search_documents(
    query: str,
    embedder,
    store,
    top_k: int = TOP_K,
    category: Optional[str] = None,
    min_score: float = SEARCH_MIN_SCORE,
) -> List[SearchResult]:
    """
    Retrieve the top-k chunks for a query above a similarity floor.

    Args:
        query: User's question or search string
        embedder: Embedder instance to generate the query embedding
        store: VectorStore instance to search
        top_k: Number of neighbours requested from the index
        category: Optional document category to restrict the search to
        min_score: Hits scoring below this are dropped

    Returns:
        SearchResult list in index order (descending score). An empty list
        means nothing relevant enough was found.
    """
    query_embedding = embedder.embed_one(query)

    payload_filter = {"category": category} if category else None

    hits = store.query(query_embedding, top_k=top_k, payload_filter=payload_filter)

    # The index already ranks by score; filtering keeps that order
    results = [hit for hit in hits if hit.score >= min_score]

    logger.info(
        "Retrieval completed",
        extra={
            "top_k": top_k,
            "category": category,
            "min_score": min_score,
            "hits": len(hits),
            "kept": len(results),
            "top_score": results[0].score if results else None,
        },
    )

    return results
