"""Service wiring shared by the FastAPI routes."""

import logging
from dataclasses import dataclass
from functools import partial
from typing import List, Optional

from support_chat.llm.client import LLMClient
from support_chat.llm.intent import IntentClassifier
from support_chat.memory.embedder import Embedder
from support_chat.memory.ingestion import IngestionPipeline
from support_chat.memory.qdrant_client import QdrantVectorDB
from support_chat.memory.retriever import search_documents
from support_chat.memory.store import VectorStore
from support_chat.models import SearchResult
from support_chat.sessions.manager import SessionManager

logger = logging.getLogger(__name__)


@dataclass
class Services:
    embedder: Embedder
    store: VectorStore
    pipeline: IngestionPipeline
    sessions: SessionManager

    def search(
        self,
        query: str,
        top_k: int,
        category: Optional[str],
        min_score: float,
    ) -> List[SearchResult]:
        return search_documents(
            query,
            embedder=self.embedder,
            store=self.store,
            top_k=top_k,
            category=category,
            min_score=min_score,
        )


def build_services(
    embedder: Embedder,
    store: VectorStore,
    llm_client: LLMClient,
    **session_options,
) -> Services:
    """Wire the pipeline around the given providers."""

    sessions = SessionManager(
        classifier=IntentClassifier(llm_client),
        retrieve_fn=partial(search_documents, embedder=embedder, store=store),
        llm_client=llm_client,
        **session_options,
    )

    return Services(
        embedder=embedder,
        store=store,
        pipeline=IngestionPipeline(embedder, store),
        sessions=sessions,
    )


_SERVICES: Optional[Services] = None


def get_services() -> Services:
    """Process-wide services, created on first use."""

    global _SERVICES

    if _SERVICES is None:

        embedder = Embedder()

        store = VectorStore(QdrantVectorDB(dim=embedder.get_dimension()))

        _SERVICES = build_services(embedder, store, LLMClient())

        logger.info("Services initialized")

    return _SERVICES


def reset_services():
    global _SERVICES
    _SERVICES = None


__all__ = ["Services", "build_services", "get_services", "reset_services"]
