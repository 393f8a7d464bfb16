# support_chat/memory/embedder.py

"""
Embedding gateway with batching and response validation.

Architecture contract:
chunker → embedder → vector_store

Guarantees:
• Always returns numpy float32 arrays
• Always normalized (cosine-ready)
• Batch output is index-aligned with the input texts
• Malformed provider payloads are rejected, never passed on
"""

import logging
from typing import List, Optional

import numpy as np
from openai import OpenAI

from support_chat.config import (
    EMBEDDING_DIMENSIONS,
    EMBEDDING_MODEL,
    EMBED_BATCH_SIZE,
    MAX_CHUNKS_PER_DOCUMENT,
)
from support_chat.exceptions import EmbeddingProviderError

logger = logging.getLogger(__name__)


class Embedder:
    """
    OpenAI embedding client.

    Responsibilities:
    • Call the OpenAI embeddings API
    • Validate the shape of every response
    • Keep batch results in input order
    • Normalize vectors for cosine search
    """

    # ============================================================
    # INITIALIZATION
    # ============================================================

    def __init__(self, client: Optional[OpenAI] = None, model: str = EMBEDDING_MODEL):

        if model not in EMBEDDING_DIMENSIONS:
            raise ValueError(f"Unsupported embedding model: {model}")

        self._model = model
        self._dimension = EMBEDDING_DIMENSIONS[model]
        self._client = client or OpenAI()

        logger.info(
            "Embedding model initialized",
            extra={
                "model": self._model,
                "dimension": self._dimension,
            },
        )

    # ============================================================
    # PUBLIC API
    # ============================================================

    def embed(
        self,
        texts: List[str],
        batch_size: int = EMBED_BATCH_SIZE,
    ) -> np.ndarray:
        """
        Embed texts in order; row i belongs to texts[i].

        Raises EmbeddingProviderError on API failure or malformed output.
        """

        if not texts:

            logger.warning("Empty embedding request")

            return np.empty((0, self._dimension), dtype="float32")

        if len(texts) > MAX_CHUNKS_PER_DOCUMENT:
            raise ValueError(
                f"Chunk count exceeds MAX_CHUNKS_PER_DOCUMENT "
                f"({MAX_CHUNKS_PER_DOCUMENT})"
            )

        total = len(texts)

        logger.info(
            "Embedding started",
            extra={"chunks": total, "batch_size": batch_size},
        )

        all_embeddings = []

        # Sequential batches keep the concatenation in input order
        for start in range(0, total, batch_size):

            batch = texts[start:start + batch_size]

            all_embeddings.append(self._embed_batch(batch))

        embeddings = np.vstack(all_embeddings)

        logger.info(
            "Embedding completed",
            extra={
                "chunks": total,
                "dimension": self._dimension,
                "shape": list(embeddings.shape),
            },
        )

        return embeddings

    def embed_one(self, text: str) -> np.ndarray:
        """Embed a single query string."""
        return self.embed([text])[0]

    # ============================================================
    # PROVIDER CALL + VALIDATION
    # ============================================================

    def _embed_batch(self, batch: List[str]) -> np.ndarray:

        try:

            response = self._client.embeddings.create(
                model=self._model,
                input=batch,
            )

        except Exception as e:

            logger.error(
                "Embedding generation failed",
                extra={"error": str(e), "batch": len(batch)},
            )

            raise EmbeddingProviderError(
                f"Embedding generation failed: {e}",
                {"model": self._model},
            ) from e

        vectors = self._parse_response(response, expected=len(batch))

        norms = np.linalg.norm(vectors, axis=1, keepdims=True)

        return vectors / np.clip(norms, 1e-10, None)

    def _parse_response(self, response, expected: int) -> np.ndarray:

        data = getattr(response, "data", None)

        if not isinstance(data, list) or len(data) != expected:
            raise EmbeddingProviderError(
                "Malformed embedding response: wrong item count",
                {
                    "expected": expected,
                    "received": len(data) if isinstance(data, list) else None,
                },
            )

        # The API reports each item's input position; honour it
        if all(isinstance(getattr(item, "index", None), int) for item in data):
            data = sorted(data, key=lambda item: item.index)

        rows = []

        for item in data:

            vector = getattr(item, "embedding", None)

            if not isinstance(vector, list) or len(vector) != self._dimension:
                raise EmbeddingProviderError(
                    "Malformed embedding response: wrong vector shape",
                    {"dimension": self._dimension},
                )

            rows.append(vector)

        try:
            return np.array(rows, dtype="float32")
        except (TypeError, ValueError) as e:
            raise EmbeddingProviderError(
                "Malformed embedding response: non-numeric values"
            ) from e

    # ============================================================
    # ACCESSORS
    # ============================================================

    def get_dimension(self) -> int:
        """
        Required by VectorStore initialization.
        """
        return self._dimension
