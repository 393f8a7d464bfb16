import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from qdrant_client.http.models import (
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PointStruct,
)

from support_chat.config import TOP_K
from support_chat.exceptions import VectorIndexError
from support_chat.memory.qdrant_client import QdrantVectorDB
from support_chat.models import SearchResult, VectorEntry

logger = logging.getLogger(__name__)

# Qdrant only accepts UUID or integer point ids; chunk keys map onto uuid5
_POINT_NAMESPACE = uuid.UUID("8f1c1a52-3d0e-4c57-9a55-0b8d7f2e6a41")


def point_id_for(chunk_key: str) -> str:
    return str(uuid.uuid5(_POINT_NAMESPACE, chunk_key))


def build_filter(conditions: Optional[Dict[str, Any]]) -> Optional[Filter]:
    """Equality filter over payload fields; None when there is nothing to match."""

    if not conditions:
        return None

    return Filter(
        must=[
            FieldCondition(key=key, match=MatchValue(value=value))
            for key, value in conditions.items()
        ]
    )


class VectorStore:
    """
    Vector index over the Qdrant collection.

    Chunk text lives in the payload, so a query hit carries everything
    the generator needs.
    """

    def __init__(self, db: QdrantVectorDB):

        self._db = db

        logger.info(
            "VectorStore initialized",
            extra={
                "collection": db.collection,
                "dimension": db.dimension,
            },
        )

    @property
    def dimension(self) -> int:
        return self._db.dimension

    def _to_list(self, values) -> List[float]:

        if isinstance(values, np.ndarray):
            return values.astype("float32").ravel().tolist()

        return [float(v) for v in values]

    # ============================================================
    # WRITE
    # ============================================================

    def upsert(self, entries: Sequence[VectorEntry]) -> None:

        if not entries:
            return

        points = [
            PointStruct(
                id=point_id_for(entry.id),
                vector=self._to_list(entry.values),
                payload={**entry.metadata, "chunk_id": entry.id},
            )
            for entry in entries
        ]

        try:

            self._db.client.upsert(
                collection_name=self._db.collection,
                points=points,
                wait=True,
            )

        except Exception as e:

            logger.error(
                "Vector upsert failed",
                extra={"points": len(points), "error": str(e)},
                exc_info=True,
            )

            raise VectorIndexError(
                f"Vector upsert failed: {e}",
                {"points": len(points)},
            ) from e

        logger.info("Vectors upserted", extra={"points": len(points)})

    # ============================================================
    # READ
    # ============================================================

    def query(
        self,
        vector,
        top_k: int = TOP_K,
        payload_filter: Optional[Dict[str, Any]] = None,
    ) -> List[SearchResult]:
        """Nearest neighbours by cosine similarity, highest score first."""

        try:

            response = self._db.client.query_points(
                collection_name=self._db.collection,
                query=self._to_list(vector),
                limit=top_k,
                query_filter=build_filter(payload_filter),
                with_payload=True,
            )

        except Exception as e:

            logger.error(
                "Vector query failed",
                extra={"top_k": top_k, "error": str(e)},
                exc_info=True,
            )

            raise VectorIndexError(f"Vector query failed: {e}") from e

        results = []

        for point in response.points:

            payload = point.payload or {}

            results.append(
                SearchResult(
                    id=payload.get("chunk_id", str(point.id)),
                    score=float(point.score),
                    metadata=payload,
                    text=payload.get("text", ""),
                )
            )

        return results

    # ============================================================
    # DELETE
    # ============================================================

    def delete_document(self, document_id: str) -> bool:
        """Remove every chunk of a document. False when nothing matched."""

        selector = build_filter({"document_id": document_id})

        try:

            matched = self._db.client.count(
                collection_name=self._db.collection,
                count_filter=selector,
                exact=True,
            ).count

            if matched == 0:

                logger.warning(
                    "Delete requested for unknown document",
                    extra={"document_id": document_id},
                )

                return False

            self._db.client.delete(
                collection_name=self._db.collection,
                points_selector=FilterSelector(filter=selector),
                wait=True,
            )

        except Exception as e:

            logger.error(
                "Document deletion failed",
                extra={"document_id": document_id, "error": str(e)},
                exc_info=True,
            )

            raise VectorIndexError(
                f"Document deletion failed: {e}",
                {"document_id": document_id},
            ) from e

        logger.info(
            "Document deleted from index",
            extra={"document_id": document_id, "chunks": matched},
        )

        return True

    def get_stats(self) -> Dict[str, Any]:

        try:
            info = self._db.client.get_collection(self._db.collection)
        except Exception as e:
            raise VectorIndexError(f"Index stats unavailable: {e}") from e

        return {
            "total_vectors": info.points_count or 0,
            "dimension": self._db.dimension,
            "status": info.status.value,
        }
