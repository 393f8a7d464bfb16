import logging
import time
from typing import Callable, Optional

from qdrant_client import QdrantClient
from qdrant_client.http.models import (
    CollectionStatus,
    Distance,
    PayloadSchemaType,
    VectorParams,
)

from support_chat.config import (
    INDEX_READY_BACKOFF_SECONDS,
    INDEX_READY_MAX_ATTEMPTS,
    QDRANT_API_KEY,
    QDRANT_COLLECTION,
    QDRANT_URL,
)
from support_chat.exceptions import IndexNotReadyError, VectorIndexError

logger = logging.getLogger(__name__)

# Payload fields used in filters
_KEYWORD_FIELDS = ("document_id", "category")


class QdrantVectorDB:
    """
    Qdrant connection wrapper.

    Owns collection bootstrap: creation, payload indexes, and a bounded
    readiness wait. Storage operations live in VectorStore.
    """

    def __init__(
        self,
        dim: int,
        client: Optional[QdrantClient] = None,
        collection: str = QDRANT_COLLECTION,
        max_attempts: int = INDEX_READY_MAX_ATTEMPTS,
        backoff_seconds: float = INDEX_READY_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):

        self._dim = dim
        self._collection = collection
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

        self._client = client or QdrantClient(
            url=QDRANT_URL,
            api_key=QDRANT_API_KEY,
            timeout=60.0,
        )

        self._ensure_collection()

        logger.info(
            "Qdrant client initialized",
            extra={
                "collection": self._collection,
                "dimension": dim,
            },
        )

    @property
    def client(self) -> QdrantClient:
        return self._client

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def dimension(self) -> int:
        return self._dim

    def _ensure_collection(self):
        """
        Ensures the collection exists, its keyword payload indexes exist,
        and it reports ready before any read or write.
        """

        try:

            collections = self._client.get_collections().collections

            exists = any(c.name == self._collection for c in collections)

            if not exists:

                self._client.create_collection(
                    collection_name=self._collection,
                    vectors_config=VectorParams(
                        size=self._dim,
                        distance=Distance.COSINE,
                    ),
                )

                logger.info(
                    "Qdrant collection created",
                    extra={"collection": self._collection},
                )

        except Exception as e:

            logger.error(
                "Qdrant collection bootstrap failed",
                extra={"collection": self._collection, "error": str(e)},
            )

            raise VectorIndexError(
                f"Could not prepare vector index: {e}",
                {"collection": self._collection},
            ) from e

        for field_name in _KEYWORD_FIELDS:

            try:

                self._client.create_payload_index(
                    collection_name=self._collection,
                    field_name=field_name,
                    field_schema=PayloadSchemaType.KEYWORD,
                )

            except Exception as e:
                # Already present
                logger.debug(
                    "Payload index already exists or skipped",
                    extra={"field": field_name, "error": str(e)},
                )

        self.wait_until_ready()

    def wait_until_ready(self) -> None:
        """
        Poll collection status with exponential backoff.

        Raises IndexNotReadyError after max_attempts polls.
        """

        delay = self._backoff_seconds

        for attempt in range(1, self._max_attempts + 1):

            try:
                status = self._client.get_collection(self._collection).status
            except Exception as e:
                logger.warning(
                    "Index status check failed",
                    extra={"attempt": attempt, "error": str(e)},
                )
                status = None

            if status == CollectionStatus.GREEN:
                return

            logger.info(
                "Waiting for vector index",
                extra={
                    "collection": self._collection,
                    "attempt": attempt,
                    "status": str(status),
                },
            )

            if attempt < self._max_attempts:
                self._sleep(delay)
                delay *= 2

        raise IndexNotReadyError(self._collection, self._max_attempts)
