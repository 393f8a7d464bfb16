# support_chat/memory/ingestion.py

"""
Document ingestion pipeline.

loader → chunker → embedder → vector_store

Ingestion is not transactional: if the index write fails after embeddings
were produced, nothing is rolled back and the caller sees VectorIndexError.
"""

import logging
import os
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from support_chat.config import (
    CHUNK_OVERLAP,
    CHUNK_SIZE,
    MAX_CHUNKS_PER_DOCUMENT,
    MAX_FILE_SIZE_MB,
    MIN_CHUNK_LENGTH,
)
from support_chat.exceptions import EmptyDocumentError, ExtractionError
from support_chat.memory.chunker import chunk_text
from support_chat.memory.loader import extract_text, file_type_from_filename
from support_chat.models import (
    DocumentChunk,
    DocumentMetadata,
    IngestionResult,
    VectorEntry,
)

logger = logging.getLogger(__name__)


def generate_document_id() -> str:
    return f"doc_{uuid.uuid4().hex[:12]}"


class IngestionPipeline:
    """
    Turns an uploaded file into indexed, searchable chunks.

    One embedding call and one upsert per document; chunk i is stored
    under "{document_id}_chunk_{i}".
    """

    def __init__(
        self,
        embedder,
        store,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        min_chunk_length: int = MIN_CHUNK_LENGTH,
        max_file_size_mb: float = MAX_FILE_SIZE_MB,
    ):
        self._embedder = embedder
        self._store = store
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._min_chunk_length = min_chunk_length
        self._max_file_size_mb = max_file_size_mb

    # ============================================================
    # PUBLIC API
    # ============================================================

    def ingest(
        self,
        file_bytes: bytes,
        file_type: str,
        metadata: Optional[DocumentMetadata] = None,
        filename: Optional[str] = None,
    ) -> IngestionResult:
        """
        Extract, chunk, embed and index one document.

        Raises:
            ExtractionError: unsupported, unreadable, oversized or empty file
            EmptyDocumentError: no chunk survived the length floor
            EmbeddingProviderError: embedding call failed
            VectorIndexError: index write failed (earlier work is kept)
        """

        metadata = metadata or DocumentMetadata()
        filename = filename or f"document.{file_type}"
        document_id = metadata.document_id or generate_document_id()

        start_time = time.time()

        logger.info(
            "Document ingestion started",
            extra={
                "document_id": document_id,
                "doc_filename": filename,
                "file_type": file_type,
                "file_size": len(file_bytes),
            },
        )

        self._validate_file_size(file_bytes)

        text = extract_text(file_bytes, file_type)

        chunks = chunk_text(
            text,
            size=self._chunk_size,
            overlap=self._chunk_overlap,
            min_length=self._min_chunk_length,
        )

        if not chunks:
            raise EmptyDocumentError(
                "Document produced no usable chunks",
                {"document_id": document_id, "text_length": len(text)},
            )

        if len(chunks) > MAX_CHUNKS_PER_DOCUMENT:
            raise ExtractionError(
                "Document too large to index",
                {"chunks": len(chunks), "max_allowed": MAX_CHUNKS_PER_DOCUMENT},
            )

        ingested_at = datetime.now(timezone.utc)

        document_chunks = [
            DocumentChunk(
                document_id=document_id,
                chunk_index=index,
                text=chunk,
                length=len(chunk),
                category=metadata.category,
                tags=list(metadata.tags),
                filename=filename,
                ingested_at=ingested_at,
            )
            for index, chunk in enumerate(chunks)
        ]

        embeddings = self._embedder.embed(chunks)

        entries = self.build_entries(
            document_chunks,
            embeddings,
            title=metadata.title or filename,
            file_size=len(file_bytes),
        )

        self._store.upsert(entries)

        latency = time.time() - start_time

        logger.info(
            "Document ingestion complete",
            extra={
                "document_id": document_id,
                "chunks": len(entries),
                "latency_seconds": round(latency, 3),
            },
        )

        return IngestionResult(
            document_id=document_id,
            filename=filename,
            file_size=len(file_bytes),
            chunk_count=len(entries),
            processed_at=datetime.now(timezone.utc),
        )

    def ingest_upload(
        self,
        path: str,
        filename: str,
        metadata: Optional[DocumentMetadata] = None,
    ) -> IngestionResult:
        """Ingest a temporary upload; the file is removed whatever happens."""

        try:

            with open(path, "rb") as f:
                file_bytes = f.read()

            return self.ingest(
                file_bytes,
                file_type_from_filename(filename),
                metadata=metadata,
                filename=filename,
            )

        finally:
            self._remove_temp_file(path)

    def delete_document(self, document_id: str) -> bool:
        return self._store.delete_document(document_id)

    def get_stats(self) -> Dict[str, Any]:
        return self._store.get_stats()

    # ============================================================
    # HELPERS
    # ============================================================

    @staticmethod
    def build_entries(
        chunks: List[DocumentChunk],
        embeddings,
        title: str,
        file_size: int,
    ) -> List[VectorEntry]:

        if len(embeddings) != len(chunks):
            raise ValueError(
                f"Embedding count ({len(embeddings)}) does not match "
                f"chunk count ({len(chunks)})"
            )

        return [
            VectorEntry(
                id=chunk.key,
                values=[float(v) for v in embeddings[i]],
                metadata={
                    "document_id": chunk.document_id,
                    "filename": chunk.filename,
                    "chunk_index": chunk.chunk_index,
                    "text": chunk.text,
                    "title": title,
                    "category": chunk.category,
                    "tags": chunk.tags,
                    "uploaded_at": chunk.ingested_at.isoformat(),
                    "file_size": file_size,
                    "chunk_length": chunk.length,
                },
            )
            for i, chunk in enumerate(chunks)
        ]

    def _validate_file_size(self, file_bytes: bytes):

        size_mb = len(file_bytes) / (1024 * 1024)

        if size_mb > self._max_file_size_mb:
            raise ExtractionError(
                f"File too large: {size_mb:.2f}MB",
                {"max_file_size_mb": self._max_file_size_mb},
            )

    @staticmethod
    def _remove_temp_file(path: str):

        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(
                "Could not remove temporary upload",
                extra={"path": path, "error": str(e)},
            )
