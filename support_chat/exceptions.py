"""
Exception hierarchy for the support chat pipeline.

Every hard failure of ingestion, retrieval or generation is one of these.
The HTTP layer maps each class to a status code; intent classification is
the only step that swallows provider errors.
"""

from typing import Any, Dict, Optional


class SupportChatError(Exception):
    """Base exception for all support chat errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ExtractionError(SupportChatError):
    """Source file is unreadable, unsupported, or yielded no text."""

    status_code = 400


class EmptyDocumentError(SupportChatError):
    """Text was extracted but no chunk survived the minimum length filter."""

    status_code = 422


class EmbeddingProviderError(SupportChatError):
    """Embedding call failed or returned a malformed payload."""

    status_code = 503


class VectorIndexError(SupportChatError):
    """Vector index read or write failed."""

    status_code = 503


class IndexNotReadyError(VectorIndexError):
    """Index did not report ready within the polling budget."""

    def __init__(self, collection: str, attempts: int):
        super().__init__(
            f"Vector index not ready: {collection}",
            {"collection": collection, "attempts": attempts},
        )


class SessionNotFoundError(SupportChatError):
    """Referenced chat session is missing or expired."""

    status_code = 404

    def __init__(self, session_id: str, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        details["session_id"] = session_id
        self.session_id = session_id
        super().__init__(f"Chat session not found: {session_id}", details)


class GenerationError(SupportChatError):
    """Completion call failed or returned a malformed payload."""

    status_code = 503
