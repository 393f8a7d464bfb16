# support_chat/models.py
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DocumentCategory = Literal[
    "general", "technical", "billing", "product", "account", "returns"
]

IntentCategory = Literal[
    "technical_support",
    "billing",
    "product_info",
    "account",
    "returns_refunds",
    "general",
]

Role = Literal["user", "assistant"]


# ============================================================
# DOCUMENTS & RETRIEVAL
# ============================================================

class DocumentMetadata(BaseModel):
    """Caller-supplied metadata for an uploaded document."""
    document_id: Optional[str] = None
    title: Optional[str] = Field(None, max_length=200)
    category: DocumentCategory = "general"
    tags: List[str] = Field(default_factory=list)


class DocumentChunk(BaseModel):
    """A bounded, immutable slice of a source document."""
    model_config = ConfigDict(frozen=True)

    document_id: str
    chunk_index: int = Field(..., ge=0)
    text: str
    length: int
    category: DocumentCategory = "general"
    tags: List[str] = Field(default_factory=list)
    filename: str
    ingested_at: datetime

    @property
    def key(self) -> str:
        return f"{self.document_id}_chunk_{self.chunk_index}"


class VectorEntry(BaseModel):
    """One index record: chunk key, embedding values, payload metadata."""
    id: str
    values: List[float]
    metadata: Dict[str, Any]


class SearchResult(BaseModel):
    """A nearest-neighbour hit returned by the index."""
    id: str
    score: float
    metadata: Dict[str, Any] = Field(default_factory=dict)
    text: str = ""


class IngestionResult(BaseModel):
    """Response after a document has been chunked, embedded and indexed."""
    document_id: str
    filename: str
    file_size: int
    chunk_count: int
    status: str = "processed"
    processed_at: datetime


# ============================================================
# CONVERSATION
# ============================================================

class IntentResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: IntentCategory = "general"
    confidence: float = Field(..., ge=0.0, le=1.0)


class SourceCitation(BaseModel):
    model_config = ConfigDict(frozen=True)

    document_id: Optional[str] = None
    filename: Optional[str] = None
    score: float


class ChatMessage(BaseModel):
    """One turn of a conversation. Never modified after it is appended."""
    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    content: str
    timestamp: datetime
    intent: Optional[IntentResult] = None
    sources: List[SourceCitation] = Field(default_factory=list)
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class ChatSession(BaseModel):
    id: str
    user_id: Optional[str] = None
    created_at: datetime
    last_activity: datetime
    messages: List[ChatMessage] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    ended_at: Optional[datetime] = None


class SessionCreated(BaseModel):
    session_id: str
    created_at: datetime
    welcome_message: str


class ChatResponse(BaseModel):
    """Assistant answer returned by SessionManager.process_message."""
    message_id: str
    response: str
    sources: List[SourceCitation]
    intent: IntentResult
    confidence: float = Field(..., ge=0.0, le=1.0)
    timestamp: datetime


class SessionExport(BaseModel):
    session_id: str
    user_id: Optional[str] = None
    created_at: datetime
    last_activity: datetime
    ended_at: Optional[datetime] = None
    is_active: bool
    metadata: Dict[str, Any]
    messages: List[ChatMessage]


class SessionSummary(BaseModel):
    session_id: str
    user_id: Optional[str] = None
    created_at: datetime
    last_activity: datetime
    message_count: int
    is_active: bool


class ChatStats(BaseModel):
    total_sessions: int
    active_sessions: int
    total_messages: int
    avg_messages_per_session: float
    last_activity: Optional[datetime] = None


# ============================================================
# HTTP REQUESTS / RESPONSES
# ============================================================

class CreateSessionRequest(BaseModel):
    """Request to open a chat session."""
    user_id: Optional[str] = Field(None, max_length=100)
    source: str = Field("web", max_length=50)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class MessageRequest(BaseModel):
    """Request to send a message to an existing session."""
    session_id: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=1000)
    max_results: Optional[int] = Field(None, ge=1, le=20)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v):
        """Ensure message is not just whitespace."""
        if not v.strip():
            raise ValueError("Message cannot be empty or only whitespace")
        return v.strip()

    @field_validator("session_id")
    @classmethod
    def validate_session_id(cls, v):
        if not v.strip():
            raise ValueError("Session ID cannot be empty")
        return v.strip()


class SessionInfoResponse(BaseModel):
    session_id: str
    created_at: datetime
    last_activity: datetime
    message_count: int
    is_active: bool
    messages: List[ChatMessage]


class EndSessionResponse(BaseModel):
    session_id: str
    success: bool
    message: str


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]
    total_results: int


class DeleteDocumentResponse(BaseModel):
    document_id: str
    message: str
    success: bool


class CleanupResponse(BaseModel):
    sessions_before: int
    sessions_after: int
    sessions_removed: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    total_vectors: int
    active_sessions: int
