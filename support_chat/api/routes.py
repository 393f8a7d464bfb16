import logging
import os
import time
import uuid
from pathlib import Path
from typing import List, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    UploadFile,
)
from starlette.concurrency import run_in_threadpool

from support_chat.api.dependencies import Services, get_services
from support_chat.config import (
    ALLOWED_FILE_TYPES,
    DOCUMENT_CATEGORIES,
    MAX_FILE_SIZE_MB,
    SEARCH_MIN_SCORE,
    TOP_K,
    UPLOAD_DIR,
)
from support_chat.exceptions import ExtractionError
from support_chat.memory.loader import file_type_from_filename
from support_chat.models import (
    ChatResponse,
    ChatStats,
    CleanupResponse,
    CreateSessionRequest,
    DeleteDocumentResponse,
    DocumentMetadata,
    EndSessionResponse,
    HealthResponse,
    IngestionResult,
    MessageRequest,
    SearchResponse,
    SessionCreated,
    SessionExport,
    SessionInfoResponse,
    SessionSummary,
)
from support_chat.observability.metrics import metrics_tracker
from support_chat.observability.posthog_client import posthog_client

logger = logging.getLogger(__name__)

router = APIRouter()


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def _parse_tags(tags: Optional[str]) -> List[str]:
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


def _save_and_ingest(pipeline, path: Path, content: bytes, filename: str, metadata):
    """Write the upload to disk and ingest it; the temp file never outlives the call."""

    try:
        path.write_bytes(content)
        return pipeline.ingest_upload(str(path), filename, metadata)
    finally:
        path.unlink(missing_ok=True)


# ============================================================
# HEALTH
# ============================================================

@router.get("/health", response_model=HealthResponse)
def health_check(services: Services = Depends(get_services)):

    stats = services.store.get_stats()

    return HealthResponse(
        status="healthy",
        total_vectors=stats["total_vectors"],
        active_sessions=len(services.sessions.get_active_sessions()),
    )


# ============================================================
# CHAT
# ============================================================

@router.post("/chat/session", response_model=SessionCreated)
def create_session(
    payload: CreateSessionRequest,
    request: Request,
    services: Services = Depends(get_services),
):

    created = services.sessions.create(
        user_id=payload.user_id,
        metadata={
            **payload.metadata,
            "source": payload.source,
            "ip": request.client.host if request.client else "",
            "user_agent": request.headers.get("user-agent", ""),
        },
    )

    posthog_client.track_session_created(created.session_id, payload.source)

    return created


@router.post("/chat/message", response_model=ChatResponse)
def send_message(
    payload: MessageRequest,
    services: Services = Depends(get_services),
):

    start_time = time.time()

    result = services.sessions.process_message(
        payload.session_id,
        payload.message,
        max_results=payload.max_results,
    )

    metrics_tracker.record_event("message_processed")

    posthog_client.track_message(
        session_id=payload.session_id,
        intent=result.intent.category,
        sources=len(result.sources),
        confidence=result.confidence,
        latency=time.time() - start_time,
    )

    return result


@router.get("/chat/session/{session_id}", response_model=SessionInfoResponse)
def get_session(session_id: str, services: Services = Depends(get_services)):

    session = services.sessions.get(session_id)

    if session is None:
        raise HTTPException(status_code=404, detail="Chat session not found")

    return SessionInfoResponse(
        session_id=session.id,
        created_at=session.created_at,
        last_activity=session.last_activity,
        message_count=len(session.messages),
        is_active=session.is_active,
        messages=session.messages,
    )


@router.post("/chat/session/{session_id}/end", response_model=EndSessionResponse)
def end_session(session_id: str, services: Services = Depends(get_services)):

    if not services.sessions.end_session(session_id):
        raise HTTPException(status_code=404, detail="Chat session not found")

    posthog_client.track_session_ended(session_id)

    return EndSessionResponse(
        session_id=session_id,
        success=True,
        message="Session ended",
    )


# ============================================================
# DOCUMENTS
# ============================================================

@router.post("/documents/upload", response_model=IngestionResult)
async def upload_document(
    request: Request,
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    category: str = Form("general"),
    tags: Optional[str] = Form(None),
    services: Services = Depends(get_services),
):

    filename = file.filename or "document"
    file_type = file_type_from_filename(filename)

    if file_type not in ALLOWED_FILE_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"File type not allowed. Supported: {', '.join(ALLOWED_FILE_TYPES)}",
        )

    if category not in DOCUMENT_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Invalid category: {category}")

    if file.size is not None and file.size > MAX_FILE_SIZE_MB * 1024 * 1024:
        raise ExtractionError(
            f"File too large: {file.size / (1024 * 1024):.2f}MB",
            {"max_file_size_mb": MAX_FILE_SIZE_MB},
        )

    metadata = DocumentMetadata(title=title, category=category, tags=_parse_tags(tags))

    os.makedirs(UPLOAD_DIR, exist_ok=True)

    temp_path = Path(UPLOAD_DIR) / f"{uuid.uuid4().hex}.{file_type}"

    content = await file.read()

    start_time = time.time()

    result = await run_in_threadpool(
        _save_and_ingest,
        services.pipeline,
        temp_path,
        content,
        filename,
        metadata,
    )

    metrics_tracker.record_event("document_ingested")

    posthog_client.track_document_upload(
        distinct_id=_request_id(request),
        document_id=result.document_id,
        filename=filename,
        category=category,
        chunks=result.chunk_count,
        latency=time.time() - start_time,
    )

    return result


@router.get("/documents/search", response_model=SearchResponse)
def search(
    request: Request,
    q: str = Query(..., min_length=1, max_length=500),
    top_k: int = Query(TOP_K, ge=1, le=20),
    category: Optional[str] = Query(None),
    min_score: float = Query(SEARCH_MIN_SCORE, ge=0.0, le=1.0),
    services: Services = Depends(get_services),
):

    if category is not None and category not in DOCUMENT_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Invalid category: {category}")

    results = services.search(q, top_k=top_k, category=category, min_score=min_score)

    posthog_client.track_search(
        distinct_id=_request_id(request),
        category=category,
        results=len(results),
        top_score=results[0].score if results else None,
    )

    return SearchResponse(query=q, results=results, total_results=len(results))


@router.get("/documents/stats")
def document_stats(services: Services = Depends(get_services)):

    return services.pipeline.get_stats()


@router.get("/documents/categories")
def document_categories():

    return {"categories": DOCUMENT_CATEGORIES}


@router.delete("/documents/{document_id}", response_model=DeleteDocumentResponse)
def delete_document(document_id: str, services: Services = Depends(get_services)):

    if not services.pipeline.delete_document(document_id):
        raise HTTPException(status_code=404, detail="Document not found")

    return DeleteDocumentResponse(
        document_id=document_id,
        message="Deleted",
        success=True,
    )


# ============================================================
# ADMIN
# ============================================================

@router.get("/admin/sessions", response_model=List[SessionSummary])
def list_sessions(services: Services = Depends(get_services)):

    return services.sessions.get_active_sessions()


@router.get("/admin/sessions/{session_id}/export", response_model=SessionExport)
def export_session(session_id: str, services: Services = Depends(get_services)):

    exported = services.sessions.export_session(session_id)

    if exported is None:
        raise HTTPException(status_code=404, detail="Chat session not found")

    return exported


@router.get("/admin/stats", response_model=ChatStats)
def chat_stats(services: Services = Depends(get_services)):

    return services.sessions.get_stats()


@router.post("/admin/cleanup", response_model=CleanupResponse)
def cleanup_sessions(services: Services = Depends(get_services)):

    before = len(services.sessions.store)
    removed = services.sessions.sweep_expired()

    return CleanupResponse(
        sessions_before=before,
        sessions_after=before - removed,
        sessions_removed=removed,
    )


# ============================================================
# METRICS
# ============================================================

@router.get("/metrics")
def get_metrics():

    return metrics_tracker.get_metrics()
