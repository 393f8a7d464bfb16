# support_chat/sessions/manager.py

"""
Chat session lifecycle and message orchestration.

Per session:  active → ended    (explicit, terminal)
              active → expired  (computed: now - last_activity > timeout)

Expired sessions are never returned. They are reaped lazily on access and
swept opportunistically before each message is processed; there is no
background timer.

No per-session locking: two concurrent messages to the same session may
interleave their history reads and writes.
"""

import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from support_chat.config import (
    CHAT_MIN_SCORE,
    CONFIDENCE_FLOOR,
    CONFIDENCE_INTENT_WEIGHT,
    CONFIDENCE_RETRIEVAL_WEIGHT,
    HISTORY_WINDOW,
    INTENT_TO_DOCUMENT_CATEGORY,
    MAX_HISTORY_MESSAGES,
    SESSION_TIMEOUT_SECONDS,
    TOP_K,
    WELCOME_MESSAGE,
)
from support_chat.exceptions import SessionNotFoundError
from support_chat.models import (
    ChatMessage,
    ChatResponse,
    ChatSession,
    ChatStats,
    IntentResult,
    SearchResult,
    SessionCreated,
    SessionExport,
    SessionSummary,
    SourceCitation,
)
from support_chat.sessions.store import InMemorySessionStore, SessionStore
from support_chat.workflow.conversation import generate_answer

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """
    Owns conversation state and runs the RAG turn for each user message.

    Collaborators:
    • classifier  : IntentClassifier (never raises)
    • retrieve_fn : callable(query, top_k, category, min_score) → [SearchResult]
    • llm_client  : LLMClient used by the conversation generator
    • store       : SessionStore (in-memory by default)
    """

    def __init__(
        self,
        classifier,
        retrieve_fn: Callable[..., List[SearchResult]],
        llm_client,
        store: Optional[SessionStore] = None,
        timeout_seconds: float = SESSION_TIMEOUT_SECONDS,
        max_history: int = MAX_HISTORY_MESSAGES,
        history_window: int = HISTORY_WINDOW,
        top_k: int = TOP_K,
        min_score: float = CHAT_MIN_SCORE,
        retrieval_weight: float = CONFIDENCE_RETRIEVAL_WEIGHT,
        intent_weight: float = CONFIDENCE_INTENT_WEIGHT,
        confidence_floor: float = CONFIDENCE_FLOOR,
        clock: Callable[[], datetime] = utc_now,
    ):
        if max_history < 2:
            raise ValueError("max_history must hold at least one exchange")

        self._classifier = classifier
        self._retrieve = retrieve_fn
        self._llm = llm_client
        self._store = store if store is not None else InMemorySessionStore()

        self._timeout = timedelta(seconds=timeout_seconds)
        self._max_history = max_history
        self._history_window = history_window
        self._top_k = top_k
        self._min_score = min_score
        self._retrieval_weight = retrieval_weight
        self._intent_weight = intent_weight
        self._confidence_floor = confidence_floor
        self._clock = clock

    @property
    def store(self) -> SessionStore:
        return self._store

    # ============================================================
    # LIFECYCLE
    # ============================================================

    def create(
        self,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SessionCreated:

        metadata = metadata or {}
        now = self._clock()

        session = ChatSession(
            id=str(uuid.uuid4()),
            user_id=user_id,
            created_at=now,
            last_activity=now,
            metadata={
                "user_agent": metadata.get("user_agent", ""),
                "ip": metadata.get("ip", ""),
                "source": metadata.get("source", "web"),
                **metadata,
            },
        )

        self._store.put(session)

        logger.info(
            "Chat session created",
            extra={"session_id": session.id, "user_id": user_id},
        )

        return SessionCreated(
            session_id=session.id,
            created_at=session.created_at,
            welcome_message=WELCOME_MESSAGE,
        )

    def get(self, session_id: str) -> Optional[ChatSession]:
        """Live session or None. An expired session is deleted on access."""

        session = self._store.get(session_id)

        if session is None:
            return None

        if self.is_expired(session):

            self._store.delete(session_id)

            logger.info(
                "Expired chat session removed",
                extra={"session_id": session_id},
            )

            return None

        return session

    def is_expired(self, session: ChatSession, now: Optional[datetime] = None) -> bool:
        now = now or self._clock()
        return now - session.last_activity > self._timeout

    def end_session(self, session_id: str) -> bool:

        session = self.get(session_id)

        if session is None or not session.is_active:
            return False

        session.is_active = False
        session.ended_at = self._clock()

        self._store.put(session)

        logger.info("Chat session ended", extra={"session_id": session_id})

        return True

    def sweep_expired(self) -> int:

        now = self._clock()

        expired = [s.id for s in self._store.values() if self.is_expired(s, now)]

        for session_id in expired:

            self._store.delete(session_id)

            logger.info(
                "Expired chat session removed",
                extra={"session_id": session_id},
            )

        return len(expired)

    # ============================================================
    # MESSAGE PROCESSING
    # ============================================================

    def process_message(
        self,
        session_id: str,
        text: str,
        max_results: Optional[int] = None,
    ) -> ChatResponse:
        """
        Run one RAG turn and append the user/assistant pair.

        Raises:
            SessionNotFoundError: session missing, expired or ended
            EmbeddingProviderError / VectorIndexError: retrieval failed
            GenerationError: no answer could be generated
        Nothing is appended when any step raises.
        """

        session = self.get(session_id)

        if session is None:
            raise SessionNotFoundError(session_id)

        if not session.is_active:
            raise SessionNotFoundError(session_id, {"reason": "ended"})

        self.sweep_expired()

        start_time = time.time()

        received_at = max(self._clock(), session.last_activity)
        session.last_activity = received_at

        intent = self._classifier.classify(text)

        category = self.map_intent_to_category(intent.category)

        results = self._retrieve(
            text,
            top_k=max_results or self._top_k,
            category=category,
            min_score=self._min_score,
        )

        history = self.get_history(session)

        answer = generate_answer(
            text,
            results,
            history,
            self._llm,
            history_window=self._history_window,
        )

        confidence = self.calculate_confidence(results, intent)

        sources = [
            SourceCitation(
                document_id=r.metadata.get("document_id"),
                filename=r.metadata.get("filename"),
                score=r.score,
            )
            for r in results
        ]

        user_message = ChatMessage(
            id=str(uuid.uuid4()),
            role="user",
            content=text,
            timestamp=received_at,
            intent=intent,
        )

        assistant_message = ChatMessage(
            id=str(uuid.uuid4()),
            role="assistant",
            content=answer,
            timestamp=max(self._clock(), received_at),
            intent=intent,
            sources=sources,
            confidence=confidence,
        )

        # Oldest messages go first once the cap is reached
        session.messages = (
            session.messages + [user_message, assistant_message]
        )[-self._max_history:]

        self._store.put(session)

        logger.info(
            "Message processed",
            extra={
                "session_id": session_id,
                "intent": intent.category,
                "category_filter": category,
                "sources": len(sources),
                "confidence": round(confidence, 3),
                "latency_seconds": round(time.time() - start_time, 3),
            },
        )

        return ChatResponse(
            message_id=assistant_message.id,
            response=answer,
            sources=sources,
            intent=intent,
            confidence=confidence,
            timestamp=assistant_message.timestamp,
        )

    def get_history(self, session: ChatSession) -> List[ChatMessage]:
        return session.messages[-self._history_window:]

    @staticmethod
    def map_intent_to_category(intent_category: str) -> Optional[str]:
        """Intent vocabulary → document category filter (None = unfiltered)."""
        return INTENT_TO_DOCUMENT_CATEGORY.get(intent_category)

    def calculate_confidence(
        self,
        results: Sequence[SearchResult],
        intent: IntentResult,
    ) -> float:

        if not results:
            return self._confidence_floor

        mean_score = sum(r.score for r in results) / len(results)

        confidence = (
            self._retrieval_weight * mean_score
            + self._intent_weight * intent.confidence
        )

        return max(0.0, min(confidence, 1.0))

    # ============================================================
    # ADMINISTRATION
    # ============================================================

    def export_session(self, session_id: str) -> Optional[SessionExport]:
        """Full transcript. Read-only: no expiry side effects."""

        session = self._store.get(session_id)

        if session is None:
            return None

        return SessionExport(
            session_id=session.id,
            user_id=session.user_id,
            created_at=session.created_at,
            last_activity=session.last_activity,
            ended_at=session.ended_at,
            is_active=session.is_active,
            metadata=dict(session.metadata),
            messages=list(session.messages),
        )

    def get_active_sessions(self) -> List[SessionSummary]:

        now = self._clock()

        return [
            SessionSummary(
                session_id=s.id,
                user_id=s.user_id,
                created_at=s.created_at,
                last_activity=s.last_activity,
                message_count=len(s.messages),
                is_active=s.is_active,
            )
            for s in self._store.values()
            if not self.is_expired(s, now)
        ]

    def get_stats(self) -> ChatStats:

        sessions = self._store.values()

        total_messages = sum(len(s.messages) for s in sessions)

        avg = total_messages / len(sessions) if sessions else 0.0

        return ChatStats(
            total_sessions=len(sessions),
            active_sessions=sum(1 for s in sessions if s.is_active),
            total_messages=total_messages,
            avg_messages_per_session=round(avg, 2),
            last_activity=max((s.last_activity for s in sessions), default=None),
        )
