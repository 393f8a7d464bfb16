# support_chat/observability/posthog_client.py

"""
PostHog product analytics for the support chat.

Architecture contract:
- Does NOT replace logging
- Session id (or request id) is the distinct id
- Disabled when POSTHOG_API_KEY is unset
- Never raises into a request
"""

import logging
import os
from typing import Any, Dict, Optional

from posthog import Posthog

from support_chat.config import POSTHOG_HOST

logger = logging.getLogger(__name__)


class PostHogClient:
    """
    Thin PostHog wrapper.

    Tracking is best effort: analytics failures are logged as warnings
    and dropped.
    """

    def __init__(self, api_key: Optional[str] = None, host: str = POSTHOG_HOST):

        self._enabled = False
        self._client: Optional[Posthog] = None

        api_key = api_key or os.getenv("POSTHOG_API_KEY")

        if not api_key:
            logger.info("PostHog disabled: POSTHOG_API_KEY not set")
            return

        self._client = Posthog(
            project_api_key=api_key,
            host=host,
            timeout=5,
            flush_interval=1,
        )

        self._enabled = True

        logger.info("PostHog client initialized", extra={"host": host})

    # ==========================================================
    # INTERNAL SAFE TRACK
    # ==========================================================

    def _track(
        self,
        distinct_id: str,
        event: str,
        properties: Optional[Dict[str, Any]] = None,
    ):

        if not self._enabled or not self._client:
            return

        try:

            self._client.capture(
                distinct_id=distinct_id,
                event=event,
                properties=properties or {},
            )

        except Exception as e:

            logger.warning(
                "PostHog tracking failed",
                extra={"event": event, "error": str(e)},
            )

    # ==========================================================
    # CHAT EVENTS
    # ==========================================================

    def track_session_created(self, session_id: str, source: str):

        self._track(session_id, "chat_session_created", {"source": source})

    def track_message(
        self,
        session_id: str,
        intent: str,
        sources: int,
        confidence: float,
        latency: float,
    ):

        self._track(
            session_id,
            "chat_message_processed",
            {
                "intent": intent,
                "sources": sources,
                "confidence": confidence,
                "latency_seconds": latency,
            },
        )

    def track_session_ended(self, session_id: str):

        self._track(session_id, "chat_session_ended")

    # ==========================================================
    # DOCUMENT EVENTS
    # ==========================================================

    def track_document_upload(
        self,
        distinct_id: str,
        document_id: str,
        filename: str,
        category: str,
        chunks: int,
        latency: float,
    ):

        self._track(
            distinct_id,
            "document_uploaded",
            {
                "document_id": document_id,
                "filename": filename,
                "category": category,
                "chunks": chunks,
                "latency_seconds": latency,
            },
        )

    def track_search(
        self,
        distinct_id: str,
        category: Optional[str],
        results: int,
        top_score: Optional[float],
    ):

        self._track(
            distinct_id,
            "document_search",
            {
                "category": category,
                "results": results,
                "top_score": top_score,
            },
        )

    # ==========================================================
    # ERROR TRACKING
    # ==========================================================

    def track_error(
        self,
        distinct_id: str,
        error_type: str,
        error_message: str,
        endpoint: str,
    ):

        self._track(
            distinct_id,
            "system_error",
            {
                "error_type": error_type,
                "error_message": error_message,
                "endpoint": endpoint,
            },
        )

    def shutdown(self):

        if self._client:
            self._client.shutdown()


posthog_client = PostHogClient()
