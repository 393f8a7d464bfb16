# support_chat/llm/intent.py

import json
import logging
import re

from pydantic import ValidationError

from support_chat.config import (
    INTENT_FAILURE_CONFIDENCE,
    INTENT_MAX_TOKENS,
    INTENT_PARSE_FALLBACK_CONFIDENCE,
    INTENT_TEMPERATURE,
)
from support_chat.models import IntentResult
from support_chat.prompts.prompt_builder import build_intent_prompt

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class IntentClassifier:
    """
    Maps a free-text query to one support category.

    Classification only narrows retrieval, so it never raises:
    • unparseable output → general / 0.5
    • provider failure   → general / 0.0
    """

    def __init__(self, llm_client):
        self._llm = llm_client

    def classify(self, query: str) -> IntentResult:

        try:

            raw = self._llm.chat(
                [{"role": "user", "content": build_intent_prompt(query)}],
                max_tokens=INTENT_MAX_TOKENS,
                temperature=INTENT_TEMPERATURE,
            )

        except Exception as e:

            logger.error(
                "Intent classification failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )

            return IntentResult(
                category="general",
                confidence=INTENT_FAILURE_CONFIDENCE,
            )

        return self.parse(raw)

    @staticmethod
    def parse(raw: str) -> IntentResult:
        """Parse the provider's JSON answer; anything off-schema falls back."""

        try:

            data = json.loads(_CODE_FENCE.sub("", raw.strip()))

            if not isinstance(data, dict):
                raise ValueError("intent payload is not an object")

            result = IntentResult(
                category=data.get("category"),
                confidence=data.get("confidence"),
            )

        except (ValueError, TypeError, ValidationError) as e:

            logger.warning(
                "Intent classification unparseable",
                extra={"raw": raw[:200], "error": str(e)},
            )

            return IntentResult(
                category="general",
                confidence=INTENT_PARSE_FALLBACK_CONFIDENCE,
            )

        logger.info(
            "Intent classified",
            extra={
                "category": result.category,
                "confidence": result.confidence,
            },
        )

        return result
