# support_chat/llm/client.py
import logging
import os
import time
from typing import Dict, List, Optional

from openai import OpenAI

from support_chat.config import LLM_MAX_TOKENS, LLM_MODEL, LLM_TEMPERATURE
from support_chat.exceptions import GenerationError

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Client for the OpenAI chat completions API.

    Every call either returns non-empty text or raises GenerationError.
    """

    def __init__(self, client: Optional[OpenAI] = None, model: str = LLM_MODEL):
        """
        Initialize OpenAI client.

        Args:
            client: Preconfigured OpenAI client (tests inject a fake)
            model: Chat model to use
        """
        if client is None:

            api_key = os.getenv("OPENAI_API_KEY")

            if not api_key:
                raise ValueError(
                    "OPENAI_API_KEY environment variable not set. "
                    "Please set it before running the application."
                )

            client = OpenAI(api_key=api_key)

        self.client = client
        self.model = model

    def chat(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = LLM_MAX_TOKENS,
        temperature: float = LLM_TEMPERATURE,
        top_p: Optional[float] = None,
    ) -> str:
        """
        Run one completion over role-tagged messages.

        Returns:
            Stripped completion text

        Raises:
            GenerationError: API failure or malformed response
        """
        params = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        if top_p is not None:
            params["top_p"] = top_p

        start = time.time()

        try:
            response = self.client.chat.completions.create(**params)
        except Exception as e:
            logger.error(
                "LLM request failed",
                extra={"model": self.model, "error": str(e)},
            )
            raise GenerationError(
                f"OpenAI API call failed: {e}",
                {"model": self.model},
            ) from e

        text = self._extract_text(response)

        logger.info(
            "LLM provider success",
            extra={
                "provider": "openai",
                "model": self.model,
                "latency_seconds": round(time.time() - start, 3),
            },
        )

        return text

    def _extract_text(self, response) -> str:

        choices = getattr(response, "choices", None)

        if not choices:
            raise GenerationError("Malformed completion response: no choices")

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)

        if not isinstance(content, str) or not content.strip():
            raise GenerationError("Malformed completion response: no text content")

        return content.strip()
