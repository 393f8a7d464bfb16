# support_chat/workflow/conversation.py
import logging
from typing import Sequence

from support_chat.config import (
    HISTORY_WINDOW,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    LLM_TOP_P,
)
from support_chat.models import ChatMessage, SearchResult
from support_chat.prompts.prompt_builder import build_support_prompt

logger = logging.getLogger(__name__)


def generate_answer(
    query: str,
    context_chunks: Sequence[SearchResult],
    history: Sequence[ChatMessage],
    llm_client,
    history_window: int = HISTORY_WINDOW,
    max_tokens: int = LLM_MAX_TOKENS,
    temperature: float = LLM_TEMPERATURE,
    top_p: float = LLM_TOP_P,
) -> str:
    """
    Produce one grounded answer from retrieved context and recent history.

    The instruction block goes in as the system turn and the raw query as
    the user turn. GenerationError from the client propagates: there is no
    canned fallback answer.
    """
    system_prompt = build_support_prompt(
        context_chunks,
        history,
        window=history_window,
    )

    logger.info(
        "Answer generation started",
        extra={
            "context_chunks": len(context_chunks),
            "history_messages": min(len(history), history_window),
            "prompt_length": len(system_prompt),
        },
    )

    answer = llm_client.chat(
        [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": query},
        ],
        max_tokens=max_tokens,
        temperature=temperature,
        top_p=top_p,
    )

    return answer.strip()
