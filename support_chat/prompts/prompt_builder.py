# support_chat/prompts/prompt_builder.py

from typing import List, Sequence

from support_chat.config import HISTORY_WINDOW
from support_chat.models import ChatMessage, SearchResult
from support_chat.prompts.system_prompts import (
    ANSWER_INSTRUCTION,
    INSUFFICIENT_CONTEXT_NOTE,
    INTENT_CLASSIFICATION_PROMPT,
    SUPPORT_SYSTEM_PROMPT,
)


def build_context_block(context_chunks: Sequence[SearchResult]) -> str:
    """Render retrieved chunks as 'Document: <title>' / 'Content: <text>' pairs."""

    if not context_chunks:
        return INSUFFICIENT_CONTEXT_NOTE

    parts = []

    for chunk in context_chunks:

        title = (
            chunk.metadata.get("title")
            or chunk.metadata.get("filename")
            or "Untitled"
        )
        text = chunk.text or chunk.metadata.get("text", "")

        parts.append(f"Document: {title}\nContent: {text}")

    return "\n\n".join(parts)


def build_history_block(
    history: Sequence[ChatMessage],
    window: int = HISTORY_WINDOW,
) -> str:

    recent: List[ChatMessage] = list(history)[-window:] if window > 0 else []

    return "\n".join(
        f"{'User' if msg.role == 'user' else 'Assistant'}: {msg.content}"
        for msg in recent
    )


def build_support_prompt(
    context_chunks: Sequence[SearchResult],
    history: Sequence[ChatMessage],
    window: int = HISTORY_WINDOW,
) -> str:
    """
    Build the system instruction for one grounded answer.

    Policy, then knowledge base context, then recent history (omitted
    when the conversation has none).
    """

    sections = [
        SUPPORT_SYSTEM_PROMPT,
        f"KNOWLEDGE BASE CONTEXT:\n{build_context_block(context_chunks)}",
    ]

    history_block = build_history_block(history, window)

    if history_block:
        sections.append(f"RECENT CONVERSATION HISTORY:\n{history_block}")

    sections.append(ANSWER_INSTRUCTION)

    return "\n\n".join(sections)


def build_intent_prompt(query: str) -> str:
    return INTENT_CLASSIFICATION_PROMPT.format(query=query.replace('"', "'"))
