# support_chat/memory/chunker.py

import logging
import re
from typing import List

from support_chat.config import (
    CHUNK_SIZE,
    CHUNK_OVERLAP,
    MIN_CHUNK_LENGTH,
)

logger = logging.getLogger(__name__)

# A sentence is a run of non-terminal characters plus its terminal punctuation
_SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]*")

# Roughly six characters per word, space included
_CHARS_PER_WORD = 6


def split_sentences(text: str) -> List[str]:
    """Split text into stripped, non-empty sentence units."""
    sentences = []

    for match in _SENTENCE_PATTERN.finditer(text):

        sentence = " ".join(match.group(0).split())

        if sentence:
            sentences.append(sentence)

    return sentences


def _overlap_tail(chunk: str, overlap: int) -> List[str]:
    """
    Trailing words of a closed chunk used to seed the next one.

    Takes overlap // 6 words, then drops leading words until the tail
    fits inside `overlap` characters.
    """

    word_count = overlap // _CHARS_PER_WORD

    if word_count <= 0:
        return []

    tail = chunk.split(" ")[-word_count:]

    while tail and len(" ".join(tail)) > overlap:
        tail = tail[1:]

    return tail


def chunk_text(
    text: str,
    size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
    min_length: int = MIN_CHUNK_LENGTH,
) -> List[str]:
    """
    Sentence-aligned chunker with word overlap.

    Architecture contract:
    loader → chunker → embedder → vector_store

    Guarantees:
    • chunks are built from whole sentences
    • the size cap is soft: a single oversized sentence stays whole
    • each chunk after the first starts with at most `overlap` characters
      copied from the end of the previous chunk
    • a short run of sentences is carried into the next chunk, so only a
      trailing fragment shorter than `min_length` can be dropped
    """

    # ============================================================
    # SAFETY CHECKS
    # ============================================================

    if size <= 0:
        raise ValueError(f"Invalid chunk size: {size}")

    if overlap < 0:
        raise ValueError(f"Invalid chunk overlap: {overlap}")

    if overlap >= size:
        raise ValueError(
            f"Overlap must be smaller than chunk size "
            f"(overlap={overlap}, size={size})"
        )

    if not text or not text.strip():
        logger.warning("Chunking skipped: empty text")
        return []

    sentences = split_sentences(text)

    # ============================================================
    # GREEDY ACCUMULATION
    # ============================================================

    chunks: List[str] = []

    current = ""

    for sentence in sentences:

        # A chunk below the floor stays open and absorbs the next sentence
        if (
            current
            and len(current) >= min_length
            and len(current) + len(sentence) > size
        ):

            chunks.append(current)

            current = " ".join(_overlap_tail(current, overlap) + [sentence])

        else:

            current = f"{current} {sentence}" if current else sentence

    if current:
        chunks.append(current)

    kept = [chunk for chunk in chunks if len(chunk) >= min_length]

    # ============================================================
    # OBSERVABILITY
    # ============================================================

    logger.info(
        "Chunking completed",
        extra={
            "total_characters": len(text),
            "sentences": len(sentences),
            "chunk_size": size,
            "overlap": overlap,
            "chunks_created": len(kept),
            "chunks_discarded": len(chunks) - len(kept),
        },
    )

    return kept
