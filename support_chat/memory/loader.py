# support_chat/memory/loader.py

"""
Text extraction for uploaded support documents.

Architecture contract preserved:
loader → chunker → embedder → vector_store

Supports:
- Plain text and markdown (UTF-8 passthrough)
- PDF files (pypdf)
- Word documents (python-docx)

Every failure surfaces as ExtractionError; an empty result is a failure too.
"""

import io
import logging
import os

from docx import Document
from pypdf import PdfReader

from support_chat.config import ALLOWED_FILE_TYPES, MAX_DOCUMENT_CHARACTERS
from support_chat.exceptions import ExtractionError

logger = logging.getLogger(__name__)


# ============================================================
# SAFETY: CHARACTER LIMIT
# ============================================================

def enforce_character_limit(text: str, file_type: str) -> str:
    """Reject text the index would only see part of."""

    if len(text) > MAX_DOCUMENT_CHARACTERS:
        raise ExtractionError(
            "Document too large to index",
            {
                "file_type": file_type,
                "characters": len(text),
                "max_allowed": MAX_DOCUMENT_CHARACTERS,
            },
        )

    return text


def file_type_from_filename(filename: str) -> str:
    """'Manual.PDF' → 'pdf'."""
    return os.path.splitext(filename)[1].lower().lstrip(".")


# ============================================================
# LOADERS
# ============================================================

def load_pdf_text(file_bytes: bytes) -> str:

    reader = PdfReader(io.BytesIO(file_bytes))

    parts = []

    for page in reader.pages:

        text = page.extract_text()

        if text:
            parts.append(text)

    return "\n".join(parts)


def load_docx_text(file_bytes: bytes) -> str:

    document = Document(io.BytesIO(file_bytes))

    return "\n".join(p.text for p in document.paragraphs if p.text)


def load_plain_text(file_bytes: bytes) -> str:
    return file_bytes.decode("utf-8")


_LOADERS = {
    "pdf": load_pdf_text,
    "docx": load_docx_text,
    "txt": load_plain_text,
    "md": load_plain_text,
}


# ============================================================
# MAIN ENTRY POINT (ARCHITECTURE CONTRACT)
# ============================================================

def extract_text(file_bytes: bytes, file_type: str) -> str:

    file_type = file_type.lower().lstrip(".")

    if file_type not in ALLOWED_FILE_TYPES or file_type not in _LOADERS:
        raise ExtractionError(
            f"Unsupported file type: {file_type}",
            {"supported": ALLOWED_FILE_TYPES},
        )

    try:

        text = _LOADERS[file_type](file_bytes)

    except Exception as e:

        logger.error(
            "Text extraction failed",
            extra={"file_type": file_type, "error": str(e)},
        )

        raise ExtractionError(
            f"Could not read {file_type} document",
            {"file_type": file_type, "error": str(e)},
        ) from e

    if not text or not text.strip():
        raise ExtractionError(
            "No extractable text in document",
            {"file_type": file_type},
        )

    return enforce_character_limit(text, file_type)
