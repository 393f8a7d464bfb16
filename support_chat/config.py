"""
Configuration for the Customer Support RAG Chat service.

This file centralizes all tunable parameters for the retrieval-augmented
conversation pipeline. Deployment-specific values can be overridden through
environment variables; everything else changes here, not in code.
"""

import os


# ========== DOCUMENT PROCESSING ==========

# Chunk configuration (characters, not words)
CHUNK_SIZE = 1000  # soft target per chunk
CHUNK_OVERLAP = 200  # seeds ~CHUNK_OVERLAP / 6 trailing words into the next chunk
MIN_CHUNK_LENGTH = 50  # a shorter trailing fragment is discarded as noise

# Upload limits
MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", "10"))
ALLOWED_FILE_TYPES = ["pdf", "txt", "md", "docx"]
MAX_DOCUMENT_CHARACTERS = 2_000_000  # longer extracted text is rejected, never truncated
MAX_CHUNKS_PER_DOCUMENT = 5000

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "storage/uploads")


# ========== DOCUMENT CATEGORIES ==========

DOCUMENT_CATEGORIES = [
    "general",
    "technical",
    "billing",
    "product",
    "account",
    "returns",
]

INTENT_CATEGORIES = [
    "technical_support",
    "billing",
    "product_info",
    "account",
    "returns_refunds",
    "general",
]

# Intent-side vocabulary → document-side vocabulary (None = no filter)
INTENT_TO_DOCUMENT_CATEGORY = {
    "technical_support": "technical",
    "billing": "billing",
    "product_info": "product",
    "account": "account",
    "returns_refunds": "returns",
    "general": None,
}


# ========== EMBEDDING CONFIGURATION ==========

EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")

EMBEDDING_DIMENSIONS = {
    "text-embedding-ada-002": 1536,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}

EMBED_BATCH_SIZE = 32


# ========== VECTOR INDEX (QDRANT) ==========

QDRANT_URL = os.getenv("QDRANT_URL", "http://localhost:6333")
QDRANT_API_KEY = os.getenv("QDRANT_API_KEY")
QDRANT_COLLECTION = os.getenv("QDRANT_COLLECTION", "customer-support-rag")

# Bounded readiness polling after collection creation
INDEX_READY_MAX_ATTEMPTS = 10
INDEX_READY_BACKOFF_SECONDS = 0.5


# ========== RETRIEVAL CONFIGURATION ==========

TOP_K = 5

# Two call sites, two thresholds
SEARCH_MIN_SCORE = 0.7  # direct document search
CHAT_MIN_SCORE = 0.6  # context for chat answers


# ========== LLM CONFIGURATION ==========

LLM_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Answer generation
LLM_TEMPERATURE = 0.3
LLM_TOP_P = 0.9
LLM_MAX_TOKENS = 500

# Intent classification
INTENT_TEMPERATURE = 0.1
INTENT_MAX_TOKENS = 50
INTENT_PARSE_FALLBACK_CONFIDENCE = 0.5
INTENT_FAILURE_CONFIDENCE = 0.0


# ========== SESSION CONFIGURATION ==========

SESSION_TIMEOUT_SECONDS = 60 * 60  # 1 hour of inactivity
MAX_HISTORY_MESSAGES = 40  # 20 user/assistant exchanges
HISTORY_WINDOW = 10  # messages passed to the generator

WELCOME_MESSAGE = (
    "Hello! I'm your customer support assistant. How can I help you today?"
)

# Confidence = min(w_r * mean retrieval score + w_i * intent confidence, 1.0)
CONFIDENCE_RETRIEVAL_WEIGHT = 0.7
CONFIDENCE_INTENT_WEIGHT = 0.3
CONFIDENCE_FLOOR = 0.1  # used when nothing was retrieved


# ========== OBSERVABILITY ==========

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")

POSTHOG_HOST = os.getenv("POSTHOG_HOST", "https://app.posthog.com")


# ========== DESIGN TRADE-OFFS (DOCUMENTED) ==========

"""
TRADE-OFF DECISIONS:

1. CHUNK_SIZE = 1000 characters, sentence aligned:
   - The cap is soft: one sentence longer than the target stays whole
   - Overlap is word based (~CHUNK_OVERLAP / 6 words) so a chunk never
     starts mid-word

2. CHAT_MIN_SCORE = 0.6 vs SEARCH_MIN_SCORE = 0.7:
   - Chat is allowed slightly weaker context because the generator is told
     to admit missing information
   - Direct search results are shown to users verbatim, so the bar is higher

3. Confidence weights 0.7 / 0.3:
   - Retrieval quality dominates; intent confidence only nudges
   - No retrieved context → fixed floor, whatever the intent says

4. In-memory sessions:
   - Trade-off: simple, fast, no extra infrastructure
   - Limitation: restart loses every conversation
"""
