# tests/conftest.py
import json
import os
import sys
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

# Configure before support_chat.config is imported
os.environ["LOG_DIR"] = ""
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="support_chat_uploads_")
os.environ.pop("POSTHOG_API_KEY", None)
os.environ.pop("METRICS_PATH", None)

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from qdrant_client import QdrantClient  # noqa: E402

from support_chat.api.dependencies import build_services  # noqa: E402
from support_chat.llm.client import LLMClient  # noqa: E402
from support_chat.memory.embedder import Embedder  # noqa: E402
from support_chat.memory.ingestion import IngestionPipeline  # noqa: E402
from support_chat.memory.qdrant_client import QdrantVectorDB  # noqa: E402
from support_chat.memory.store import VectorStore  # noqa: E402


DIMENSION = 1536

# Each topic keyword owns one axis; texts sharing a topic have cosine 1.0
TOPICS = [
    "horario",
    "hours",
    "invoice",
    "password",
    "refund",
    "shipping",
    "warranty",
]


def topic_vector(text: str) -> list:
    """One-hot embedding on the first topic keyword found in the text."""
    lowered = text.lower()
    vector = [0.0] * DIMENSION
    for axis, topic in enumerate(TOPICS):
        if topic in lowered:
            vector[axis] = 1.0
            return vector
    vector[DIMENSION - 1] = 1.0
    return vector


# ============================================================
# FAKE OPENAI CLIENT
# ============================================================

class FakeEmbeddings:
    """Stands in for client.embeddings; records every batch it receives."""

    def __init__(self, embed_fn=topic_vector):
        self.embed_fn = embed_fn
        self.calls = []
        self.error = None

    def create(self, model, input):
        self.calls.append(list(input))
        if self.error:
            raise self.error
        return SimpleNamespace(
            data=[
                SimpleNamespace(index=i, embedding=self.embed_fn(text))
                for i, text in enumerate(input)
            ]
        )


class FakeCompletions:
    """Stands in for client.chat.completions; replies come from `responder`."""

    def __init__(self, responder):
        self.responder = responder
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        content = self.responder(kwargs)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        )


class FakeOpenAI:

    def __init__(self, responder=None, embed_fn=topic_vector):
        self.embeddings = FakeEmbeddings(embed_fn)
        self.chat = SimpleNamespace(
            completions=FakeCompletions(responder or default_responder)
        )


def is_intent_request(kwargs) -> bool:
    return "Classify the following" in kwargs["messages"][0]["content"]


def default_responder(kwargs):
    if is_intent_request(kwargs):
        return json.dumps({"category": "general", "confidence": 0.9})
    return "  Our support team is available Monday to Friday.  "


class FakeClock:

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def embedder(fake_openai):
    return Embedder(client=fake_openai, model="text-embedding-3-small")


@pytest.fixture
def llm_client(fake_openai):
    return LLMClient(client=fake_openai, model="gpt-4o-mini")


@pytest.fixture
def qdrant():
    """In-process Qdrant; every test gets its own collection."""
    return QdrantVectorDB(
        dim=DIMENSION,
        client=QdrantClient(":memory:"),
        collection=f"test-{uuid.uuid4().hex[:8]}",
        sleep=lambda seconds: None,
    )


@pytest.fixture
def store(qdrant):
    return VectorStore(qdrant)


@pytest.fixture
def pipeline(embedder, store):
    return IngestionPipeline(embedder, store)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def services(embedder, store, llm_client, clock):
    return build_services(embedder, store, llm_client, clock=clock)


@pytest.fixture
def client(services):
    """FastAPI test client wired to the fake providers."""
    from fastapi.testclient import TestClient

    from support_chat.api.dependencies import get_services, reset_services
    from support_chat.main import app
    from support_chat.observability.metrics import metrics_tracker

    metrics_tracker.reset()
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()
    reset_services()


@pytest.fixture
def ingest_text(pipeline):
    """Ingest a plain-text document and return its IngestionResult."""
    from support_chat.models import DocumentMetadata

    def _ingest(text, category="general", title=None, document_id=None, filename="faq.txt"):
        return pipeline.ingest(
            text.encode("utf-8"),
            "txt",
            metadata=DocumentMetadata(
                document_id=document_id,
                title=title,
                category=category,
            ),
            filename=filename,
        )

    return _ingest
