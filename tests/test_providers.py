# tests/test_providers.py
from types import SimpleNamespace

import numpy as np
import pytest

from support_chat.exceptions import EmbeddingProviderError, GenerationError
from support_chat.llm.client import LLMClient
from support_chat.memory.embedder import Embedder

from conftest import DIMENSION, FakeOpenAI


class TestEmbedder:

    def test_batch_is_index_aligned(self, embedder):
        """Row i must be the embedding of texts[i]."""
        texts = ["refund policy", "invoice copy", "password reset", "opening hours"]

        vectors = embedder.embed(texts)

        assert vectors.shape == (4, DIMENSION)
        assert vectors.dtype == np.float32
        assert np.argmax(vectors[0]) != np.argmax(vectors[1])
        for text, row in zip(texts, vectors):
            assert np.allclose(row, embedder.embed_one(text))

    def test_out_of_order_items_are_reordered_by_index(self):
        fake = FakeOpenAI()

        def one_hot(axis):
            vector = [0.0] * DIMENSION
            vector[axis] = 1.0
            return vector

        def shuffled_create(model, input):
            items = [
                SimpleNamespace(index=i, embedding=one_hot(i))
                for i in range(len(input))
            ]
            return SimpleNamespace(data=list(reversed(items)))

        fake.embeddings.create = shuffled_create
        embedder = Embedder(client=fake, model="text-embedding-3-small")

        vectors = embedder.embed(["a", "b", "c"])

        assert [int(np.argmax(row)) for row in vectors] == [0, 1, 2]

    def test_vectors_are_normalized(self, embedder):
        vectors = embedder.embed(["shipping times", "something else"])

        assert np.allclose(np.linalg.norm(vectors, axis=1), 1.0)

    def test_sub_batches_preserve_order(self, embedder, fake_openai):
        texts = [f"text {i} refund" if i % 2 else f"text {i}" for i in range(7)]

        vectors = embedder.embed(texts, batch_size=3)

        assert len(fake_openai.embeddings.calls) == 3
        assert [t for call in fake_openai.embeddings.calls for t in call] == texts
        assert vectors.shape == (7, DIMENSION)

    def test_empty_input_makes_no_call(self, embedder, fake_openai):
        vectors = embedder.embed([])

        assert vectors.shape == (0, DIMENSION)
        assert fake_openai.embeddings.calls == []

    def test_provider_failure_raises_embedding_error(self, embedder, fake_openai):
        fake_openai.embeddings.error = RuntimeError("quota exceeded")

        with pytest.raises(EmbeddingProviderError, match="quota exceeded"):
            embedder.embed(["hello"])

    def test_wrong_item_count_is_rejected(self):
        fake = FakeOpenAI()
        fake.embeddings.create = lambda model, input: SimpleNamespace(data=[])

        embedder = Embedder(client=fake, model="text-embedding-3-small")

        with pytest.raises(EmbeddingProviderError, match="item count"):
            embedder.embed(["one", "two"])

    def test_wrong_dimension_is_rejected(self):
        fake = FakeOpenAI(embed_fn=lambda text: [0.1, 0.2, 0.3])

        embedder = Embedder(client=fake, model="text-embedding-3-small")

        with pytest.raises(EmbeddingProviderError, match="vector shape"):
            embedder.embed(["one"])

    def test_unknown_model_rejected(self, fake_openai):
        with pytest.raises(ValueError):
            Embedder(client=fake_openai, model="not-a-model")

    def test_dimension_follows_model(self, fake_openai):
        assert Embedder(client=fake_openai, model="text-embedding-3-large").get_dimension() == 3072


class TestLLMClient:

    def test_chat_returns_stripped_text(self, llm_client, fake_openai):
        text = llm_client.chat(
            [{"role": "user", "content": "Hi"}],
            max_tokens=100,
            temperature=0.3,
            top_p=0.9,
        )

        assert text == "Our support team is available Monday to Friday."

        call = fake_openai.chat.completions.calls[-1]
        assert call["max_tokens"] == 100
        assert call["temperature"] == 0.3
        assert call["top_p"] == 0.9
        assert call["model"] == "gpt-4o-mini"

    def test_top_p_omitted_when_not_given(self, llm_client, fake_openai):
        llm_client.chat([{"role": "user", "content": "Hi"}])

        assert "top_p" not in fake_openai.chat.completions.calls[-1]

    def test_provider_failure_raises_generation_error(self):
        def broken(kwargs):
            raise ConnectionError("timeout")

        client = LLMClient(client=FakeOpenAI(responder=broken))

        with pytest.raises(GenerationError, match="timeout"):
            client.chat([{"role": "user", "content": "Hi"}])

    def test_missing_content_is_rejected(self):
        client = LLMClient(client=FakeOpenAI(responder=lambda kwargs: None))

        with pytest.raises(GenerationError, match="no text content"):
            client.chat([{"role": "user", "content": "Hi"}])

    def test_no_choices_is_rejected(self):
        fake = FakeOpenAI()
        fake.chat.completions.create = lambda **kwargs: SimpleNamespace(choices=[])

        with pytest.raises(GenerationError, match="no choices"):
            LLMClient(client=fake).chat([{"role": "user", "content": "Hi"}])

    def test_missing_api_key_fails_fast(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            LLMClient()

