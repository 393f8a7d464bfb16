# tests/test_intent.py
import pytest

from support_chat.exceptions import GenerationError
from support_chat.llm.client import LLMClient
from support_chat.llm.intent import IntentClassifier

from conftest import FakeOpenAI


def classifier_replying(content):
    fake = FakeOpenAI(responder=lambda kwargs: content)
    return IntentClassifier(LLMClient(client=fake)), fake


class TestClassify:

    def test_valid_json(self):
        classifier, _ = classifier_replying('{"category": "billing", "confidence": 0.92}')

        result = classifier.classify("Where is my invoice?")

        assert result.category == "billing"
        assert result.confidence == pytest.approx(0.92)

    def test_json_inside_code_fence(self):
        classifier, _ = classifier_replying(
            '```json\n{"category": "account", "confidence": 0.8}\n```'
        )

        result = classifier.classify("I cannot log in")

        assert result.category == "account"
        assert result.confidence == pytest.approx(0.8)

    def test_request_parameters(self):
        classifier, fake = classifier_replying('{"category": "general", "confidence": 0.7}')

        classifier.classify('My "router" keeps rebooting')

        call = fake.chat.completions.calls[-1]
        assert call["temperature"] == 0.1
        assert call["max_tokens"] == 50

        prompt = call["messages"][0]["content"]
        assert call["messages"][0]["role"] == "user"
        assert "Classify the following" in prompt
        assert "returns_refunds" in prompt
        assert "My 'router' keeps rebooting" in prompt

    def test_provider_failure_falls_back_with_zero_confidence(self):
        def broken(kwargs):
            raise ConnectionError("provider down")

        classifier = IntentClassifier(LLMClient(client=FakeOpenAI(responder=broken)))

        result = classifier.classify("help")

        assert result.category == "general"
        assert result.confidence == 0.0

    def test_never_raises_on_client_errors(self):
        class BrokenClient:
            def chat(self, *args, **kwargs):
                raise GenerationError("empty")

        result = IntentClassifier(BrokenClient()).classify("help")

        assert result.category == "general"
        assert result.confidence == 0.0


class TestParse:

    @pytest.mark.parametrize(
        "raw",
        [
            "billing",
            "{not json}",
            "[]",
            '{"category": "shipping", "confidence": 0.9}',
            '{"category": "billing", "confidence": 1.7}',
            '{"category": "billing"}',
        ],
    )
    def test_malformed_output_falls_back(self, raw):
        result = IntentClassifier.parse(raw)

        assert result.category == "general"
        assert result.confidence == 0.5

    def test_confidence_bounds_are_inclusive(self):
        assert IntentClassifier.parse('{"category": "product_info", "confidence": 1}').confidence == 1.0
        assert IntentClassifier.parse('{"category": "product_info", "confidence": 0}').confidence == 0.0
