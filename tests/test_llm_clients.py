from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest
import requests

from src.application.errors import AnalysisFailedError
from src.application.schemas import GenerationConfig
from src.infrastructure.llm.gemini_client import GeminiLLMAdapter
from src.infrastructure.llm.mistral_client import MistralLLMAdapter


CONFIG = GenerationConfig(temperature=0.4, top_p=0.8, top_k=40, max_output_tokens=1024)


def _gemini_settings(api_key="test-key"):
    return SimpleNamespace(gemini_api_key=api_key, gemini_model="gemini-2.0-flash", request_timeout_seconds=5)


def _mistral_settings(api_key=None):
    return SimpleNamespace(mistral_api_key=api_key, mistral_model="mistral-large-latest", request_timeout_seconds=5)


def _response(payload):
    resp = Mock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


class TestGeminiAdapter:
    """Gemini REST adapter."""

    def test_generate_joins_text_parts(self):
        payload = {"candidates": [{"content": {"parts": [{"text": "POSSIBLE "}, {"text": "CONDITIONS: "}]}}]}
        with patch("src.infrastructure.llm.gemini_client.requests.post", return_value=_response(payload)) as post:
            text = GeminiLLMAdapter(settings=_gemini_settings()).generate("prompt", CONFIG)

        assert text == "POSSIBLE CONDITIONS:"
        args, kwargs = post.call_args
        assert args[0].endswith("/gemini-2.0-flash:generateContent")
        assert kwargs["params"] == {"key": "test-key"}
        assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "prompt"
        assert kwargs["json"]["generationConfig"] == {
            "temperature": 0.4,
            "topP": 0.8,
            "topK": 40,
            "maxOutputTokens": 1024,
        }

    def test_missing_key(self):
        with patch("src.infrastructure.llm.gemini_client.requests.post") as post:
            with pytest.raises(AnalysisFailedError):
                GeminiLLMAdapter(settings=_gemini_settings(api_key=None)).generate("prompt", CONFIG)
        post.assert_not_called()

    def test_timeout(self):
        with patch("src.infrastructure.llm.gemini_client.requests.post", side_effect=requests.Timeout()):
            with pytest.raises(AnalysisFailedError, match="timed out"):
                GeminiLLMAdapter(settings=_gemini_settings()).generate("prompt", CONFIG)

    def test_http_error(self):
        resp = Mock()
        resp.raise_for_status.side_effect = requests.HTTPError("500")
        with patch("src.infrastructure.llm.gemini_client.requests.post", return_value=resp):
            with pytest.raises(AnalysisFailedError):
                GeminiLLMAdapter(settings=_gemini_settings()).generate("prompt", CONFIG)

    def test_blocked_prompt(self):
        payload = {"promptFeedback": {"blockReason": "SAFETY"}}
        with patch("src.infrastructure.llm.gemini_client.requests.post", return_value=_response(payload)):
            with pytest.raises(AnalysisFailedError):
                GeminiLLMAdapter(settings=_gemini_settings()).generate("prompt", CONFIG)


class FakeChat:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    def complete(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _mistral_with(chat):
    adapter = MistralLLMAdapter(settings=_mistral_settings())
    adapter._client = SimpleNamespace(chat=chat)
    return adapter


class TestMistralAdapter:
    """Mistral chat adapter."""

    def test_missing_key(self):
        adapter = MistralLLMAdapter(settings=_mistral_settings())
        with pytest.raises(AnalysisFailedError):
            adapter.generate("prompt", CONFIG)

    def test_generate(self):
        chat = FakeChat(content="CLINICAL ASSESSMENT: fine")
        text = _mistral_with(chat).generate("prompt", CONFIG)

        assert text == "CLINICAL ASSESSMENT: fine"
        assert chat.kwargs["model"] == "mistral-large-latest"
        assert chat.kwargs["messages"] == [{"role": "user", "content": "prompt"}]
        assert chat.kwargs["max_tokens"] == 1024
        assert "top_k" not in chat.kwargs

    def test_content_chunks(self):
        chunks = [SimpleNamespace(text="Hello "), SimpleNamespace(text="there")]
        assert _mistral_with(FakeChat(content=chunks)).generate("prompt", CONFIG) == "Hello there"

    def test_call_failure(self):
        with pytest.raises(AnalysisFailedError):
            _mistral_with(FakeChat(error=RuntimeError("boom"))).generate("prompt", CONFIG)
