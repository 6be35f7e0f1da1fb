"""Tests for inference providers, the inference client, and the embedding provider.

No network: HTTP sessions are MagicMock objects.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from bimqa.embeddings import OpenAIEmbeddingProvider
from bimqa.errors import ConfigurationError, InferenceServiceError
from bimqa.providers import (
    InferenceClient,
    OllamaProvider,
    OpenAICompatibleProvider,
    provider_from_settings,
)
from bimqa.providers.client import strip_code_fences
from bimqa.settings import Settings


def _provider(*responses) -> MagicMock:
    provider = MagicMock()
    provider.generate.side_effect = list(responses)
    return provider


def _response(payload: dict) -> MagicMock:
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


# ---------------------------------------------------------------------------
# InferenceClient
# ---------------------------------------------------------------------------


class TestStripCodeFences:
    def test_json_fence(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self) -> None:
        assert strip_code_fences("```\n[1]\n```") == "[1]"

    def test_no_fence(self) -> None:
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestInferenceClient:
    def test_structured_parses_json(self) -> None:
        provider = _provider('{"task": "count"}')
        assert InferenceClient(provider).infer_structured("p") == {"task": "count"}

    def test_structured_adds_instruction_and_json_mode(self) -> None:
        provider = _provider("{}")
        InferenceClient(provider).infer_structured("question?")
        args, kwargs = provider.generate.call_args
        assert args[0].startswith("question?")
        assert "Return ONLY valid JSON" in args[0]
        assert kwargs["json_mode"] is True
        assert kwargs["temperature"] == 0.1

    def test_structured_strips_fences(self) -> None:
        provider = _provider('```json\n{"a": 2}\n```')
        assert InferenceClient(provider).infer_structured("p") == {"a": 2}

    def test_structured_retries_then_succeeds(self) -> None:
        provider = _provider(None, "not json", '{"ok": true}')
        assert InferenceClient(provider).infer_structured("p") == {"ok": True}
        assert provider.generate.call_count == 3

    def test_structured_gives_up(self) -> None:
        provider = _provider("nope", "nope", "nope", "never reached")
        with pytest.raises(InferenceServiceError):
            InferenceClient(provider).infer_structured("p")
        assert provider.generate.call_count == 3

    def test_structured_custom_retries(self) -> None:
        provider = _provider(None)
        with pytest.raises(InferenceServiceError):
            InferenceClient(provider, max_retries=0).infer_structured("p")
        assert provider.generate.call_count == 1

    def test_structured_failure_reports_last_reason(self) -> None:
        provider = _provider(None, "nope")
        with pytest.raises(InferenceServiceError, match="after 2 attempts .unparseable output"):
            InferenceClient(provider, max_retries=1).infer_structured("p")

    def test_text(self) -> None:
        provider = _provider("  Có 15 cửa.  ")
        assert InferenceClient(provider).infer_text("p") == "Có 15 cửa."

    def test_text_no_retry(self) -> None:
        provider = _provider(None, "late")
        with pytest.raises(InferenceServiceError):
            InferenceClient(provider).infer_text("p")
        assert provider.generate.call_count == 1


# ---------------------------------------------------------------------------
# Concrete providers
# ---------------------------------------------------------------------------


class TestOllamaProvider:
    def test_unreachable_returns_none(self) -> None:
        provider = OllamaProvider(base_url="http://127.0.0.1:1", timeout=0.5)
        assert provider.is_available() is False
        assert provider.generate("hello") is None


class TestOpenAICompatibleProvider:
    def test_requires_key(self) -> None:
        with pytest.raises(ConfigurationError):
            OpenAICompatibleProvider("")

    def test_generate(self) -> None:
        session = MagicMock()
        session.post.return_value = _response({"choices": [{"message": {"content": '{"a": 1}'}}]})
        provider = OpenAICompatibleProvider("k", base_url="http://llm/v1/", model="m", session=session)
        assert provider.generate("p", json_mode=True) == '{"a": 1}'
        url = session.post.call_args.args[0]
        payload = session.post.call_args.kwargs["json"]
        assert url == "http://llm/v1/chat/completions"
        assert payload["model"] == "m"
        assert payload["response_format"] == {"type": "json_object"}

    def test_transport_error_returns_none(self) -> None:
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        provider = OpenAICompatibleProvider("k", session=session)
        assert provider.generate("p") is None


class TestProviderFromSettings:
    def test_ollama(self) -> None:
        provider = provider_from_settings(Settings(llm_provider="ollama", ollama_model="llama3"))
        assert isinstance(provider, OllamaProvider)
        assert provider.model == "llama3"

    def test_openai(self) -> None:
        provider = provider_from_settings(Settings(llm_provider="openai", openai_api_key="k"))
        assert isinstance(provider, OpenAICompatibleProvider)

    def test_openai_without_key(self) -> None:
        with pytest.raises(ConfigurationError):
            provider_from_settings(Settings(llm_provider="openai"))

    def test_unknown(self) -> None:
        with pytest.raises(ConfigurationError):
            provider_from_settings(Settings(llm_provider="carrier-pigeon"))


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------


class TestOpenAIEmbeddingProvider:
    def test_requires_key(self) -> None:
        with pytest.raises(ConfigurationError):
            OpenAIEmbeddingProvider(None)

    def test_batches_and_alignment(self) -> None:
        session = MagicMock()

        def post(url, headers, json, timeout):
            # Reply out of order to check index-based alignment
            data = [{"index": i, "embedding": [float(len(t))]} for i, t in enumerate(json["input"])]
            return _response({"data": list(reversed(data))})

        session.post.side_effect = post
        provider = OpenAIEmbeddingProvider("k", batch_size=2, batch_delay=0, session=session)
        out = provider.embed_many(["a", "", "bbb", "cc", None])
        assert out == [[1.0], None, [3.0], [2.0], None]
        assert session.post.call_count == 2
        assert session.post.call_args_list[0].kwargs["json"]["dimensions"] == 512

    def test_embed_single(self) -> None:
        session = MagicMock()
        session.post.return_value = _response({"data": [{"index": 0, "embedding": [0.5, 0.5]}]})
        provider = OpenAIEmbeddingProvider("k", session=session)
        assert provider.embed("cửa") == [0.5, 0.5]
        assert provider.embed("   ") is None

    def test_failure_raises(self) -> None:
        session = MagicMock()
        session.post.side_effect = requests.Timeout("slow")
        provider = OpenAIEmbeddingProvider("k", session=session)
        with pytest.raises(InferenceServiceError):
            provider.embed_many(["x"])

    def test_malformed_response_raises(self) -> None:
        session = MagicMock()
        session.post.return_value = _response({"data": [{"index": 0}]})
        provider = OpenAIEmbeddingProvider("k", session=session)
        with pytest.raises(InferenceServiceError):
            provider.embed("x")
