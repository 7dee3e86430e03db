"""Tests for the LiteLLM client wrapper."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from vizassist.rag.llm_client import (
    api_key_env,
    complete,
    embed,
    provider_of,
    validate_api_key,
)


# ------------------------------------------------------------------
# validate_api_key
# ------------------------------------------------------------------


def test_validate_api_key_raises_if_missing(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
        validate_api_key("openai/gpt-4o")


def test_validate_api_key_passes_if_set(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    validate_api_key("openai/gpt-4o")  # should not raise


def test_validate_api_key_ollama_no_key_required():
    validate_api_key("ollama/llama3")


def test_validate_api_key_bare_model_treated_as_openai(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
        validate_api_key("gpt-4o")


def test_validate_api_key_unknown_provider_uses_prefix(monkeypatch):
    monkeypatch.delenv("TOGETHER_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="TOGETHER_API_KEY"):
        validate_api_key("together/some-model")


def test_provider_of_and_env_names():
    assert provider_of("Anthropic/claude-3-5-sonnet") == "anthropic"
    assert provider_of("text-embedding-ada-002") == "openai"
    assert api_key_env("anthropic") == "ANTHROPIC_API_KEY"
    assert api_key_env("ollama") is None


# ------------------------------------------------------------------
# complete()
# ------------------------------------------------------------------


def test_complete_returns_content():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = "Revenue peaked in March."

    with patch("vizassist.rag.llm_client.litellm.completion", return_value=mock_response):
        result = complete("openai/gpt-4o", [{"role": "user", "content": "Hi"}])

    assert result == "Revenue peaked in March."


def test_complete_returns_empty_string_on_none_content():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = None

    with patch("vizassist.rag.llm_client.litellm.completion", return_value=mock_response):
        result = complete("openai/gpt-4o", [{"role": "user", "content": "Hi"}])

    assert result == ""


def test_complete_passes_params_to_litellm():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = "ok"

    with patch("vizassist.rag.llm_client.litellm.completion", return_value=mock_response) as mock_c:
        complete(
            "openai/gpt-4o-mini",
            [{"role": "user", "content": "test"}],
            max_tokens=512,
            temperature=0.5,
            timeout=12.0,
        )

    call_kwargs = mock_c.call_args.kwargs
    assert call_kwargs["model"] == "openai/gpt-4o-mini"
    assert call_kwargs["max_tokens"] == 512
    assert call_kwargs["temperature"] == 0.5
    assert call_kwargs["timeout"] == 12.0
    assert call_kwargs["num_retries"] == 2


# ------------------------------------------------------------------
# embed()
# ------------------------------------------------------------------


def test_embed_returns_vector():
    mock_response = MagicMock()
    mock_response.data = [{"embedding": [0.1, 0.2, 0.3]}]

    with patch("vizassist.rag.llm_client.litellm.embedding", return_value=mock_response):
        result = embed("openai/text-embedding-ada-002", "hello")

    assert result == [0.1, 0.2, 0.3]


def test_embed_passes_text_as_list():
    mock_response = MagicMock()
    mock_response.data = [{"embedding": [0.0]}]

    with patch("vizassist.rag.llm_client.litellm.embedding", return_value=mock_response) as mock_e:
        embed("openai/text-embedding-ada-002", "test text", timeout=5.0)

    assert mock_e.call_args.kwargs["input"] == ["test text"]
    assert mock_e.call_args.kwargs["timeout"] == 5.0
