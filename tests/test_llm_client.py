"""
Tests for the chat-completion and embedding clients
"""
from unittest.mock import Mock, patch

import pytest

from medtutor.errors import ConfigurationError, UpstreamError
from medtutor.llm.client import LLMClient
from medtutor.llm.embeddings import EmbeddingClient


def completion(content, role="assistant"):
    response = Mock()
    response.choices = [Mock(message=Mock(content=content, role=role))]
    return response


class TestLLMClient:
    """Test LLMClient behaviour"""

    def setup_method(self):
        with patch("medtutor.llm.client.OpenAI") as mock_openai:
            self.mock_client = Mock()
            mock_openai.return_value = self.mock_client
            self.llm = LLMClient(api_key="test-key", model="gpt-4o-mini", temperature=0.3)
            self.llm._ensure_client()

    def test_unconfigured_client(self):
        llm = LLMClient(api_key=None)
        assert not llm.is_configured
        with pytest.raises(ConfigurationError):
            llm.chat([{"role": "user", "content": "hi"}])

    def test_chat_returns_message(self):
        self.mock_client.chat.completions.create.return_value = completion("Which comorbidities matter?")

        reply = self.llm.chat([{"role": "user", "content": "I would start metformin"}])

        assert reply == {"role": "assistant", "content": "Which comorbidities matter?"}
        call_args = self.mock_client.chat.completions.create.call_args[1]
        assert call_args["model"] == "gpt-4o-mini"
        assert call_args["temperature"] == 0.3
        assert "response_format" not in call_args

    def test_chat_temperature_override(self):
        self.mock_client.chat.completions.create.return_value = completion("ok")
        self.llm.chat([{"role": "user", "content": "x"}], temperature=0.7)
        assert self.mock_client.chat.completions.create.call_args[1]["temperature"] == 0.7

    def test_provider_failure_is_upstream_error(self):
        self.mock_client.chat.completions.create.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(UpstreamError) as exc_info:
            self.llm.chat([{"role": "user", "content": "x"}])
        assert "quota" not in exc_info.value.message

    def test_no_retries(self):
        self.mock_client.chat.completions.create.side_effect = RuntimeError("boom")
        with pytest.raises(UpstreamError):
            self.llm.chat([{"role": "user", "content": "x"}])
        assert self.mock_client.chat.completions.create.call_count == 1

    def test_generate_with_system_prompt(self):
        self.mock_client.chat.completions.create.return_value = completion("A case")

        assert self.llm.generate("Make a case", system_prompt="You are an educator") == "A case"
        messages = self.mock_client.chat.completions.create.call_args[1]["messages"]
        assert messages == [
            {"role": "system", "content": "You are an educator"},
            {"role": "user", "content": "Make a case"},
        ]

    def test_generate_json(self):
        self.mock_client.chat.completions.create.return_value = completion('{"score": 0.5}')

        assert self.llm.generate_json("Grade this") == {"score": 0.5}
        call_args = self.mock_client.chat.completions.create.call_args[1]
        assert call_args["response_format"] == {"type": "json_object"}

    @pytest.mark.parametrize("content", ["not json", "[1, 2]", ""])
    def test_generate_json_rejects_non_objects(self, content):
        self.mock_client.chat.completions.create.return_value = completion(content)
        with pytest.raises(UpstreamError):
            self.llm.generate_json("Grade this")

    def test_connection_error(self):
        self.mock_client.models.list.side_effect = RuntimeError("unreachable")
        result = self.llm.test_connection()
        assert result["status"] == "error"
        assert "unreachable" in result["error"]


class TestEmbeddingClient:
    """Test EmbeddingClient behaviour"""

    def setup_method(self):
        with patch("medtutor.llm.embeddings.OpenAI") as mock_openai:
            self.mock_client = Mock()
            mock_openai.return_value = self.mock_client
            self.embedder = EmbeddingClient(api_key="test-key")
            self.embedder._ensure_client()

    def test_empty_input_skips_call(self):
        assert self.embedder.embed([]) == []
        self.mock_client.embeddings.create.assert_not_called()

    def test_single_batched_call_preserves_order(self):
        self.mock_client.embeddings.create.return_value = Mock(
            data=[Mock(index=1, embedding=[0.0, 1.0]), Mock(index=0, embedding=[1.0, 0.0])]
        )

        vectors = self.embedder.embed(["first", "second"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        self.mock_client.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input=["first", "second"]
        )

    def test_failure_is_upstream_error(self):
        self.mock_client.embeddings.create.side_effect = RuntimeError("401")
        with pytest.raises(UpstreamError):
            self.embedder.embed(["text"])

    def test_count_mismatch(self):
        self.mock_client.embeddings.create.return_value = Mock(data=[Mock(index=0, embedding=[1.0])])
        with pytest.raises(UpstreamError):
            self.embedder.embed(["a", "b"])

    def test_unconfigured(self):
        with pytest.raises(ConfigurationError):
            EmbeddingClient(api_key="").embed(["text"])
