"""Tests for the model clients."""

from unittest.mock import MagicMock, patch

import anthropic
import httpx
import pytest

from finance_agent.agent import (
    GEMINI_API_URL,
    AnthropicClient,
    EmptyResponseError,
    GeminiClient,
    ModelAPIError,
    ModelError,
    ModelTransportError,
    get_model_client,
)
from helpers import model, user


def gemini_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = payload if payload is not None else {}
    return response


def candidate(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestModelError:
    """Tests for the error hierarchy."""

    def test_str_includes_details(self):
        assert str(ModelError("Request failed", "timeout after 30s")) == (
            "Request failed: timeout after 30s"
        )
        assert str(ModelError("Request failed")) == "Request failed"

    def test_subclasses(self):
        assert issubclass(ModelTransportError, ModelError)
        assert issubclass(ModelAPIError, ModelError)
        assert issubclass(EmptyResponseError, ModelError)
        assert ModelAPIError("bad", status_code=429).status_code == 429


class TestGeminiClient:
    """Tests for GeminiClient."""

    @pytest.fixture
    def client(self):
        return GeminiClient(api_key="test-key", model="gemini-test", timeout=5)

    def test_missing_api_key(self):
        with pytest.raises(ValueError, match="Gemini API key not configured"):
            GeminiClient()

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        assert GeminiClient().api_key == "env-key"

    def test_defaults_from_config(self, mock_config):
        client = GeminiClient(api_key="k")
        assert client.model == "gemini-1.5-flash-latest"
        assert client.timeout == 30.0
        assert client.temperature == 0.0

    def test_model_from_config_while_anthropic_selected(self, mock_config):
        mock_config.set("model", "gemini-2.0-flash")
        mock_config.ai_provider = "anthropic"
        assert GeminiClient(api_key="k").model == "gemini-2.0-flash"

    def test_payload(self, client):
        payload = client.build_payload("system text", [user("hi"), model("hello"), user("tax?")])

        assert payload["contents"] == [
            {"role": "user", "parts": [{"text": "hi"}]},
            {"role": "model", "parts": [{"text": "hello"}]},
            {"role": "user", "parts": [{"text": "tax?"}]},
        ]
        assert payload["systemInstruction"] == {"parts": [{"text": "system text"}]}
        assert payload["generationConfig"]["topP"] == 0.1
        assert payload["generationConfig"]["topK"] == 40
        assert payload["generationConfig"]["temperature"] == 0.0

    def test_generate(self, client):
        with patch("finance_agent.agent.httpx.post") as mock_post:
            mock_post.return_value = gemini_response(payload=candidate("Your tax is CHF 18'040."))
            reply = client.generate("system", [user("How much tax?")])

        assert reply == "Your tax is CHF 18'040."
        args, kwargs = mock_post.call_args
        assert args[0] == GEMINI_API_URL.format(model="gemini-test")
        assert kwargs["params"] == {"key": "test-key"}
        assert kwargs["timeout"] == 5
        assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "How much tax?"

    def test_timeout(self, client):
        with patch("finance_agent.agent.httpx.post", side_effect=httpx.TimeoutException("slow")):
            with pytest.raises(ModelTransportError) as exc_info:
                client.generate("system", [user("hi")])
        assert "timeout after 5s" in str(exc_info.value)

    def test_connection_error(self, client):
        with patch("finance_agent.agent.httpx.post", side_effect=httpx.ConnectError("down")):
            with pytest.raises(ModelTransportError):
                client.generate("system", [user("hi")])

    def test_http_error(self, client):
        with patch("finance_agent.agent.httpx.post") as mock_post:
            mock_post.return_value = gemini_response(status_code=500, text="internal error")
            with pytest.raises(ModelAPIError) as exc_info:
                client.generate("system", [user("hi")])

        assert exc_info.value.status_code == 500
        assert exc_info.value.details == "internal error"

    def test_error_payload(self, client):
        payload = {"error": {"code": 400, "message": "API key not valid"}}
        with patch("finance_agent.agent.httpx.post") as mock_post:
            mock_post.return_value = gemini_response(payload=payload)
            with pytest.raises(ModelAPIError, match="API key not valid") as exc_info:
                client.generate("system", [user("hi")])

        assert exc_info.value.status_code == 400

    def test_invalid_json(self, client):
        response = gemini_response()
        response.json.side_effect = ValueError("not json")
        with patch("finance_agent.agent.httpx.post", return_value=response):
            with pytest.raises(EmptyResponseError):
                client.generate("system", [user("hi")])

    def test_no_candidates(self, client):
        with patch("finance_agent.agent.httpx.post") as mock_post:
            mock_post.return_value = gemini_response(payload={"candidates": []})
            with pytest.raises(EmptyResponseError):
                client.generate("system", [user("hi")])

    def test_blocked_prompt(self):
        with pytest.raises(EmptyResponseError, match="blocked: SAFETY"):
            GeminiClient.extract_text({"promptFeedback": {"blockReason": "SAFETY"}})

    def test_empty_text(self):
        with pytest.raises(EmptyResponseError):
            GeminiClient.extract_text(candidate(""))


class TestAnthropicClient:
    """Tests for AnthropicClient."""

    @pytest.fixture
    def mock_anthropic(self):
        with patch("anthropic.Anthropic") as mock_cls:
            yield mock_cls

    def test_missing_api_key(self, mock_anthropic):
        with pytest.raises(ValueError, match="Anthropic API key not configured"):
            AnthropicClient()

    def test_client_created_without_retries(self, mock_anthropic):
        AnthropicClient(api_key="k", timeout=12)
        mock_anthropic.assert_called_once_with(api_key="k", timeout=12, max_retries=0)

    def test_model_from_config(self, mock_anthropic, mock_config):
        assert AnthropicClient(api_key="k").model == "claude-sonnet-4-5"
        mock_config.set("anthropic_model", "claude-opus-4-1")
        assert AnthropicClient(api_key="k").model == "claude-opus-4-1"

    def test_generate_maps_roles(self, mock_anthropic):
        block = MagicMock(type="text", text="Hello from Claude")
        mock_anthropic.return_value.messages.create.return_value = MagicMock(content=[block])

        client = AnthropicClient(api_key="k")
        reply = client.generate("system text", [user("hi"), model("hello"), user("tax?")])

        assert reply == "Hello from Claude"
        kwargs = mock_anthropic.return_value.messages.create.call_args.kwargs
        assert kwargs["system"] == "system text"
        assert [m["role"] for m in kwargs["messages"]] == ["user", "assistant", "user"]

    def test_empty_reply(self, mock_anthropic):
        mock_anthropic.return_value.messages.create.return_value = MagicMock(content=[])
        with pytest.raises(EmptyResponseError):
            AnthropicClient(api_key="k").generate("system", [user("hi")])

    def test_connection_error(self, mock_anthropic):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        mock_anthropic.return_value.messages.create.side_effect = anthropic.APIConnectionError(
            request=request
        )
        with pytest.raises(ModelTransportError):
            AnthropicClient(api_key="k").generate("system", [user("hi")])

    def test_status_error(self, mock_anthropic):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        response = httpx.Response(529, request=request)
        mock_anthropic.return_value.messages.create.side_effect = anthropic.APIStatusError(
            "Overloaded", response=response, body=None
        )
        with pytest.raises(ModelAPIError) as exc_info:
            AnthropicClient(api_key="k").generate("system", [user("hi")])
        assert exc_info.value.status_code == 529


class TestGetModelClient:
    """Tests for get_model_client()."""

    def test_gemini(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "k")
        assert isinstance(get_model_client("gemini"), GeminiClient)

    def test_configured_provider(self, monkeypatch, mock_config):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "k")
        mock_config.ai_provider = "anthropic"
        with patch("anthropic.Anthropic"):
            assert isinstance(get_model_client(), AnthropicClient)

    def test_invalid_provider(self):
        with pytest.raises(ValueError, match="Invalid AI provider"):
            get_model_client("openai")
