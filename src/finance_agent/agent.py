"""Clients for the remote generative model."""

import logging

import httpx

from finance_agent.config import AI_PROVIDER_ANTHROPIC, AI_PROVIDER_GEMINI, Config, get_config
from finance_agent.models.conversation import ChatMessage, ChatRole

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

# Deterministic sampling for calculations
GEMINI_TOP_P = 0.1
GEMINI_TOP_K = 40


class ModelError(Exception):
    """A model call failed; the turn must be retried by the user."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ModelTransportError(ModelError):
    """Network failure or timeout talking to the model."""


class ModelAPIError(ModelError):
    """The model service answered with an HTTP or API error."""

    def __init__(self, message: str, details: str | None = None, status_code: int | None = None):
        super().__init__(message, details)
        self.status_code = status_code


class EmptyResponseError(ModelError):
    """The model answered without any reply text."""


class ModelClient:
    """Sends one system instruction plus conversation and returns the reply text."""

    provider: str = ""

    def generate(self, system: str, messages: list[ChatMessage]) -> str:
        raise NotImplementedError


class GeminiClient(ModelClient):
    """Google Gemini generateContent over plain HTTPS."""

    provider = AI_PROVIDER_GEMINI

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
        config: Config | None = None,
    ):
        config = config or get_config()
        self.api_key = api_key or config.get_api_key(AI_PROVIDER_GEMINI)
        if not self.api_key:
            raise ValueError(
                "Gemini API key not configured. "
                "Set GEMINI_API_KEY or run: finance-agent config api-key"
            )

        self.model = model or config.model_for(AI_PROVIDER_GEMINI)
        self.timeout = timeout if timeout is not None else config.request_timeout
        self.temperature = temperature if temperature is not None else config.temperature
        self.max_output_tokens = max_output_tokens or config.max_output_tokens

    def build_payload(self, system: str, messages: list[ChatMessage]) -> dict:
        """Request body for generateContent."""
        return {
            "contents": [
                {"role": message.role, "parts": [{"text": message.text}]}
                for message in messages
            ],
            "systemInstruction": {"parts": [{"text": system}]},
            "generationConfig": {
                "temperature": self.temperature,
                "topP": GEMINI_TOP_P,
                "topK": GEMINI_TOP_K,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

    def generate(self, system: str, messages: list[ChatMessage]) -> str:
        """
        Call generateContent once, without retries.

        Args:
            system: System instruction
            messages: Conversation so far, ending with the user's turn

        Returns:
            Reply text

        Raises:
            ModelTransportError: Network failure or timeout
            ModelAPIError: Non-200 status or error payload
            EmptyResponseError: No candidate text in the response
        """
        logger.info(f"Calling Gemini {self.model} with {len(messages)} message(s)")

        try:
            response = httpx.post(
                GEMINI_API_URL.format(model=self.model),
                params={"key": self.api_key},
                json=self.build_payload(system, messages),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException:
            raise ModelTransportError(
                "The model did not respond in time", f"timeout after {self.timeout:g}s"
            )
        except httpx.RequestError as e:
            raise ModelTransportError("Could not reach the model service", str(e))

        if response.status_code != 200:
            logger.error(f"Gemini API error {response.status_code}: {response.text[:500]}")
            raise ModelAPIError(
                f"Gemini API returned {response.status_code}",
                response.text[:500],
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            raise EmptyResponseError("Gemini returned a response that is not JSON")

        if "error" in data:
            error = data["error"]
            raise ModelAPIError(
                "Gemini reported an error",
                error.get("message", str(error)) if isinstance(error, dict) else str(error),
                status_code=error.get("code") if isinstance(error, dict) else None,
            )

        return self.extract_text(data)

    @staticmethod
    def extract_text(data: dict) -> str:
        """Reply text of the first candidate."""
        text = None
        candidates = data.get("candidates") or []
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
            if parts:
                text = parts[0].get("text")

        if not text:
            reason = (data.get("promptFeedback") or {}).get("blockReason")
            raise EmptyResponseError(
                "Failed to get a valid response from Gemini",
                f"blocked: {reason}" if reason else None,
            )
        return text


class AnthropicClient(ModelClient):
    """Claude through the Anthropic messages API."""

    provider = AI_PROVIDER_ANTHROPIC

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_output_tokens: int | None = None,
        config: Config | None = None,
    ):
        from anthropic import Anthropic

        config = config or get_config()
        api_key = api_key or config.get_api_key(AI_PROVIDER_ANTHROPIC)
        if not api_key:
            raise ValueError(
                "Anthropic API key not configured. "
                "Set ANTHROPIC_API_KEY or run: finance-agent config api-key --provider anthropic"
            )

        self.model = model or config.model_for(AI_PROVIDER_ANTHROPIC)
        self.timeout = timeout if timeout is not None else config.request_timeout
        self.temperature = config.temperature
        self.max_output_tokens = max_output_tokens or config.max_output_tokens
        self.client = Anthropic(api_key=api_key, timeout=self.timeout, max_retries=0)

    def generate(self, system: str, messages: list[ChatMessage]) -> str:
        """Call the messages API once. Raises ModelError subclasses on failure."""
        import anthropic

        logger.info(f"Calling Anthropic {self.model} with {len(messages)} message(s)")

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_output_tokens,
                temperature=self.temperature,
                system=system,
                messages=[
                    {
                        "role": "assistant" if m.role == ChatRole.MODEL.value else "user",
                        "content": m.text,
                    }
                    for m in messages
                ],
            )
        except anthropic.APIConnectionError as e:
            raise ModelTransportError("Could not reach the model service", str(e))
        except anthropic.APIStatusError as e:
            raise ModelAPIError(
                f"Anthropic API returned {e.status_code}", e.message, status_code=e.status_code
            )

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        if not text:
            raise EmptyResponseError("Failed to get a valid response from Anthropic")
        return text


def get_model_client(provider: str | None = None) -> ModelClient:
    """Model client for the configured (or given) provider."""
    provider = provider or get_config().ai_provider
    if provider == AI_PROVIDER_GEMINI:
        return GeminiClient()
    if provider == AI_PROVIDER_ANTHROPIC:
        return AnthropicClient()
    raise ValueError(f"Invalid AI provider: {provider}")
