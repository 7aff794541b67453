"""
LLM client for the chat endpoint.

A thin ``httpx`` wrapper around Anthropic's Messages API: one request
per chat message, no retry and no streaming.
"""

import logging
from typing import Any, Optional

import httpx

from pai_server.errors import LLMAPIError, LLMConfigurationError

logger = logging.getLogger("pai-server.core.llm")

API_BASE_URL = "https://api.anthropic.com"
API_VERSION = "2023-06-01"
DEFAULT_TIMEOUT = 60.0


class AnthropicChatClient:
    """Anthropic Messages API client.

    Args:
        api_key: Anthropic API key.
        model: Default model identifier.
        max_tokens: Default max tokens per reply.
        base_url: API base URL.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).

    Raises:
        LLMConfigurationError: If the API key is missing.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 1024,
        *,
        base_url: str = API_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise LLMConfigurationError(
                "Anthropic API key is required. Set ANTHROPIC_API_KEY in the "
                "environment or in $PAI_DIR/.env."
            )
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        logger.info(f"Initialized AnthropicChatClient with model={model}")

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: Optional[str] = None,
    ) -> str:
        """Send one user message and return the reply text.

        Args:
            prompt: The user message.
            system: Optional system prompt.
            model: Override of the default model.

        Returns:
            Concatenated text blocks of the reply.

        Raises:
            LLMAPIError: On transport failure or a non-2xx response.
        """
        body: dict[str, Any] = {
            "model": model or self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            body["system"] = system

        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": API_VERSION,
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=DEFAULT_TIMEOUT,
                transport=self._transport,
            ) as client:
                response = await client.post("/v1/messages", json=body, headers=headers)
        except httpx.RequestError as e:
            raise LLMAPIError(f"Failed to reach the LLM API: {e}") from e

        if not response.is_success:
            raise LLMAPIError(
                f"LLM API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        data = response.json()
        return "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        )
