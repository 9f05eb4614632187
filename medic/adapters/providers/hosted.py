"""Hosted chat-completions adapter.

Implements ModelPort by calling an OpenAI-compatible HTTP chat API
(ZhipuAI by default) with a single non-streaming request.

Wire format: POST {base_url}/chat/completions
    {"model", "messages": [{"role", "content"}], "temperature", "stream": false}
"""

import logging
from typing import Any

import httpx

from medic.core.errors import ProviderError
from medic.core.models import Conversation

from .http import HttpChatAdapter
from .messages import to_chat_messages

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://open.bigmodel.cn/api/paas/v4"
DEFAULT_MODEL = "glm-4"


class HostedChatAdapter(HttpChatAdapter):
    """Bearer-token authenticated chat-completions client."""

    provider = "hosted"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str | None = None,
        temperature: float = 0.7,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the hosted chat adapter.

        Args:
            api_key: API key sent as a bearer token.
            model: Model name (e.g., 'glm-4').
            base_url: API root; defaults to the ZhipuAI v4 endpoint.
            temperature: Sampling temperature.
            timeout: Per-request timeout in seconds.
            client: Optional preconfigured httpx client (used by tests).

        Raises:
            ValueError: If the API key is empty.
        """
        if not api_key or not api_key.strip():
            raise ValueError("Hosted chat API key must be provided and non-empty.")
        self.api_key = api_key
        self.model = model
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.temperature = temperature
        super().__init__(timeout=timeout, client=client)

    async def invoke(self, conversation: Conversation) -> str:
        """Send the conversation and return the first choice's content."""
        body = {
            "model": self.model,
            "messages": to_chat_messages(conversation),
            "temperature": self.temperature,
            "stream": False,
        }

        try:
            response = await self._get_client().post(
                f"{self.base_url}/chat/completions",
                json=body,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to call hosted chat API: {e}", exc_info=True)
            raise ProviderError(
                f"Failed to call hosted chat API: {e}", provider=self.provider
            ) from e

        if not response.is_success:
            raise ProviderError(
                f"Hosted chat API error ({response.status_code}): {response.text}",
                provider=self.provider,
                status_code=response.status_code,
            )

        return self._parse_reply(response)

    def _parse_reply(self, response: httpx.Response) -> str:
        """Extract choices[0].message.content.

        Raises:
            ProviderError: If the body is not JSON or carries no choices.
        """
        try:
            data: Any = response.json()
        except ValueError as e:
            raise ProviderError(
                f"Hosted chat API returned invalid JSON: {response.text[:200]}",
                provider=self.provider,
                status_code=response.status_code,
            ) from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise ProviderError(
                "Hosted chat API returned no choices", provider=self.provider
            )

        try:
            content = choices[0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(
                f"Hosted chat API returned a malformed choice: {choices[0]!r}",
                provider=self.provider,
            ) from e

        if not isinstance(content, str):
            raise ProviderError(
                "Hosted chat API returned non-text content", provider=self.provider
            )
        return content
