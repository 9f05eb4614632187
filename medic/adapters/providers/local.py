"""Local model adapter.

Implements ModelPort against a locally served model through the Ollama
chat API. Connection failures (service not started, wrong port) are
reported as ProviderError rather than crashing the diagnosis.

Wire format: POST {base_url}/api/chat
    {"model", "messages": [{"role", "content"}], "stream": false,
     "options": {"temperature"}}
"""

import logging
from typing import Any

import httpx

from medic.core.errors import ProviderError
from medic.core.models import Conversation

from .http import HttpChatAdapter
from .messages import to_chat_messages

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"


class LocalChatAdapter(HttpChatAdapter):
    """Ollama-backed chat adapter."""

    provider = "local"

    def __init__(
        self,
        model: str,
        base_url: str | None = None,
        temperature: float = 0.7,
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the local chat adapter.

        Args:
            model: Local model name (e.g., 'llama3').
            base_url: Service root; defaults to http://localhost:11434.
            temperature: Sampling temperature.
            timeout: Per-request timeout in seconds. Local models can be
                slow to load, so this is longer than the hosted default.
            client: Optional preconfigured httpx client (used by tests).

        Raises:
            ValueError: If the model name is empty.
        """
        if not model or not model.strip():
            raise ValueError("Local model name must be provided and non-empty.")
        self.model = model
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.temperature = temperature
        super().__init__(timeout=timeout, client=client)

    async def invoke(self, conversation: Conversation) -> str:
        """Send the conversation and return the reply message content."""
        body = {
            "model": self.model,
            "messages": to_chat_messages(conversation),
            "stream": False,
            "options": {"temperature": self.temperature},
        }

        try:
            response = await self._get_client().post(f"{self.base_url}/api/chat", json=body)
        except httpx.ConnectError as e:
            logger.error(
                f"Local model service unreachable at {self.base_url}: {e}",
                exc_info=True,
            )
            raise ProviderError(
                f"Local model service unreachable at {self.base_url}: {e}",
                provider=self.provider,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Failed to call local model service: {e}", exc_info=True)
            raise ProviderError(
                f"Failed to call local model service: {e}", provider=self.provider
            ) from e

        if not response.is_success:
            raise ProviderError(
                f"Local model service error ({response.status_code}): {response.text}",
                provider=self.provider,
                status_code=response.status_code,
            )

        try:
            data: Any = response.json()
        except ValueError as e:
            raise ProviderError(
                f"Local model service returned invalid JSON: {response.text[:200]}",
                provider=self.provider,
            ) from e

        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise ProviderError(
                "Local model service returned no message", provider=self.provider
            )
        return content
