"""OpenAI model adapter.

Implements ModelPort with the official OpenAI SDK. The SDK is an optional
dependency (``pip install 'medic[openai]'``); it is imported only when the
adapter first needs a client.
"""

import asyncio
import logging
from typing import Any

from medic.core.errors import ProviderError
from medic.core.models import Conversation
from medic.core.ports import ModelPort

from .messages import to_chat_messages

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4"


class OpenAIChatAdapter(ModelPort):
    """OpenAI API-based chat adapter."""

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str | None = None,
        temperature: float = 0.7,
        timeout: float = 60.0,
    ):
        """Initialize OpenAI chat adapter.

        Args:
            api_key: OpenAI API key.
            model: OpenAI model to use (e.g., 'gpt-4', 'gpt-4o').
            base_url: Optional API root for OpenAI-compatible gateways.
            temperature: Sampling temperature.
            timeout: Per-request timeout in seconds.

        Raises:
            ValueError: If API key is empty or not provided.
        """
        if not api_key or not api_key.strip():
            raise ValueError(
                "OpenAI API key must be provided and non-empty. "
                "Set MEDIC_API_KEY environment variable."
            )
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.timeout = timeout

        # Lazy import to avoid requiring openai if not used
        self._client: Any | None = None

    def _get_client(self) -> Any:
        """Get or initialize the OpenAI synchronous client."""
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def invoke(self, conversation: Conversation) -> str:
        """Invoke the chat completions API and return the reply text.

        Raises:
            ProviderError: If the API call fails or returns no choices.
        """
        client = self._get_client()
        messages = to_chat_messages(conversation)

        def _call_openai() -> str:
            """Synchronous wrapper for OpenAI API call."""
            response = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                timeout=self.timeout,
            )
            if not response.choices:
                raise ProviderError("OpenAI API returned no choices", provider=self.provider)
            content = response.choices[0].message.content
            if content is None:
                raise ProviderError("OpenAI API returned empty content", provider=self.provider)
            return content

        try:
            # Run in executor to avoid blocking the event loop
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, _call_openai)
        except ProviderError:
            raise
        except Exception as e:
            logger.error(f"Failed to invoke OpenAI API: {e}", exc_info=True)
            status_code = getattr(e, "status_code", None)
            detail = f" ({status_code})" if status_code is not None else ""
            raise ProviderError(
                f"OpenAI API error{detail}: {e}",
                provider=self.provider,
                status_code=status_code,
            ) from e
