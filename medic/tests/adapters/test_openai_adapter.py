"""Tests for the OpenAI model adapter.

The SDK client is replaced with a MagicMock, so the optional openai
package does not need to be installed.
"""

from unittest.mock import MagicMock

import pytest

from medic.adapters.providers.openai import OpenAIChatAdapter
from medic.core.errors import ProviderError
from medic.core.models import Conversation, Message, Role


@pytest.fixture
def mock_openai_client():
    """Create a mock OpenAI client."""
    mock = MagicMock()
    # The OpenAI client is synchronous, not async
    mock.chat.completions.create = MagicMock()
    return mock


@pytest.fixture
def adapter(mock_openai_client) -> OpenAIChatAdapter:
    """Create an OpenAI adapter with a mocked client."""
    adapter = OpenAIChatAdapter(api_key="test-key-12345", model="gpt-4o", temperature=0.1)
    adapter._client = mock_openai_client
    return adapter


@pytest.fixture
def conversation() -> Conversation:
    return Conversation(
        messages=(
            Message(role=Role.INSTRUCTION, content="system text"),
            Message(role=Role.QUERY, content="user text"),
        )
    )


def make_response(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


def test_adapter_initialization() -> None:
    adapter = OpenAIChatAdapter(api_key="test-key", model="gpt-4o", base_url="http://gw/v1")

    assert adapter.api_key == "test-key"
    assert adapter.model == "gpt-4o"
    assert adapter.base_url == "http://gw/v1"
    assert adapter._client is None


def test_adapter_rejects_empty_api_key() -> None:
    with pytest.raises(ValueError, match="API key must be provided"):
        OpenAIChatAdapter(api_key="")


@pytest.mark.asyncio
async def test_invoke_success(adapter, mock_openai_client, conversation) -> None:
    mock_openai_client.chat.completions.create.return_value = make_response(
        "Pin the dependency version."
    )

    reply = await adapter.invoke(conversation)

    assert reply == "Pin the dependency version."
    kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["temperature"] == 0.1
    assert kwargs["messages"] == [
        {"role": "system", "content": "system text"},
        {"role": "user", "content": "user text"},
    ]


@pytest.mark.asyncio
async def test_empty_choices(adapter, mock_openai_client, conversation) -> None:
    response = MagicMock()
    response.choices = []
    mock_openai_client.chat.completions.create.return_value = response

    with pytest.raises(ProviderError, match="no choices"):
        await adapter.invoke(conversation)


@pytest.mark.asyncio
async def test_none_content(adapter, mock_openai_client, conversation) -> None:
    mock_openai_client.chat.completions.create.return_value = make_response(None)

    with pytest.raises(ProviderError, match="empty content"):
        await adapter.invoke(conversation)


@pytest.mark.asyncio
async def test_api_error_is_classified(adapter, mock_openai_client, conversation) -> None:
    class AuthenticationError(Exception):
        status_code = 401

    mock_openai_client.chat.completions.create.side_effect = AuthenticationError(
        "Incorrect API key provided"
    )

    with pytest.raises(ProviderError) as exc_info:
        await adapter.invoke(conversation)

    assert exc_info.value.status_code == 401
    assert "(401)" in str(exc_info.value)
    assert "Incorrect API key provided" in str(exc_info.value)
