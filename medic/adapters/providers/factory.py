"""Model factory.

Selects and constructs the ModelPort adapter for a model configuration,
and memoizes it per plugin configuration.

Optional backends are checked for availability with an explicit probe
(importlib.util.find_spec) when their variant is first created, so a
missing package yields DependencyMissingError rather than an import
failure somewhere deeper in the call.
"""

import asyncio
import importlib.util
import logging
from typing import Any

from medic.config import (
    CustomModelConfig,
    HostedModelConfig,
    LocalModelConfig,
    OpenAIModelConfig,
)
from medic.core.errors import ConfigurationError, DependencyMissingError
from medic.core.models import ProviderKind
from medic.core.ports import ModelPort, ModelSourcePort

logger = logging.getLogger(__name__)

# provider -> (importable package, install hint)
OPTIONAL_BACKENDS: dict[str, tuple[str, str]] = {
    "openai": ("openai", "pip install 'medic[openai]'"),
}


def require_backend(provider: str) -> None:
    """Fail with DependencyMissingError if a provider's package is absent."""
    backend = OPTIONAL_BACKENDS.get(provider)
    if backend is None:
        return
    package, install_hint = backend
    if importlib.util.find_spec(package) is None:
        raise DependencyMissingError(package, install_hint)


def provider_kind(config: Any) -> ProviderKind:
    """Provider kind of a model configuration (UNKNOWN if unrecognized)."""
    return ProviderKind.parse(getattr(config, "provider", None))


def create_model(config: Any) -> Any:
    """Create the adapter for a model configuration.

    Args:
        config: One of the ModelConfig variants.

    Returns:
        An object implementing invoke(conversation). For custom configs
        this is the caller's own instance, returned untouched.

    Raises:
        ConfigurationError: If the provider is not recognized or a custom
            instance has no invoke method.
        DependencyMissingError: If an optional backend is not installed.
    """
    if isinstance(config, HostedModelConfig):
        from .hosted import HostedChatAdapter

        return HostedChatAdapter(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            temperature=config.temperature,
        )

    elif isinstance(config, OpenAIModelConfig):
        require_backend("openai")
        from .openai import OpenAIChatAdapter

        return OpenAIChatAdapter(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            temperature=config.temperature,
        )

    elif isinstance(config, LocalModelConfig):
        from .local import LocalChatAdapter

        return LocalChatAdapter(
            model=config.model,
            base_url=config.base_url,
            temperature=config.temperature,
        )

    elif isinstance(config, CustomModelConfig):
        instance = config.instance
        if instance is None or not callable(getattr(instance, "invoke", None)):
            raise ConfigurationError(
                "Custom model instance must provide an invoke(conversation) method"
            )
        return instance

    else:
        raise ConfigurationError(
            f"Unsupported model provider: {getattr(config, 'provider', config)!r}"
        )


class ModelProvider(ModelSourcePort):
    """Lazily constructs and memoizes one adapter for one configuration.

    Construction is single-flight: concurrent callers wait on the same
    lock and receive the same instance. A failed construction is not
    memoized, so the next build failure tries again.
    """

    def __init__(self, config: Any):
        self.config = config
        self._model: ModelPort | None = None
        self._lock = asyncio.Lock()

    @property
    def kind(self) -> ProviderKind:
        return provider_kind(self.config)

    async def get(self) -> ModelPort:
        """Return the memoized adapter, creating it on first call."""
        if self._model is not None:
            return self._model
        async with self._lock:
            if self._model is None:
                self._model = create_model(self.config)
                logger.info(f"Model adapter created: {self.kind.value}")
            return self._model

    async def close(self) -> None:
        """Close the adapter if one was created and it owns resources.

        Custom instances belong to the caller and are left open.
        """
        model, self._model = self._model, None
        if model is None or isinstance(self.config, CustomModelConfig):
            return
        close = getattr(model, "close", None)
        if close is not None:
            await close()
