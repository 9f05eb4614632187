"""Port interfaces for the Medic diagnosis system.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - ModelPort: Send a conversation to a language model
   - ModelSourcePort: Lazily supply the configured ModelPort
   - OutputPort: Paced console output
   - StylePort: Opaque text decoration

2. **Driving Ports** (the host calls into the system)
   - BuildHookPort: Notification that a build has finished
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import Conversation


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class ModelPort(ABC):
    """Port for invoking a language model.

    Adapters implementing this port translate the conversation into a
    specific backend's request format and return the reply text.

    Implementations must handle:
    - Role translation into the backend vocabulary
    - Transport failures and unusable responses (raise ProviderError)
    """

    @abstractmethod
    async def invoke(self, conversation: Conversation) -> str:
        """Send a conversation and return the model's reply.

        Args:
            conversation: Ordered instruction/query messages.

        Returns:
            The reply text, verbatim.

        Raises:
            ProviderError: If the call cannot produce a reply.
        """


class ModelSourcePort(ABC):
    """Port supplying the model adapter for one plugin configuration.

    Implementations construct the adapter lazily on first use and return
    the same instance afterwards.
    """

    @abstractmethod
    async def get(self) -> ModelPort:
        """Return the adapter, constructing it on first call.

        Raises:
            ConfigurationError: If the configuration names no known provider.
            DependencyMissingError: If the backend integration is not installed.
        """


class OutputPort(ABC):
    """Port for incremental console output."""

    @abstractmethod
    async def render(self, text: str, delay_ms: float) -> None:
        """Write text one character at a time, followed by a newline.

        Args:
            text: Text to write (may contain ANSI escapes).
            delay_ms: Milliseconds to wait between characters.
        """

    @abstractmethod
    async def newline(self) -> None:
        """Write a bare newline."""


class StylePort(ABC):
    """Port for decorating text (colors, weight).

    The core treats every method as an opaque str -> str function.
    """

    @abstractmethod
    def red(self, text: str) -> str: ...

    @abstractmethod
    def yellow(self, text: str) -> str: ...

    @abstractmethod
    def green(self, text: str) -> str: ...

    @abstractmethod
    def cyan(self, text: str) -> str: ...

    @abstractmethod
    def white(self, text: str) -> str: ...

    @abstractmethod
    def bold(self, text: str) -> str: ...

    @abstractmethod
    def dim(self, text: str) -> str: ...


# ============================================================================
# DRIVING PORTS (Host calls into the system)
# ============================================================================


class BuildHookPort(ABC):
    """Port the host build tool calls once a build has finished."""

    @abstractmethod
    async def build_end(self, error: Any = None) -> None:
        """Handle the end of a build.

        Args:
            error: None for a successful build, otherwise the failure
                object (exception, mapping, or attribute-bearing object).

        Must never raise: the build outcome is not affected by diagnosis.
        """
