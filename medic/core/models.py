"""Domain models for the Medic diagnosis system.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

import json
import traceback
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

UNKNOWN_MESSAGE = "Unknown error"
UNKNOWN_STACK = "No stack trace available"
UNKNOWN_LOCATION = "Unknown module"
DEFAULT_NAME = "Error"


def _read_field(source: Any, *names: str) -> Any:
    """Return the first non-empty field found on an object or mapping."""
    for name in names:
        if isinstance(source, Mapping):
            value = source.get(name)
        else:
            try:
                value = getattr(source, name, None)
            except Exception:
                value = None
        if value is not None and value != "":
            return value
    return None


def _as_text(value: Any, placeholder: str) -> str:
    """Coerce a failure field to text, substituting a placeholder when blank."""
    if value is None:
        return placeholder
    if not isinstance(value, str):
        try:
            value = str(value)
        except Exception:
            return placeholder
    return value if value.strip() else placeholder


@dataclass(frozen=True)
class FailureContext:
    """Normalized view of the build failure reported by the host.

    Derived once per diagnosis attempt. Every field is guaranteed to be
    non-empty: missing values are replaced by fixed placeholder text.
    """

    message: str
    stack: str
    location: str
    name: str

    @classmethod
    def from_failure(cls, failure: Any) -> "FailureContext":
        """Derive a FailureContext from whatever the host reported.

        Accepts Python exceptions, mappings, and arbitrary objects exposing
        ``message``, ``stack``, ``id`` (or ``location``) and ``name``.
        Never raises.
        """
        if isinstance(failure, BaseException):
            stack = _read_field(failure, "stack")
            if stack is None and failure.__traceback__ is not None:
                stack = "".join(
                    traceback.format_exception(
                        type(failure), failure, failure.__traceback__
                    )
                )
            # NameError.name / ImportError.name are not error names
            return cls(
                message=_as_text(_read_field(failure, "message") or failure, UNKNOWN_MESSAGE),
                stack=_as_text(stack, UNKNOWN_STACK),
                location=_as_text(_read_field(failure, "id", "location"), UNKNOWN_LOCATION),
                name=type(failure).__name__,
            )

        return cls(
            message=_as_text(_read_field(failure, "message"), UNKNOWN_MESSAGE),
            stack=_as_text(_read_field(failure, "stack"), UNKNOWN_STACK),
            location=_as_text(_read_field(failure, "id", "location"), UNKNOWN_LOCATION),
            name=_as_text(_read_field(failure, "name"), DEFAULT_NAME),
        )


class Role(Enum):
    """Origin of a conversation entry."""

    INSTRUCTION = "instruction"
    QUERY = "query"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single conversation entry.

    ``role`` is normally a Role; any other value is treated by adapters
    as an unrecognized entry kind.
    """

    role: Role | str
    content: Any

    @property
    def text(self) -> str:
        """Content as text; structured content is serialized to JSON."""
        if isinstance(self.content, str):
            return self.content
        return json.dumps(self.content, ensure_ascii=False, default=str)


@dataclass(frozen=True)
class Conversation:
    """Ordered sequence of messages sent to a model for one diagnosis."""

    messages: tuple[Message, ...]

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)


class ProviderKind(Enum):
    """Backend families, used to select troubleshooting guidance."""

    HOSTED = "hosted"
    OPENAI = "openai"
    LOCAL = "local"
    CUSTOM = "custom"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "ProviderKind":
        """Map a provider tag to a kind, falling back to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class DiagnosisOutcome:
    """Result of one model invocation: a reply or an error, never both."""

    reply: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        """Validate that exactly one of reply/error is set."""
        if (self.reply is None) == (self.error is None):
            raise ValueError("DiagnosisOutcome requires exactly one of reply or error")

    @classmethod
    def success(cls, reply: str) -> "DiagnosisOutcome":
        return cls(reply=reply)

    @classmethod
    def failure(cls, error: str) -> "DiagnosisOutcome":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.reply is not None


class PipelineState(Enum):
    """Lifecycle states of the diagnosis pipeline.

    State transitions:
    - IDLE → AWAITING_FAILURE (host reports build completion)
    - AWAITING_FAILURE → IDLE (no failure reported)
    - AWAITING_FAILURE → DIAGNOSING (failure present)
    - DIAGNOSING → RENDERED (model replied)
    - DIAGNOSING → FALLBACK (anything went wrong)
    - RENDERED / FALLBACK → IDLE
    """

    IDLE = "idle"
    AWAITING_FAILURE = "awaiting_failure"
    DIAGNOSING = "diagnosing"
    RENDERED = "rendered"
    FALLBACK = "fallback"
