"""Core domain logic for the Medic diagnosis system.

This package contains zero external dependencies and represents
the pure business logic of the application. All adapters and
external integrations are handled by the adapters package.
"""

from .errors import (
    ConfigurationError,
    DependencyMissingError,
    MedicError,
    ProviderError,
)
from .models import (
    Conversation,
    DiagnosisOutcome,
    FailureContext,
    Message,
    PipelineState,
    ProviderKind,
    Role,
)

__all__ = [
    "ConfigurationError",
    "Conversation",
    "DependencyMissingError",
    "DiagnosisOutcome",
    "FailureContext",
    "MedicError",
    "Message",
    "PipelineState",
    "ProviderError",
    "ProviderKind",
    "Role",
]
