"""Error taxonomy for the Medic diagnosis system.

Only ConfigurationError may abort, and only while a plugin is being
constructed. Every other error raised during a diagnosis attempt is
caught by the pipeline and rendered as troubleshooting guidance.
"""


class MedicError(Exception):
    """Base class for all Medic errors."""


class ConfigurationError(MedicError):
    """Model configuration is missing or malformed."""


class DependencyMissingError(MedicError):
    """An optional backend integration is not installed."""

    def __init__(self, package: str, install_hint: str):
        self.package = package
        self.install_hint = install_hint
        super().__init__(
            f"The '{package}' package is required for this model provider. "
            f"Install it with: {install_hint}"
        )


class ProviderError(MedicError):
    """A model backend call failed or returned an unusable response."""

    def __init__(
        self,
        message: str,
        provider: str = "",
        status_code: int | None = None,
    ):
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)
