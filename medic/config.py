"""Configuration for the Medic diagnosis system.

This module provides centralized configuration management:
- Typed, validated plugin options (DoctorOptions) and model configuration
- Load settings from environment variables and .env files
- Convert validation failures into ConfigurationError
"""

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from medic.core.errors import ConfigurationError


def _require_text(value: str, field: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field} must be a non-empty string")
    return value


# ============================================================================
# MODEL CONFIGURATION (one variant per provider)
# ============================================================================


class HostedModelConfig(BaseModel):
    """Hosted chat-completions API (OpenAI-compatible, ZhipuAI by default)."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    provider: Literal["hosted"] = "hosted"
    api_key: str = Field(alias="apiKey")
    model: str = "glm-4"
    base_url: str | None = Field(default=None, alias="baseURL")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Ensure the API key is not blank."""
        return _require_text(v, "api_key")


class OpenAIModelConfig(BaseModel):
    """OpenAI API through the official SDK (optional dependency)."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    provider: Literal["openai"] = "openai"
    api_key: str = Field(alias="apiKey")
    model: str = "gpt-4"
    base_url: str | None = Field(default=None, alias="baseURL")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Ensure the API key is not blank."""
        return _require_text(v, "api_key")


class LocalModelConfig(BaseModel):
    """Locally served model (Ollama)."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    provider: Literal["local"] = "local"
    model: str
    base_url: str | None = Field(default=None, alias="baseURL")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Ensure the model name is not blank."""
        return _require_text(v, "model")


class CustomModelConfig(BaseModel):
    """User-supplied model object exposing invoke(conversation)."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    provider: Literal["custom"] = "custom"
    instance: Any

    @field_validator("instance")
    @classmethod
    def validate_instance(cls, v: Any) -> Any:
        """Ensure a model instance was actually supplied."""
        if v is None:
            raise ValueError("instance must be a model object, got None")
        return v


ModelConfig = Annotated[
    Union[HostedModelConfig, OpenAIModelConfig, LocalModelConfig, CustomModelConfig],
    Field(discriminator="provider"),
]


# ============================================================================
# PLUGIN OPTIONS
# ============================================================================


class DoctorOptions(BaseModel):
    """Options accepted by DiagnosisPlugin.

    camelCase aliases (typeWriterSpeed, showOriginalError, requestTimeout)
    are accepted alongside the snake_case names.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    enabled: bool = True
    type_writer_speed: float = Field(default=20, ge=0, alias="typeWriterSpeed")
    show_original_error: bool = Field(default=True, alias="showOriginalError")
    request_timeout: float | None = Field(default=120.0, gt=0, alias="requestTimeout")
    model: ModelConfig


def parse_options(options: "DoctorOptions | Mapping[str, Any] | None") -> DoctorOptions:
    """Validate plugin options.

    Args:
        options: A DoctorOptions instance or a mapping of option values.

    Returns:
        Validated DoctorOptions.

    Raises:
        ConfigurationError: If options are missing or invalid, including a
            missing model section.
    """
    if isinstance(options, DoctorOptions):
        return options
    if options is None:
        raise ConfigurationError(
            "medic: model configuration is required. "
            "Please provide a model config in the plugin options."
        )
    if not isinstance(options, Mapping):
        raise ConfigurationError(
            f"medic: options must be a mapping, got {type(options).__name__}"
        )
    if options.get("model") is None:
        raise ConfigurationError(
            "medic: model configuration is required. "
            "Please provide a model config in the plugin options."
        )
    try:
        return DoctorOptions.model_validate(dict(options))
    except ValidationError as e:
        raise ConfigurationError(f"medic: invalid options: {e}") from e


# ============================================================================
# ENVIRONMENT SETTINGS
# ============================================================================


class Settings(BaseSettings):
    """Application configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv. Variables are prefixed MEDIC_.
    """

    model_config = SettingsConfigDict(
        env_prefix="MEDIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Plugin behaviour
    enabled: bool = Field(
        default=True,
        description="Run a diagnosis when a build fails",
    )
    type_writer_speed: float = Field(
        default=20,
        description="Milliseconds per character of console output",
    )
    show_original_error: bool = Field(
        default=True,
        description="Echo the original build error when diagnosis fails",
    )
    request_timeout: float = Field(
        default=120.0,
        description="Seconds to wait for the model before giving up",
    )

    # Model provider configuration
    provider: Literal["hosted", "openai", "local"] = Field(
        default="hosted",
        description="Model provider type",
    )
    api_key: str = Field(
        default="",
        description="API key for hosted or OpenAI providers",
    )
    llm_model: str = Field(
        default="",
        description="Model name; empty selects the provider default",
    )
    base_url: str = Field(
        default="",
        description="Provider endpoint URL; empty selects the provider default",
    )
    temperature: float = Field(
        default=0.7,
        description="Sampling temperature",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    # Output
    no_color: bool = Field(
        default=False,
        description="Disable ANSI colors",
    )

    @field_validator("type_writer_speed")
    @classmethod
    def validate_speed(cls, v: float) -> float:
        """Ensure typewriter speed is non-negative."""
        if v < 0:
            raise ValueError("type_writer_speed must be non-negative")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, v: float) -> float:
        """Ensure request timeout is positive."""
        if v <= 0:
            raise ValueError("request_timeout must be positive")
        return v

    def to_options(self) -> DoctorOptions:
        """Build plugin options from these settings.

        Raises:
            ConfigurationError: If the selected provider is misconfigured
                (for example a hosted provider without an API key).
        """
        model: dict[str, Any] = {"provider": self.provider, "temperature": self.temperature}
        if self.provider in ("hosted", "openai"):
            if not self.api_key:
                raise ConfigurationError(
                    f"{self.provider} provider selected but MEDIC_API_KEY not set"
                )
            model["api_key"] = self.api_key
        elif not self.llm_model:
            raise ConfigurationError("local provider selected but MEDIC_LLM_MODEL not set")
        if self.llm_model:
            model["model"] = self.llm_model
        if self.base_url:
            model["base_url"] = self.base_url

        return parse_options(
            {
                "enabled": self.enabled,
                "type_writer_speed": self.type_writer_speed,
                "show_original_error": self.show_original_error,
                "request_timeout": self.request_timeout,
                "model": model,
            }
        )


def load_settings(env_file: str | None = None) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = [
    "CustomModelConfig",
    "DoctorOptions",
    "HostedModelConfig",
    "LocalModelConfig",
    "ModelConfig",
    "OpenAIModelConfig",
    "Settings",
    "load_settings",
    "parse_options",
]
