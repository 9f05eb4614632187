"""Build-tool plugin boundary.

Implements BuildHookPort: the host build tool constructs one plugin per
configuration and calls build_end once a build has finished. Option
validation happens at construction; nothing raised while diagnosing is
allowed to reach the host.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from medic.adapters.output.styles import Palette
from medic.adapters.output.typewriter import TypeWriter
from medic.adapters.providers.factory import ModelProvider
from medic.config import DoctorOptions, parse_options
from medic.core.models import PipelineState
from medic.core.pipeline import DiagnosisPipeline
from medic.core.ports import BuildHookPort, OutputPort, StylePort

logger = logging.getLogger(__name__)

NAME = "medic"


@dataclass(frozen=True)
class BuildFailure:
    """A build failure as reported by a host that has no exception object."""

    message: str
    stack: str = ""
    id: str = ""
    name: str = "BuildError"


class DiagnosisPlugin(BuildHookPort):
    """Runs an AI diagnosis whenever the host reports a failed build."""

    name = NAME

    def __init__(
        self,
        options: DoctorOptions | Mapping[str, Any] | None,
        writer: OutputPort | None = None,
        palette: StylePort | None = None,
    ):
        """Validate options and wire the diagnosis pipeline.

        Args:
            options: Plugin options; the model section is required.
            writer: Output adapter; defaults to a TypeWriter on stdout.
            palette: Styling adapter; defaults to an auto-detecting Palette.

        Raises:
            ConfigurationError: If options are missing or invalid.
        """
        self.options = parse_options(options)
        self.model_provider = ModelProvider(self.options.model)
        self.pipeline = DiagnosisPipeline(
            model_source=self.model_provider,
            writer=writer or TypeWriter(),
            palette=palette or Palette(),
            provider_kind=self.model_provider.kind,
            type_writer_speed=self.options.type_writer_speed,
            show_original_error=self.options.show_original_error,
            request_timeout=self.options.request_timeout,
        )

    @property
    def enabled(self) -> bool:
        return self.options.enabled

    async def build_end(self, error: Any = None) -> None:
        """Diagnose a failed build; do nothing for a successful one.

        Never raises: anything the pipeline lets escape (for example a
        closed output stream) is logged and swallowed so the host's build
        result is unaffected.
        """
        if not self.enabled:
            return
        try:
            state = await self.pipeline.handle_build_end(error)
            if state is not PipelineState.IDLE:
                logger.info(f"Diagnosis finished: {state.value}")
        except Exception as e:
            logger.error(f"Diagnosis output failed: {e}", exc_info=True)

    async def close(self) -> None:
        """Release the model adapter's resources."""
        try:
            await self.model_provider.close()
        except Exception as e:
            logger.warning(f"Failed to close model adapter: {e}", exc_info=True)
