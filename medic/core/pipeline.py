"""Diagnosis pipeline for failed builds.

This module orchestrates one diagnosis attempt: derive the failure
context, build the conversation, invoke the model through its port, and
render either the model's advice or fallback troubleshooting guidance.
"""

import asyncio
import inspect
import json
import logging
from collections.abc import Mapping
from typing import Any

from .errors import ProviderError
from .guidance import checklist_for
from .models import (
    UNKNOWN_STACK,
    Conversation,
    DiagnosisOutcome,
    FailureContext,
    PipelineState,
    ProviderKind,
)
from .ports import ModelPort, ModelSourcePort, OutputPort, StylePort
from .prompts import build_conversation

logger = logging.getLogger(__name__)

RULE = "━" * 40
NO_CONTENT = "The model returned no usable content"

BANNER = "🚨 Build failure diagnosis starting"
ANALYZING = "🤖 AI is analyzing the build error, please wait..."
REPLY_HEADING = "💡 AI diagnosis:"
REPLY_FOOTER = "Diagnosis complete. Apply the suggestions above to fix the build."
FAILURE_HEADING = "❌ AI diagnosis failed"
CHECK_HEADING = "Please check:"
ORIGINAL_HEADING = "Original build error:"


def extract_reply(response: Any) -> str:
    """Normalize a model response to text.

    Strings pass through unchanged. Anything else is read through a
    ``content`` attribute or mapping key; a missing or empty content
    yields a placeholder, and non-text content is JSON-encoded.
    """
    if isinstance(response, str):
        return response
    if isinstance(response, Mapping):
        content = response.get("content")
    else:
        content = getattr(response, "content", None)
    if content is None or content == "":
        return NO_CONTENT
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False, default=str)


def describe_error(error: BaseException) -> str:
    """Human-readable message for a caught diagnosis error."""
    message = str(error).strip()
    return message or type(error).__name__


class DiagnosisPipeline:
    """Runs a diagnosis for each failed build.

    Uses ports but contains no adapter-specific logic. Attempts are
    serialized per pipeline instance; the model adapter is obtained from
    the injected source, which memoizes it.
    """

    def __init__(
        self,
        model_source: ModelSourcePort,
        writer: OutputPort,
        palette: StylePort,
        provider_kind: ProviderKind = ProviderKind.UNKNOWN,
        type_writer_speed: float = 20,
        show_original_error: bool = True,
        request_timeout: float | None = None,
    ):
        """Initialize the pipeline.

        Args:
            model_source: Supplies the model adapter on first use.
            writer: Paced output for everything the pipeline prints.
            palette: Text decoration functions.
            provider_kind: Selects the fallback checklist.
            type_writer_speed: Milliseconds per character for body text.
            show_original_error: Echo the build failure when diagnosis fails.
            request_timeout: Seconds to wait for the model, or None to wait
                indefinitely.

        Raises:
            ValueError: If speed or timeout are out of range.
        """
        if type_writer_speed < 0:
            raise ValueError("type_writer_speed must be non-negative")
        if request_timeout is not None and request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

        self.model_source = model_source
        self.writer = writer
        self.palette = palette
        self.provider_kind = provider_kind
        self.type_writer_speed = type_writer_speed
        self.show_original_error = show_original_error
        self.request_timeout = request_timeout

        self._state = PipelineState.IDLE
        self._in_flight = asyncio.Lock()

    @property
    def state(self) -> PipelineState:
        """Current pipeline state (IDLE between attempts)."""
        return self._state

    async def handle_build_end(self, error: Any = None) -> PipelineState:
        """Handle one build-completion event.

        Args:
            error: None for a successful build, otherwise the failure object.

        Returns:
            The terminal state reached for this event: IDLE when there was
            no failure, otherwise RENDERED or FALLBACK. The pipeline itself
            is back in IDLE when this returns.

        Diagnosis failures never propagate; only errors raised while
        writing output can escape.
        """
        async with self._in_flight:
            self._state = PipelineState.AWAITING_FAILURE
            try:
                if error is None:
                    return PipelineState.IDLE

                self._state = PipelineState.DIAGNOSING
                context = FailureContext.from_failure(error)
                outcome = await self._diagnose(context)

                if outcome.reply is not None:
                    self._state = PipelineState.RENDERED
                    await self._render_reply(outcome.reply)
                else:
                    self._state = PipelineState.FALLBACK
                    await self._render_fallback(outcome.error or "", context)
                return self._state
            finally:
                self._state = PipelineState.IDLE

    async def _diagnose(self, context: FailureContext) -> DiagnosisOutcome:
        """Announce the diagnosis, invoke the model, classify the result."""
        try:
            await self.writer.newline()
            await self.writer.render(self.palette.red(BANNER), self._pace(1.5))
            await self.writer.newline()
            await self.writer.render(self.palette.yellow(ANALYZING), self._pace())
            await self.writer.newline()

            conversation = build_conversation(context)
            model = await self.model_source.get()
            response = await self._invoke(model, conversation)
            return DiagnosisOutcome.success(extract_reply(response))
        except Exception as e:
            logger.error(
                f"Diagnosis failed for {context.name} at {context.location}: {e}",
                exc_info=True,
            )
            return DiagnosisOutcome.failure(describe_error(e))

    async def _invoke(self, model: ModelPort, conversation: Conversation) -> Any:
        """Call the model, bounded by request_timeout.

        Raises:
            ProviderError: If the call exceeds request_timeout.
        """
        call = self._call(model, conversation)
        if self.request_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.request_timeout)
        except TimeoutError as e:
            raise ProviderError(
                f"Model call timed out after {self.request_timeout:g} seconds",
                provider=self.provider_kind.value,
            ) from e

    async def _call(self, model: ModelPort, conversation: Conversation) -> Any:
        """Run invoke, moving a synchronous implementation off the event loop.

        A thread that outlives request_timeout is abandoned, not interrupted.
        """
        if inspect.iscoroutinefunction(model.invoke):
            return await model.invoke(conversation)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, model.invoke, conversation)
        if inspect.isawaitable(result):
            return await result
        return result

    async def _render_reply(self, reply: str) -> None:
        """Render the model's advice, one line at a time."""
        p = self.palette
        await self.writer.newline()
        await self.writer.render(p.cyan(RULE), self._pace(0.25))
        await self.writer.newline()
        await self.writer.render(p.bold(p.green(REPLY_HEADING)), self._pace())
        await self.writer.newline()
        await self.writer.render(p.cyan(RULE), self._pace(0.25))
        await self.writer.newline()

        for line in reply.split("\n"):
            await self.writer.render(p.white(line), self._pace())

        await self.writer.newline()
        await self.writer.render(p.cyan(RULE), self._pace(0.25))
        await self.writer.newline()
        await self.writer.render(p.dim(REPLY_FOOTER), self._pace())
        await self.writer.newline()

    async def _render_fallback(self, error: str, context: FailureContext) -> None:
        """Render troubleshooting guidance and, optionally, the original error."""
        p = self.palette
        await self.writer.newline()
        await self.writer.render(p.red(RULE), self._pace(0.25))
        await self.writer.newline()
        await self.writer.render(p.red(FAILURE_HEADING), self._pace())
        await self.writer.newline()
        await self.writer.render(p.yellow(CHECK_HEADING), self._pace())
        await self.writer.newline()

        for item in checklist_for(self.provider_kind):
            await self.writer.render(p.dim(item), self._pace())
            await self.writer.newline()

        await self.writer.render(p.dim(f"  Error details: {error}"), self._pace())
        await self.writer.newline()

        if self.show_original_error:
            await self.writer.render(p.yellow(ORIGINAL_HEADING), self._pace())
            await self.writer.newline()
            await self.writer.render(p.red(context.message), self._pace(0.75))
            if context.stack != UNKNOWN_STACK:
                await self.writer.render(p.dim(context.stack), self._pace(0.5))
            await self.writer.newline()

        await self.writer.render(p.red(RULE), self._pace(0.25))
        await self.writer.newline()

    def _pace(self, factor: float = 1.0) -> float:
        """Delay in milliseconds for a given element, relative to the base speed."""
        return self.type_writer_speed * factor
