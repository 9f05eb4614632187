"""Typewriter output adapter.

Implements OutputPort by writing text to a console stream one character
at a time with a fixed delay between characters.
"""

import asyncio
import sys
from collections.abc import Awaitable, Callable
from typing import Protocol

from medic.core.ports import OutputPort


class Sink(Protocol):
    """Minimal text stream interface (sys.stdout, StringIO, ...)."""

    def write(self, text: str) -> int: ...

    def flush(self) -> None: ...


class TypeWriter(OutputPort):
    """Writes text character by character to a sink.

    Each character is written and flushed before the next delay, so a
    cancelled render never leaves a partially written character behind.
    """

    def __init__(
        self,
        sink: Sink | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the typewriter.

        Args:
            sink: Stream to write to. Defaults to sys.stdout at write time.
            sleep: Coroutine function taking seconds; injectable for tests.
        """
        self._sink = sink
        self._sleep = sleep

    @property
    def sink(self) -> Sink:
        return self._sink if self._sink is not None else sys.stdout

    async def render(self, text: str, delay_ms: float = 20) -> None:
        """Write text with delay_ms between characters, then a newline.

        No delay follows the final character.
        """
        sink = self.sink
        last = len(text) - 1
        for i, char in enumerate(text):
            sink.write(char)
            sink.flush()
            if i < last and delay_ms > 0:
                await self._sleep(delay_ms / 1000)
        sink.write("\n")
        sink.flush()

    async def newline(self) -> None:
        sink = self.sink
        sink.write("\n")
        sink.flush()
