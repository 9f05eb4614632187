"""Build command runner for the Medic CLI.

Acts as the host for command-line builds: runs the build command as a
subprocess, echoes its output, and reports a failure to the plugin when
the command exits non-zero.
"""

import asyncio
import codecs
import logging
import shlex
import sys
from collections import deque
from pathlib import Path
from typing import TextIO

from medic.adapters.host.plugin import BuildFailure
from medic.core.ports import BuildHookPort

logger = logging.getLogger(__name__)

TAIL_LINES = 200
COMMAND_NOT_FOUND = 127
READ_CHUNK = 64 * 1024
LINE_LIMIT = 1024 * 1024


class BuildCommandRunner:
    """Runs build commands and hands failures to a BuildHookPort."""

    def __init__(
        self,
        hook: BuildHookPort,
        output: TextIO | None = None,
        tail_lines: int = TAIL_LINES,
    ):
        """Initialize the runner.

        Args:
            hook: Plugin to notify when the build finishes.
            output: Stream the build output is echoed to (default stdout).
            tail_lines: Number of trailing output lines kept for diagnosis.
        """
        if tail_lines <= 0:
            raise ValueError("tail_lines must be positive")
        self.hook = hook
        self.output = output
        self.tail_lines = tail_lines

    @property
    def stream(self) -> TextIO:
        return self.output if self.output is not None else sys.stdout

    async def run(self, command: list[str]) -> int:
        """Run a build command and diagnose it if it fails.

        Args:
            command: Program and arguments.

        Returns:
            The command's own exit status (127 if it could not be started).
            Diagnosis never changes the returned status.
        """
        if not command:
            raise ValueError("command must not be empty")

        command_line = shlex.join(command)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            logger.error(f"Failed to start build command {command_line}: {e}")
            await self.hook.build_end(
                BuildFailure(
                    message=f"Build command could not be started: {e}",
                    id=command_line,
                )
            )
            return COMMAND_NOT_FOUND

        tail: deque[str] = deque(maxlen=self.tail_lines)
        assert process.stdout is not None
        try:
            await self._pump(process.stdout, tail)
            returncode = await process.wait()
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()
        logger.info(f"Build command exited with status {returncode}: {command_line}")

        if returncode == 0:
            await self.hook.build_end(None)
        else:
            await self.hook.build_end(
                BuildFailure(
                    message=f"Build command exited with status {returncode}",
                    stack="\n".join(tail),
                    id=command_line,
                )
            )
        return returncode

    async def _pump(self, reader: asyncio.StreamReader, tail: deque[str]) -> None:
        """Echo output in fixed-size chunks and keep its trailing lines.

        Output is not read line by line, so a single line of any length
        neither stalls nor breaks the build. Lines kept for diagnosis are
        cut to their last LINE_LIMIT characters.
        """
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        partial = ""
        while True:
            chunk = await reader.read(READ_CHUNK)
            text = decoder.decode(chunk, final=not chunk)
            if text:
                self.stream.write(text)
                self.stream.flush()
                *lines, partial = (partial + text).split("\n")
                tail.extend(line[-LINE_LIMIT:] for line in lines)
                partial = partial[-LINE_LIMIT:]
            if not chunk:
                break
        if partial:
            tail.append(partial)

    async def diagnose_log(self, log_path: Path, message: str | None = None) -> None:
        """Diagnose a saved build log.

        Args:
            log_path: Path to the log file; its trailing lines become the stack.
            message: Optional error message; defaults to the last non-empty line.

        Raises:
            OSError: If the log cannot be read.
        """
        text = log_path.read_text(encoding="utf-8", errors="replace")
        lines = text.splitlines()[-self.tail_lines:]
        if message is None:
            message = next((line for line in reversed(lines) if line.strip()), "")
        await self.hook.build_end(
            BuildFailure(message=message, stack="\n".join(lines), id=str(log_path))
        )
