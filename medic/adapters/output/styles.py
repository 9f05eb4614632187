"""Terminal styling for diagnosis output.

Implements StylePort with ANSI escape codes. Colors are disabled when
NO_COLOR is set, when stdout is not a TTY, or when forced off.
"""

import os
import sys
from typing import Optional

from medic.core.ports import StylePort


class Palette(StylePort):
    """ANSI color palette."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    def __init__(self, force_color: Optional[bool] = None):
        """
        Initialize the palette.

        Args:
            force_color: If True, force colors on. If False, force colors off.
                        If None, auto-detect based on TTY and NO_COLOR.
        """
        self._force_color = force_color
        self._enabled = self._should_enable_colors()

    def _should_enable_colors(self) -> bool:
        if self._force_color is not None:
            return self._force_color

        # https://no-color.org/
        if os.environ.get("NO_COLOR"):
            return False

        if os.environ.get("FORCE_COLOR"):
            return True

        if not hasattr(sys.stdout, "isatty"):
            return False

        return sys.stdout.isatty()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _wrap(self, text: str, code: str) -> str:
        if not self._enabled:
            return text
        return f"{code}{text}{self.RESET}"

    def red(self, text: str) -> str:
        return self._wrap(text, self.RED)

    def yellow(self, text: str) -> str:
        return self._wrap(text, self.YELLOW)

    def green(self, text: str) -> str:
        return self._wrap(text, self.GREEN)

    def cyan(self, text: str) -> str:
        return self._wrap(text, self.CYAN)

    def white(self, text: str) -> str:
        return self._wrap(text, self.WHITE)

    def bold(self, text: str) -> str:
        return self._wrap(text, self.BOLD)

    def dim(self, text: str) -> str:
        return self._wrap(text, self.DIM)
