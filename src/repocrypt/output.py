"""Operator-facing output for repocrypt.

Filter commands run inside git and own stdout for file content, so they
build their Output on stderr. Setup commands use the normal streams.
"""

import os
import sys
from typing import TextIO


class Output:
    """Handles colored and formatted output."""

    # ANSI color codes
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"

    def __init__(
        self,
        *,
        no_color: bool = False,
        quiet: bool = False,
        stream: TextIO | None = None,
        err_stream: TextIO | None = None,
    ):
        """Initialize output handler.

        Args:
            no_color: Disable colored output
            quiet: Suppress informational output
            stream: Output stream (default stdout)
            err_stream: Error stream (default stderr)
        """
        self.stream = stream or sys.stdout
        self.err_stream = err_stream or sys.stderr
        self.quiet = quiet

        self._use_color = self._should_use_color(no_color)

    @classmethod
    def for_filter(cls, *, no_color: bool = False, quiet: bool = False) -> "Output":
        """Build an Output that never writes to stdout.

        Args:
            no_color: Disable colored output
            quiet: Suppress informational output

        Returns:
            Output bound to stderr for both streams
        """
        return cls(no_color=no_color, quiet=quiet, stream=sys.stderr, err_stream=sys.stderr)

    def _should_use_color(self, no_color: bool) -> bool:
        """Determine if colored output should be used.

        Args:
            no_color: Explicit flag to disable color

        Returns:
            True if color should be used
        """
        if no_color:
            return False

        if os.environ.get("NO_COLOR"):
            return False

        if not hasattr(self.stream, "isatty") or not self.stream.isatty():
            return False

        return True

    def _colorize(self, text: str, *codes: str) -> str:
        """Apply color codes to text.

        Args:
            text: Text to colorize
            codes: ANSI codes to apply

        Returns:
            Colorized text (or plain text if color disabled)
        """
        if not self._use_color:
            return text
        return f"{''.join(codes)}{text}{self.RESET}"

    def success(self, message: str) -> None:
        """Print a success message (green)."""
        if self.quiet:
            return
        print(self._colorize(message, self.GREEN), file=self.stream)

    def warning(self, message: str) -> None:
        """Print a warning message (yellow). Not affected by quiet."""
        print(self._colorize(f"Warning: {message}", self.YELLOW), file=self.err_stream)

    def error(self, message: str) -> None:
        """Print an error message (red)."""
        print(self._colorize(f"Error: {message}", self.RED), file=self.err_stream)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if self.quiet:
            return
        print(message, file=self.stream)

    def path(self, path: str) -> str:
        """Format a path with color (cyan).

        Args:
            path: Path to format

        Returns:
            Formatted path string
        """
        return self._colorize(path, self.CYAN)

    def header(self, text: str) -> None:
        """Print a header (bold)."""
        if self.quiet:
            return
        print(self._colorize(text, self.BOLD), file=self.stream)

    def created(self, path: str) -> None:
        """Print a 'created' message for a path."""
        if self.quiet:
            return
        print(f"  {self._colorize('+', self.GREEN)} {self.path(path)}", file=self.stream)

    def unchanged(self, path: str) -> None:
        """Print an 'already present' message for a path."""
        if self.quiet:
            return
        print(f"  {self._colorize('=', self.DIM)} {self.path(path)}", file=self.stream)

    def check(self, label: str, ok: bool) -> None:
        """Print one line of a status checklist.

        Args:
            label: What was checked
            ok: Whether the check passed
        """
        if self.quiet:
            return
        mark = self._colorize("ok", self.GREEN) if ok else self._colorize("missing", self.RED)
        print(f"  [{mark}] {label}", file=self.stream)


# Global default output instance
_default_output: Output | None = None


def get_output() -> Output:
    """Get the default output instance.

    Returns:
        Default Output instance
    """
    global _default_output
    if _default_output is None:
        _default_output = Output()
    return _default_output


def set_output(output: Output) -> None:
    """Set the default output instance.

    Args:
        output: Output instance to use as default
    """
    global _default_output
    _default_output = output
