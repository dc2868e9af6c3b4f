"""Output rendering for the dossier CLI.

File: src/dossier/ui/render.py

Purpose
- Provide a thin, plain-text rendering layer for command output.
- Respect the ``NO_COLOR`` environment variable and the ``--no-color`` flag.

Functional requirements
- Output is deterministic plain text; color only adds ANSI codes around status words.
- Every method writes to the renderer's stream (stdout by default) so tests can capture it.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, Final, TextIO

if TYPE_CHECKING:
    from collections.abc import Sequence

_ANSI: Final[dict[str, str]] = {
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "dim": "\033[2m",
}
_RESET: Final[str] = "\033[0m"


def _color_allowed(no_color_flag: bool, stream: TextIO) -> bool:
    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


class CLIRenderer:
    """Plain-text CLI output; colors status words only on a TTY."""

    def __init__(
        self,
        *,
        no_color: bool = False,
        verbose: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        self.verbose = verbose
        self._stream = stream
        self._color = _color_allowed(no_color, self.stream)

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    @property
    def color(self) -> bool:
        return self._color

    def text(self, line: str = "") -> None:
        print(line, file=self.stream)

    def heading(self, text: str) -> None:
        self.text(text)
        self.text("-" * max(len(text), 3))

    def section(self, title: str) -> None:
        self.text(f"\n{title}")

    def kv(self, key: str, value: object) -> None:
        self.text(f"{key}: {value}")

    def success(self, text: str) -> None:
        self.text(self._paint(text, "green"))

    def warning(self, text: str) -> None:
        self.text(self._paint(f"Warning: {text}", "yellow"))

    def error(self, text: str) -> None:
        self.text(self._paint(f"Error: {text}", "red"))

    def hint(self, text: str) -> None:
        self.text(self._paint(text, "dim"))

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            self.text(f"  {prefix}{entry}")

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        *,
        title: str | None = None,
    ) -> None:
        """Left-aligned columns separated by two spaces."""

        if not rows:
            return
        widths = [len(header) for header in headers]
        for row in rows:
            for index, cell in enumerate(row[: len(headers)]):
                widths[index] = max(widths[index], len(str(cell)))

        def pad(cells: Sequence[str]) -> str:
            padded = [
                (str(cells[index]) if index < len(cells) else "").ljust(width)
                for index, width in enumerate(widths)
            ]
            return "  ".join(padded).rstrip()

        if title:
            self.section(title)
        self.text(f"  {pad(list(headers))}")
        self.text(f"  {'  '.join('-' * width for width in widths)}")
        for row in rows:
            self.text(f"  {pad(list(row))}")

    def _paint(self, text: str, color: str) -> str:
        if not self._color:
            return text
        return f"{_ANSI[color]}{text}{_RESET}"


def create_renderer(
    *,
    no_color: bool = False,
    verbose: bool = False,
    stream: TextIO | None = None,
) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, verbose=verbose, stream=stream)


__all__ = ["CLIRenderer", "create_renderer"]
