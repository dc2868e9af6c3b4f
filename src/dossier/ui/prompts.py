"""
dossier — interactive prompting

File: src/dossier/ui/prompts.py

Purpose
- Give producers one small interface for asking the operator questions.
- ``ConsolePrompter`` talks to a terminal; ``ScriptedPrompter`` replays canned answers.

Cancellation
- End of input (Ctrl-D) or Ctrl-C raises ``PromptCancelled``. Producers turn it into a
  ``Cancelled`` configuration outcome.

Security
- Secrets are read with ``getpass`` and never echoed.
"""

from __future__ import annotations

import getpass
import sys
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from typing import Final, Protocol, TextIO, runtime_checkable

MULTILINE_TERMINATOR: Final[str] = "--end--"

Validator = Callable[[str], str | None]


class PromptCancelled(Exception):
    """The operator aborted an interactive prompt."""


@runtime_checkable
class Prompter(Protocol):
    def text(
        self,
        message: str,
        *,
        default: str | None = None,
        validate: Validator | None = None,
    ) -> str: ...

    def secret(self, message: str) -> str: ...

    def select(
        self,
        message: str,
        options: Sequence[tuple[str, str]],
        *,
        default: str | None = None,
    ) -> str: ...

    def confirm(self, message: str, *, default: bool = True) -> bool: ...

    def multiline(self, message: str) -> str: ...

    def note(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...


class ConsolePrompter:
    """Line-oriented terminal prompter."""

    def __init__(
        self,
        *,
        input_func: Callable[[str], str] = input,
        secret_func: Callable[[str], str] = getpass.getpass,
        stream: TextIO | None = None,
    ) -> None:
        self._input = input_func
        self._secret = secret_func
        self._stream = stream

    def text(
        self,
        message: str,
        *,
        default: str | None = None,
        validate: Validator | None = None,
    ) -> str:
        suffix = f" [{default}]" if default else ""
        while True:
            answer = self._read(f"{message}{suffix}: ").strip()
            if not answer and default is not None:
                answer = default
            problem = validate(answer) if validate is not None else None
            if problem is None:
                return answer
            self.warn(problem)

    def secret(self, message: str) -> str:
        try:
            return self._secret(f"{message}: ").strip()
        except (EOFError, KeyboardInterrupt) as exc:
            raise PromptCancelled("input closed") from exc

    def select(
        self,
        message: str,
        options: Sequence[tuple[str, str]],
        *,
        default: str | None = None,
    ) -> str:
        if not options:
            raise ValueError("select requires at least one option")
        values = [value for value, _ in options]
        default_index = values.index(default) + 1 if default in values else None

        self.note(message)
        for index, (_, label) in enumerate(options, start=1):
            self.note(f"  {index}) {label}")

        suffix = f" [{default_index}]" if default_index is not None else ""
        while True:
            answer = self._read(f"Choose 1-{len(options)}{suffix}: ").strip()
            if not answer and default_index is not None:
                return values[default_index - 1]
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return values[int(answer) - 1]
            if answer in values:
                return answer
            self.warn(f"Enter a number between 1 and {len(options)}")

    def confirm(self, message: str, *, default: bool = True) -> bool:
        hint = "Y/n" if default else "y/N"
        while True:
            answer = self._read(f"{message} [{hint}]: ").strip().lower()
            if not answer:
                return default
            if answer in {"y", "yes"}:
                return True
            if answer in {"n", "no"}:
                return False
            self.warn("Answer y or n")

    def multiline(self, message: str) -> str:
        """Read lines until ``--end--`` or end of input."""

        self.note(message)
        self.note(f"When done, type '{MULTILINE_TERMINATOR}' on a new line or press Ctrl+D:")
        lines: list[str] = []
        while True:
            try:
                line = self._input("")
            except EOFError:
                break
            except KeyboardInterrupt as exc:
                raise PromptCancelled("interrupted") from exc
            if line.strip().lower() == MULTILINE_TERMINATOR:
                break
            lines.append(line)
        return "\n".join(lines)

    def note(self, message: str) -> None:
        print(message, file=self._stream or sys.stdout)

    def warn(self, message: str) -> None:
        print(f"  ! {message}", file=self._stream or sys.stdout)

    def _read(self, prompt: str) -> str:
        try:
            return self._input(prompt)
        except (EOFError, KeyboardInterrupt) as exc:
            raise PromptCancelled("input closed") from exc


class ScriptedPrompter:
    """Replays queued answers in order; raises ``PromptCancelled`` when it runs dry.

    Answers are consumed by every question type; ``confirm`` accepts booleans,
    ``select`` accepts the option value. ``asked`` records each question.
    """

    def __init__(self, answers: Iterable[object] = ()) -> None:
        self._answers: deque[object] = deque(answers)
        self.asked: list[str] = []
        self.notes: list[str] = []

    @property
    def remaining(self) -> int:
        return len(self._answers)

    def text(
        self,
        message: str,
        *,
        default: str | None = None,
        validate: Validator | None = None,
    ) -> str:
        while True:
            answer = str(self._next(message)).strip()
            if not answer and default is not None:
                answer = default
            problem = validate(answer) if validate is not None else None
            if problem is None:
                return answer
            self.notes.append(problem)

    def secret(self, message: str) -> str:
        return str(self._next(message)).strip()

    def select(
        self,
        message: str,
        options: Sequence[tuple[str, str]],
        *,
        default: str | None = None,
    ) -> str:
        answer = self._next(message)
        values = [value for value, _ in options]
        if answer is None and default is not None:
            return default
        if answer not in values:
            raise ValueError(f"scripted answer {answer!r} is not one of {values}")
        return str(answer)

    def confirm(self, message: str, *, default: bool = True) -> bool:
        answer = self._next(message)
        if answer is None:
            return default
        return bool(answer)

    def multiline(self, message: str) -> str:
        return str(self._next(message))

    def note(self, message: str) -> None:
        self.notes.append(message)

    def warn(self, message: str) -> None:
        self.notes.append(message)

    def _next(self, message: str) -> object:
        self.asked.append(message)
        if not self._answers:
            raise PromptCancelled(f"no scripted answer for {message!r}")
        answer = self._answers.popleft()
        if isinstance(answer, BaseException):
            raise answer
        return answer


__all__ = [
    "MULTILINE_TERMINATOR",
    "ConsolePrompter",
    "PromptCancelled",
    "Prompter",
    "ScriptedPrompter",
    "Validator",
]
