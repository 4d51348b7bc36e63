"""Line-oriented prompts used by the FOMOD installer.

The installer only needs to print a line and read an answer, so prompts go
through the small :class:`Prompter` protocol.  ``ConsolePrompter`` talks to
the terminal; ``ScriptedPrompter`` replays canned answers for tests and
non-interactive runs.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol


class Command(StrEnum):
    EXIT = "exit"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class Answer:
    index: int | None = None
    command: Command | None = None


_COMMANDS = {
    "e": Command.EXIT,
    "exit": Command.EXIT,
    "d": Command.DONE,
    "done": Command.DONE,
}


def parse_answer(text: str) -> Answer | None:
    """Interpret a line typed at a selection prompt; ``None`` if it is not valid.

    >>> parse_answer("2")
    Answer(index=2, command=None)
    >>> parse_answer(" E ")
    Answer(index=None, command=<Command.EXIT: 'exit'>)
    """
    cleaned = text.strip().lower()
    if cleaned.isascii() and cleaned.isdigit():
        return Answer(index=int(cleaned))
    command = _COMMANDS.get(cleaned)
    if command is not None:
        return Answer(command=command)
    return None


class Prompter(Protocol):
    def show(self, line: str = "") -> None: ...

    def ask(self, message: str) -> str: ...


class ConsolePrompter:
    def show(self, line: str = "") -> None:
        print(line)

    def ask(self, message: str) -> str:
        return input(message)


class ScriptedPrompter:
    """Answers prompts from a fixed list and records everything shown."""

    def __init__(self, answers: Iterable[str]) -> None:
        self._answers = deque(answers)
        self.lines: list[str] = []

    def show(self, line: str = "") -> None:
        self.lines.append(line)

    def ask(self, message: str) -> str:
        if not self._answers:
            raise EOFError(f"No scripted answer left for prompt {message!r}")
        return self._answers.popleft()
