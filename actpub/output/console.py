"""Console output abstraction.

Release components report progress through `ConsoleProtocol` and never print
directly. Three implementations exist:
- RichConsole: styled terminal output
- ActionsConsole: GitHub Actions workflow commands (warnings and errors show
  up as annotations on the run)
- MockConsole: captures output for tests
"""

from __future__ import annotations

import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol, TextIO

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "ActionsConsole",
    "MockConsole",
    "make_console",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()  # echoed commands, ids
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Interface for run output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...


class RichConsole:
    """Console implementation using Rich."""

    def __init__(self) -> None:
        # Import Rich lazily to keep service imports light
        from rich.console import Console

        self._console = Console(highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def success(self, message: str) -> None:
        self._console.print(f"[green]OK[/green] {_escape(message)}")

    def error(self, message: str) -> None:
        self._console.print(f"[red bold]error:[/red bold] {_escape(message)}")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]warning:[/yellow] {_escape(message)}")

    def info(self, message: str) -> None:
        self._console.print(f"[cyan]info:[/cyan] {_escape(message)}")

    def header(self, message: str) -> None:
        self._console.print(f"\n[blue bold]{_escape(message)}[/blue bold]")


def _escape(message: str) -> str:
    from rich.markup import escape

    return escape(message)


def _workflow_escape(message: str) -> str:
    # Workflow command data must not contain raw newlines or percent signs.
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _plain(message: str) -> str:
    # A line starting with "::" would be parsed by the runner as a command.
    return "\n".join(
        f"> {line}" if line.lstrip().startswith("::") else line for line in message.splitlines()
    )


class ActionsConsole:
    """Console implementation emitting GitHub Actions workflow commands."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout

    def _write(self, line: str) -> None:
        self._stream.write(line + "\n")
        self._stream.flush()

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        match style:
            case Style.ERROR:
                self.error(message)
            case Style.WARNING:
                self.warning(message)
            case _:
                self._write(_plain(message))

    def success(self, message: str) -> None:
        self._write(_plain(f"OK {message}"))

    def error(self, message: str) -> None:
        self._write(f"::error::{_workflow_escape(message)}")

    def warning(self, message: str) -> None:
        self._write(f"::warning::{_workflow_escape(message)}")

    def info(self, message: str) -> None:
        self._write(_plain(message))

    def header(self, message: str) -> None:
        self._write(f"::notice::{_workflow_escape(message)}")


def make_console(env: Mapping[str, str]) -> ConsoleProtocol:
    """Pick the console for the current process environment."""
    if env.get("GITHUB_ACTIONS", "").lower() == "true":
        return ActionsConsole()
    return RichConsole()


@dataclass
class OutputRecord:
    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    # Test helpers

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def has_success(self) -> bool:
        return any(o.style == Style.SUCCESS for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]
