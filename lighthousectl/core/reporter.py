"""Output sinks for pipeline progress.

The pipeline never prints directly. It reports progress lines and asks
questions through a `Reporter`, so the same code serves the interactive CLI
and structured (`--json`) callers.
"""

from __future__ import annotations

from typing import Protocol

import typer


class Reporter(Protocol):
    @property
    def interactive(self) -> bool:
        """Whether the operator can be asked questions."""

    def info(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def confirm(self, question: str) -> bool:
        ...


class SilentReporter:
    interactive = False

    def info(self, message: str) -> None:
        pass

    def error(self, message: str) -> None:
        pass

    def confirm(self, question: str) -> bool:
        return False


class ConsoleReporter:
    def __init__(self, *, interactive: bool = True) -> None:
        self.interactive = interactive

    def info(self, message: str) -> None:
        typer.echo(message)

    def error(self, message: str) -> None:
        typer.echo(message, err=True)

    def confirm(self, question: str) -> bool:
        if not self.interactive:
            return False
        return typer.confirm(question, default=False)


def reporter_for(json_mode: bool) -> Reporter:
    return SilentReporter() if json_mode else ConsoleReporter()
