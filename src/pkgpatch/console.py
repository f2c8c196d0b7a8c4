"""Console sinks for human-readable progress output."""

from __future__ import annotations

from typing import Protocol

import typer


class ConsoleSink(Protocol):
    """Minimal output surface used by the engine."""

    @property
    def is_verbose(self) -> bool: ...

    def info(self, message: str) -> None: ...

    def comment(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class TyperConsole:
    """Styled console output written through ``typer.secho``."""

    def __init__(self, *, verbose: bool = False) -> None:
        self._verbose = verbose

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    def info(self, message: str) -> None:
        typer.secho(message, fg=typer.colors.GREEN)

    def comment(self, message: str) -> None:
        typer.secho(message, fg=typer.colors.YELLOW)

    def error(self, message: str) -> None:
        typer.secho(message, fg=typer.colors.RED, err=True)


__all__ = ["ConsoleSink", "TyperConsole"]
