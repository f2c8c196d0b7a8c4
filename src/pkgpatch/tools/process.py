"""Blocking process execution with an argument vector and a timeout."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import logging
import shlex
import subprocess

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CommandResult:
    """Captured outcome of one external command."""

    command: tuple[str, ...]
    returncode: int | None
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


def _decode(payload: bytes | None) -> str:
    return payload.decode("utf-8", errors="replace") if payload else ""


def run_command(
    args: Sequence[str],
    *,
    timeout: float | None = None,
) -> CommandResult:
    """Run ``args`` without a shell and capture its output.

    Timeouts and missing executables are reported through the result rather
    than raised; stdin is closed so interactive prompts fail fast.
    """
    command = tuple(str(arg) for arg in args)
    LOGGER.debug("Running %s", shlex.join(command))
    try:
        process = subprocess.run(  # noqa: S603 - argument vector, no shell
            list(command),
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=False,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as error:
        LOGGER.warning("Command timed out after %ss: %s", timeout, shlex.join(command))
        stderr = _decode(error.stderr) or f"Timed out after {timeout}s"
        return CommandResult(command, None, _decode(error.stdout), stderr, timed_out=True)
    except OSError as error:
        LOGGER.warning("Command could not be started: %s (%s)", shlex.join(command), error)
        return CommandResult(command, None, "", str(error))

    return CommandResult(command, process.returncode, _decode(process.stdout), _decode(process.stderr))


__all__ = ["CommandResult", "run_command"]
