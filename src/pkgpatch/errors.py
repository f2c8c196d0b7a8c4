"""Exception hierarchy shared by the patch engine."""

from __future__ import annotations

from typing import Any, Mapping


class PkgPatchError(RuntimeError):
    """Base error for the patch engine."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class ConfigError(PkgPatchError):
    """Raised when the YAML configuration cannot be loaded or validated."""


class UnknownOperationError(PkgPatchError):
    """Raised when the host dispatches an operation the engine does not handle."""


class MissingInstallStateError(PkgPatchError):
    """Raised by hosts that have no record of previously installed packages."""


class GitError(PkgPatchError):
    """Raised when a directory cannot be used as a git repository."""


__all__ = [
    "ConfigError",
    "GitError",
    "MissingInstallStateError",
    "PkgPatchError",
    "UnknownOperationError",
]
