"""Minimal git helpers for the structural apply tier."""

from __future__ import annotations

from pathlib import Path
from typing import List

from ..errors import GitError
from .process import CommandResult, run_command


class GitRepository:
    """Lightweight wrapper around ``git apply`` for one working tree."""

    def __init__(
        self,
        root: Path | str,
        *,
        executable: str = "git",
        timeout: float | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.executable = executable
        self.timeout = timeout
        # A bare ``.git`` file (worktrees, submodules) is not treated as a repository.
        if not (self.root / ".git").is_dir():
            raise GitError(f"Not a git repository: {self.root}", details={"root": self.root.as_posix()})

    @classmethod
    def detect(
        cls,
        root: Path | str,
        *,
        executable: str = "git",
        timeout: float | None = None,
    ) -> "GitRepository | None":
        """Return a repository for ``root`` or ``None`` when it has no metadata."""

        try:
            return cls(root, executable=executable, timeout=timeout)
        except GitError:
            return None

    # ------------------------------------------------------------------ git IO
    def _git_args(self, args: List[str]) -> List[str]:
        return [self.executable, "-C", str(self.root), *args]

    def check_apply_args(self, patch: Path, strip_level: int) -> List[str]:
        return self._git_args(["apply", "--check", "-v", f"-p{strip_level}", str(Path(patch).resolve())])

    def apply_args(self, patch: Path, strip_level: int) -> List[str]:
        return self._git_args(["apply", f"-p{strip_level}", str(Path(patch).resolve())])

    def check_apply(self, patch: Path, strip_level: int) -> CommandResult:
        """Dry-run ``patch`` verbosely without touching the working tree."""

        return run_command(self.check_apply_args(patch, strip_level), timeout=self.timeout)

    def apply(self, patch: Path, strip_level: int) -> CommandResult:
        """Apply ``patch`` to the working tree."""

        return run_command(self.apply_args(patch, strip_level), timeout=self.timeout)


__all__ = ["GitError", "GitRepository"]
