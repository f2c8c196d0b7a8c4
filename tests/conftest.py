from __future__ import annotations

import shutil
import subprocess
import sys
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


ADD_BETA_DIFF = textwrap.dedent(
    """
    diff --git a/tracked.txt b/tracked.txt
    --- a/tracked.txt
    +++ b/tracked.txt
    @@ -1 +1,2 @@
     alpha
    +beta
    """
).lstrip()

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
requires_patch = pytest.mark.skipif(shutil.which("patch") is None, reason="patch is not installed")


@dataclass(slots=True)
class RecordingConsole:
    """Console sink that keeps every line for assertions."""

    verbose: bool = False
    lines: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def is_verbose(self) -> bool:
        return self.verbose

    def info(self, message: str) -> None:
        self.lines.append(("info", message))

    def comment(self, message: str) -> None:
        self.lines.append(("comment", message))

    def error(self, message: str) -> None:
        self.lines.append(("error", message))

    def messages(self, style: str) -> List[str]:
        return [message for kind, message in self.lines if kind == style]


@pytest.fixture()
def console() -> RecordingConsole:
    return RecordingConsole()


@pytest.fixture()
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a helper writing ``content`` to ``relative`` under ``tmp_path``."""

    def _write(relative: str, content: str = ADD_BETA_DIFF) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def plain_target(tmp_path: Path) -> Path:
    """Install directory without repository metadata."""

    target = tmp_path / "vendor" / "acme" / "lib"
    target.mkdir(parents=True)
    (target / "tracked.txt").write_text("alpha\n", encoding="utf-8")
    return target


@pytest.fixture()
def git_target(tmp_path: Path) -> Path:
    """Install directory that is a git checkout with one committed file."""

    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    target = tmp_path / "checkout"
    target.mkdir()

    def run_git(*cmd: str) -> None:
        subprocess.run(["git", *cmd], cwd=target, check=True, capture_output=True, text=True)

    run_git("init")
    run_git("config", "user.email", "agent@example.com")
    run_git("config", "user.name", "Patch Engine")
    (target / "tracked.txt").write_text("alpha\n", encoding="utf-8")
    run_git("add", "tracked.txt")
    run_git("commit", "-m", "init")
    return target
