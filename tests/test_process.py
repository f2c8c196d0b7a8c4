from __future__ import annotations

import sys
from pathlib import Path

from pkgpatch.tools.process import run_command


def test_run_command_closes_stdin() -> None:
    result = run_command([sys.executable, "-c", "import sys; print(repr(sys.stdin.read()))"], timeout=30)

    assert result.ok
    assert result.stdout.strip() == "''"


def test_run_command_reports_timeouts() -> None:
    result = run_command([sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.5)

    assert result.timed_out
    assert result.returncode is None
    assert not result.ok


def test_run_command_reports_missing_executables(tmp_path: Path) -> None:
    result = run_command([str(tmp_path / "no-such-tool"), "--version"])

    assert result.returncode is None
    assert not result.timed_out
    assert result.stderr
