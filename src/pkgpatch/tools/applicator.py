"""Apply resolved patches with a git tier and a ``patch`` fallback tier."""

from __future__ import annotations

import json
import logging
import shlex
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

from ..config import ApplySettings
from ..console import ConsoleSink
from .process import CommandResult, run_command
from .resolver import PatchEntry
from .vcs import GitRepository

LOGGER = logging.getLogger(__name__)
TELEMETRY_LOGGER = logging.getLogger("pkgpatch.telemetry")

SKIPPED_MARKER = "Skipped"
GIT_CHECK_COMMENT = (
    "Testing ability to patch with git apply. "
    "This command may produce errors that can be safely ignored."
)


class ApplyOutcome(str, Enum):
    """Final state of one patch."""

    APPLIED_STRUCTURALLY = "applied-structurally"
    APPLIED_TEXTUALLY = "applied-textually"
    FAILED = "failed"


class Strategy(str, Enum):
    GIT = "git"
    PATCH = "patch"


@dataclass(slots=True)
class StrategyAttempt:
    """Single command issued while trying to apply a patch."""

    strategy: Strategy
    command: Tuple[str, ...]
    returncode: int | None
    stderr: str = ""
    timed_out: bool = False
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out and self.reason is None


@dataclass(slots=True)
class ApplyResult:
    """Outcome of applying one patch file."""

    name: str
    path: Path
    outcome: ApplyOutcome
    strategy: Strategy | None = None
    attempts: Tuple[StrategyAttempt, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome != ApplyOutcome.FAILED

    @property
    def tiers_tried(self) -> Tuple[Strategy, ...]:
        tiers: List[Strategy] = []
        for attempt in self.attempts:
            if attempt.strategy not in tiers:
                tiers.append(attempt.strategy)
        return tuple(tiers)

    def describe(self) -> str:
        if self.ok:
            return f"{self.name}: {self.outcome.value}"
        tried = ", ".join(tier.value for tier in self.tiers_tried) or "none"
        detail = f" ({self.error})" if self.error else ""
        return f"{self.name}: failed after trying {tried}{detail}"


@dataclass(slots=True)
class _TierOutcome:
    applied: bool
    attempts: List[StrategyAttempt] = field(default_factory=list)


def _serialise_event_value(value: Any) -> Any:
    """Convert telemetry payload values into JSON-friendly representations."""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (list, tuple, set)):
        return [_serialise_event_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _serialise_event_value(child) for key, child in value.items()}
    return str(value)


def _emit_patch_event(event: str, **fields: Any) -> None:
    """Log a structured telemetry event for one apply step."""
    payload = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    for key, value in fields.items():
        payload[key] = _serialise_event_value(value)
    TELEMETRY_LOGGER.info(json.dumps(payload, separators=(",", ":"), ensure_ascii=True))


def _attempt_from(strategy: Strategy, result: CommandResult, *, reason: str | None = None) -> StrategyAttempt:
    if reason is None and result.timed_out:
        reason = "timed out"
    return StrategyAttempt(
        strategy=strategy,
        command=result.command,
        returncode=result.returncode,
        stderr=result.stderr,
        timed_out=result.timed_out,
        reason=reason,
    )


class PatchApplicator:
    """Apply patch files in order, each one independently of the others."""

    def __init__(
        self,
        settings: ApplySettings,
        console: ConsoleSink,
        *,
        report_failures: bool = True,
    ) -> None:
        self.settings = settings
        self.console = console
        self.report_failures = report_failures

    def apply(self, patches: Iterable[PatchEntry], target: Path | str) -> List[ApplyResult]:
        """Apply every patch in ``patches`` to ``target`` and report per patch.

        Empty patches are skipped without producing a result.
        """
        target_dir = Path(target).resolve()
        repository = None
        if self.settings.use_git:
            repository = GitRepository.detect(
                target_dir,
                executable=self.settings.git_command,
                timeout=self.settings.timeout,
            )

        results: List[ApplyResult] = []
        for entry in patches:
            result = self.apply_one(entry, target_dir, repository)
            if result is None:
                continue
            results.append(result)
            _emit_patch_event(
                "patch_result",
                patch=entry.path,
                scope=entry.scope,
                outcome=result.outcome,
                strategy=result.strategy,
                tiers=result.tiers_tried,
            )
            if not result.ok and self.report_failures:
                self.console.error(f"Could not apply patch {entry.path}: {result.describe()}")
        return results

    def apply_one(
        self,
        entry: PatchEntry,
        target_dir: Path,
        repository: GitRepository | None,
    ) -> ApplyResult | None:
        """Apply ``entry``; return ``None`` when the patch is an empty marker."""
        try:
            content = entry.path.read_text(encoding="utf-8", errors="replace")
        except OSError as error:
            LOGGER.warning("Unable to read patch %s: %s", entry.path, error)
            return ApplyResult(
                name=entry.name,
                path=entry.path,
                outcome=ApplyOutcome.FAILED,
                error=f"unreadable patch file: {error}",
            )

        if not content.strip():
            LOGGER.debug("Skipping empty patch %s", entry.path)
            if self.console.is_verbose:
                self.console.comment(f"Skipping empty patch {entry.path}.")
            return None

        if self.console.is_verbose:
            self.console.info(f"Applying patch {entry.path}")

        attempts: List[StrategyAttempt] = []
        if repository is not None:
            structural = self._apply_with_git(repository, entry.path)
            attempts.extend(structural.attempts)
            if structural.applied:
                return ApplyResult(
                    name=entry.name,
                    path=entry.path,
                    outcome=ApplyOutcome.APPLIED_STRUCTURALLY,
                    strategy=Strategy.GIT,
                    attempts=tuple(attempts),
                )

        textual = self._apply_with_patch(target_dir, entry.path)
        attempts.extend(textual.attempts)
        if textual.applied:
            return ApplyResult(
                name=entry.name,
                path=entry.path,
                outcome=ApplyOutcome.APPLIED_TEXTUALLY,
                strategy=Strategy.PATCH,
                attempts=tuple(attempts),
            )

        last = attempts[-1] if attempts else None
        error = None
        if last is not None:
            error = last.reason or (last.stderr.strip().splitlines() or ["exit code != 0"])[0]
        return ApplyResult(
            name=entry.name,
            path=entry.path,
            outcome=ApplyOutcome.FAILED,
            attempts=tuple(attempts),
            error=error,
        )

    # ----------------------------------------------------------------- tiers
    def _apply_with_git(self, repository: GitRepository, patch: Path) -> _TierOutcome:
        outcome = _TierOutcome(applied=False)
        for level in self.settings.git_strip_levels:
            if self.console.is_verbose:
                self.console.comment(GIT_CHECK_COMMENT)
            self._announce(repository.check_apply_args(patch, level))
            check = repository.check_apply(patch, level)
            self._echo(check)
            reason = None
            if check.ok and check.stderr.startswith(SKIPPED_MARKER):
                # git reports success but silently skipped every hunk.
                reason = "skipped by git apply"
            attempt = _attempt_from(Strategy.GIT, check, reason=reason)
            outcome.attempts.append(attempt)
            _emit_patch_event(
                "git_check",
                patch=patch,
                strip_level=level,
                returncode=check.returncode,
                reason=attempt.reason,
            )
            if not attempt.ok:
                continue

            self._announce(repository.apply_args(patch, level))
            applied = repository.apply(patch, level)
            self._echo(applied)
            outcome.attempts.append(_attempt_from(Strategy.GIT, applied))
            _emit_patch_event("git_apply", patch=patch, strip_level=level, returncode=applied.returncode)
            # The first level that passes the dry run decides the tier.
            outcome.applied = applied.ok
            break
        return outcome

    def _apply_with_patch(self, target_dir: Path, patch: Path) -> _TierOutcome:
        command = [
            self.settings.patch_command,
            f"-p{self.settings.strip_level}",
            "--forward",
            "--no-backup-if-mismatch",
            "--ignore-whitespace",
            "-d",
            str(target_dir),
            "-i",
            str(patch),
        ]
        self._announce(command)
        result = run_command(command, timeout=self.settings.timeout)
        self._echo(result)
        attempt = _attempt_from(Strategy.PATCH, result)
        _emit_patch_event("patch_apply", patch=patch, returncode=result.returncode, timed_out=result.timed_out)
        return _TierOutcome(applied=attempt.ok, attempts=[attempt])

    def _announce(self, command: Sequence[str]) -> None:
        if self.console.is_verbose:
            self.console.comment(shlex.join(command))

    def _echo(self, result: CommandResult) -> None:
        if not self.console.is_verbose:
            return
        if result.stdout.strip():
            self.console.comment(result.stdout.rstrip())
        if result.stderr.strip():
            self.console.error(result.stderr.rstrip())


def apply_patches(
    patches: Iterable[PatchEntry],
    target: Path | str,
    *,
    settings: ApplySettings,
    console: ConsoleSink,
    report_failures: bool = True,
) -> List[ApplyResult]:
    """Convenience wrapper around :class:`PatchApplicator`."""
    return PatchApplicator(settings, console, report_failures=report_failures).apply(patches, target)


__all__ = [
    "ApplyOutcome",
    "ApplyResult",
    "PatchApplicator",
    "SKIPPED_MARKER",
    "Strategy",
    "StrategyAttempt",
    "apply_patches",
]
