"""Resolution, process and apply tooling used by the lifecycle hooks."""

from .applicator import ApplyOutcome, ApplyResult, PatchApplicator, Strategy, StrategyAttempt, apply_patches
from .process import CommandResult, run_command
from .resolver import PatchEntry, ResolvedPatchSet, package_patch_dir, resolve_package, resolve_patches
from .vcs import GitError, GitRepository

__all__ = [
    "ApplyOutcome",
    "ApplyResult",
    "CommandResult",
    "GitError",
    "GitRepository",
    "PatchApplicator",
    "PatchEntry",
    "ResolvedPatchSet",
    "Strategy",
    "StrategyAttempt",
    "apply_patches",
    "package_patch_dir",
    "resolve_package",
    "resolve_patches",
    "run_command",
]
