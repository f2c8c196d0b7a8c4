"""Resolve the ordered set of patch files that apply to an installed version.

Patch sources are laid out per package::

    patches/<vendor>/<name>/
        fix.patch              # applies to every version
        2.0.0/common.patch     # applies to 2.0.0 and later
        1.0.0/common.patch     # shadowed by 2.0.0/common.patch

Version directories are visited from the highest applicable version down to
the lowest, then the flat files of the package root are collected.  A file
name seen once is never collected again, so the most specific copy wins.
Only one level of version directories is honoured; directories nested inside
a version directory are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

import logging

from ..utils.slug import package_path_segments
from ..versioning import VersionKey, parse_version, scope_applies

LOGGER = logging.getLogger(__name__)

_EXCLUDED_NAMES = frozenset({".", ".."})


@dataclass(frozen=True, slots=True)
class PatchEntry:
    """One patch file selected for application."""

    name: str
    path: Path
    scope: str | None = None


@dataclass(frozen=True, slots=True)
class ResolvedPatchSet:
    """Ordered patch files, unique by file name."""

    entries: Tuple[PatchEntry, ...] = ()

    def __iter__(self) -> Iterator[PatchEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)

    def names(self) -> List[str]:
        return [entry.name for entry in self.entries]

    def paths(self) -> List[Path]:
        return [entry.path for entry in self.entries]

    def get(self, name: str) -> PatchEntry | None:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None


def package_patch_dir(patches_root: Path | str, package_name: str) -> Path:
    """Return the patch source directory for ``package_name`` under ``patches_root``."""
    return Path(patches_root).joinpath(*package_path_segments(package_name))


def _list_entries(directory: Path) -> List[Path]:
    """Return directory entries sorted by name, or an empty list when unreadable."""
    try:
        children = [child for child in directory.iterdir() if child.name not in _EXCLUDED_NAMES]
    except OSError as error:
        LOGGER.debug("Unable to list %s: %s", directory, error)
        return []
    return sorted(children, key=lambda item: item.name)


def _is_regular_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def _is_directory(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def _applicable_scopes(entries: List[Path], installed: VersionKey) -> List[Tuple[VersionKey, Path]]:
    scopes: List[Tuple[VersionKey, Path]] = []
    for entry in entries:
        if not _is_directory(entry):
            continue
        if scope_applies(entry.name, installed):
            scopes.append((parse_version(entry.name), entry))
        else:
            LOGGER.debug("Skipping directory %s for version %s", entry.name, installed)
    # sort() is stable, so equal versions keep their listing order.
    scopes.sort(key=lambda item: item[0], reverse=True)
    return scopes


def _collect(
    accumulator: Dict[str, PatchEntry],
    directory: Path,
    installed: VersionKey | None,
    scope: str | None,
) -> None:
    entries = _list_entries(directory)
    if installed is not None:
        for _, scope_dir in _applicable_scopes(entries, installed):
            # Nested scopes are collected without a version: one level only.
            _collect(accumulator, scope_dir, None, scope_dir.name)

    for entry in entries:
        if entry.name in accumulator:
            continue
        if _is_regular_file(entry):
            accumulator[entry.name] = PatchEntry(name=entry.name, path=entry.resolve(), scope=scope)


def resolve_patches(source_root: Path | str, installed_version: str | None) -> ResolvedPatchSet:
    """Compute the ordered patch set for ``installed_version`` under ``source_root``.

    A missing or unreadable ``source_root`` yields an empty set.  A ``None``
    or unparsable version only collects the files at the root itself.
    """
    root = Path(source_root)
    if not _is_directory(root):
        LOGGER.debug("No patch directory at %s", root)
        return ResolvedPatchSet()

    installed = parse_version(installed_version)
    if installed is None and installed_version:
        LOGGER.info("Version %r is not comparable; only unscoped patches apply", installed_version)

    accumulator: Dict[str, PatchEntry] = {}
    _collect(accumulator, root, installed, None)
    return ResolvedPatchSet(entries=tuple(accumulator.values()))


def resolve_package(
    patches_root: Path | str,
    package_name: str,
    installed_version: str | None,
) -> ResolvedPatchSet:
    """Resolve patches for ``package_name`` using the per-package directory layout."""
    return resolve_patches(package_patch_dir(patches_root, package_name), installed_version)


__all__ = [
    "PatchEntry",
    "ResolvedPatchSet",
    "package_patch_dir",
    "resolve_package",
    "resolve_patches",
]
