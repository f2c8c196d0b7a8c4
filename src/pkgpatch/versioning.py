"""Version parsing for version-scoped patch directories.

Versions are reduced to a :class:`VersionKey` so PEP 440 strings, semantic
versions with pre-release tags (``2.3.0-SNAPSHOT``) and normalised host
versions (``2.3.0.0-patch1``) order against each other.  Stages rank as
``unknown < dev < alpha < beta < rc < release < patch``; any pre-release
sorts before its release.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

from packaging.version import InvalidVersion, Version

_RANK_UNKNOWN = 0
_RANK_DEV = 1
_RANK_ALPHA = 2
_RANK_BETA = 3
_RANK_RC = 4
_RANK_RELEASE = 5
_RANK_PATCH = 6

_STAGE_RANKS = {
    "dev": _RANK_DEV,
    "alpha": _RANK_ALPHA,
    "a": _RANK_ALPHA,
    "beta": _RANK_BETA,
    "b": _RANK_BETA,
    "rc": _RANK_RC,
    "c": _RANK_RC,
    "patch": _RANK_PATCH,
    "pl": _RANK_PATCH,
    "p": _RANK_PATCH,
    "post": _RANK_PATCH,
}
_PEP440_PRE_RANKS = {"a": _RANK_ALPHA, "b": _RANK_BETA, "rc": _RANK_RC}

_LOOSE_VERSION_RE = re.compile(r"^[vV]?(?P<release>\d+(?:\.\d+)*)(?:[-_.]?(?P<suffix>.*))?$")
_IDENTIFIER_RE = re.compile(r"[A-Za-z]+|\d+")

# Numeric identifiers sort before alphanumeric ones, as in semver.
Identifier = Tuple[int, int, str]


@dataclass(frozen=True, order=True, slots=True)
class VersionKey:
    """Totally ordered representation of a version string."""

    release: Tuple[int, ...]
    rank: int = _RANK_RELEASE
    identifiers: Tuple[Identifier, ...] = ()


def _trim_release(parts: Tuple[int, ...]) -> Tuple[int, ...]:
    trimmed = list(parts)
    while len(trimmed) > 1 and trimmed[-1] == 0:
        trimmed.pop()
    return tuple(trimmed)


def _identifier(token: str) -> Identifier:
    if token.isdigit():
        return (0, int(token), "")
    return (1, 0, token.lower())


def _from_pep440(version: Version) -> VersionKey:
    release = _trim_release(version.release)
    if version.pre is not None:
        stage, number = version.pre
        return VersionKey(release, _PEP440_PRE_RANKS[stage], ((0, number, ""),))
    if version.post is not None:
        return VersionKey(release, _RANK_PATCH, ((0, version.post, ""),))
    if version.dev is not None:
        return VersionKey(release, _RANK_DEV, ((0, version.dev, ""),))
    return VersionKey(release)


def _from_loose(text: str) -> VersionKey | None:
    # Build metadata never takes part in ordering.
    match = _LOOSE_VERSION_RE.match(text.split("+", 1)[0])
    if match is None:
        return None
    release = _trim_release(tuple(int(part) for part in match.group("release").split(".")))
    tokens = _IDENTIFIER_RE.findall(match.group("suffix") or "")
    if not tokens:
        return VersionKey(release)
    rank = _STAGE_RANKS.get(tokens[0].lower())
    if rank is None:
        return VersionKey(release, _RANK_UNKNOWN, tuple(_identifier(token) for token in tokens))
    return VersionKey(release, rank, tuple(_identifier(token) for token in tokens[1:]))


def parse_version(text: str | None) -> VersionKey | None:
    """Return a comparable key for ``text`` or ``None`` when it is not a version.

    Branch names such as ``dev-master`` do not start with a release number
    and are rejected.
    """
    if text is None:
        return None
    candidate = text.strip()
    if not candidate:
        return None
    try:
        return _from_pep440(Version(candidate))
    except InvalidVersion:
        return _from_loose(candidate)


def scope_applies(scope_name: str, installed: VersionKey | str | None) -> bool:
    """Return ``True`` when directory ``scope_name`` applies to ``installed``."""
    if installed is None:
        return False
    installed_version = installed if isinstance(installed, VersionKey) else parse_version(installed)
    scope_version = parse_version(scope_name)
    if installed_version is None or scope_version is None:
        return False
    return scope_version <= installed_version


__all__ = ["VersionKey", "parse_version", "scope_applies"]
