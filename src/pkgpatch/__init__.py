"""Version-scoped patch resolution and application for installed packages."""

from .config import EngineSettings, load_settings
from .errors import ConfigError, MissingInstallStateError, PkgPatchError, UnknownOperationError
from .hooks import InstallOperation, PackageHost, PackageRef, PackageReport, PatchLifecycle, UpdateOperation
from .tools import ApplyOutcome, ApplyResult, ResolvedPatchSet, apply_patches, resolve_package, resolve_patches

__version__ = "0.1.0"

__all__ = [
    "ApplyOutcome",
    "ApplyResult",
    "ConfigError",
    "EngineSettings",
    "InstallOperation",
    "MissingInstallStateError",
    "PackageHost",
    "PackageRef",
    "PackageReport",
    "PatchLifecycle",
    "PkgPatchError",
    "ResolvedPatchSet",
    "UnknownOperationError",
    "UpdateOperation",
    "apply_patches",
    "load_settings",
    "resolve_package",
    "resolve_patches",
]
