"""Lifecycle glue between a package manager host and the patch engine.

The host is reached only through :class:`PackageHost`, so the resolver and
applicator never depend on a concrete package manager.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Protocol, Union

import logging

from .config import EngineSettings
from .console import ConsoleSink
from .errors import MissingInstallStateError, UnknownOperationError
from .tools.applicator import ApplyResult, PatchApplicator
from .tools.resolver import ResolvedPatchSet, package_patch_dir, resolve_patches

LOGGER = logging.getLogger(__name__)

REINSTALL_REASON = "Removing package so it can be re-installed and re-patched."


@dataclass(frozen=True, slots=True)
class PackageRef:
    """Package identity as reported by the host."""

    name: str
    version: str | None
    is_alias: bool = False


@dataclass(frozen=True, slots=True)
class InstallOperation:
    package: PackageRef


@dataclass(frozen=True, slots=True)
class UpdateOperation:
    initial: PackageRef
    target: PackageRef


@dataclass(frozen=True, slots=True)
class UninstallOperation:
    package: PackageRef


Operation = Union[InstallOperation, UpdateOperation, UninstallOperation]


class PackageHost(Protocol):
    """Capabilities the engine needs from the package manager."""

    def installed_packages(self) -> Iterable[PackageRef]:
        """Return installed packages; raise MissingInstallStateError before the first install."""
        ...

    def install_path(self, package: PackageRef) -> Path: ...

    def reinstall(self, package: PackageRef, reason: str) -> None: ...


@dataclass(slots=True)
class PackageReport:
    """Resolution and application summary for one package."""

    package: str
    version: str | None
    install_path: Path
    source: Path
    patches: ResolvedPatchSet = field(default_factory=ResolvedPatchSet)
    results: List[ApplyResult] = field(default_factory=list)

    @property
    def failures(self) -> List[ApplyResult]:
        return [result for result in self.results if not result.ok]

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def skipped(self) -> int:
        return len(self.patches) - len(self.results)


def package_from_operation(operation: object) -> PackageRef:
    """Return the package an install or update operation leaves installed."""
    if isinstance(operation, InstallOperation):
        return operation.package
    if isinstance(operation, UpdateOperation):
        return operation.target
    raise UnknownOperationError(
        f"Unknown operation: {type(operation).__name__}",
        details={"operation": repr(operation)},
    )


class PatchLifecycle:
    """Handlers invoked by the host around install and update runs."""

    def __init__(self, host: PackageHost, settings: EngineSettings, console: ConsoleSink) -> None:
        self.host = host
        self.settings = settings
        self.console = console

    # ------------------------------------------------------------- pre hooks
    def on_pre_install(self) -> List[PackageRef]:
        """Ask the host to reinstall target packages so patches are reapplied."""
        try:
            installed = list(self.host.installed_packages())
        except MissingInstallStateError:
            # First install: nothing has been patched yet.
            LOGGER.debug("No installation state available; skipping reinstall check")
            return []

        targets = set(self.settings.reinstall.packages)
        requested: List[PackageRef] = []
        for package in installed:
            if package.is_alias or package.name not in targets:
                continue
            self.console.info(
                f"Removing package {package.name} so that it can be re-installed and re-patched."
            )
            self.host.reinstall(package, REINSTALL_REASON)
            requested.append(package)
        return requested

    on_pre_update = on_pre_install

    # ------------------------------------------------------------ post hooks
    def on_post_install(self, operation: Operation) -> PackageReport:
        package = package_from_operation(operation)
        install_path = self.host.install_path(package)
        return self.patch_package(package.name, package.version, install_path)

    on_post_update = on_post_install

    def patch_package(self, name: str, version: str | None, install_path: Path | str) -> PackageReport:
        return patch_package(name, version, install_path, settings=self.settings, console=self.console)


def patch_package(
    name: str,
    version: str | None,
    install_path: Path | str,
    *,
    settings: EngineSettings,
    console: ConsoleSink,
    report_failures: bool = True,
) -> PackageReport:
    """Resolve and apply the patches for one installed package.

    ``report_failures`` writes each failed patch to ``console`` as it happens;
    callers that render the returned report themselves turn it off.
    """
    source = package_patch_dir(settings.patches.root, name)
    patches = resolve_patches(source, version)
    report = PackageReport(
        package=name,
        version=version,
        install_path=Path(install_path),
        source=source,
        patches=patches,
    )
    if not patches:
        LOGGER.debug("No patches for %s %s in %s", name, version, source)
        return report

    LOGGER.info("Applying %d patch(es) to %s %s", len(patches), name, version)
    applicator = PatchApplicator(settings.apply, console, report_failures=report_failures)
    report.results = applicator.apply(patches, install_path)
    return report


__all__ = [
    "InstallOperation",
    "Operation",
    "PackageHost",
    "PackageRef",
    "PackageReport",
    "PatchLifecycle",
    "UninstallOperation",
    "UpdateOperation",
    "package_from_operation",
    "patch_package",
]
