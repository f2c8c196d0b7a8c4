from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Sequence

import pytest

from conftest import RecordingConsole
from pkgpatch.config import EngineSettings, settings_from_mapping
from pkgpatch.errors import MissingInstallStateError, UnknownOperationError
from pkgpatch.hooks import (
    InstallOperation,
    PackageRef,
    PatchLifecycle,
    UninstallOperation,
    UpdateOperation,
    package_from_operation,
)
from pkgpatch.tools.applicator import ApplyOutcome
from pkgpatch.tools.process import CommandResult


class _FakeHost:
    def __init__(self, packages: Sequence[PackageRef] | None, paths: Dict[str, Path] | None = None) -> None:
        self.packages = packages
        self.paths = paths or {}
        self.reinstalled: List[tuple[str, str]] = []

    def installed_packages(self) -> Iterable[PackageRef]:
        if self.packages is None:
            raise MissingInstallStateError("no lock file yet")
        return list(self.packages)

    def install_path(self, package: PackageRef) -> Path:
        return self.paths[package.name]

    def reinstall(self, package: PackageRef, reason: str) -> None:
        self.reinstalled.append((package.name, reason))


def _settings(tmp_path: Path, **overrides: object) -> EngineSettings:
    data: Dict[str, object] = {"patches": {"root": "patches"}}
    data.update(overrides)
    return settings_from_mapping(data, base_dir=tmp_path)


def _recording_patch_runner(monkeypatch: pytest.MonkeyPatch, returncode: int = 0) -> List[tuple[str, ...]]:
    calls: List[tuple[str, ...]] = []

    def fake_run(args: Sequence[str], **_: object) -> CommandResult:
        command = tuple(str(arg) for arg in args)
        calls.append(command)
        return CommandResult(command, returncode, "", "")

    monkeypatch.setattr("pkgpatch.tools.applicator.run_command", fake_run)
    return calls


def test_pre_install_requests_reinstall_of_target_package(tmp_path: Path) -> None:
    host = _FakeHost(
        [
            PackageRef("laravel/framework", "10.0.0.0"),
            PackageRef("laravel/framework", "10.0.0.0", is_alias=True),
            PackageRef("acme/lib", "1.0.0"),
        ]
    )
    console = RecordingConsole()
    lifecycle = PatchLifecycle(host, _settings(tmp_path), console)

    requested = lifecycle.on_pre_install()

    assert [package.name for package in requested] == ["laravel/framework"]
    assert [name for name, _ in host.reinstalled] == ["laravel/framework"]
    assert console.messages("info") == [
        "Removing package laravel/framework so that it can be re-installed and re-patched."
    ]


def test_pre_update_honours_configured_packages(tmp_path: Path) -> None:
    host = _FakeHost([PackageRef("laravel/framework", "10.0.0"), PackageRef("acme/lib", "1.0.0")])
    lifecycle = PatchLifecycle(host, _settings(tmp_path, reinstall={"packages": ["acme/lib"]}), RecordingConsole())

    lifecycle.on_pre_update()

    assert [name for name, _ in host.reinstalled] == ["acme/lib"]


def test_pre_install_without_install_state_is_a_no_op(tmp_path: Path) -> None:
    host = _FakeHost(None)
    console = RecordingConsole()

    requested = PatchLifecycle(host, _settings(tmp_path), console).on_pre_install()

    assert requested == []
    assert host.reinstalled == []
    assert console.lines == []


def test_package_from_operation_selects_installed_package() -> None:
    old = PackageRef("acme/lib", "1.0.0")
    new = PackageRef("acme/lib", "2.0.0")

    assert package_from_operation(InstallOperation(new)) is new
    assert package_from_operation(UpdateOperation(old, new)) is new


def test_unknown_operation_is_fatal(tmp_path: Path) -> None:
    lifecycle = PatchLifecycle(_FakeHost([]), _settings(tmp_path), RecordingConsole())

    with pytest.raises(UnknownOperationError):
        lifecycle.on_post_install(UninstallOperation(PackageRef("acme/lib", "1.0.0")))


def test_post_update_patches_target_version(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    plain_target: Path,
    write_file: Callable[..., Path],
) -> None:
    calls = _recording_patch_runner(monkeypatch)
    write_file("patches/acme/lib/1.0.0/old.patch")
    write_file("patches/acme/lib/2.0.0/new.patch")
    write_file("patches/acme/lib/3.0.0/future.patch")
    host = _FakeHost([], paths={"acme/lib": plain_target})
    lifecycle = PatchLifecycle(host, _settings(tmp_path), RecordingConsole())

    report = lifecycle.on_post_update(
        UpdateOperation(PackageRef("acme/lib", "1.0.0"), PackageRef("acme/lib", "2.1.0"))
    )

    assert report.ok
    assert report.patches.names() == ["new.patch", "old.patch"]
    assert [result.outcome for result in report.results] == [ApplyOutcome.APPLIED_TEXTUALLY] * 2
    assert [Path(command[-1]).name for command in calls] == ["new.patch", "old.patch"]


def test_packages_without_patches_are_untouched(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    plain_target: Path,
) -> None:
    calls = _recording_patch_runner(monkeypatch)
    host = _FakeHost([], paths={"acme/other": plain_target})

    report = PatchLifecycle(host, _settings(tmp_path), RecordingConsole()).on_post_install(
        InstallOperation(PackageRef("acme/other", "1.0.0"))
    )

    assert report.ok
    assert not report.patches
    assert report.results == []
    assert calls == []


def test_failures_are_reported_per_package(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    plain_target: Path,
    write_file: Callable[..., Path],
) -> None:
    _recording_patch_runner(monkeypatch, returncode=1)
    write_file("patches/acme/lib/broken.patch")
    write_file("patches/acme/lib/disabled.patch", "\n")
    lifecycle = PatchLifecycle(_FakeHost([]), _settings(tmp_path), RecordingConsole())

    report = lifecycle.patch_package("acme/lib", "1.0.0", plain_target)

    assert not report.ok
    assert [result.name for result in report.failures] == ["broken.patch"]
    assert report.skipped == 1
