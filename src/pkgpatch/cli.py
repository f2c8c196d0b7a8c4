"""CLI commands for resolving and applying version-scoped package patches."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .config import DEFAULT_CONFIG_NAME, EngineSettings, load_settings, settings_from_mapping, write_default_config
from .console import TyperConsole
from .errors import ConfigError
from .hooks import PackageReport, patch_package
from .tools.resolver import package_patch_dir, resolve_patches

APP_HELP = "Resolve and apply version-scoped patches to installed packages."

app = typer.Typer(help=APP_HELP)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Emit log records at this level (DEBUG, INFO, ...) to stderr.",
    ),
) -> None:
    """Configure logging before running a command."""
    if log_level:
        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            raise typer.BadParameter(f"Unknown log level: {log_level}")
        logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load(config: Optional[str], patches: Optional[str]) -> EngineSettings:
    """Load settings from ``config`` (or ``pkgpatch.yaml`` when present)."""
    if config is not None:
        config_path = Path(config)
        if not config_path.exists():
            raise typer.BadParameter(f"Config file not found: {config_path}")
    else:
        config_path = Path(DEFAULT_CONFIG_NAME)

    try:
        if config_path.exists():
            settings = load_settings(config_path)
        else:
            settings = settings_from_mapping({}, base_dir=Path.cwd())
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error

    if patches:
        settings = settings.with_patches_root(Path(patches).resolve())
    return settings


def _render_report(report: PackageReport) -> None:
    """Print a per-patch summary for one package."""
    typer.echo(f"Package: {report.package} {report.version or '(no version)'}")
    if not report.patches:
        typer.echo(f"No patches found in {report.source}.")
        return
    for result in report.results:
        typer.echo(f"- {result.describe()}")
    if report.skipped:
        typer.echo(f"Skipped {report.skipped} empty patch(es).")
    applied = len(report.results) - len(report.failures)
    typer.echo(f"Applied {applied} of {len(report.results)} patch(es).")


CONFIG_OPTION_HELP = "Path to the pkgpatch configuration file."


@app.command()
def init(
    config: str = typer.Option(
        DEFAULT_CONFIG_NAME,
        "--config",
        "-c",
        help=CONFIG_OPTION_HELP,
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration file."),
) -> None:
    """Write the default configuration file."""
    config_path = Path(config)
    if config_path.exists() and not force:
        typer.echo(f"Configuration already exists at {config_path}; use --force to overwrite.")
        raise typer.Exit(code=1)
    write_default_config(config_path)
    typer.echo(f"Wrote configuration to {config_path}.")


@app.command()
def resolve(
    package: str = typer.Argument(..., help="Package name, e.g. vendor/name."),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Installed package version."),
    patches: Optional[str] = typer.Option(None, "--patches", "-p", help="Root directory of patch sources."),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """List the patches that apply to PACKAGE at VERSION, in application order."""
    settings = _load(config, patches)
    source = package_patch_dir(settings.patches.root, package)
    resolved = resolve_patches(source, version)
    if not resolved:
        typer.echo(f"No patches found in {source}.")
        return
    for entry in resolved:
        scope = entry.scope or "*"
        typer.echo(f"{scope}\t{entry.name}\t{entry.path.as_posix()}")


@app.command()
def apply(
    package: str = typer.Argument(..., help="Package name, e.g. vendor/name."),
    install_path: str = typer.Option(..., "--install-path", "-d", help="Directory the package is installed in."),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Installed package version."),
    patches: Optional[str] = typer.Option(None, "--patches", "-p", help="Root directory of patch sources."),
    verbose: bool = typer.Option(False, "--verbose", help="Show the commands run and their output."),
    config: Optional[str] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Apply the resolved patches for PACKAGE to its install directory."""
    settings = _load(config, patches)
    if verbose:
        settings = settings.with_verbose(True)
    target = Path(install_path)
    if not target.is_dir():
        raise typer.BadParameter(f"Install path is not a directory: {target}")

    console = TyperConsole(verbose=settings.verbose)
    report = patch_package(package, version, target, settings=settings, console=console, report_failures=False)
    _render_report(report)
    if not report.ok:
        raise typer.Exit(code=1)


@app.command()
def status(
    config: Optional[str] = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    """Validate configuration and report the effective settings."""
    settings = _load(config, None)
    root = settings.patches.root
    typer.echo(f"Patch root: {root.as_posix()}{'' if root.is_dir() else ' (missing)'}")
    typer.echo(f"Git tier: {'enabled' if settings.apply.use_git else 'disabled'}")
    typer.echo(f"Git strip levels: {', '.join(str(level) for level in settings.apply.git_strip_levels)}")
    typer.echo(f"Patch strip level: {settings.apply.strip_level}")
    typer.echo(f"Timeout: {settings.apply.timeout:g}s")
    packages = ", ".join(settings.reinstall.packages) or "none"
    typer.echo(f"Reinstalled before install/update: {packages}")


if __name__ == "__main__":
    app()
