"""YAML configuration for the patch engine."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

DEFAULT_CONFIG_NAME = "pkgpatch.yaml"
DEFAULT_REINSTALL_PACKAGE = "laravel/framework"

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "patches": {
        "root": "patches",
    },
    "apply": {
        "use_git": True,
        "git_strip_levels": [1],
        "strip_level": 1,
        "timeout": 120,
        "git_command": "git",
        "patch_command": "patch",
    },
    "reinstall": {
        "packages": [DEFAULT_REINSTALL_PACKAGE],
    },
    "verbose": False,
}


class SettingsModel(BaseModel):
    """Base model rejecting unknown keys so typos surface early."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class PatchesSettings(SettingsModel):
    root: Path = Path("patches")


class ApplySettings(SettingsModel):
    """Options for the structural (git) and textual (patch) tiers."""

    use_git: bool = True
    git_strip_levels: List[int] = Field(default_factory=lambda: [1])
    strip_level: int = Field(default=1, ge=0)
    timeout: float = Field(default=120.0, gt=0)
    git_command: str = "git"
    patch_command: str = "patch"

    @field_validator("git_strip_levels")
    @classmethod
    def _validate_levels(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("git_strip_levels must list at least one level")
        if any(level < 0 for level in value):
            raise ValueError("git_strip_levels must be non-negative")
        return value


class ReinstallSettings(SettingsModel):
    packages: List[str] = Field(default_factory=lambda: [DEFAULT_REINSTALL_PACKAGE])


class EngineSettings(SettingsModel):
    """Validated configuration for a resolution and application pass."""

    patches: PatchesSettings = Field(default_factory=PatchesSettings)
    apply: ApplySettings = Field(default_factory=ApplySettings)
    reinstall: ReinstallSettings = Field(default_factory=ReinstallSettings)
    verbose: bool = False

    def with_patches_root(self, root: Path) -> "EngineSettings":
        return self.model_copy(update={"patches": PatchesSettings(root=root)})

    def with_verbose(self, verbose: bool) -> "EngineSettings":
        return self.model_copy(update={"verbose": verbose})


def default_config() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def write_default_config(config_path: Path) -> None:
    """Persist the default configuration with stable formatting."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(default_config(), handle, sort_keys=False)


def settings_from_mapping(data: Dict[str, Any], *, base_dir: Path | None = None) -> EngineSettings:
    """Validate ``data`` and anchor a relative patch root at ``base_dir``."""
    try:
        settings = EngineSettings.model_validate(data)
    except ValidationError as error:
        raise ConfigError(f"Invalid configuration: {error}", details={"errors": error.errors()}) from error

    root = settings.patches.root
    if base_dir is not None and not root.is_absolute():
        settings = settings.with_patches_root((base_dir / root).resolve())
    return settings


def load_settings(config_path: Path) -> EngineSettings:
    """Load YAML configuration from disk and validate it."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config: {error}") from error

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level.")

    return settings_from_mapping(data, base_dir=config_path.resolve().parent)


__all__ = [
    "ApplySettings",
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_CONFIG_TEMPLATE",
    "EngineSettings",
    "PatchesSettings",
    "ReinstallSettings",
    "default_config",
    "load_settings",
    "settings_from_mapping",
    "write_default_config",
]
