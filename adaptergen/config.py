"""Configuration loading for adaptergen (.adaptergen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .models import Platform

CONFIG_FILE_NAME = ".adaptergen.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class PlatformConfig:
    """Per-platform output and type-mapping settings."""

    output_dir: Optional[str] = None
    namespace_remap: Dict[str, str] = field(default_factory=dict)
    package: Optional[str] = None


@dataclass
class AdapterGenConfig:
    """Represents the settings defined in .adaptergen.yml."""

    root: Path
    output_root: Optional[Path] = None
    platforms: List[str] = field(default_factory=list)
    workers: Optional[int] = None
    templates_dir: Optional[Path] = None
    android: PlatformConfig = field(default_factory=PlatformConfig)
    ios: PlatformConfig = field(default_factory=PlatformConfig)

    def for_platform(self, platform: Platform) -> PlatformConfig:
        return self.android if platform is Platform.ANDROID else self.ios

    @property
    def namespace_remap(self) -> Dict[str, Dict[str, str]]:
        return {
            platform.value: dict(self.for_platform(platform).namespace_remap)
            for platform in Platform
            if self.for_platform(platform).namespace_remap
        }

    @property
    def output_dirs(self) -> Dict[str, str]:
        dirs: Dict[str, str] = {}
        for platform in Platform:
            output_dir = self.for_platform(platform).output_dir
            if output_dir:
                dirs[platform.value] = output_dir
        return dirs


def load_config(config_path: Path) -> AdapterGenConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return AdapterGenConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILE_NAME} must contain a mapping at the root")

    output = _as_str(data.get("output"))
    templates_dir = _as_str(data.get("templates_dir"))

    workers = None
    if data.get("workers") is not None:
        workers = _as_int(data.get("workers"))
        if workers is None or workers < 1:
            raise ConfigError("'workers' must be a positive integer")

    platforms_value = data.get("platforms")
    if isinstance(platforms_value, str):
        platforms = [platforms_value]
    else:
        platforms = _as_str_list(platforms_value)

    return AdapterGenConfig(
        root=root,
        output_root=root / output if output else None,
        platforms=platforms,
        workers=workers,
        templates_dir=root / templates_dir if templates_dir else None,
        android=_platform_config(data.get("android"), "android"),
        ios=_platform_config(data.get("ios"), "ios"),
    )


def _platform_config(value: Any, key: str) -> PlatformConfig:
    if value is None:
        return PlatformConfig()
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping")
    remap_value = value.get("namespace_remap")
    if remap_value is not None and not isinstance(remap_value, dict):
        raise ConfigError(f"'{key}.namespace_remap' must be a mapping")
    remap: Dict[str, str] = {}
    for source, target in (remap_value or {}).items():
        target_str = "" if target is None else _as_str(target)
        if target_str is None:
            raise ConfigError(f"'{key}.namespace_remap.{source}' must be a string")
        remap[str(source)] = target_str
    return PlatformConfig(
        output_dir=_as_str(value.get("output_dir")),
        namespace_remap=remap,
        package=_as_str(value.get("package")),
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = Path(config_path).expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILE_NAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        result: List[str] = []
        for item in value:
            if isinstance(item, str):
                result.append(item)
        return result
    return []


__all__ = [
    "AdapterGenConfig",
    "CONFIG_FILE_NAME",
    "ConfigError",
    "PlatformConfig",
    "load_config",
]
