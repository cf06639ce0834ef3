"""Adapter backends and discovery utilities."""

from __future__ import annotations

from datetime import datetime
from importlib import metadata
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from ..translator import TypeTranslator
from .android import AndroidBackend
from .base import AdapterBackend, GeneratedAdapter, GenerationError
from .ios import IosBackend

_ENTRY_POINT_GROUP = "adaptergen.backends"

BackendFactory = Callable[..., AdapterBackend]

_BUILTIN_FACTORIES: Dict[str, BackendFactory] = {
    "android": AndroidBackend,
    "ios": IosBackend,
}


def discover_backends(
    enabled: Sequence[str] | None = None,
    *,
    translator: Optional[TypeTranslator] = None,
    templates_dir: Optional[Path] = None,
    timestamp: Optional[datetime] = None,
    output_dirs: Optional[Mapping[str, str]] = None,
    package_name: Optional[str] = None,
) -> List[AdapterBackend]:
    """Return instantiated backends, honoring optional enabled names.

    Entry points registered under ``adaptergen.backends`` replace the
    built-in backend of the same name.
    """

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    factories: Dict[str, BackendFactory] = dict(_BUILTIN_FACTORIES)
    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - depends on installed plugins
            raise RuntimeError(f"Failed to load backend entry point '{entry.name}': {exc}") from exc
        factories[entry.name.lower()] = _coerce_factory(entry.name, loaded)

    shared = translator or TypeTranslator()
    backends: List[AdapterBackend] = []
    for name, factory in factories.items():
        if enabled_set is not None and name not in enabled_set:
            continue
        options: Dict[str, Any] = {
            "templates_dir": templates_dir,
            "timestamp": timestamp,
            "output_dir_name": (output_dirs or {}).get(name),
        }
        if name == "android" and factory is AndroidBackend:
            options["package_name"] = package_name
        instance = factory(shared, **options)
        if not isinstance(instance, AdapterBackend):
            raise TypeError(f"Backend factory for '{name}' did not return an AdapterBackend instance")
        backends.append(instance)
        if enabled_set is not None:
            enabled_set.discard(name)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown backends requested: {missing}")

    return backends


def _coerce_factory(name: str, obj: object) -> BackendFactory:
    if isinstance(obj, type) and issubclass(obj, AdapterBackend):
        return obj
    if callable(obj):
        return obj  # type: ignore[return-value]
    raise TypeError(f"Backend entry point '{name}' must be an AdapterBackend subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points(group=_ENTRY_POINT_GROUP)


__all__ = [
    "AdapterBackend",
    "AndroidBackend",
    "GeneratedAdapter",
    "GenerationError",
    "IosBackend",
    "discover_backends",
]
