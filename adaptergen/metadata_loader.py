"""Loads discovery output (YAML or JSON) into immutable view-model metadata."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

import yaml

from .models import (
    Collection,
    CollectionBehavior,
    CommandBehavior,
    CommandMetadata,
    DateSemantics,
    Nullable,
    Platform,
    Primitive,
    PropertyMetadata,
    Reference,
    ThreadingBehavior,
    TypeDescriptor,
    TypeOverride,
    ValidationBehavior,
    ViewModelMetadata,
)


class MetadataError(RuntimeError):
    """Raised when a metadata document cannot be turned into view-model metadata."""


_PRIMITIVE_ALIASES: Dict[str, str] = {
    "string": "string",
    "str": "string",
    "bool": "bool",
    "boolean": "bool",
    "char": "char",
    "sbyte": "int8",
    "int8": "int8",
    "byte": "uint8",
    "uint8": "uint8",
    "short": "int16",
    "int16": "int16",
    "int": "int32",
    "int32": "int32",
    "long": "int64",
    "int64": "int64",
    "float": "float",
    "single": "float",
    "double": "double",
    "decimal": "decimal",
    "datetime": "datetime",
    "datetimeoffset": "datetimeoffset",
    "timespan": "timespan",
    "guid": "uuid",
    "uuid": "uuid",
    "uri": "uri",
    "bytes": "bytes",
    "byte[]": "bytes",
    "object": "object",
    "dynamic": "object",
}

_COLLECTION_NAMES = {"list", "collection", "ilist", "ienumerable", "ireadonlylist", "ireadonlycollection", "array"}
_OBSERVABLE_NAMES = {"observable", "observablecollection"}
_GENERIC_PATTERN = re.compile(r"^([A-Za-z_][\w.]*)\s*<\s*(.+?)\s*>$")


def load_view_models(path: Path) -> List[ViewModelMetadata]:
    """Read a metadata document from disk."""
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Metadata document not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text) if text.strip() else {}
    except yaml.YAMLError as exc:
        raise MetadataError(f"Failed to parse {path.name}: {exc}") from exc
    return parse_view_models(data)


def parse_view_models(data: Any) -> List[ViewModelMetadata]:
    """Build metadata from an already-decoded document (mapping or bare list)."""
    if isinstance(data, dict):
        entries = data.get("view_models", [])
    elif isinstance(data, list):
        entries = data
    elif data is None:
        entries = []
    else:
        raise MetadataError("Metadata document must be a mapping or a list of view-models")
    if not isinstance(entries, list):
        raise MetadataError("'view_models' must be a list")
    return [_parse_view_model(entry, f"view_models[{index}]") for index, entry in enumerate(entries)]


def parse_type(text: str) -> Tuple[TypeDescriptor, bool]:
    """Parse a type string; the flag is True for observable collections.

    >>> parse_type("list<int32?>")
    (Collection(element=Nullable(inner=Primitive(kind='int32'))), False)
    """
    raw = text.strip()
    if not raw:
        raise MetadataError("Empty type string")
    if raw.endswith("?"):
        inner, observable = parse_type(raw[:-1])
        if observable:
            raise MetadataError(f"Observable collections cannot be nullable: {text}")
        return Nullable(inner), False
    lowered = raw.lower()
    if lowered.startswith("primitive:"):
        return Primitive(raw.split(":", 1)[1].strip()), False
    if lowered.startswith("system."):
        stripped = raw[len("system."):]
        if stripped.lower() in _PRIMITIVE_ALIASES:
            return Primitive(_PRIMITIVE_ALIASES[stripped.lower()]), False
    if lowered in _PRIMITIVE_ALIASES:
        return Primitive(_PRIMITIVE_ALIASES[lowered]), False
    if raw.endswith("[]"):
        element, _ = parse_type(raw[:-2])
        return Collection(element), False
    match = _GENERIC_PATTERN.match(raw)
    if match:
        generic = match.group(1).rsplit(".", 1)[-1].lower()
        argument = match.group(2)
        if generic in _OBSERVABLE_NAMES:
            element, _ = parse_type(argument)
            return Collection(element), True
        if generic in _COLLECTION_NAMES:
            element, _ = parse_type(argument)
            return Collection(element), False
        if generic == "nullable":
            inner, _ = parse_type(argument)
            return Nullable(inner), False
        # Left unmapped so generation falls back per member instead of failing the document.
        return Primitive(raw), False
    return Reference(raw), False


def _parse_view_model(entry: Any, where: str) -> ViewModelMetadata:
    data = _require_mapping(entry, where)
    name = _require_str(data.get("name"), f"{where}.name")
    properties = [
        _parse_property(item, f"{where}.properties[{index}]")
        for index, item in enumerate(_as_list(data.get("properties"), f"{where}.properties"))
    ]
    commands = [
        _parse_command(item, f"{where}.commands[{index}]")
        for index, item in enumerate(_as_list(data.get("commands"), f"{where}.commands"))
    ]
    return ViewModelMetadata(
        name=name,
        fully_qualified_name=_as_str(data.get("fully_qualified_name")) or name,
        origin_module=_as_str(data.get("origin_module")) or "Unknown",
        properties=tuple(properties),
        commands=tuple(commands),
        excluded_platforms=_parse_exclusions(data, where),
    )


def _parse_property(entry: Any, where: str) -> PropertyMetadata:
    data = _require_mapping(entry, where)
    name = _require_str(data.get("name"), f"{where}.name")
    type_text = _require_str(data.get("type"), f"{where}.type")
    try:
        descriptor, observable = parse_type(type_text)
    except MetadataError as exc:
        raise MetadataError(f"{where}.type: {exc}") from exc
    if _as_bool(data.get("observable_collection")):
        observable = True

    element: Optional[TypeDescriptor] = None
    if observable:
        if not isinstance(descriptor, Collection):
            raise MetadataError(f"{where}: observable_collection requires a collection type")
        element = descriptor.element

    validation = None
    validation_data = _optional_mapping(data.get("validation"), f"{where}.validation")
    if validation_data is not None:
        validate_on_set = _as_bool(validation_data.get("validate_on_set"))
        validation = ValidationBehavior(
            validate_on_set=True if validate_on_set is None else validate_on_set,
            validator_method=_as_str(validation_data.get("validator_method")),
        )

    batching = None
    batching_data = _optional_mapping(data.get("collection_behavior"), f"{where}.collection_behavior")
    if batching_data is not None:
        batching = CollectionBehavior(
            supports_batching=bool(_as_bool(batching_data.get("supports_batching"))),
            batch_size=_as_int(batching_data.get("batch_size")),
        )

    return PropertyMetadata(
        name=name,
        type=descriptor,
        is_read_only=bool(_as_bool(data.get("read_only"))),
        is_observable_collection=observable,
        element_type=element,
        type_override=_parse_override(data.get("type_override"), f"{where}.type_override"),
        date_semantics=_parse_date_semantics(data.get("date_semantics"), f"{where}.date_semantics"),
        validation=validation,
        collection_behavior=batching,
        excluded_platforms=_parse_exclusions(data, where),
        warning_note=_parse_warning(data),
    )


def _parse_command(entry: Any, where: str) -> CommandMetadata:
    data = _require_mapping(entry, where)
    name = _require_str(data.get("name"), f"{where}.name")
    parameter: Optional[TypeDescriptor] = None
    parameter_text = _as_str(data.get("parameter_type"))
    if parameter_text:
        try:
            parameter, _ = parse_type(parameter_text)
        except MetadataError as exc:
            raise MetadataError(f"{where}.parameter_type: {exc}") from exc

    threading = None
    threading_data = _optional_mapping(data.get("threading"), f"{where}.threading")
    if threading_data is not None:
        threading = ThreadingBehavior(
            requires_main_thread=bool(_as_bool(threading_data.get("requires_main_thread"))),
            requires_background_thread=bool(_as_bool(threading_data.get("requires_background_thread"))),
        )

    behavior = None
    behavior_data = _optional_mapping(data.get("command_behavior"), f"{where}.command_behavior")
    if behavior_data is not None:
        behavior = CommandBehavior(
            requires_main_thread=bool(_as_bool(behavior_data.get("requires_main_thread"))),
            expose_can_execute=bool(_as_bool(behavior_data.get("expose_can_execute"))),
        )

    return CommandMetadata(
        name=name,
        is_async=bool(_as_bool(data.get("async"))),
        parameter_type=parameter,
        threading=threading,
        command_behavior=behavior,
        excluded_platforms=_parse_exclusions(data, where),
        warning_note=_parse_warning(data),
    )


def _parse_override(value: Any, where: str) -> Optional[TypeOverride]:
    data = _optional_mapping(value, where)
    if data is None:
        return None
    override = TypeOverride(android=_as_str(data.get("android")), ios=_as_str(data.get("ios")))
    if override.android is None and override.ios is None:
        return None
    return override


def _parse_date_semantics(value: Any, where: str) -> Optional[DateSemantics]:
    text = _as_str(value)
    if text is None:
        return None
    normalised = re.sub(r"(?<!^)(?=[A-Z])", "_", text.strip()).lower().replace("-", "_")
    normalised = normalised.replace("__", "_")
    aliases = {"utc": "utc_instant", "instant": "utc_instant", "local": "local_date_time"}
    normalised = aliases.get(normalised, normalised)
    try:
        return DateSemantics(normalised)
    except ValueError as exc:
        choices = ", ".join(member.value for member in DateSemantics)
        raise MetadataError(f"{where}: unknown date semantics '{text}' (expected one of {choices})") from exc


def _parse_exclusions(data: Dict[str, Any], where: str) -> FrozenSet[Platform]:
    """Read ``excluded_platforms: [...]`` or the ``available: {android: bool, ios: bool}`` form."""
    excluded: set[Platform] = set()
    for item in _as_list(data.get("excluded_platforms"), f"{where}.excluded_platforms"):
        try:
            excluded.add(Platform.parse(str(item)))
        except ValueError as exc:
            raise MetadataError(f"{where}.excluded_platforms: {exc}") from exc
    available = _optional_mapping(data.get("available"), f"{where}.available")
    if available is not None:
        for platform in Platform:
            if _as_bool(available.get(platform.value)) is False:
                excluded.add(platform)
    return frozenset(excluded)


def _parse_warning(data: Dict[str, Any]) -> Optional[str]:
    value = data.get("warning")
    if value is True:
        return "Custom implementation needed"
    return _as_str(value)


def _require_mapping(value: Any, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise MetadataError(f"{where} must be a mapping")
    return value


def _optional_mapping(value: Any, where: str) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    return _require_mapping(value, where)


def _require_str(value: Any, where: str) -> str:
    text = _as_str(value)
    if not text:
        raise MetadataError(f"{where} is required")
    return text


def _as_list(value: Any, where: str) -> Sequence[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise MetadataError(f"{where} must be a list")
    return value


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int, float)):
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


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = ["MetadataError", "load_view_models", "parse_type", "parse_view_models"]
