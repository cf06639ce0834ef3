"""Maps canonical type descriptors and member metadata onto target-language types."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from .diagnostics import UNMAPPED_TYPE, DiagnosticLog
from .models import (
    Collection,
    CommandMetadata,
    DateSemantics,
    Nullable,
    Platform,
    Primitive,
    PropertyMetadata,
    Reference,
    TypeDescriptor,
)


class Capability(str, Enum):
    """Optional features whose imports must appear only when a member needs them."""

    DATE_TIME = "date_time"
    GEO = "geo"
    IDENTIFIER = "identifier"
    THREAD_DISPATCH = "thread_dispatch"
    DEVICE = "device"
    RESOURCE_LOCATOR = "resource_locator"


FALLBACK_TYPE = "Any"

_PRIMITIVES: Dict[Platform, Dict[str, str]] = {
    Platform.ANDROID: {
        "string": "String",
        "bool": "Boolean",
        "char": "Char",
        "int8": "Byte",
        "uint8": "UByte",
        "int16": "Short",
        "int32": "Int",
        "int64": "Long",
        "float": "Float",
        "double": "Double",
        "decimal": "Double",
        "datetime": "LocalDateTime",
        "datetimeoffset": "OffsetDateTime",
        "timespan": "Duration",
        "uuid": "UUID",
        "uri": "URI",
        "bytes": "ByteArray",
    },
    Platform.IOS: {
        "string": "String",
        "bool": "Bool",
        "char": "Character",
        "int8": "Int8",
        "uint8": "UInt8",
        "int16": "Int16",
        "int32": "Int32",
        "int64": "Int64",
        "float": "Float",
        "double": "Double",
        "decimal": "Double",
        "datetime": "Date",
        "datetimeoffset": "Date",
        "timespan": "TimeInterval",
        "uuid": "UUID",
        "uri": "URL",
        "bytes": "[UInt8]",
    },
}

_DATE_TYPES: Dict[Platform, Dict[DateSemantics, str]] = {
    Platform.ANDROID: {
        DateSemantics.LOCAL_DATE_TIME: "LocalDateTime",
        DateSemantics.UTC_INSTANT: "Instant",
        DateSemantics.DATE_ONLY: "LocalDate",
        DateSemantics.TIME_ONLY: "LocalTime",
        DateSemantics.DURATION: "Duration",
        DateSemantics.ZONED_DATE_TIME: "ZonedDateTime",
    },
    Platform.IOS: {
        DateSemantics.LOCAL_DATE_TIME: "Date",
        DateSemantics.UTC_INSTANT: "Date",
        DateSemantics.DATE_ONLY: "DateComponents",
        DateSemantics.TIME_ONLY: "DateComponents",
        DateSemantics.DURATION: "TimeInterval",
        DateSemantics.ZONED_DATE_TIME: "Date",
    },
}

# Bridge contract: Kotlin receives date/time values as ISO-8601 text, Swift as Foundation values.
_TO_TARGET: Dict[Platform, Dict[DateSemantics, str]] = {
    Platform.ANDROID: {
        DateSemantics.LOCAL_DATE_TIME: "LocalDateTime.parse({value}.toString())",
        DateSemantics.UTC_INSTANT: "Instant.parse({value}.toString())",
        DateSemantics.DATE_ONLY: "LocalDate.parse({value}.toString())",
        DateSemantics.TIME_ONLY: "LocalTime.parse({value}.toString())",
        DateSemantics.DURATION: "Duration.parse({value}.toString())",
        DateSemantics.ZONED_DATE_TIME: "ZonedDateTime.parse({value}.toString())",
    },
    Platform.IOS: {
        DateSemantics.LOCAL_DATE_TIME: "{value}",
        DateSemantics.UTC_INSTANT: "Date(timeIntervalSince1970: {value}.timeIntervalSince1970)",
        DateSemantics.DATE_ONLY: "Calendar.current.dateComponents([.year, .month, .day], from: {value})",
        DateSemantics.TIME_ONLY: "Calendar.current.dateComponents([.hour, .minute, .second], from: {value})",
        DateSemantics.DURATION: "TimeInterval({value})",
        DateSemantics.ZONED_DATE_TIME: "Calendar.current.date(from: Calendar.current.dateComponents(in: TimeZone.current, from: {value})) ?? {value}",
    },
}

_TO_SOURCE: Dict[Platform, Dict[DateSemantics, str]] = {
    Platform.ANDROID: {semantics: "{value}.toString()" for semantics in DateSemantics},
    Platform.IOS: {
        DateSemantics.LOCAL_DATE_TIME: "{value}",
        DateSemantics.UTC_INSTANT: "{value}",
        DateSemantics.DATE_ONLY: "Calendar.current.date(from: {value}) ?? Date()",
        DateSemantics.TIME_ONLY: "Calendar.current.date(from: {value}) ?? Date()",
        DateSemantics.DURATION: "{value}",
        DateSemantics.ZONED_DATE_TIME: "{value}",
    },
}

# Target type name -> (capability, import line).
_TYPE_IMPORTS: Dict[Platform, Dict[str, Tuple[Capability, str]]] = {
    Platform.ANDROID: {
        "LocalDateTime": (Capability.DATE_TIME, "java.time.LocalDateTime"),
        "Instant": (Capability.DATE_TIME, "java.time.Instant"),
        "LocalDate": (Capability.DATE_TIME, "java.time.LocalDate"),
        "LocalTime": (Capability.DATE_TIME, "java.time.LocalTime"),
        "Duration": (Capability.DATE_TIME, "java.time.Duration"),
        "ZonedDateTime": (Capability.DATE_TIME, "java.time.ZonedDateTime"),
        "OffsetDateTime": (Capability.DATE_TIME, "java.time.OffsetDateTime"),
        "LatLng": (Capability.GEO, "com.google.android.gms.maps.model.LatLng"),
        "Location": (Capability.GEO, "android.location.Location"),
        "UUID": (Capability.IDENTIFIER, "java.util.UUID"),
        "CameraDevice": (Capability.DEVICE, "android.hardware.camera2.CameraDevice"),
        "Size": (Capability.DEVICE, "android.util.Size"),
        "URI": (Capability.RESOURCE_LOCATOR, "java.net.URI"),
    },
    Platform.IOS: {
        "Date": (Capability.DATE_TIME, "Foundation"),
        "DateComponents": (Capability.DATE_TIME, "Foundation"),
        "TimeInterval": (Capability.DATE_TIME, "Foundation"),
        "CLLocationCoordinate2D": (Capability.GEO, "CoreLocation"),
        "CLLocation": (Capability.GEO, "CoreLocation"),
        "UUID": (Capability.IDENTIFIER, "Foundation"),
        "AVCaptureDevice": (Capability.DEVICE, "AVFoundation"),
        "CGSize": (Capability.DEVICE, "CoreGraphics"),
        "URL": (Capability.RESOURCE_LOCATOR, "Foundation"),
    },
}

THREAD_DISPATCH_IMPORTS: Dict[Platform, str] = {
    Platform.ANDROID: "kotlinx.coroutines.Dispatchers",
    Platform.IOS: "Dispatch",
}

DEFAULT_NAMESPACE_REMAP: Dict[Platform, Dict[str, str]] = {
    Platform.ANDROID: {
        "Location.Core": "com.x3squaredcircles.core",
        "Location.Photography": "com.x3squaredcircles.photography",
    },
    Platform.IOS: {
        "Location.Core": "LocationCore",
        "Location.Photography": "LocationPhotography",
    },
}

_TYPE_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

Member = Union[PropertyMetadata, CommandMetadata]


@dataclass(frozen=True)
class ResolvedType:
    """A target type name plus the capabilities and imports it pulls in."""

    name: str
    capabilities: FrozenSet[Capability] = frozenset()
    imports: FrozenSet[str] = frozenset()

    def wrap(self, name: str) -> "ResolvedType":
        return ResolvedType(name=name, capabilities=self.capabilities, imports=self.imports)


class TypeTranslator:
    """Translates metadata into per-platform type names, identifiers and conversions.

    The translator holds only read-only lookup tables, so one instance can be
    shared by every backend and worker thread.
    """

    def __init__(
        self,
        namespace_remap: Optional[Mapping[Union[str, Platform], Mapping[str, str]]] = None,
    ) -> None:
        remap: Dict[Platform, Dict[str, str]] = {
            platform: dict(entries) for platform, entries in DEFAULT_NAMESPACE_REMAP.items()
        }
        for key, entries in (namespace_remap or {}).items():
            remap.setdefault(Platform.parse(key), {}).update(entries)
        self._remap = remap

    # Identifiers -----------------------------------------------------------

    @staticmethod
    def identifier(name: str) -> str:
        """Lower-case the first character; identical rule for every platform."""
        if not name:
            return name
        return name[0].lower() + name[1:]

    def command_identifier(self, command: CommandMetadata) -> str:
        name = command.name
        if name.endswith("Command") and len(name) > len("Command"):
            name = name[: -len("Command")]
        return self.identifier(name)

    def parameter_identifier(self, command: CommandMetadata) -> str:
        descriptor = command.parameter_type
        while isinstance(descriptor, Nullable):
            descriptor = descriptor.inner
        if isinstance(descriptor, Reference):
            return self.identifier(descriptor.simple_name)
        return "value"

    # Exclusion -------------------------------------------------------------

    @staticmethod
    def is_excluded(member: Member, platform: Platform) -> bool:
        return platform in member.excluded_platforms

    # Types -----------------------------------------------------------------

    def property_type(
        self,
        prop: PropertyMetadata,
        platform: Platform,
        diagnostics: Optional[DiagnosticLog] = None,
    ) -> ResolvedType:
        """Resolve a property's declared type; observable collections become read-only lists."""
        if prop.is_observable_collection:
            element = self.element_type(prop, platform, diagnostics)
            return element.wrap(self._list_of(element.name, platform))
        override = prop.type_override.for_platform(platform) if prop.type_override else None
        if override:
            return self._named(override, platform)
        return self.map_type(
            prop.type,
            platform,
            member=prop.name,
            diagnostics=diagnostics,
            date_semantics=prop.date_semantics,
        )

    def element_type(
        self,
        prop: PropertyMetadata,
        platform: Platform,
        diagnostics: Optional[DiagnosticLog] = None,
    ) -> ResolvedType:
        if prop.element_type is None:
            raise ValueError(f"Property '{prop.name}' is not an observable collection")
        override = prop.type_override.for_platform(platform) if prop.type_override else None
        if override:
            return self._named(override, platform)
        return self.map_type(
            prop.element_type,
            platform,
            member=prop.name,
            diagnostics=diagnostics,
            date_semantics=prop.date_semantics,
        )

    def parameter_type(
        self,
        command: CommandMetadata,
        platform: Platform,
        diagnostics: Optional[DiagnosticLog] = None,
    ) -> Optional[ResolvedType]:
        if command.parameter_type is None:
            return None
        return self.map_type(
            command.parameter_type, platform, member=command.name, diagnostics=diagnostics
        )

    def map_type(
        self,
        descriptor: TypeDescriptor,
        platform: Platform,
        *,
        member: str,
        diagnostics: Optional[DiagnosticLog] = None,
        date_semantics: Optional[DateSemantics] = None,
    ) -> ResolvedType:
        if isinstance(descriptor, Nullable):
            inner = self.map_type(
                descriptor.inner,
                platform,
                member=member,
                diagnostics=diagnostics,
                date_semantics=date_semantics,
            )
            if inner.name.endswith("?"):
                return inner
            return inner.wrap(f"{inner.name}?")
        if isinstance(descriptor, Collection):
            element = self.map_type(
                descriptor.element,
                platform,
                member=member,
                diagnostics=diagnostics,
                date_semantics=date_semantics,
            )
            return element.wrap(self._list_of(element.name, platform))
        if isinstance(descriptor, Reference):
            return self.resolve_reference(descriptor.qualified_name, platform)
        if isinstance(descriptor, Primitive):
            if date_semantics is not None:
                return self._named(_DATE_TYPES[platform][date_semantics], platform)
            mapped = _PRIMITIVES[platform].get(descriptor.kind.lower())
            if mapped is not None:
                return self._named(mapped, platform)
            if diagnostics is not None:
                diagnostics.record(
                    UNMAPPED_TYPE,
                    member,
                    f"no {platform.value} mapping for type '{descriptor.kind}'; using {FALLBACK_TYPE}",
                    platform=platform.value,
                )
            return ResolvedType(name=FALLBACK_TYPE)
        raise TypeError(f"Unsupported type descriptor: {descriptor!r}")

    def reference_name(self, qualified_name: str, platform: Platform) -> str:
        """Apply the static namespace remap; unmatched names reduce to their simple name."""
        return self.resolve_reference(qualified_name, platform).name

    def resolve_reference(self, qualified_name: str, platform: Platform) -> ResolvedType:
        table = self._remap.get(platform, {})
        best: Optional[str] = None
        for prefix in table:
            if qualified_name == prefix or qualified_name.startswith(prefix + "."):
                if best is None or len(prefix) > len(best):
                    best = prefix
        simple = qualified_name.rsplit(".", 1)[-1]
        if best is None:
            return ResolvedType(name=simple)
        target = table[best]
        if platform is Platform.IOS:
            # Swift qualifies by module, which must then be imported.
            if not target:
                return ResolvedType(name=simple)
            return ResolvedType(name=f"{target}.{simple}", imports=frozenset({target}))
        rest = qualified_name[len(best):].lstrip(".")
        if not target:
            return ResolvedType(name=rest)
        return ResolvedType(name=f"{target}.{rest}" if rest else target)

    # Conversions -----------------------------------------------------------

    def to_target_expression(self, prop: PropertyMetadata, platform: Platform, expression: str) -> str:
        """Expression converting a source value into the target representation."""
        return self._convert(prop, platform, expression, _TO_TARGET)

    def to_source_expression(self, prop: PropertyMetadata, platform: Platform, expression: str) -> str:
        """Expression converting a target value back into the source representation."""
        return self._convert(prop, platform, expression, _TO_SOURCE)

    def elements_to_target_expression(
        self, prop: PropertyMetadata, platform: Platform, expression: str
    ) -> Optional[str]:
        """Per-element conversion of an observable collection, or None when elements pass through."""
        if not prop.is_observable_collection or prop.date_semantics is None:
            return None
        if prop.element_type is None:
            return None
        if prop.type_override and prop.type_override.for_platform(platform):
            return None
        template = _TO_TARGET[platform][prop.date_semantics]
        converted = self._apply(Collection(prop.element_type), platform, expression, template)
        return None if converted == expression else converted

    def _convert(
        self,
        prop: PropertyMetadata,
        platform: Platform,
        expression: str,
        table: Mapping[Platform, Mapping[DateSemantics, str]],
    ) -> str:
        if prop.date_semantics is None or prop.is_observable_collection:
            return expression
        if prop.type_override and prop.type_override.for_platform(platform):
            return expression
        template = table[platform][prop.date_semantics]
        return self._apply(prop.type, platform, expression, template)

    def _apply(self, descriptor: TypeDescriptor, platform: Platform, expression: str, template: str) -> str:
        if template == "{value}":
            return expression
        placeholder = "it" if platform is Platform.ANDROID else "$0"
        if isinstance(descriptor, Nullable):
            inner = self._apply(descriptor.inner, platform, placeholder, template)
            if platform is Platform.ANDROID:
                return f"{expression}?.let {{ {inner} }}"
            return f"{expression}.map {{ {inner} }}"
        if isinstance(descriptor, Collection):
            inner = self._apply(descriptor.element, platform, placeholder, template)
            return f"{expression}.map {{ {inner} }}"
        if isinstance(descriptor, Reference):
            return expression
        return template.format(value=expression)

    # Capabilities ----------------------------------------------------------

    def _named(self, name: str, platform: Platform) -> ResolvedType:
        capabilities = set()
        imports = set()
        for token in _TYPE_NAME_PATTERN.findall(name):
            entry = _TYPE_IMPORTS[platform].get(token)
            if entry is not None:
                capabilities.add(entry[0])
                imports.add(entry[1])
        return ResolvedType(name=name, capabilities=frozenset(capabilities), imports=frozenset(imports))

    @staticmethod
    def _list_of(element: str, platform: Platform) -> str:
        if platform is Platform.ANDROID:
            return f"List<{element}>"
        return f"[{element}]"

    @staticmethod
    def merge(types: Iterable[Optional[ResolvedType]]) -> ResolvedType:
        """Union the capabilities and imports of several resolved types."""
        capabilities: set[Capability] = set()
        imports: set[str] = set()
        for resolved in types:
            if resolved is None:
                continue
            capabilities.update(resolved.capabilities)
            imports.update(resolved.imports)
        return ResolvedType(name="", capabilities=frozenset(capabilities), imports=frozenset(imports))


__all__ = [
    "Capability",
    "DEFAULT_NAMESPACE_REMAP",
    "FALLBACK_TYPE",
    "ResolvedType",
    "THREAD_DISPATCH_IMPORTS",
    "TypeTranslator",
]
