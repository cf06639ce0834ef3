"""Immutable view-model metadata shared across adaptergen components."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Tuple, Union


class Platform(str, Enum):
    """Target runtimes an adapter can be generated for."""

    ANDROID = "android"
    IOS = "ios"

    @classmethod
    def parse(cls, value: Union[str, "Platform"]) -> "Platform":
        if isinstance(value, Platform):
            return value
        lowered = str(value).strip().lower()
        for member in cls:
            if member.value == lowered:
                return member
        supported = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown platform '{value}'. Supported platforms: {supported}")


class DateSemantics(str, Enum):
    """What a date/time value means, independent of its storage type."""

    LOCAL_DATE_TIME = "local_date_time"
    UTC_INSTANT = "utc_instant"
    DATE_ONLY = "date_only"
    TIME_ONLY = "time_only"
    DURATION = "duration"
    ZONED_DATE_TIME = "zoned_date_time"


# Canonical type descriptors -------------------------------------------------


@dataclass(frozen=True)
class Primitive:
    """Built-in scalar such as ``string`` or ``int32``."""

    kind: str


@dataclass(frozen=True)
class Nullable:
    inner: "TypeDescriptor"


@dataclass(frozen=True)
class Collection:
    element: "TypeDescriptor"


@dataclass(frozen=True)
class Reference:
    """User-defined type identified by its source qualified name."""

    qualified_name: str

    @property
    def simple_name(self) -> str:
        return self.qualified_name.rsplit(".", 1)[-1]


TypeDescriptor = Union[Primitive, Nullable, Collection, Reference]


# Behavior attributes --------------------------------------------------------


@dataclass(frozen=True)
class TypeOverride:
    """Explicit target type names; ``None`` leaves that platform to the default mapping."""

    android: Optional[str] = None
    ios: Optional[str] = None

    def for_platform(self, platform: Platform) -> Optional[str]:
        return self.android if platform is Platform.ANDROID else self.ios


@dataclass(frozen=True)
class ValidationBehavior:
    validate_on_set: bool = True
    validator_method: Optional[str] = None


@dataclass(frozen=True)
class CollectionBehavior:
    supports_batching: bool = False
    batch_size: Optional[int] = None


@dataclass(frozen=True)
class ThreadingBehavior:
    requires_main_thread: bool = False
    requires_background_thread: bool = False


@dataclass(frozen=True)
class CommandBehavior:
    requires_main_thread: bool = False
    expose_can_execute: bool = False


# Members --------------------------------------------------------------------


@dataclass(frozen=True)
class PropertyMetadata:
    """A bindable view-model property."""

    name: str
    type: TypeDescriptor
    is_read_only: bool = False
    is_observable_collection: bool = False
    element_type: Optional[TypeDescriptor] = None
    type_override: Optional[TypeOverride] = None
    date_semantics: Optional[DateSemantics] = None
    validation: Optional[ValidationBehavior] = None
    collection_behavior: Optional[CollectionBehavior] = None
    excluded_platforms: FrozenSet[Platform] = frozenset()
    warning_note: Optional[str] = None

    def __post_init__(self) -> None:
        if self.is_observable_collection and self.element_type is None:
            raise ValueError(f"Observable collection '{self.name}' requires an element type")
        if not self.is_observable_collection and self.element_type is not None:
            raise ValueError(f"Property '{self.name}' has an element type but is not an observable collection")

    def is_excluded_for(self, platform: Platform) -> bool:
        return platform in self.excluded_platforms


@dataclass(frozen=True)
class CommandMetadata:
    """A command exposed by the view-model (sync or async, optionally parameterised)."""

    name: str
    is_async: bool = False
    parameter_type: Optional[TypeDescriptor] = None
    threading: Optional[ThreadingBehavior] = None
    command_behavior: Optional[CommandBehavior] = None
    excluded_platforms: FrozenSet[Platform] = frozenset()
    warning_note: Optional[str] = None

    @property
    def has_parameter(self) -> bool:
        return self.parameter_type is not None

    @property
    def requires_main_thread(self) -> bool:
        return bool(
            (self.threading and self.threading.requires_main_thread)
            or (self.command_behavior and self.command_behavior.requires_main_thread)
        )

    @property
    def requires_background_thread(self) -> bool:
        return bool(self.threading and self.threading.requires_background_thread)

    @property
    def exposes_can_execute(self) -> bool:
        return bool(self.command_behavior and self.command_behavior.expose_can_execute)

    def is_excluded_for(self, platform: Platform) -> bool:
        return platform in self.excluded_platforms


@dataclass(frozen=True)
class ViewModelMetadata:
    """Everything a backend needs to emit one adapter."""

    name: str
    fully_qualified_name: str
    origin_module: str = "Unknown"
    properties: Tuple[PropertyMetadata, ...] = ()
    commands: Tuple[CommandMetadata, ...] = ()
    excluded_platforms: FrozenSet[Platform] = frozenset()

    @property
    def adapter_name(self) -> str:
        return adapter_name_for(self.name)

    def is_excluded_for(self, platform: Platform) -> bool:
        return platform in self.excluded_platforms

    def properties_for(self, platform: Platform) -> Tuple[PropertyMetadata, ...]:
        return tuple(prop for prop in self.properties if not prop.is_excluded_for(platform))

    def commands_for(self, platform: Platform) -> Tuple[CommandMetadata, ...]:
        return tuple(command for command in self.commands if not command.is_excluded_for(platform))


def adapter_name_for(view_model_name: str) -> str:
    """Derive the adapter class name (``LocationListViewModel`` -> ``LocationListAdapter``)."""
    suffix = "ViewModel"
    if view_model_name.endswith(suffix) and len(view_model_name) > len(suffix):
        return view_model_name[: -len(suffix)] + "Adapter"
    return f"{view_model_name}Adapter"


__all__ = [
    "Collection",
    "CollectionBehavior",
    "CommandBehavior",
    "CommandMetadata",
    "DateSemantics",
    "Nullable",
    "Platform",
    "Primitive",
    "PropertyMetadata",
    "Reference",
    "ThreadingBehavior",
    "TypeDescriptor",
    "TypeOverride",
    "ValidationBehavior",
    "ViewModelMetadata",
    "adapter_name_for",
]
