"""Shared contract and rendering machinery for adapter backends."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from ..diagnostics import CONFLICTING_THREADING, Diagnostic, DiagnosticLog
from ..logging import get_logger
from ..models import CommandMetadata, Platform, PropertyMetadata, ViewModelMetadata
from ..translator import THREAD_DISPATCH_IMPORTS, Capability, ResolvedType, TypeTranslator

_TEMPLATES_DIR = Path(__file__).with_name("templates")

DISCLAIMER = (
    "This adapter is a thin reactive binding layer and intentionally contains no business logic."
)


class GenerationError(RuntimeError):
    """Raised when an adapter cannot be produced for a view-model."""


class Dispatch(str, Enum):
    """Where a command wrapper runs the underlying command."""

    MAIN = "main"
    BACKGROUND = "background"
    INLINE = "inline"


@dataclass(frozen=True)
class GeneratedAdapter:
    """Rendered adapter source for one (view-model, platform) pair."""

    view_model: str
    adapter_name: str
    platform: Platform
    file_name: str
    text: str
    imports: Tuple[str, ...] = ()
    capabilities: FrozenSet[Capability] = frozenset()
    diagnostics: Tuple[Diagnostic, ...] = ()


@dataclass(frozen=True)
class PropertyView:
    """Template-facing view of a property after translation."""

    name: str
    identifier: str
    setter: str
    type_name: str
    element_type_name: Optional[str]
    is_read_only: bool
    is_observable_collection: bool
    seed: str
    refresh: str
    to_source: str
    two_way: bool
    validator: Optional[str]
    validation_note: Optional[str]
    batch_comment: Optional[str]
    custom_mapping: bool
    warning: Optional[str]


@dataclass(frozen=True)
class CommandView:
    """Template-facing view of a command after translation."""

    name: str
    identifier: str
    capitalized: str
    is_async: bool
    dispatch: Dispatch
    parameter_name: Optional[str]
    parameter_type: Optional[str]
    can_execute: bool
    warning: Optional[str]


def resolve_dispatch(
    command: CommandMetadata,
    platform: Platform,
    diagnostics: Optional[DiagnosticLog] = None,
) -> Dispatch:
    """Pick the thread a command wrapper runs on.

    Async commands run on a background worker unless the main thread is
    required. Synchronous commands are called directly unless the main thread
    is required. Conflicting threading attributes resolve to the main thread.
    """
    if command.requires_main_thread and command.requires_background_thread:
        if diagnostics is not None:
            diagnostics.record(
                CONFLICTING_THREADING,
                command.name,
                "requires both main and background thread; using main thread",
                platform=platform.value,
            )
        return Dispatch.MAIN
    if command.requires_main_thread:
        return Dispatch.MAIN
    if command.is_async:
        return Dispatch.BACKGROUND
    return Dispatch.INLINE


def resolve_timestamp(explicit: Optional[datetime] = None) -> datetime:
    """Return the fixed generation timestamp for a backend instance."""
    if explicit is not None:
        if explicit.tzinfo is None:
            explicit = explicit.replace(tzinfo=UTC)
        return explicit.astimezone(UTC).replace(microsecond=0)
    epoch = os.environ.get("SOURCE_DATE_EPOCH")
    if epoch:
        try:
            return datetime.fromtimestamp(int(epoch), tz=UTC)
        except ValueError as exc:
            raise GenerationError(f"SOURCE_DATE_EPOCH must be an integer, got '{epoch}'") from exc
    return datetime.now(UTC).replace(microsecond=0)


def create_environment(templates_dir: Optional[Path] = None) -> Environment:
    """Jinja environment searching a user templates directory before the packaged one."""
    search_path: List[str] = []
    if templates_dir is not None:
        search_path.append(str(templates_dir))
    search_path.append(str(_TEMPLATES_DIR))
    return Environment(
        loader=FileSystemLoader(search_path),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


class AdapterBackend(ABC):
    """Contract for generators that turn view-model metadata into adapter source."""

    platform: Platform
    file_extension: str
    default_output_dir: str
    template_name: str

    def __init__(
        self,
        translator: Optional[TypeTranslator] = None,
        *,
        templates_dir: Optional[Path] = None,
        timestamp: Optional[datetime] = None,
        output_dir_name: Optional[str] = None,
    ) -> None:
        self.translator = translator or TypeTranslator()
        self.timestamp = resolve_timestamp(timestamp)
        self.output_dir_name = output_dir_name or self.default_output_dir
        self.environment = create_environment(templates_dir)
        self.logger = get_logger(f"backends.{self.platform.value}")

    @property
    def name(self) -> str:
        return self.platform.value

    @property
    def file_pattern(self) -> str:
        """Glob matching files this backend owns in its output directory."""
        return f"*Adapter.{self.file_extension}"

    def file_name_for(self, view_model: ViewModelMetadata) -> str:
        return f"{view_model.adapter_name}.{self.file_extension}"

    def generate(self, view_model: ViewModelMetadata) -> GeneratedAdapter:
        """Render the adapter for ``view_model``; pure apart from the fixed timestamp."""
        diagnostics = DiagnosticLog()
        resolved: List[Optional[ResolvedType]] = []

        properties: List[PropertyView] = []
        for prop in view_model.properties_for(self.platform):
            resolved_type = self.translator.property_type(prop, self.platform, diagnostics)
            resolved.append(resolved_type)
            properties.append(self._property_view(prop, resolved_type, diagnostics))

        commands: List[CommandView] = []
        for command in view_model.commands_for(self.platform):
            parameter = self.translator.parameter_type(command, self.platform, diagnostics)
            resolved.append(parameter)
            commands.append(self._command_view(command, parameter, diagnostics))

        source = self.translator.resolve_reference(view_model.fully_qualified_name, self.platform)
        resolved.append(source)
        merged = TypeTranslator.merge(resolved)

        capabilities: Set[Capability] = set(merged.capabilities)
        imports: Set[str] = set(merged.imports)
        if any(command.dispatch is not Dispatch.INLINE for command in commands):
            capabilities.add(Capability.THREAD_DISPATCH)
            imports.add(THREAD_DISPATCH_IMPORTS[self.platform])
        imports.update(self.structural_imports(properties, commands))
        sorted_imports = tuple(sorted(imports))

        custom_members = [prop.name for prop in properties if prop.custom_mapping]
        warned = [member.name for member in [*properties, *commands] if member.warning]
        context: Dict[str, Any] = {
            "adapter_name": view_model.adapter_name,
            "view_model": view_model,
            "source_type": source.name,
            "disclaimer": DISCLAIMER,
            "generated_at": self.timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "imports": sorted_imports,
            "properties": properties,
            "two_way_properties": [prop for prop in properties if prop.two_way],
            "collections": [prop for prop in properties if prop.is_observable_collection],
            "commands": commands,
            "custom_members": custom_members,
            "warned_members": warned,
        }
        context.update(self.extra_context())

        try:
            template = self.environment.get_template(self.template_name)
            text = template.render(**context)
        except TemplateError as exc:
            raise GenerationError(
                f"Failed to render {self.platform.value} adapter for {view_model.name}: {exc}"
            ) from exc

        for diagnostic in diagnostics.items:
            self.logger.debug("%s: %s", view_model.name, diagnostic.format())

        return GeneratedAdapter(
            view_model=view_model.name,
            adapter_name=view_model.adapter_name,
            platform=self.platform,
            file_name=self.file_name_for(view_model),
            text=text,
            imports=sorted_imports,
            capabilities=frozenset(capabilities),
            diagnostics=tuple(diagnostics.items),
        )

    # Hooks -----------------------------------------------------------------

    @abstractmethod
    def structural_imports(
        self, properties: Sequence[PropertyView], commands: Sequence[CommandView]
    ) -> Set[str]:
        """Imports required by the generated structure rather than by member types."""

    @abstractmethod
    def snapshot_expression(self, source_expression: str) -> str:
        """Expression copying an observable collection into the target list type."""

    def source_access(self, member: str, *, in_listener: bool) -> str:
        return f"source.{member}"

    def extra_context(self) -> Dict[str, Any]:
        return {}

    # Views -----------------------------------------------------------------

    def _property_view(
        self,
        prop: PropertyMetadata,
        resolved: ResolvedType,
        diagnostics: DiagnosticLog,
    ) -> PropertyView:
        translator = self.translator
        identifier = translator.identifier(prop.name)
        element_name: Optional[str] = None
        if prop.is_observable_collection:
            element_name = translator.element_type(prop, self.platform, diagnostics).name
            seed = self._collection_snapshot(prop, in_listener=False)
            refresh = self._collection_snapshot(prop, in_listener=True)
        else:
            seed = translator.to_target_expression(
                prop, self.platform, self.source_access(prop.name, in_listener=False)
            )
            refresh = translator.to_target_expression(
                prop, self.platform, self.source_access(prop.name, in_listener=True)
            )

        two_way = not prop.is_read_only and not prop.is_observable_collection
        validator: Optional[str] = None
        validation_note: Optional[str] = None
        if two_way and prop.validation is not None and prop.validation.validate_on_set:
            if prop.validation.validator_method:
                validator = prop.validation.validator_method
            else:
                validation_note = "Validation runs in the source view-model setter."

        batch_comment: Optional[str] = None
        if prop.collection_behavior is not None and prop.collection_behavior.supports_batching:
            size = prop.collection_behavior.batch_size
            if size:
                batch_comment = f"Element changes may arrive in batches of {size}."
            else:
                batch_comment = "Element changes may arrive in batches."

        override = prop.type_override.for_platform(self.platform) if prop.type_override else None
        return PropertyView(
            name=prop.name,
            identifier=identifier,
            setter="update" + identifier[:1].upper() + identifier[1:],
            type_name=resolved.name,
            element_type_name=element_name,
            is_read_only=prop.is_read_only,
            is_observable_collection=prop.is_observable_collection,
            seed=seed,
            refresh=refresh,
            to_source=translator.to_source_expression(prop, self.platform, "newValue"),
            two_way=two_way,
            validator=validator,
            validation_note=validation_note,
            batch_comment=batch_comment,
            custom_mapping=bool(override) or prop.date_semantics is not None,
            warning=prop.warning_note,
        )

    def _collection_snapshot(self, prop: PropertyMetadata, *, in_listener: bool) -> str:
        access = self.source_access(prop.name, in_listener=in_listener)
        # map already yields a fresh list, so converted elements skip the plain copy.
        converted = self.translator.elements_to_target_expression(prop, self.platform, access)
        return converted or self.snapshot_expression(access)

    def _command_view(
        self,
        command: CommandMetadata,
        parameter: Optional[ResolvedType],
        diagnostics: DiagnosticLog,
    ) -> CommandView:
        identifier = self.translator.command_identifier(command)
        return CommandView(
            name=command.name,
            identifier=identifier,
            capitalized=identifier[:1].upper() + identifier[1:],
            is_async=command.is_async,
            dispatch=resolve_dispatch(command, self.platform, diagnostics),
            parameter_name=self.translator.parameter_identifier(command) if parameter else None,
            parameter_type=parameter.name if parameter else None,
            can_execute=command.exposes_can_execute,
            warning=command.warning_note,
        )


__all__ = [
    "AdapterBackend",
    "CommandView",
    "DISCLAIMER",
    "Dispatch",
    "GeneratedAdapter",
    "GenerationError",
    "PropertyView",
    "create_environment",
    "resolve_dispatch",
    "resolve_timestamp",
]
