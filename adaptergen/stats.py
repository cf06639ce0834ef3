"""Counts behavior attribute usage across a set of view-models."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from .logging import get_logger
from .models import CommandMetadata, PropertyMetadata, ViewModelMetadata

ATTRIBUTE_KINDS = (
    "type_override",
    "date_semantics",
    "validation",
    "collection_behavior",
    "threading",
    "command_behavior",
    "platform_exclusion",
    "warning",
)


@dataclass
class AttributeUsage:
    total_view_models: int = 0
    view_models_with_attributes: int = 0
    properties: int = 0
    commands: int = 0
    members_by_attribute: Dict[str, int] = field(
        default_factory=lambda: {kind: 0 for kind in ATTRIBUTE_KINDS}
    )

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_view_models": self.total_view_models,
            "view_models_with_attributes": self.view_models_with_attributes,
            "properties": self.properties,
            "commands": self.commands,
            "members_by_attribute": dict(self.members_by_attribute),
        }


def _property_attributes(prop: PropertyMetadata) -> Iterable[str]:
    if prop.type_override is not None:
        yield "type_override"
    if prop.date_semantics is not None:
        yield "date_semantics"
    if prop.validation is not None:
        yield "validation"
    if prop.collection_behavior is not None:
        yield "collection_behavior"
    if prop.excluded_platforms:
        yield "platform_exclusion"
    if prop.warning_note:
        yield "warning"


def _command_attributes(command: CommandMetadata) -> Iterable[str]:
    if command.threading is not None:
        yield "threading"
    if command.command_behavior is not None:
        yield "command_behavior"
    if command.excluded_platforms:
        yield "platform_exclusion"
    if command.warning_note:
        yield "warning"


def collect_attribute_usage(view_models: Iterable[ViewModelMetadata]) -> AttributeUsage:
    usage = AttributeUsage()
    for view_model in view_models:
        usage.total_view_models += 1
        usage.properties += len(view_model.properties)
        usage.commands += len(view_model.commands)
        used = bool(view_model.excluded_platforms)
        for prop in view_model.properties:
            for kind in _property_attributes(prop):
                usage.members_by_attribute[kind] += 1
                used = True
        for command in view_model.commands:
            for kind in _command_attributes(command):
                usage.members_by_attribute[kind] += 1
                used = True
        if used:
            usage.view_models_with_attributes += 1
    return usage


def log_attribute_usage(usage: AttributeUsage, logger: Optional[logging.Logger] = None) -> None:
    logger = logger or get_logger("stats")
    logger.info(
        "%d of %d view-model(s) use behavior attributes (%d properties, %d commands)",
        usage.view_models_with_attributes,
        usage.total_view_models,
        usage.properties,
        usage.commands,
    )
    for kind in ATTRIBUTE_KINDS:
        count = usage.members_by_attribute.get(kind, 0)
        if count:
            logger.info("  %s: %d member(s)", kind, count)


__all__ = ["ATTRIBUTE_KINDS", "AttributeUsage", "collect_attribute_usage", "log_attribute_usage"]
