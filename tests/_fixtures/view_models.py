"""Helper utilities for constructing view-model metadata in tests."""

from __future__ import annotations

import textwrap
from datetime import UTC, datetime
from pathlib import Path

from adaptergen.models import (
    Collection,
    CommandMetadata,
    Primitive,
    PropertyMetadata,
    Reference,
    ThreadingBehavior,
    ViewModelMetadata,
)

FIXED_TIMESTAMP = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)


def location_list_view_model() -> ViewModelMetadata:
    """The reference example: a title, an observable list and a background refresh."""
    summary = Reference("Location.Core.Application.LocationSummary")
    return ViewModelMetadata(
        name="LocationListViewModel",
        fully_qualified_name="Location.Core.ViewModels.LocationListViewModel",
        origin_module="Core",
        properties=(
            PropertyMetadata(name="title", type=Primitive("string")),
            PropertyMetadata(
                name="items",
                type=Collection(summary),
                is_read_only=True,
                is_observable_collection=True,
                element_type=summary,
            ),
        ),
        commands=(
            CommandMetadata(
                name="refresh",
                is_async=True,
                threading=ThreadingBehavior(requires_background_thread=True),
            ),
        ),
    )


def simple_view_model(name: str, *, properties: tuple = (), commands: tuple = ()) -> ViewModelMetadata:
    return ViewModelMetadata(
        name=name,
        fully_qualified_name=f"Sample.ViewModels.{name}",
        origin_module="Sample",
        properties=properties,
        commands=commands,
    )


def write_document(directory: Path, content: str, name: str = "view_models.yml") -> Path:
    """Write a dedented metadata document and return its path."""
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return path


LOCATION_LIST_DOCUMENT = """
view_models:
  - name: LocationListViewModel
    fully_qualified_name: Location.Core.ViewModels.LocationListViewModel
    origin_module: Core
    properties:
      - name: title
        type: string
      - name: items
        type: ObservableCollection<Location.Core.Application.LocationSummary>
        read_only: true
    commands:
      - name: refresh
        async: true
        threading:
          requires_background_thread: true
"""


__all__ = [
    "FIXED_TIMESTAMP",
    "LOCATION_LIST_DOCUMENT",
    "location_list_view_model",
    "simple_view_model",
    "write_document",
]
