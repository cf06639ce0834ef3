"""Swift backend: Combine ``@Published`` state and async/await command wrappers."""

from __future__ import annotations

from typing import Sequence, Set

from ..models import Platform
from .base import AdapterBackend, CommandView, PropertyView


class IosBackend(AdapterBackend):
    """Emits an ``ObservableObject`` whose published state mirrors the wrapped view-model."""

    platform = Platform.IOS
    file_extension = "swift"
    default_output_dir = "iOS"
    template_name = "ios_adapter.swift.j2"

    def structural_imports(
        self, properties: Sequence[PropertyView], commands: Sequence[CommandView]
    ) -> Set[str]:
        # ObservableObject, @Published and AnyCancellable all come from Combine.
        return {"Combine"}

    def snapshot_expression(self, source_expression: str) -> str:
        return f"Array({source_expression})"

    def source_access(self, member: str, *, in_listener: bool) -> str:
        if in_listener:
            return f"self.source.{member}"
        return f"source.{member}"


__all__ = ["IosBackend"]
