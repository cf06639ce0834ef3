"""Kotlin backend: StateFlow containers and coroutine command wrappers."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Set

from ..models import Platform
from ..translator import TypeTranslator
from .base import AdapterBackend, CommandView, Dispatch, PropertyView

DEFAULT_PACKAGE = "com.x3squaredcircles.adapters"


class AndroidBackend(AdapterBackend):
    """Emits a ``ViewModel`` subclass exposing ``StateFlow`` state and ``Result`` commands."""

    platform = Platform.ANDROID
    file_extension = "kt"
    default_output_dir = "android"
    template_name = "android_adapter.kt.j2"

    def __init__(
        self,
        translator: Optional[TypeTranslator] = None,
        *,
        package_name: Optional[str] = None,
        templates_dir: Optional[Path] = None,
        timestamp: Optional[datetime] = None,
        output_dir_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            translator,
            templates_dir=templates_dir,
            timestamp=timestamp,
            output_dir_name=output_dir_name,
        )
        self.package_name = package_name or DEFAULT_PACKAGE

    def structural_imports(
        self, properties: Sequence[PropertyView], commands: Sequence[CommandView]
    ) -> Set[str]:
        imports = {"androidx.lifecycle.ViewModel", "javax.inject.Inject"}
        if properties:
            imports.update(
                {
                    "kotlinx.coroutines.flow.MutableStateFlow",
                    "kotlinx.coroutines.flow.StateFlow",
                    "kotlinx.coroutines.flow.asStateFlow",
                }
            )
        two_way = any(prop.two_way for prop in properties)
        main_sync = any(
            not command.is_async and command.dispatch is Dispatch.MAIN for command in commands
        )
        if two_way:
            imports.update(
                {
                    "kotlinx.coroutines.flow.drop",
                    "kotlinx.coroutines.flow.launchIn",
                    "kotlinx.coroutines.flow.onEach",
                }
            )
        if two_way or main_sync:
            imports.add("androidx.lifecycle.viewModelScope")
        if main_sync:
            imports.add("kotlinx.coroutines.launch")
        if any(command.is_async for command in commands):
            imports.add("kotlinx.coroutines.withContext")
        return imports

    def snapshot_expression(self, source_expression: str) -> str:
        return f"{source_expression}.toList()"

    def extra_context(self) -> Dict[str, Any]:
        return {"package_name": self.package_name}


__all__ = ["AndroidBackend", "DEFAULT_PACKAGE"]
