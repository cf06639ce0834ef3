"""Properties both backends must satisfy."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path
from typing import List

import pytest

from adaptergen.backends import AdapterBackend, AndroidBackend, IosBackend, discover_backends
from adaptergen.backends.base import Dispatch, resolve_dispatch, resolve_timestamp
from adaptergen.diagnostics import CONFLICTING_THREADING, DiagnosticLog
from adaptergen.models import (
    CommandBehavior,
    CommandMetadata,
    Platform,
    Primitive,
    PropertyMetadata,
    ThreadingBehavior,
    TypeOverride,
    ViewModelMetadata,
)
from adaptergen.translator import Capability
from tests._fixtures.view_models import location_list_view_model, simple_view_model

STAMP = datetime(2024, 5, 6, 7, 8, 9, tzinfo=UTC)


def _backends() -> List[AdapterBackend]:
    return [AndroidBackend(timestamp=STAMP), IosBackend(timestamp=STAMP)]


@pytest.mark.parametrize("backend", _backends(), ids=lambda backend: backend.name)
def test_generation_is_deterministic(backend: AdapterBackend) -> None:
    first = backend.generate(location_list_view_model())
    second = backend.generate(location_list_view_model())

    assert first.text == second.text
    assert first.imports == second.imports


def test_fresh_backends_with_same_timestamp_agree() -> None:
    assert AndroidBackend(timestamp=STAMP).generate(location_list_view_model()).text == AndroidBackend(
        timestamp=STAMP
    ).generate(location_list_view_model()).text


def test_identifiers_match_across_platforms() -> None:
    view_model = simple_view_model(
        "ProfileViewModel",
        properties=(
            PropertyMetadata(name="DisplayName", type=Primitive("string")),
            PropertyMetadata(name="AvatarUrl", type=Primitive("uri"), is_read_only=True),
        ),
        commands=(CommandMetadata(name="SignOutCommand", is_async=True),),
    )
    android, ios = (backend.generate(view_model).text for backend in _backends())

    for identifier in ("displayName", "avatarUrl"):
        assert f"val {identifier}:" in android
        assert f"var {identifier}:" in ios
    assert "suspend fun signOut()" in android
    assert "func signOut() async" in ios


def test_excluded_members_are_absent_only_on_their_platform() -> None:
    view_model = simple_view_model(
        "MapViewModel",
        properties=(
            PropertyMetadata(
                name="Heading",
                type=Primitive("double"),
                excluded_platforms=frozenset({Platform.IOS}),
            ),
        ),
        commands=(CommandMetadata(name="RecenterCommand", excluded_platforms=frozenset({Platform.ANDROID})),),
    )
    android, ios = (backend.generate(view_model).text for backend in _backends())

    assert "heading" in android
    assert "Heading" not in ios and "heading" not in ios
    assert "recenter" in ios
    assert "Recenter" not in android and "recenter" not in android


def test_imports_are_minimal_without_optional_capabilities() -> None:
    view_model = simple_view_model(
        "CounterViewModel",
        properties=(PropertyMetadata(name="Count", type=Primitive("int32")),),
        commands=(CommandMetadata(name="IncrementCommand"),),
    )
    android, ios = (backend.generate(view_model) for backend in _backends())

    assert android.capabilities == frozenset()
    assert ios.capabilities == frozenset()
    assert "kotlinx.coroutines.Dispatchers" not in android.imports
    assert "kotlinx.coroutines.withContext" not in android.imports
    assert not any(line.startswith("java.") for line in android.imports)
    assert ios.imports == ("Combine",)
    assert "import Foundation" not in ios.text
    assert "import Dispatch" not in ios.text


def test_every_import_is_used_and_sorted() -> None:
    view_model = simple_view_model(
        "MixedViewModel",
        properties=(
            PropertyMetadata(
                name="Position",
                type=Primitive("object"),
                type_override=TypeOverride(android="LatLng", ios="CLLocationCoordinate2D"),
            ),
            PropertyMetadata(name="Token", type=Primitive("uuid"), is_read_only=True),
        ),
    )
    for adapter in (backend.generate(view_model) for backend in _backends()):
        assert list(adapter.imports) == sorted(set(adapter.imports))
        assert adapter.capabilities == frozenset({Capability.GEO, Capability.IDENTIFIER})
        body = adapter.text.split("\n")
        import_lines = [line for line in body if line.startswith("import ")]
        assert len(import_lines) == len(adapter.imports)
        for module in adapter.imports:
            simple = module.rsplit(".", 1)[-1]
            if adapter.platform is Platform.ANDROID:
                code = "\n".join(line for line in body if not line.startswith("import "))
                assert re.search(rf"\b{re.escape(simple)}\b", code), simple


def test_two_way_binding_only_for_writable_scalars() -> None:
    view_model = location_list_view_model()
    android, ios = (backend.generate(view_model).text for backend in _backends())

    assert android.count(".drop(1)") == 1
    assert "source.title = newValue" in android
    assert "source.items =" not in android
    assert ios.count(".dropFirst()") == 1
    assert "self.source.title = newValue" in ios
    assert "self.source.items =" not in ios


def test_end_to_end_reference_example() -> None:
    outputs = {backend.platform: backend.generate(location_list_view_model()) for backend in _backends()}

    assert {adapter.file_name for adapter in outputs.values()} == {
        "LocationListAdapter.kt",
        "LocationListAdapter.swift",
    }
    kotlin = outputs[Platform.ANDROID].text
    swift = outputs[Platform.IOS].text
    assert "_title" in kotlin and "_items" in kotlin
    assert "CollectionChanged" in kotlin and "CollectionChanged" in swift
    assert "Dispatchers.IO" in kotlin
    assert ".background" in swift
    assert "Result.failure(e)" in kotlin
    assert ".failure(error)" in swift
    for adapter in outputs.values():
        assert Capability.THREAD_DISPATCH in adapter.capabilities
        assert adapter.diagnostics == ()


@pytest.mark.parametrize(
    ("command", "expected"),
    [
        (CommandMetadata(name="A", is_async=True), Dispatch.BACKGROUND),
        (CommandMetadata(name="B"), Dispatch.INLINE),
        (CommandMetadata(name="C", threading=ThreadingBehavior(requires_main_thread=True)), Dispatch.MAIN),
        (CommandMetadata(name="D", threading=ThreadingBehavior(requires_background_thread=True)), Dispatch.INLINE),
    ],
)
def test_resolve_dispatch(command: CommandMetadata, expected: Dispatch) -> None:
    assert resolve_dispatch(command, Platform.ANDROID) is expected


def test_resolve_dispatch_records_cross_attribute_conflict() -> None:
    command = CommandMetadata(
        name="SyncCommand",
        threading=ThreadingBehavior(requires_background_thread=True),
        command_behavior=CommandBehavior(requires_main_thread=True),
    )
    log = DiagnosticLog()

    assert resolve_dispatch(command, Platform.IOS, log) is Dispatch.MAIN
    assert [diagnostic.code for diagnostic in log.items] == [CONFLICTING_THREADING]


def test_timestamp_honours_source_date_epoch(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOURCE_DATE_EPOCH", "86400")

    assert resolve_timestamp() == datetime(1970, 1, 2, tzinfo=UTC)
    assert resolve_timestamp(STAMP) == STAMP


def test_discover_backends_filters_and_validates() -> None:
    backends = discover_backends(["ios"], output_dirs={"ios": "swift"})

    assert [backend.platform for backend in backends] == [Platform.IOS]
    assert backends[0].output_dir_name == "swift"
    with pytest.raises(ValueError):
        discover_backends(["windows"])


def test_user_templates_take_precedence(tmp_path: Path, location_list: ViewModelMetadata) -> None:
    (tmp_path / "ios_adapter.swift.j2").write_text("// custom {{ adapter_name }}\n", encoding="utf-8")

    adapter = IosBackend(templates_dir=tmp_path, timestamp=STAMP).generate(location_list)

    assert adapter.text == "// custom LocationListAdapter\n"


def test_view_model_metadata_is_not_mutated(location_list: ViewModelMetadata) -> None:
    before = location_list_view_model()
    for backend in _backends():
        backend.generate(location_list)

    assert location_list == before
