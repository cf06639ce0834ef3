"""Tests for adaptergen.translator."""

from __future__ import annotations

import pytest

from adaptergen.diagnostics import UNMAPPED_TYPE, DiagnosticLog
from adaptergen.models import (
    Collection,
    CommandMetadata,
    DateSemantics,
    Nullable,
    Platform,
    Primitive,
    PropertyMetadata,
    Reference,
    TypeOverride,
)
from adaptergen.translator import FALLBACK_TYPE, Capability, TypeTranslator


@pytest.mark.parametrize(
    ("descriptor", "android", "ios"),
    [
        (Primitive("string"), "String", "String"),
        (Primitive("int32"), "Int", "Int32"),
        (Nullable(Primitive("bool")), "Boolean?", "Bool?"),
        (Collection(Primitive("double")), "List<Double>", "[Double]"),
        (Collection(Nullable(Primitive("int64"))), "List<Long?>", "[Int64?]"),
    ],
)
def test_map_type_canonical_table(
    translator: TypeTranslator, descriptor: object, android: str, ios: str
) -> None:
    assert translator.map_type(descriptor, Platform.ANDROID, member="m").name == android
    assert translator.map_type(descriptor, Platform.IOS, member="m").name == ios


def test_identifiers_are_platform_independent(translator: TypeTranslator) -> None:
    assert translator.identifier("SelectedLocation") == "selectedLocation"
    assert translator.identifier("URLString") == "uRLString"
    assert translator.command_identifier(CommandMetadata(name="SaveLocationCommand")) == "saveLocation"
    assert translator.command_identifier(CommandMetadata(name="Command")) == "command"


def test_parameter_identifier_follows_parameter_type(translator: TypeTranslator) -> None:
    by_reference = CommandMetadata(name="Select", parameter_type=Reference("Core.LocationSummary"))
    by_primitive = CommandMetadata(name="Page", parameter_type=Primitive("int32"))

    assert translator.parameter_identifier(by_reference) == "locationSummary"
    assert translator.parameter_identifier(by_primitive) == "value"


def test_type_override_wins_and_brings_capability(translator: TypeTranslator) -> None:
    prop = PropertyMetadata(
        name="Center",
        type=Reference("Maps.GeoPoint"),
        type_override=TypeOverride(android="LatLng", ios="CLLocationCoordinate2D"),
    )

    android = translator.property_type(prop, Platform.ANDROID)
    ios = translator.property_type(prop, Platform.IOS)

    assert android.name == "LatLng"
    assert android.capabilities == frozenset({Capability.GEO})
    assert android.imports == frozenset({"com.google.android.gms.maps.model.LatLng"})
    assert ios.name == "CLLocationCoordinate2D"
    assert ios.imports == frozenset({"CoreLocation"})


def test_date_semantics_share_type_but_not_conversion(translator: TypeTranslator) -> None:
    local = PropertyMetadata(name="Start", type=Primitive("datetime"), date_semantics=DateSemantics.LOCAL_DATE_TIME)
    utc = PropertyMetadata(name="Stamp", type=Primitive("datetime"), date_semantics=DateSemantics.UTC_INSTANT)

    assert translator.property_type(local, Platform.IOS).name == "Date"
    assert translator.property_type(utc, Platform.IOS).name == "Date"
    assert translator.to_target_expression(local, Platform.IOS, "v") != translator.to_target_expression(
        utc, Platform.IOS, "v"
    )
    assert translator.property_type(utc, Platform.ANDROID).name == "Instant"
    assert translator.to_target_expression(utc, Platform.ANDROID, "source.Stamp") == (
        "Instant.parse(source.Stamp.toString())"
    )
    assert translator.to_source_expression(utc, Platform.ANDROID, "newValue") == "newValue.toString()"


def test_nullable_date_conversion_is_wrapped(translator: TypeTranslator) -> None:
    prop = PropertyMetadata(
        name="Due", type=Nullable(Primitive("datetime")), date_semantics=DateSemantics.DATE_ONLY
    )

    assert translator.property_type(prop, Platform.ANDROID).name == "LocalDate?"
    assert translator.to_target_expression(prop, Platform.ANDROID, "source.Due") == (
        "source.Due?.let { LocalDate.parse(it.toString()) }"
    )
    assert translator.to_target_expression(prop, Platform.IOS, "source.Due").startswith("source.Due.map {")


def test_unmapped_type_falls_back_with_diagnostic(translator: TypeTranslator) -> None:
    diagnostics = DiagnosticLog()
    prop = PropertyMetadata(name="Payload", type=Primitive("object"))

    resolved = translator.property_type(prop, Platform.IOS, diagnostics)

    assert resolved.name == FALLBACK_TYPE
    (diagnostic,) = diagnostics.items
    assert diagnostic.code == UNMAPPED_TYPE
    assert diagnostic.member == "Payload"
    assert diagnostic.platform == "ios"


def test_namespace_remap_longest_prefix_wins() -> None:
    translator = TypeTranslator(
        {"android": {"Location.Core.Weather": "com.example.weather"}, "ios": {"Location.Core.Weather": "Weather"}}
    )

    assert translator.reference_name("Location.Core.Weather.Forecast", Platform.ANDROID) == (
        "com.example.weather.Forecast"
    )
    assert translator.reference_name("Location.Core.Models.Spot", Platform.ANDROID) == (
        "com.x3squaredcircles.core.Models.Spot"
    )
    resolved = translator.resolve_reference("Location.Core.Weather.Forecast", Platform.IOS)
    assert resolved.name == "Weather.Forecast"
    assert resolved.imports == frozenset({"Weather"})
    assert translator.reference_name("Other.Thing", Platform.IOS) == "Thing"


def test_observable_collection_override_applies_to_elements(translator: TypeTranslator) -> None:
    element = Reference("Maps.GeoPoint")
    prop = PropertyMetadata(
        name="Pins",
        type=Collection(element),
        is_observable_collection=True,
        element_type=element,
        type_override=TypeOverride(android="LatLng"),
    )

    assert translator.property_type(prop, Platform.ANDROID).name == "List<LatLng>"
    assert translator.property_type(prop, Platform.IOS).name == "[GeoPoint]"
