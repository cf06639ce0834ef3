from __future__ import annotations

import pytest

from adaptergen.backends import AndroidBackend, IosBackend
from adaptergen.models import ViewModelMetadata
from adaptergen.translator import TypeTranslator
from tests._fixtures.view_models import FIXED_TIMESTAMP, location_list_view_model


@pytest.fixture
def translator() -> TypeTranslator:
    return TypeTranslator()


@pytest.fixture
def android_backend(translator: TypeTranslator) -> AndroidBackend:
    """Kotlin backend with a pinned generation timestamp."""
    return AndroidBackend(translator, timestamp=FIXED_TIMESTAMP)


@pytest.fixture
def ios_backend(translator: TypeTranslator) -> IosBackend:
    """Swift backend with a pinned generation timestamp."""
    return IosBackend(translator, timestamp=FIXED_TIMESTAMP)


@pytest.fixture
def location_list() -> ViewModelMetadata:
    return location_list_view_model()
