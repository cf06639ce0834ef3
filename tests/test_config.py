"""Tests for adaptergen.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from adaptergen.config import AdapterGenConfig, ConfigError, PlatformConfig, load_config
from adaptergen.models import Platform


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, AdapterGenConfig)
    assert config.root == tmp_path.resolve()
    assert config.output_root is None
    assert config.platforms == []
    assert config.workers is None
    assert config.templates_dir is None
    assert config.android == PlatformConfig()
    assert config.namespace_remap == {}
    assert config.output_dirs == {}


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".adaptergen.yml"
    config_file.write_text(
        """
output: "build/adapters"
platforms: [android, ios]
workers: 4
templates_dir: "templates"
android:
  package: "com.example.bindings"
  output_dir: "kotlin"
  namespace_remap:
    Shop.Core: "com.example.shop"
ios:
  namespace_remap:
    Shop.Core: ShopCore
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    root = tmp_path.resolve()
    assert config.output_root == root / "build/adapters"
    assert config.platforms == ["android", "ios"]
    assert config.workers == 4
    assert config.templates_dir == root / "templates"
    assert config.android.package == "com.example.bindings"
    assert config.for_platform(Platform.ANDROID).output_dir == "kotlin"
    assert config.output_dirs == {"android": "kotlin"}
    assert config.namespace_remap == {
        "android": {"Shop.Core": "com.example.shop"},
        "ios": {"Shop.Core": "ShopCore"},
    }


def test_load_config_accepts_single_platform_string(tmp_path: Path) -> None:
    (tmp_path / ".adaptergen.yml").write_text("platforms: both\n", encoding="utf-8")

    assert load_config(tmp_path).platforms == ["both"]


def test_load_config_accepts_explicit_file(tmp_path: Path) -> None:
    config_file = tmp_path / "custom.yml"
    config_file.write_text("workers: 2\n", encoding="utf-8")

    assert load_config(config_file).workers == 2


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "workers: 0\n",
        "android: [1, 2]\n",
        "ios:\n  namespace_remap: [a]\n",
        "output: [unclosed\n",
    ],
)
def test_load_config_rejects_invalid_shapes(tmp_path: Path, content: str) -> None:
    (tmp_path / ".adaptergen.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)
