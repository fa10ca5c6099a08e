from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from image_converter.core import config_templates
from image_converter.core.config_templates import (
    ConfigTemplate,
    ConfigTemplateError,
)


def test_get_template_returns_convert_template(tmp_path: Path) -> None:
    template = config_templates.get_template("convert")
    assert isinstance(template, ConfigTemplate)

    contents = template.read_text()
    assert "[execution]" in contents
    assert "chunk_size" in contents

    target = tmp_path / "convert.toml"
    written = template.write(target)
    assert written == target
    assert target.read_text(encoding="utf-8") == contents

    with pytest.raises(ConfigTemplateError):
        template.write(target)

    updated = template.write(target, overwrite=True)
    assert updated == target


def test_convert_template_parses_as_toml() -> None:
    contents = config_templates.get_template("convert").read_text()

    data = tomllib.loads(contents)

    assert data["execution"]["target_format"] == "png"
    assert data["execution"]["dds_format"] == "BC1_UNORM"
    assert data["execution"]["chunk_size"] == 5
    assert data["paths"]["destination_dir"] == ""


def test_iter_templates_returns_registered_templates() -> None:
    names = {template.name for template in config_templates.iter_templates()}
    assert names == {"convert"}


def test_missing_resource_raises(tmp_path: Path) -> None:
    template = ConfigTemplate(
        name="ghost",
        filename="missing.toml",
        description="",
        package="image_converter.convert",
    )

    with pytest.raises(ConfigTemplateError):
        template.read_text()


@pytest.mark.parametrize("unknown", ["missing", "", "rag"])
def test_get_template_unknown_raises(unknown: str) -> None:
    with pytest.raises(ConfigTemplateError):
        config_templates.get_template(unknown)
