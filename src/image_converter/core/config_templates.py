"""Config templates shipped as package data, keyed by subcommand."""

from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Iterable

from .config import TomlConfigError, write_toml_template

__all__ = [
    "ConfigTemplate",
    "ConfigTemplateError",
    "get_template",
    "iter_templates",
]


class ConfigTemplateError(RuntimeError):
    """Raised when a template is unknown or cannot be written."""


@dataclass(frozen=True)
class ConfigTemplate:
    name: str
    package: str
    filename: str = "template.toml"
    description: str = ""

    def read_text(self) -> str:
        try:
            source = resources.files(self.package) / self.filename
            return source.read_text(encoding="utf-8")
        except (FileNotFoundError, ModuleNotFoundError) as exc:
            raise ConfigTemplateError(
                f"Template '{self.name}' is missing {self.filename} in "
                f"{self.package}."
            ) from exc

    def write(
        self, path: Path, *, overwrite: bool = False, mode: int = 0o600
    ) -> Path:
        """Copy the template to ``path`` and return it."""

        text = self.read_text()
        try:
            return write_toml_template(
                path, template=text, overwrite=overwrite, mode=mode
            )
        except TomlConfigError as exc:
            raise ConfigTemplateError(str(exc)) from exc


_REGISTRY = {
    template.name: template
    for template in (
        ConfigTemplate(
            name="convert",
            package="image_converter.convert",
            description="Defaults for `imgconv convert` batch runs.",
        ),
    )
}


def get_template(name: str) -> ConfigTemplate:
    template = _REGISTRY.get(name)
    if template is None:
        known = ", ".join(sorted(_REGISTRY))
        raise ConfigTemplateError(
            f"Unknown config template '{name}' (known: {known})."
        )
    return template


def iter_templates() -> Iterable[ConfigTemplate]:
    return tuple(_REGISTRY.values())
