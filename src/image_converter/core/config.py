"""TOML helpers behind the imgconv configuration loaders."""

from __future__ import annotations

import tomllib
from contextlib import suppress
from pathlib import Path
from typing import Any, Mapping, MutableMapping

__all__ = [
    "TomlConfigError",
    "load_toml",
    "merge_defaults",
    "write_toml_template",
]


class TomlConfigError(RuntimeError):
    """Raised when a TOML file cannot be read, parsed, or merged."""


def load_toml(path: Path) -> Mapping[str, Any]:
    """Parse the TOML document at ``path``.

    Callers translate :class:`TomlConfigError` into their own error type.
    """

    if not path.is_file():
        raise TomlConfigError(f"Config file not found: {path}")
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse config TOML: {exc}") from exc


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    prefix: str = "",
) -> None:
    """Overlay ``override`` onto ``base`` in place.

    Keys absent from ``base`` are rejected, and a table in ``base`` may only
    be replaced by another table, which is merged recursively.
    """

    unknown = [key for key in override if key not in base]
    if unknown:
        raise TomlConfigError(
            f"Unknown configuration key '{prefix}{unknown[0]}'."
        )

    for key, value in override.items():
        dotted = prefix + key
        target = base[key]
        if not isinstance(target, MutableMapping):
            base[key] = value
        elif isinstance(value, Mapping):
            merge_defaults(target, value, prefix=dotted + ".")
        else:
            raise TomlConfigError(
                f"Expected table for '{dotted}', found "
                f"{type(value).__name__}."
            )


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """Write ``template`` to ``path``; existing files need ``overwrite``."""

    if not overwrite and path.exists():
        raise TomlConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(template, encoding="utf-8")
    # Some mounts refuse chmod; the file is still usable.
    with suppress(PermissionError):
        path.chmod(mode)
    return path
