"""Configuration loader for `imgconv convert`."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from image_converter.core import config as core_config
from image_converter.core import workspace as workspace_mod

from .engine import DEFAULT_CHUNK_SIZE, ExecutionMode, ExecutionStrategy
from .formats import DEFAULT_DDS_FORMAT, DdsFormat, FormatError, TargetFormat

CONFIG_FILENAME = "convert.toml"
CONFIG_ENV = "IMGCONV_CONFIG"
ENV_PREFIX = "IMGCONV_"

_DEFAULT_TARGET = TargetFormat.PNG.value
_DEFAULT_STRATEGY = ExecutionMode.PARALLEL.value
_DEFAULT_LOG_LEVEL = "INFO"


class ConvertConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class ConvertConfig:
    """Resolved settings for one conversion run.

    ``destination_dir`` of ``None`` means "write next to the sources".
    """

    destination_dir: Optional[Path]
    target: TargetFormat
    dds_format: DdsFormat
    strategy: ExecutionStrategy
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """Command-line values that win over env and file settings."""

    destination_dir: Optional[Path] = None
    target: Optional[TargetFormat] = None
    dds_format: Optional[DdsFormat] = None
    mode: Optional[ExecutionMode] = None
    chunk_size: Optional[int] = None
    max_workers: Optional[int] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    config: ConvertConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load settings with precedence CLI > env > TOML > built-in defaults.

    The TOML file defaults to ``convert.toml`` in the workspace config
    directory and is optional there. A path given explicitly, through
    ``--config`` or ``IMGCONV_CONFIG``, must exist.
    """

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)
    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )
    explicit = config_path is not None or bool(
        (env_map.get(CONFIG_ENV) or "").strip()
    )

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested_path.exists():
        try:
            core_config.merge_defaults(
                table, core_config.load_toml(requested_path)
            )
        except core_config.TomlConfigError as exc:
            raise ConvertConfigError(str(exc)) from exc
        loaded_path = requested_path
    elif explicit:
        raise ConvertConfigError(f"Config file not found: {requested_path}")

    paths = table["paths"]
    execution = table["execution"]

    destination_dir = _pick_first(
        overrides.destination_dir,
        _env_path(env_map, "DESTINATION_DIR"),
        _coerce_optional_path(paths["destination_dir"]),
    )
    target = _pick_first(
        overrides.target,
        _parse(TargetFormat.from_value, _env_string(env_map, "TARGET_FORMAT")),
        _parse(TargetFormat.from_value, _require_str(
            execution["target_format"], "execution.target_format"
        )),
    )
    dds_format = _pick_first(
        overrides.dds_format,
        _parse(DdsFormat.from_value, _env_string(env_map, "DDS_FORMAT")),
        _parse(DdsFormat.from_value, _require_str(
            execution["dds_format"], "execution.dds_format"
        )),
    )
    mode = _pick_first(
        overrides.mode,
        _parse(ExecutionMode.from_value, _env_string(env_map, "STRATEGY")),
        _parse(ExecutionMode.from_value, _require_str(
            execution["strategy"], "execution.strategy"
        )),
    )
    chunk_size = _pick_first(
        overrides.chunk_size,
        _env_int(env_map, "CHUNK_SIZE"),
        _require_int(execution["chunk_size"], "execution.chunk_size"),
    )
    max_workers = _pick_first(
        overrides.max_workers,
        _env_int(env_map, "MAX_WORKERS"),
        _require_int(execution["max_workers"], "execution.max_workers"),
    )
    log_level = _pick_first(
        overrides.log_level,
        _env_string(env_map, "LOG_LEVEL"),
        table["logging"]["level"],
    )

    try:
        strategy = ExecutionStrategy(
            mode=mode,
            chunk_size=chunk_size,
            max_workers=max_workers or None,
        )
    except ValueError as exc:
        raise ConvertConfigError(str(exc)) from exc

    config = ConvertConfig(
        destination_dir=(
            None if destination_dir is None
            else destination_dir.expanduser().resolve()
        ),
        target=target,
        dds_format=dds_format,
        strategy=strategy,
        log_level=_normalize_log_level(log_level),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, Any]]:
    return {
        "paths": {"destination_dir": ""},
        "execution": {
            "target_format": _DEFAULT_TARGET,
            "dds_format": DEFAULT_DDS_FORMAT.name,
            "strategy": _DEFAULT_STRATEGY,
            "chunk_size": DEFAULT_CHUNK_SIZE,
            "max_workers": 0,
        },
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = (env_map.get(CONFIG_ENV) or "").strip()
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _parse(parser, raw: Optional[str]):
    if raw is None:
        return None
    try:
        return parser(raw)
    except (FormatError, ValueError) as exc:
        raise ConvertConfigError(str(exc)) from exc


def _require_str(value: object, key: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConvertConfigError(f"{key} must be a non-empty string.")
    return value


def _require_int(value: object, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConvertConfigError(f"{key} must be an integer.")
    if value < 0:
        raise ConvertConfigError(f"{key} must not be negative.")
    return value


def _coerce_optional_path(value: object) -> Optional[Path]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConvertConfigError(
            "paths.destination_dir must be a string when provided."
        )
    raw = value.strip()
    return Path(raw) if raw else None


def _normalize_log_level(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConvertConfigError("logging.level must be a non-empty string.")
    level = value.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConvertConfigError(
            f"Unknown log level '{value.strip()}'. Expected one of: "
            "DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    return level


def _env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _env_path(env_map: Mapping[str, str], key: str) -> Optional[Path]:
    raw = _env_string(env_map, key)
    return Path(raw) if raw is not None else None


def _env_int(env_map: Mapping[str, str], key: str) -> Optional[int]:
    raw = _env_string(env_map, key)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConvertConfigError(
            f"{ENV_PREFIX}{key} must be an integer, got '{raw}'."
        ) from exc
    return _require_int(value, f"{ENV_PREFIX}{key}")


def _pick_first(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


__all__ = [
    "CONFIG_ENV",
    "CONFIG_FILENAME",
    "ENV_PREFIX",
    "ConfigOverrides",
    "ConvertConfig",
    "ConvertConfigError",
    "LoadResult",
    "load_config",
]
