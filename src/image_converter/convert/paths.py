"""Eligibility filtering and source-to-destination path mapping."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union

from .errors import PathMappingError
from .formats import TargetFormat

PathLike = Union[str, os.PathLike]


@dataclass(frozen=True)
class PathMapping:
    """Where a single source file is written inside the destination root."""

    source: Path
    relative: Path
    destination: Path


def filter_eligible(
    files: Iterable[PathLike], target: TargetFormat
) -> list[Path]:
    """Drop files already stored in ``target``'s format.

    The comparison is an exact, case-sensitive suffix match against the
    canonical extension, so ``texture.DDS`` still counts as eligible for a
    DDS target. Relative order is preserved.
    """

    suffix = f".{target.extension}"
    return [
        Path(candidate)
        for candidate in files
        if not Path(candidate).name.endswith(suffix)
    ]


def map_output_path(
    source: PathLike,
    source_root: PathLike,
    destination_root: PathLike,
    extension: str,
) -> PathMapping:
    """Mirror ``source``'s position under ``source_root`` into the destination.

    Both paths are normalised lexically; symlinks are not followed. Raises
    :class:`PathMappingError` when ``source`` is not strictly below
    ``source_root`` (outside the tree, another drive, or the root itself).
    """

    source_path = Path(source)
    root_path = Path(source_root)
    try:
        relative = Path(os.path.abspath(source_path)).relative_to(
            os.path.abspath(root_path)
        )
    except ValueError as exc:
        raise PathMappingError(source_path, root_path) from exc
    if not relative.parts:
        raise PathMappingError(source_path, root_path)

    relative = relative.with_suffix(f".{extension.lstrip('.')}")
    return PathMapping(
        source=source_path,
        relative=relative,
        destination=Path(destination_root) / relative,
    )


__all__ = ["PathMapping", "filter_eligible", "map_output_path"]
