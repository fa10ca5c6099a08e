"""Directory enumeration used to build conversion batches."""

from __future__ import annotations

from pathlib import Path
from typing import Collection, Iterator

__all__ = [
    "RECOGNIZED_EXTENSIONS",
    "has_extension",
    "iter_source_files",
]

RECOGNIZED_EXTENSIONS: tuple[str, ...] = ("dds", "png", "jpg", "jpeg", "tga")


def iter_source_files(
    root: Path,
    extensions: Collection[str] = RECOGNIZED_EXTENSIONS,
) -> Iterator[Path]:
    """Yield regular files below ``root`` carrying one of ``extensions``.

    Matching is exact and case-sensitive, so ``photo.PNG`` is not picked up
    by the default set. Results are sorted by their string form.
    """

    if not root.exists():
        raise FileNotFoundError(f"Source directory not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Source path is not a directory: {root}")

    wanted = frozenset(extensions)
    matches = (
        candidate
        for candidate in root.rglob("*")
        if candidate.is_file() and has_extension(candidate, wanted)
    )
    yield from sorted(matches, key=str)


def has_extension(path: Path, extensions: Collection[str]) -> bool:
    suffix = path.suffix
    if not suffix:
        return False
    return suffix[1:] in extensions
