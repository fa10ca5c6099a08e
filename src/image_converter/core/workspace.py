"""Locate and prepare the imgconv workspace directory.

The workspace only holds ``config/`` (``convert.toml``) and ``logs/``;
converted images go wherever the user points ``--dest``.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping

WORKSPACE_ENV = "IMGCONV_DATA_HOME"
DEFAULT_WORKSPACE = Path.home() / ".image-converter-data"
SUBDIRECTORIES = ("config", "logs")


class WorkspaceError(RuntimeError):
    """Raised when the workspace layout cannot be prepared."""


@dataclass(frozen=True)
class WorkspaceLayout:
    """Resolved workspace paths.

    ``created`` records, for ``home`` and each subdirectory, whether this
    call made the directory.
    """

    home: Path
    directories: Mapping[str, Path]
    created: Mapping[str, bool]

    def path_for(self, key: str) -> Path:
        if key not in self.directories:
            raise KeyError(f"Unknown workspace directory '{key}'.")
        return self.directories[key]

    def items(self) -> tuple[tuple[str, Path], ...]:
        return tuple(self.directories.items())


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Return the workspace layout, creating directories when ``create``.

    Lookup order is ``path``, then ``IMGCONV_DATA_HOME``, then
    ``~/.image-converter-data``. Only that last, implicit location may fall
    back to the temp directory on a permission error.
    """

    environ = os.environ if env is None else env
    requested = path
    if requested is None:
        value = environ.get(WORKSPACE_ENV, "").strip()
        requested = Path(value) if value else None

    base = _absolute(requested if requested is not None else DEFAULT_WORKSPACE)
    denied: PermissionError | None = None
    for home in _homes(base, allow_fallback=create and requested is None):
        try:
            return _layout(home, create=create)
        except PermissionError as exc:
            denied = exc
    raise WorkspaceError(f"Unable to prepare workspace at {base}") from denied


def _absolute(path: Path) -> Path:
    path = path.expanduser()
    try:
        return path.resolve()
    except FileNotFoundError:
        return path.absolute()


def _homes(base: Path, *, allow_fallback: bool) -> Iterator[Path]:
    yield base
    if allow_fallback:
        fallback = Path(tempfile.gettempdir()) / "image-converter-data"
        if fallback != base:
            yield fallback


def _layout(home: Path, *, create: bool) -> WorkspaceLayout:
    if home.exists() and not home.is_dir():
        raise WorkspaceError(
            f"Configured workspace exists and is not a directory: {home}"
        )

    directories = {name: home / name for name in SUBDIRECTORIES}
    if create:
        created = {"home": _make_private_dir(home)}
        created.update(
            (name, _make_private_dir(directory))
            for name, directory in directories.items()
        )
    else:
        for name, directory in directories.items():
            if directory.exists() and not directory.is_dir():
                raise WorkspaceError(
                    f"Expected workspace directory for '{name}' but found a "
                    f"file: {directory}"
                )
        created = dict.fromkeys(("home", *SUBDIRECTORIES), False)

    return WorkspaceLayout(
        home=home,
        directories=MappingProxyType(directories),
        created=MappingProxyType(created),
    )


def _make_private_dir(path: Path) -> bool:
    """Create ``path`` with 0700 permissions; return True if it was new."""

    if path.is_dir():
        is_new = False
    elif path.exists():
        raise WorkspaceError(
            f"Expected directory but found a non-directory entry: {path}"
        )
    else:
        path.mkdir(parents=True, exist_ok=True)
        is_new = True
    try:
        path.chmod(0o700)
    except (PermissionError, NotImplementedError):
        # Shared or foreign-owned directories keep their mode.
        pass
    return is_new


__all__ = [
    "DEFAULT_WORKSPACE",
    "SUBDIRECTORIES",
    "WORKSPACE_ENV",
    "WorkspaceError",
    "WorkspaceLayout",
    "ensure_workspace",
]
