"""Source-tree builders for conversion tests."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Union

Content = Union[str, bytes]
TreeValue = Union[Content, "Tree", None]
Tree = Mapping[str, TreeValue]


def build_tree(base: Path, tree: Tree) -> None:
    """Materialise ``tree`` below ``base``.

    Bytes and strings become files, nested mappings become directories and
    ``None`` creates an empty directory.
    """

    base.mkdir(parents=True, exist_ok=True)
    for name, value in tree.items():
        target = base / name
        if value is None:
            target.mkdir(parents=True, exist_ok=True)
        elif isinstance(value, Mapping):
            build_tree(target, value)
        elif isinstance(value, (str, bytes)):
            _write(target, value)
        else:
            raise TypeError(
                f"Unsupported tree value for {target}: {type(value)!r}"
            )


def _write(path: Path, content: Content) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


@dataclass
class WorkspaceBuilder:
    """Builds image trees under pytest's per-test tmp directory."""

    root: Path

    def create(self, tree: Tree) -> Path:
        build_tree(self.root, tree)
        return self.root

    def write(self, relative: Union[str, Path], content: Content) -> Path:
        return _write(self.root / Path(relative), content)

    def files(self, subdir: Union[str, Path] = ".") -> Iterator[Path]:
        base = self.root / Path(subdir)
        return (path for path in sorted(base.rglob("*")) if path.is_file())
