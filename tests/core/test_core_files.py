from __future__ import annotations

from pathlib import Path

import pytest

from image_converter.core import files


def test_iter_source_files_filters_and_sorts(workspace) -> None:
    root = workspace.create(
        {
            "src": {
                "b.png": b"x",
                "a.tga": b"x",
                "notes.txt": "skip",
                "upper.PNG": b"x",
                "sub": {"c.dds": b"x", "d.jpeg": b"x", "e.jpg": b"x"},
                "empty": None,
            }
        }
    ) / "src"

    found = list(files.iter_source_files(root))

    assert found == sorted(found, key=str)
    assert {path.relative_to(root).as_posix() for path in found} == {
        "a.tga",
        "b.png",
        "sub/c.dds",
        "sub/d.jpeg",
        "sub/e.jpg",
    }


def test_iter_source_files_skips_directories_named_like_images(
    workspace,
) -> None:
    root = workspace.create({"src": {"folder.png": {"inner.tga": b"x"}}})

    found = list(files.iter_source_files(root / "src"))

    assert [path.name for path in found] == ["inner.tga"]


def test_iter_source_files_accepts_custom_extensions(workspace) -> None:
    root = workspace.create({"a.png": b"x", "b.tga": b"x"})

    found = list(files.iter_source_files(root, extensions=("tga",)))

    assert [path.name for path in found] == ["b.tga"]


def test_iter_source_files_missing_root(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        list(files.iter_source_files(tmp_path / "absent"))


def test_iter_source_files_rejects_file_root(tmp_path: Path) -> None:
    target = tmp_path / "single.png"
    target.write_bytes(b"x")

    with pytest.raises(NotADirectoryError):
        list(files.iter_source_files(target))


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("a.png", True),
        ("a.PNG", False),
        ("archive.tar.tga", True),
        ("png", False),
        ("a.", False),
    ],
)
def test_has_extension(name: str, expected: bool) -> None:
    assert files.has_extension(Path(name), {"png", "tga"}) is expected
