from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
# Ensure src/ is importable when the package is not installed
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import CollectingSink, FakeCodec, WorkspaceBuilder  # noqa: E402


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def fake_codec() -> FakeCodec:
    """Deterministic codec double that never touches real image libraries."""

    return FakeCodec()


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture(autouse=True)
def _isolate_workspace(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep every test away from the real ~/.image-converter-data."""

    monkeypatch.setenv("IMGCONV_DATA_HOME", str(tmp_path / "imgconv-home"))
    for key in (
        "IMGCONV_CONFIG",
        "IMGCONV_DESTINATION_DIR",
        "IMGCONV_TARGET_FORMAT",
        "IMGCONV_DDS_FORMAT",
        "IMGCONV_STRATEGY",
        "IMGCONV_CHUNK_SIZE",
        "IMGCONV_MAX_WORKERS",
        "IMGCONV_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    yield
    logger = logging.getLogger("image_converter.convert")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
