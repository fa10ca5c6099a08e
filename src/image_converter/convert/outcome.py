"""Aggregated results of a conversion batch."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .paths import PathMapping


class ErrorKind(Enum):
    """Why a single file could not be converted."""

    PATH_MAPPING = "path_mapping"
    DECODE = "decode"
    ENCODE = "encode"
    IO = "io"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class FileFailure:
    """A file that did not make it to its destination."""

    source: Path
    kind: ErrorKind
    message: str
    destination: Optional[Path] = None


@dataclass(frozen=True)
class ConversionOutcome:
    """Per-file detail for a batch plus its pass/fail projection.

    ``requested`` is every file handed to the engine and ``processed`` the
    subset left after dropping files already in the target format. Both
    ``converted`` and ``failures`` follow ``processed`` order.
    """

    requested: tuple[Path, ...]
    processed: tuple[Path, ...]
    converted: tuple[PathMapping, ...]
    failures: tuple[FileFailure, ...]

    @property
    def total(self) -> int:
        return len(self.processed)

    @property
    def succeeded(self) -> int:
        return len(self.converted)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def skipped(self) -> int:
        return len(self.requested) - len(self.processed)

    @property
    def success(self) -> bool:
        return not self.failures

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def failures_of(self, kind: ErrorKind) -> tuple[FileFailure, ...]:
        return tuple(item for item in self.failures if item.kind is kind)


__all__ = ["ConversionOutcome", "ErrorKind", "FileFailure"]
