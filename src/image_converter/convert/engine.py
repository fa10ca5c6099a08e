"""Batch conversion engine.

``convert`` filters a request's files, maps every survivor to its
destination, runs the codec over it and writes the result. Files are
independent: a failure is recorded against that file and the batch moves
on. Work runs either sequentially on the calling thread or in fixed-size
chunks spread over a thread pool.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import suppress
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence, Union

from .codec import Codec, PixelBuffer
from .errors import (
    DecodeError,
    EncodeError,
    OutputCollisionError,
    PathMappingError,
)
from .events import (
    BATCH_COMPLETED,
    BATCH_STARTED,
    CHUNK_SCHEDULED,
    FILE_CONVERTED,
    FILE_FAILED,
    ConversionEvent,
    EventSink,
    LoggingEventSink,
)
from .formats import (
    DEFAULT_DDS_FORMAT,
    CompressionQuality,
    DdsFormat,
    MipmapPolicy,
    TargetFormat,
)
from .outcome import ConversionOutcome, ErrorKind, FileFailure
from .paths import PathMapping, filter_eligible, map_output_path

_LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 5

FileResult = Union[PathMapping, FileFailure]
Collisions = Mapping[Path, Path]


class ExecutionMode(Enum):
    """How the files of a batch are scheduled."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"

    @classmethod
    def from_value(cls, value: str) -> "ExecutionMode":
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown execution strategy '{value}'. Expected one of: "
            f"{expected}."
        )


@dataclass(frozen=True)
class ExecutionStrategy:
    """Scheduling mode plus the knobs used by parallel runs.

    ``max_workers`` of ``None`` sizes the pool to the host CPU count.
    """

    mode: ExecutionMode = ExecutionMode.PARALLEL
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_workers: Optional[int] = None

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be >= 1 when provided")

    @classmethod
    def sequential(cls) -> "ExecutionStrategy":
        return cls(mode=ExecutionMode.SEQUENTIAL)

    @classmethod
    def parallel(
        cls,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_workers: Optional[int] = None,
    ) -> "ExecutionStrategy":
        return cls(
            mode=ExecutionMode.PARALLEL,
            chunk_size=chunk_size,
            max_workers=max_workers,
        )

    def worker_count(self, chunk_count: int) -> int:
        limit = self.max_workers or os.cpu_count() or 1
        return max(1, min(limit, chunk_count))


@dataclass(frozen=True)
class ConversionRequest:
    """Everything one batch needs; built once and never changed."""

    files: tuple[Path, ...]
    source_root: Path
    destination_root: Path
    target: TargetFormat
    dds_format: DdsFormat = DEFAULT_DDS_FORMAT
    strategy: ExecutionStrategy = field(default_factory=ExecutionStrategy)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "files", tuple(Path(item) for item in self.files)
        )
        object.__setattr__(self, "source_root", Path(self.source_root))
        object.__setattr__(
            self, "destination_root", Path(self.destination_root)
        )


def chunk_files(
    files: Sequence[Path], size: int
) -> list[tuple[Path, ...]]:
    """Split ``files`` into consecutive chunks of at most ``size`` items."""

    if size < 1:
        raise ValueError("size must be >= 1")
    return [
        tuple(files[start:start + size])
        for start in range(0, len(files), size)
    ]


def convert(
    request: ConversionRequest,
    *,
    codec: Codec,
    sink: Optional[EventSink] = None,
    logger: Optional[logging.Logger] = None,
) -> ConversionOutcome:
    """Convert every eligible file in ``request`` and aggregate the results."""

    sink = sink or LoggingEventSink(logger or _LOGGER)
    eligible = tuple(filter_eligible(request.files, request.target))
    strategy = request.strategy
    collisions = _find_collisions(eligible, request)

    sink.record(
        ConversionEvent(
            BATCH_STARTED,
            {
                "requested": len(request.files),
                "eligible": len(eligible),
                "target": request.target.value,
                "mode": strategy.mode.value,
                "source_root": str(request.source_root),
                "destination_root": str(request.destination_root),
            },
        )
    )

    if strategy.mode is ExecutionMode.SEQUENTIAL:
        results = _run_chunk(eligible, request, codec, sink, collisions)
    else:
        results = _run_parallel(eligible, request, codec, sink, collisions)

    outcome = ConversionOutcome(
        requested=request.files,
        processed=eligible,
        converted=tuple(
            item for item in results if isinstance(item, PathMapping)
        ),
        failures=tuple(
            item for item in results if isinstance(item, FileFailure)
        ),
    )

    sink.record(
        ConversionEvent(
            BATCH_COMPLETED,
            {
                "total": outcome.total,
                "succeeded": outcome.succeeded,
                "failed": outcome.failed,
                "skipped": outcome.skipped,
            },
        )
    )
    return outcome


def _find_collisions(
    files: Sequence[Path], request: ConversionRequest
) -> dict[Path, Path]:
    """Map each file whose destination an earlier file claimed to that file.

    Destinations must be disjoint once work is spread over threads, so the
    first file in filter order keeps the output and later ones fail.
    """

    claimed: dict[Path, Path] = {}
    collisions: dict[Path, Path] = {}
    for source in files:
        try:
            mapping = map_output_path(
                source,
                request.source_root,
                request.destination_root,
                request.target.extension,
            )
        except PathMappingError:
            continue
        owner = claimed.setdefault(mapping.destination, source)
        if owner != source:
            collisions[source] = owner
    return collisions


def _run_parallel(
    files: Sequence[Path],
    request: ConversionRequest,
    codec: Codec,
    sink: EventSink,
    collisions: Collisions,
) -> list[FileResult]:
    chunks = chunk_files(files, request.strategy.chunk_size)
    if not chunks:
        return []

    workers = request.strategy.worker_count(len(chunks))
    collected: dict[int, list[FileResult]] = {}
    with ThreadPoolExecutor(
        max_workers=workers, thread_name_prefix="imgconv-chunk"
    ) as executor:
        futures = {}
        for index, chunk in enumerate(chunks):
            sink.record(
                ConversionEvent(
                    CHUNK_SCHEDULED,
                    {"index": index, "size": len(chunk), "workers": workers},
                )
            )
            future = executor.submit(
                _run_chunk, chunk, request, codec, sink, collisions
            )
            futures[future] = index
        for future in as_completed(futures):
            collected[futures[future]] = future.result()

    return [item for index in range(len(chunks)) for item in collected[index]]


def _run_chunk(
    files: Iterable[Path],
    request: ConversionRequest,
    codec: Codec,
    sink: EventSink,
    collisions: Collisions,
) -> list[FileResult]:
    return [
        _convert_one(source, request, codec, sink, collisions)
        for source in files
    ]


def _convert_one(
    source: Path,
    request: ConversionRequest,
    codec: Codec,
    sink: EventSink,
    collisions: Collisions,
) -> FileResult:
    destination: Optional[Path] = None
    try:
        mapping = map_output_path(
            source,
            request.source_root,
            request.destination_root,
            request.target.extension,
        )
        destination = mapping.destination
        if source in collisions:
            raise OutputCollisionError(
                source, destination, collisions[source]
            )
        _write_output(destination, _transform(source, request, codec))
    except Exception as exc:
        failure = FileFailure(
            source=source,
            destination=destination,
            kind=_classify(exc),
            message=str(exc) or type(exc).__name__,
        )
        sink.record(
            ConversionEvent(
                FILE_FAILED,
                {
                    "source": str(source),
                    "destination": (
                        str(destination) if destination is not None else None
                    ),
                    "kind": failure.kind.value,
                    "reason": failure.message,
                },
            )
        )
        return failure

    sink.record(
        ConversionEvent(
            FILE_CONVERTED,
            {"source": str(source), "destination": str(destination)},
        )
    )
    return mapping


def _write_output(destination: Path, payload: bytes) -> None:
    """Write ``payload`` beside ``destination`` and rename it into place.

    A failed write leaves any previous output untouched and no partial file.
    """

    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(
        f".{destination.name}.{os.getpid()}.{threading.get_ident()}.part"
    )
    try:
        partial.write_bytes(payload)
        os.replace(partial, destination)
    finally:
        with suppress(FileNotFoundError):
            partial.unlink()


def _transform(
    source: Path, request: ConversionRequest, codec: Codec
) -> bytes:
    target = request.target
    if target.is_container:
        buffer = codec.decode_raster(source)
        return codec.encode_container(
            buffer,
            request.dds_format,
            CompressionQuality.FAST,
            MipmapPolicy.AUTO_GENERATE,
        )
    return codec.encode_raster(_decode_for_raster(source, codec), target)


def _decode_for_raster(source: Path, codec: Codec) -> PixelBuffer:
    if source.suffix.lower() == ".dds":
        return codec.decode_container(source).base
    return codec.decode_raster(source)


def _classify(exc: Exception) -> ErrorKind:
    if isinstance(exc, (PathMappingError, OutputCollisionError)):
        return ErrorKind.PATH_MAPPING
    if isinstance(exc, DecodeError):
        return ErrorKind.DECODE
    if isinstance(exc, EncodeError):
        return ErrorKind.ENCODE
    if isinstance(exc, OSError):
        return ErrorKind.IO
    return ErrorKind.UNEXPECTED


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "ConversionRequest",
    "ExecutionMode",
    "ExecutionStrategy",
    "chunk_files",
    "convert",
]
