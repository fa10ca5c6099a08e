"""Public APIs for the batch image converter."""

from __future__ import annotations

from .channel import (
    OutcomeChannel,
    OutcomeReceiver,
    OutcomeSender,
    start_conversion,
)
from .codec import Codec, ContainerImage, PixelBuffer
from .engine import (
    DEFAULT_CHUNK_SIZE,
    ConversionRequest,
    ExecutionMode,
    ExecutionStrategy,
    chunk_files,
    convert,
)
from .errors import (
    ChannelDisconnectedError,
    ConversionError,
    DecodeError,
    DependencyError,
    EncodeError,
    OutcomeChannelError,
    OutputCollisionError,
    PathMappingError,
)
from .events import ConversionEvent, EventSink, LoggingEventSink
from .formats import (
    DEFAULT_DDS_FORMAT,
    CompressionQuality,
    DdsFormat,
    FormatError,
    MipmapPolicy,
    TargetFormat,
)
from .outcome import ConversionOutcome, ErrorKind, FileFailure
from .paths import PathMapping, filter_eligible, map_output_path

from .config import (
    ConfigOverrides,
    ConvertConfig,
    ConvertConfigError,
    LoadResult,
    load_config,
)

__all__ = [
    "OutcomeChannel",
    "OutcomeReceiver",
    "OutcomeSender",
    "start_conversion",
    "Codec",
    "ContainerImage",
    "PixelBuffer",
    "DEFAULT_CHUNK_SIZE",
    "ConversionRequest",
    "ExecutionMode",
    "ExecutionStrategy",
    "chunk_files",
    "convert",
    "ChannelDisconnectedError",
    "ConversionError",
    "DecodeError",
    "DependencyError",
    "EncodeError",
    "OutcomeChannelError",
    "OutputCollisionError",
    "PathMappingError",
    "ConversionEvent",
    "EventSink",
    "LoggingEventSink",
    "DEFAULT_DDS_FORMAT",
    "CompressionQuality",
    "DdsFormat",
    "FormatError",
    "MipmapPolicy",
    "TargetFormat",
    "ConversionOutcome",
    "ErrorKind",
    "FileFailure",
    "PathMapping",
    "filter_eligible",
    "map_output_path",
    "ConfigOverrides",
    "ConvertConfig",
    "ConvertConfigError",
    "LoadResult",
    "load_config",
]
