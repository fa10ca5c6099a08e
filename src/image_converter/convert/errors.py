"""Exception types raised while converting a batch."""

from __future__ import annotations

from pathlib import Path


class ConversionError(RuntimeError):
    """Base class for conversion failures."""


class PathMappingError(ConversionError):
    """Raised when a source file has no relative path under its root."""

    def __init__(self, source: Path, source_root: Path) -> None:
        super().__init__(
            f"Failed to compute relative path for {source} "
            f"(source root: {source_root})"
        )
        self.source = source
        self.source_root = source_root


class OutputCollisionError(ConversionError):
    """Raised when an earlier file in the batch already claimed a destination."""

    def __init__(self, source: Path, destination: Path, claimed_by: Path) -> None:
        super().__init__(
            f"{source} maps to {destination}, which is already written by "
            f"{claimed_by}"
        )
        self.source = source
        self.destination = destination
        self.claimed_by = claimed_by


class DecodeError(ConversionError):
    """Raised when source content is malformed or unsupported."""


class EncodeError(ConversionError):
    """Raised when the codec rejects a pixel buffer or its parameters."""


class DependencyError(ConversionError):
    """Raised when an imaging library required by the codec is missing."""


class OutcomeChannelError(ConversionError):
    """Raised on misuse of the one-shot outcome channel."""


class ChannelDisconnectedError(OutcomeChannelError):
    """Raised when the sender went away without delivering an outcome."""


__all__ = [
    "ChannelDisconnectedError",
    "ConversionError",
    "DecodeError",
    "DependencyError",
    "EncodeError",
    "OutcomeChannelError",
    "OutputCollisionError",
    "PathMappingError",
]
