"""Codec seam between the conversion engine and imaging libraries."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .formats import CompressionQuality, DdsFormat, MipmapPolicy, TargetFormat


@dataclass(frozen=True)
class PixelBuffer:
    """Decoded RGBA8 image data, row-major, four bytes per pixel."""

    width: int
    height: int
    data: bytes

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Image dimensions must be positive, got "
                f"{self.width}x{self.height}."
            )
        expected = self.width * self.height * 4
        if len(self.data) != expected:
            raise ValueError(
                f"RGBA buffer for {self.width}x{self.height} needs "
                f"{expected} bytes, got {len(self.data)}."
            )

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class ContainerImage:
    """A decoded DDS container.

    ``levels`` holds the decoded planes, base level first; ``mip_count`` is
    the number of levels declared by the container, which can exceed the
    number of planes actually decoded.
    """

    levels: tuple[PixelBuffer, ...]
    mip_count: int = 1

    def __post_init__(self) -> None:
        if not self.levels:
            raise ValueError("A container image needs at least one level.")

    @property
    def base(self) -> PixelBuffer:
        return self.levels[0]


@dataclass(frozen=True)
class Codec:
    """Callable seams for decoding and encoding image data.

    Implementations raise :class:`~.errors.DecodeError` or
    :class:`~.errors.EncodeError` for content problems and let ``OSError``
    propagate for filesystem problems.
    """

    decode_raster: Callable[[Path], PixelBuffer]
    encode_raster: Callable[[PixelBuffer, TargetFormat], bytes]
    decode_container: Callable[[Path], ContainerImage]
    encode_container: Callable[
        [PixelBuffer, DdsFormat, CompressionQuality, MipmapPolicy], bytes
    ]


__all__ = ["Codec", "ContainerImage", "PixelBuffer"]
