"""Target formats and DDS encoding options."""

from __future__ import annotations

from enum import Enum


class FormatError(ValueError):
    """Raised when a format name cannot be parsed."""


class TargetFormat(Enum):
    """Output formats a batch can be converted into.

    The value is the canonical file extension. ``JPEG`` and ``JPG`` produce
    the same encoding and only differ in the extension they write.
    """

    PNG = "png"
    JPEG = "jpeg"
    JPG = "jpg"
    TGA = "tga"
    DDS = "dds"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def is_container(self) -> bool:
        return self is TargetFormat.DDS

    @property
    def pillow_format(self) -> str:
        if self.is_container:
            raise FormatError("DDS is encoded as a container, not a raster.")
        return _PILLOW_FORMATS[self]

    @classmethod
    def from_value(cls, value: str) -> "TargetFormat":
        normalized = value.strip().lstrip(".").lower()
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        expected = ", ".join(member.value for member in cls)
        raise FormatError(
            f"Unknown target format '{value}'. Expected one of: {expected}."
        )


_PILLOW_FORMATS = {
    TargetFormat.PNG: "PNG",
    TargetFormat.JPEG: "JPEG",
    TargetFormat.JPG: "JPEG",
    TargetFormat.TGA: "TGA",
}


class DdsFormat(Enum):
    """Block compression modes available when writing DDS containers.

    Values are ImageMagick ``dds:compression`` settings.
    """

    BC1_UNORM = "dxt1"
    BC3_UNORM = "dxt5"
    R8G8B8A8_UNORM = "none"

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def from_value(cls, value: str) -> "DdsFormat":
        normalized = value.strip().lower()
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        expected = ", ".join(member.name for member in cls)
        raise FormatError(
            f"Unknown DDS format '{value}'. Expected one of: {expected}."
        )


DEFAULT_DDS_FORMAT = DdsFormat.BC1_UNORM


class CompressionQuality(Enum):
    """Speed/quality trade-off for block compression."""

    FAST = "fast"
    SLOW = "slow"


class MipmapPolicy(Enum):
    """Whether the container gets a generated mip chain."""

    AUTO_GENERATE = "auto"
    NONE = "none"


__all__ = [
    "CompressionQuality",
    "DEFAULT_DDS_FORMAT",
    "DdsFormat",
    "FormatError",
    "MipmapPolicy",
    "TargetFormat",
]
