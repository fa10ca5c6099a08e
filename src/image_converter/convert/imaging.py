"""Production codec backed by Pillow and Wand (ImageMagick).

Pillow handles every decode path (PNG, JPEG, TGA and DDS) plus raster
encoding. DDS encoding goes through ImageMagick because it produces block
compressed containers with a generated mip chain. Both libraries are
imported lazily so the engine stays importable, and testable with a fake
codec, on hosts without ImageMagick.
"""

from __future__ import annotations

import importlib
import io
import struct
from pathlib import Path
from types import ModuleType

from .codec import Codec, ContainerImage, PixelBuffer
from .errors import DecodeError, DependencyError, EncodeError
from .formats import CompressionQuality, DdsFormat, MipmapPolicy, TargetFormat

_DDS_MAGIC = b"DDS "
# Offset of dwMipMapCount: 4 magic bytes followed by the DDS_HEADER fields
# dwSize, dwFlags, dwHeight, dwWidth, dwPitchOrLinearSize, dwDepth.
_MIP_COUNT_OFFSET = 28
_FILESYSTEM_ERRORS = (FileNotFoundError, IsADirectoryError, PermissionError)


def build_codec(*, container_encoding: bool = True) -> Codec:
    """Return the default codec.

    With ``container_encoding`` the Wand binding is imported up front so a
    missing ImageMagick install surfaces before any file is touched. Runs
    that only read DDS files can pass ``False`` and skip that requirement.
    """

    pil_image = _import_module("PIL.Image", "open", package="Pillow")
    wand_image: ModuleType | None = None
    wand_errors: ModuleType | None = None
    if container_encoding:
        wand_image = _import_module("wand.image", "Image", package="Wand")
        wand_errors = _import_module(
            "wand.exceptions", "WandException", package="Wand"
        )

    def decode_raster(path: Path) -> PixelBuffer:
        return _decode_with_pillow(pil_image, path)

    def encode_raster(buffer: PixelBuffer, target: TargetFormat) -> bytes:
        return _encode_with_pillow(pil_image, buffer, target)

    def decode_container(path: Path) -> ContainerImage:
        mip_count = read_mip_count(path)
        base = _decode_with_pillow(pil_image, path, expected_format="DDS")
        return ContainerImage(levels=(base,), mip_count=mip_count)

    def encode_container(
        buffer: PixelBuffer,
        dds_format: DdsFormat,
        quality: CompressionQuality = CompressionQuality.FAST,
        mipmaps: MipmapPolicy = MipmapPolicy.AUTO_GENERATE,
    ) -> bytes:
        if wand_image is None or wand_errors is None:
            raise DependencyError(
                "DDS encoding was not enabled for this codec; rebuild it "
                "with container_encoding=True."
            )
        return _encode_with_wand(
            wand_image,
            wand_errors,
            buffer,
            dds_format=dds_format,
            quality=quality,
            mipmaps=mipmaps,
        )

    return Codec(
        decode_raster=decode_raster,
        encode_raster=encode_raster,
        decode_container=decode_container,
        encode_container=encode_container,
    )


def read_mip_count(path: Path) -> int:
    """Return the mip level count declared in a DDS header (at least 1)."""

    with Path(path).open("rb") as handle:
        header = handle.read(_MIP_COUNT_OFFSET + 4)
    if len(header) < _MIP_COUNT_OFFSET + 4 or header[:4] != _DDS_MAGIC:
        raise DecodeError(f"Not a DDS container: {path}")
    (count,) = struct.unpack_from("<I", header, _MIP_COUNT_OFFSET)
    return max(1, count)


def _decode_with_pillow(
    pil_image: ModuleType,
    path: Path,
    *,
    expected_format: str | None = None,
) -> PixelBuffer:
    try:
        with pil_image.open(path) as image:
            if expected_format and image.format != expected_format:
                raise DecodeError(
                    f"Expected {expected_format} content in {path}, found "
                    f"{image.format or 'unknown'}."
                )
            rgba = image.convert("RGBA")
    except pil_image.UnidentifiedImageError as exc:
        raise DecodeError(f"Unrecognised image content in {path}") from exc
    except _FILESYSTEM_ERRORS:
        raise
    except (OSError, ValueError, SyntaxError) as exc:
        raise DecodeError(f"Failed to decode {path}: {exc}") from exc
    return PixelBuffer(rgba.width, rgba.height, rgba.tobytes())


def _encode_with_pillow(
    pil_image: ModuleType, buffer: PixelBuffer, target: TargetFormat
) -> bytes:
    image = pil_image.frombytes("RGBA", buffer.size, buffer.data)
    pillow_format = target.pillow_format
    if pillow_format == "JPEG":
        # JPEG has no alpha channel.
        image = image.convert("RGB")
    output = io.BytesIO()
    try:
        image.save(output, format=pillow_format)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(
            f"Failed to encode {target.name} image: {exc}"
        ) from exc
    return output.getvalue()


def _encode_with_wand(
    wand_image: ModuleType,
    wand_errors: ModuleType,
    buffer: PixelBuffer,
    *,
    dds_format: DdsFormat,
    quality: CompressionQuality,
    mipmaps: MipmapPolicy,
) -> bytes:
    fast = quality is CompressionQuality.FAST
    try:
        with wand_image.Image(
            blob=buffer.data,
            format="rgba",
            width=buffer.width,
            height=buffer.height,
            depth=8,
        ) as image:
            image.options["dds:compression"] = dds_format.value
            image.options["dds:cluster-fit"] = "false" if fast else "true"
            image.options["dds:fast-mipmaps"] = "true" if fast else "false"
            if mipmaps is MipmapPolicy.NONE:
                image.options["dds:mipmaps"] = "0"
            return image.make_blob("dds")
    except (wand_errors.WandException, TypeError, ValueError) as exc:
        raise EncodeError(
            f"Failed to encode {dds_format.label} container: {exc}"
        ) from exc


def _import_module(
    module: str, required_attribute: str, *, package: str
) -> ModuleType:
    try:
        imported = importlib.import_module(module)
    except ImportError as exc:
        raise DependencyError(_missing_dependency_message(package)) from exc
    if not hasattr(imported, required_attribute):
        raise DependencyError(
            f"Dependency '{module}' is installed but missing the "
            f"'{required_attribute}' attribute. Upgrade or reinstall "
            f"{package}."
        )
    return imported


def _missing_dependency_message(package: str) -> str:
    hint = ""
    if package == "Wand":
        hint = " Wand also needs the ImageMagick shared library."
    return (
        f"Dependency '{package}' is required for image conversion. "
        f"Install it with `pip install {package}`.{hint}"
    )


__all__ = ["build_codec", "read_mip_count"]
