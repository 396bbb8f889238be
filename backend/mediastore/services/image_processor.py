"""Image metadata extraction and thumbnail generation (Pillow).

Thumbnails are bounded to THUMBNAIL_SIZE on the longer side. The shorter side
is scaled with integer arithmetic so results are reproducible:

    width > height:  (size, height * size // width)
    otherwise:       (width * size // height, size)

Resampling is pluggable through `Resampler`. The default samples nearest
neighbours; `PillowResampler` trades speed for quality.
"""
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from mediastore.errors import DecodeError, FilesystemError

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = 300
JPEG_QUALITY = 85

# Modes the nearest-neighbour sampler copies as-is; anything else goes through RGBA
_DIRECT_MODES = ("RGB", "RGBA", "L")


@dataclass
class ImageInfo:
    width: int
    height: int
    format: str


def thumbnail_dimensions(width: int, height: int, max_width: int, max_height: Optional[int] = None) -> Tuple[int, int]:
    """Longer side becomes the bound, shorter side scales proportionally (floor, min 1)."""
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid image size {width}x{height}")
    if max_height is None:
        max_height = max_width
    if width > height:
        new_width = max_width
        new_height = (height * max_width) // width
    else:
        new_height = max_height
        new_width = (width * max_height) // height
    return max(new_width, 1), max(new_height, 1)


class Resampler(ABC):
    """Strategy: (source image, max width, max height) -> thumbnail image."""

    @abstractmethod
    def resample(self, image: Image.Image, max_width: int, max_height: int) -> Image.Image:
        ...


class NearestNeighborResampler(Resampler):
    """Destination (x, y) takes source pixel (x * width // new_w, y * height // new_h)."""

    def resample(self, image: Image.Image, max_width: int, max_height: int) -> Image.Image:
        width, height = image.size
        new_width, new_height = thumbnail_dimensions(width, height, max_width, max_height)

        source = image if image.mode in _DIRECT_MODES else image.convert("RGBA")
        pixels = source.load()

        columns = [(x * width) // new_width for x in range(new_width)]
        data = []
        for y in range(new_height):
            src_y = (y * height) // new_height
            data.extend(pixels[src_x, src_y] for src_x in columns)

        thumbnail = Image.new(source.mode, (new_width, new_height))
        thumbnail.putdata(data)
        return thumbnail


class PillowResampler(Resampler):
    """Pillow's filtered resize (LANCZOS by default)."""

    def __init__(self, resample: Image.Resampling = Image.Resampling.LANCZOS):
        self.filter = resample

    def resample(self, image: Image.Image, max_width: int, max_height: int) -> Image.Image:
        size = thumbnail_dimensions(image.width, image.height, max_width, max_height)
        source = image if image.mode in _DIRECT_MODES else image.convert("RGBA")
        return source.resize(size, resample=self.filter)


def decode_image(path: Path) -> Tuple[Image.Image, str]:
    """Fully decode the image at path. Returns (image, Pillow format name)."""
    try:
        fp = open(path, "rb")
    except OSError as e:
        raise FilesystemError("failed to open image file", operation="decode_image",
                              identifier=path.name, cause=e)
    with fp:
        try:
            image = Image.open(fp)
            image.load()
        # Pillow raises SyntaxError for some malformed chunks
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
            raise DecodeError("failed to decode image", operation="decode_image",
                              identifier=path.name, cause=e)
    return image, (image.format or "").upper()


def extract_dimensions(image: Image.Image) -> Tuple[int, int]:
    return image.width, image.height


def encode_thumbnail(thumbnail: Image.Image, source_format: str, destination: Path,
                     jpeg_quality: int = JPEG_QUALITY) -> None:
    """PNG sources stay PNG; JPEG and every other format are written as JPEG.

    The destination must not exist. A partially written file is removed.
    """
    if source_format == "PNG":
        out, save_format, options = thumbnail, "PNG", {}
    else:
        out = thumbnail if thumbnail.mode in ("RGB", "L") else thumbnail.convert("RGB")
        save_format, options = "JPEG", {"quality": jpeg_quality}

    try:
        fp = open(destination, "xb")
    except OSError as e:
        raise FilesystemError("failed to create thumbnail file", operation="encode_thumbnail",
                              identifier=destination.name, cause=e)
    try:
        with fp:
            out.save(fp, format=save_format, **options)
    except (OSError, ValueError) as e:
        try:
            os.remove(destination)
        except OSError as remove_err:
            logger.error(f"Failed to remove partial thumbnail {destination.name}: {remove_err}")
        raise FilesystemError("failed to encode thumbnail", operation="encode_thumbnail",
                              identifier=destination.name, cause=e)


class ImageProcessor:
    """Decodes an uploaded image, reads its size and writes a thumbnail next to it.

    Runs synchronously; callers decide whether to offload it.
    """

    def __init__(
        self,
        resampler: Optional[Resampler] = None,
        thumbnail_size: int = THUMBNAIL_SIZE,
        jpeg_quality: int = JPEG_QUALITY,
    ):
        self.resampler = resampler or NearestNeighborResampler()
        self.thumbnail_size = thumbnail_size
        self.jpeg_quality = jpeg_quality

    def generate_thumbnail(self, image: Image.Image, source_format: str, destination: Path) -> Tuple[int, int]:
        """Resample and write the thumbnail. Returns its (width, height)."""
        try:
            thumbnail = self.resampler.resample(image, self.thumbnail_size, self.thumbnail_size)
        except (OSError, ValueError) as e:
            raise DecodeError("failed to resample image", operation="generate_thumbnail",
                              identifier=destination.name, cause=e)
        encode_thumbnail(thumbnail, source_format, destination, self.jpeg_quality)
        return thumbnail.size

    def process(self, source: Path, thumbnail_destination: Path) -> ImageInfo:
        image, source_format = decode_image(source)
        width, height = extract_dimensions(image)
        thumb_size = self.generate_thumbnail(image, source_format, thumbnail_destination)
        logger.debug(
            f"Processed image {source.name}: {width}x{height} {source_format}, "
            f"thumbnail {thumb_size[0]}x{thumb_size[1]}"
        )
        return ImageInfo(width=width, height=height, format=source_format)
