# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Image metadata reading.

Reads the header-level facts the pipeline needs (dimensions, sample
layout, colour interpretation, embedded ICC profile) with Pillow without
decoding pixel data, plus file checksums for content metadata.
"""

import hashlib
import logging
import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .color_profile import profile_description
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

# Archival masters exceed Pillow's decompression-bomb limit
Image.MAX_IMAGE_PIXELS = None

# TIFF BitsPerSample tag
_TIFF_BITS_PER_SAMPLE = 258

# EXIF Orientation tag
_EXIF_ORIENTATION = 0x0112

_CHUNK_SIZE = 1024 * 1024

_MODE_BITS = {
    "1": 1,
    "I;16": 16,
    "I;16B": 16,
    "I;16L": 16,
    "I;16N": 16,
    "I": 32,
    "F": 32,
}

# Pillow reports some camera JPEGs as MPO
_MIMETYPE_ALIASES = {"image/mpo": "image/jpeg"}


class ColorInterpretation(Enum):
    """Colour interpretation of an image's pixel data."""

    SRGB = "srgb"
    CMYK = "cmyk"
    GRAYSCALE = "grayscale"
    OTHER = "other"


_MODE_INTERPRETATION = {
    "RGB": ColorInterpretation.SRGB,
    "RGBA": ColorInterpretation.SRGB,
    "RGBX": ColorInterpretation.SRGB,
    "CMYK": ColorInterpretation.CMYK,
    "1": ColorInterpretation.GRAYSCALE,
    "L": ColorInterpretation.GRAYSCALE,
    "LA": ColorInterpretation.GRAYSCALE,
    "I": ColorInterpretation.GRAYSCALE,
    "I;16": ColorInterpretation.GRAYSCALE,
    "I;16B": ColorInterpretation.GRAYSCALE,
    "I;16L": ColorInterpretation.GRAYSCALE,
    "I;16N": ColorInterpretation.GRAYSCALE,
    "F": ColorInterpretation.GRAYSCALE,
}


@dataclass(frozen=True)
class ImageMetadata:
    """Header-level facts about one image file.

    Attributes:
        width: Width in pixels.
        height: Height in pixels.
        mimetype: Detected mimetype (e.g. "image/tiff").
        mode: Pillow mode of the first frame (e.g. "RGB", "CMYK").
        samples_per_pixel: Number of bands.
        bits_per_sample: Bits per sample, a tuple when bands differ.
        has_icc_profile: True if an ICC profile is embedded.
        profile_name: Description of the embedded profile, if any.
        color_interpretation: Interpretation derived from the mode.
        n_frames: Number of frames/pages.
        orientation: EXIF orientation (1 = upright).
        icc_profile: Raw embedded ICC profile bytes, if any.
    """

    width: int
    height: int
    mimetype: str
    mode: str
    samples_per_pixel: int
    bits_per_sample: int | tuple[int, ...]
    has_icc_profile: bool
    profile_name: str | None
    color_interpretation: ColorInterpretation
    n_frames: int = 1
    orientation: int = 1
    icc_profile: bytes | None = None


def interpretation_for_mode(mode: str) -> ColorInterpretation:
    """Maps a Pillow mode to a colour interpretation."""
    return _MODE_INTERPRETATION.get(mode, ColorInterpretation.OTHER)


def _normalize_mimetype(mimetype: str | None) -> str | None:
    if mimetype is None:
        return None
    return _MIMETYPE_ALIASES.get(mimetype, mimetype)


def _bits_per_sample(image: Image.Image) -> int | tuple[int, ...]:
    """Determines bits per sample, preferring the TIFF tag when present."""
    tags = getattr(image, "tag_v2", None)
    if tags is not None and _TIFF_BITS_PER_SAMPLE in tags:
        value = tags[_TIFF_BITS_PER_SAMPLE]
        if isinstance(value, tuple):
            if len(set(value)) == 1:
                return int(value[0])
            return tuple(int(v) for v in value)
        return int(value)
    return _MODE_BITS.get(image.mode, 8)


def sniff_mimetype(path: Path) -> str | None:
    """Detects the mimetype of a file.

    Uses the decoder Pillow identifies from the file signature and falls
    back to the file extension for anything Pillow cannot open.

    Args:
        path: File to inspect.

    Returns:
        Mimetype string or None if it cannot be determined.
    """
    try:
        with Image.open(path) as image:
            mimetype = image.get_format_mimetype()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        logger.debug("Pillow cannot identify %s: %s", path, e)
        mimetype = None

    if mimetype is None:
        mimetype = mimetypes.guess_type(path.name)[0]
    return _normalize_mimetype(mimetype)


def read_metadata(path: Path) -> ImageMetadata:
    """Reads image metadata from a file.

    Args:
        path: Image file to read.

    Returns:
        ImageMetadata for the first frame.

    Raises:
        ValidationError: If the file is not a readable image.
    """
    try:
        with Image.open(path) as image:
            icc_profile = image.info.get("icc_profile") or None
            mimetype = _normalize_mimetype(image.get_format_mimetype())
            metadata = ImageMetadata(
                width=image.width,
                height=image.height,
                mimetype=mimetype or mimetypes.guess_type(path.name)[0] or "",
                mode=image.mode,
                samples_per_pixel=len(image.getbands()),
                bits_per_sample=_bits_per_sample(image),
                has_icc_profile=icc_profile is not None,
                profile_name=profile_description(icc_profile),
                color_interpretation=interpretation_for_mode(image.mode),
                n_frames=getattr(image, "n_frames", 1),
                orientation=int(image.getexif().get(_EXIF_ORIENTATION, 1)),
                icc_profile=icc_profile,
            )
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise ValidationError(f"{path} is not a valid image: {e}") from e

    logger.debug(
        "Read metadata for %s: %dx%d %s (%s, %d band(s))",
        path,
        metadata.width,
        metadata.height,
        metadata.mimetype,
        metadata.mode,
        metadata.samples_per_pixel,
    )
    return metadata


def compute_checksums(path: Path) -> tuple[str, str]:
    """Computes MD5 and SHA-1 digests of a file.

    Args:
        path: File to hash.

    Returns:
        ``(md5, sha1)`` hex digests.
    """
    md5 = hashlib.md5()
    sha1 = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            md5.update(chunk)
            sha1.update(chunk)
    return md5.hexdigest(), sha1.hexdigest()
