# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Intermediate TIFF creation.

The JP2 encoder does not support arbitrary image types, so every source is
first written as an uncompressed, colour-normalized, big-offset TIFF in a
temporary directory. This module owns that file from creation until it is
handed to the pipeline.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageCms, ImageOps

from .color_profile import (
    get_cmyk_profile_path,
    get_srgb_profile,
    get_srgb_profile_bytes,
    load_cmyk_profile,
    open_embedded_profile,
)
from .exceptions import ImageIOError, TranscodeError
from .image import ImageDescriptor
from .planner import ConversionPlan, TransformKind
from .utils import discard_file

logger = logging.getLogger(__name__)

TEMP_PREFIX = "jp2derivative-"
TEMP_SUFFIX = ".tif"

# Modes littleCMS transforms directly
_CMS_MODES = frozenset({"RGB", "L", "CMYK"})

# Modes written to the intermediate TIFF unchanged
_TIFF_MODES = frozenset(
    {"1", "L", "LA", "I", "I;16", "I;16B", "F", "RGB", "RGBA", "CMYK"}
)


@dataclass
class TempArtifact:
    """The intermediate TIFF written for one pipeline run.

    Attributes:
        path: Location of the temporary TIFF.
        mode: Pillow mode of the written image.
        samples_per_pixel: Number of bands written.
        plan: The plan the file was produced from.
    """

    path: Path
    mode: str
    samples_per_pixel: int
    plan: ConversionPlan

    @property
    def is_srgb(self) -> bool:
        """True for three-component RGB output."""
        return self.mode == "RGB" and self.samples_per_pixel == 3


def _to_cms_mode(image: Image.Image) -> Image.Image:
    """Converts an image to a mode littleCMS can transform."""
    if image.mode in _CMS_MODES:
        return image
    if image.mode.startswith("I;16"):
        return image.convert("I").point(lambda v: v * (1 / 256)).convert("L")
    if image.mode in ("1", "I", "F"):
        return image.convert("L")
    return image.convert("RGB")


def _icc_to_srgb(
    image: Image.Image, source_profile: ImageCms.ImageCmsProfile
) -> Image.Image:
    """Transforms pixel data from a source profile to sRGB, keeping alpha."""
    alpha = None
    if image.mode in ("RGBA", "LA"):
        alpha = image.getchannel("A")
        image = image.convert(image.mode[:-1])
    image = _to_cms_mode(image)

    converted = ImageCms.profileToProfile(
        image,
        source_profile,
        get_srgb_profile(),
        renderingIntent=ImageCms.Intent.PERCEPTUAL,
        outputMode="RGB",
    )
    if alpha is not None:
        converted.putalpha(alpha)
    return converted


def _apply_transform(
    image: Image.Image,
    conversion_plan: ConversionPlan,
    icc_profile: bytes | None,
    cmyk_profile: Path | None,
) -> tuple[Image.Image, bool]:
    """Applies the planned colour transform.

    Returns:
        The transformed image and whether it should carry the sRGB profile.
    """
    kind = conversion_plan.transform_kind

    if kind is TransformKind.NONE:
        return image, False

    if kind is TransformKind.CMYK_TO_SRGB:
        if image.mode != "CMYK":
            image = image.convert("CMYK")
        profile_path = get_cmyk_profile_path(cmyk_profile)
        if profile_path is None and icc_profile:
            source_profile = open_embedded_profile(icc_profile)
        else:
            source_profile = load_cmyk_profile(profile_path)
        return _icc_to_srgb(image, source_profile), True

    if not icc_profile:
        raise TranscodeError("Image has no embedded ICC profile to convert from")
    return _icc_to_srgb(image, open_embedded_profile(icc_profile)), True


def _prepare_for_tiff(image: Image.Image) -> Image.Image:
    """Expands palette and exotic modes into something the encoder reads."""
    if image.mode in _TIFF_MODES:
        return image
    if image.mode in ("P", "PA"):
        has_alpha = image.mode == "PA" or "transparency" in image.info
        return image.convert("RGBA" if has_alpha else "RGB")
    return image.convert("RGB")


def _create_temp_path(tmp_dir: Path) -> Path:
    """Creates an empty, uniquely named temporary TIFF in tmp_dir."""
    if not tmp_dir.is_dir():
        raise ImageIOError(f"tmp_dir {tmp_dir} does not exist", path=tmp_dir)
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=tmp_dir
        )
    except OSError as e:
        raise ImageIOError(
            f"Could not create temporary file in {tmp_dir}: {e}", path=tmp_dir
        ) from e
    os.close(fd)
    return Path(tmp_name)


def materialize(
    descriptor: ImageDescriptor,
    conversion_plan: ConversionPlan,
    tmp_dir: str | Path,
    *,
    cmyk_profile: Path | None = None,
) -> TempArtifact:
    """Writes the normalized intermediate TIFF for an image.

    The first frame of the source is loaded, auto-rotated according to its
    EXIF orientation, colour converted per the plan and saved as an
    uncompressed TIFF. The source file is never modified.

    Args:
        descriptor: Source image.
        conversion_plan: Plan computed for this descriptor.
        tmp_dir: Existing directory for the temporary file.
        cmyk_profile: CMYK source profile overriding the environment.

    Returns:
        TempArtifact describing the written file.

    Raises:
        ImageIOError: If tmp_dir does not exist or the file cannot be created.
        TranscodeError: If the image cannot be loaded, converted or written.
    """
    tmp_path = _create_temp_path(Path(tmp_dir))

    logger.debug(
        "Writing intermediate TIFF %s (%s)",
        tmp_path,
        conversion_plan.transform_kind.value,
    )

    try:
        with Image.open(descriptor.path) as source:
            source.seek(0)
            icc_profile = source.info.get("icc_profile") or None
            image = ImageOps.exif_transpose(source)
            image, embed_srgb = _apply_transform(
                image, conversion_plan, icc_profile, cmyk_profile
            )
            image = _prepare_for_tiff(image)

            save_kwargs = {
                "format": "TIFF",
                "compression": "raw",
                "big_tiff": conversion_plan.needs_big_tiff,
            }
            if embed_srgb:
                save_kwargs["icc_profile"] = get_srgb_profile_bytes()
            else:
                image.info.pop("icc_profile", None)
            image.save(tmp_path, **save_kwargs)

    except TranscodeError:
        discard_file(tmp_path)
        raise

    except (
        OSError,
        ValueError,
        ImageCms.PyCMSError,
        Image.DecompressionBombError,
    ) as e:
        discard_file(tmp_path)
        raise TranscodeError(
            f"Could not write intermediate TIFF for {descriptor.path}: {e}"
        ) from e

    if not tmp_path.exists():
        raise TranscodeError(f"Temp tiff file {tmp_path} does not exist")

    return TempArtifact(
        path=tmp_path,
        mode=image.mode,
        samples_per_pixel=len(image.getbands()),
        plan=conversion_plan,
    )
