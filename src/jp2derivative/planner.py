# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Normalization planning for the intermediate TIFF.

Every source is funneled through one normalized, uncompressed sRGB (or
grayscale) TIFF before encoding, because the encoder cannot consume
arbitrary source codecs and colour spaces reliably. This module decides
which colour transform that normalization needs.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .image import ImageDescriptor
from .metadata import ColorInterpretation

logger = logging.getLogger(__name__)


class TransformKind(Enum):
    """Colour transform applied while writing the intermediate TIFF."""

    NONE = "none"
    CMYK_TO_SRGB = "cmyk_to_srgb"
    EMBEDDED_TO_SRGB = "embedded_to_srgb"


@dataclass(frozen=True)
class ConversionPlan:
    """How to normalize one image.

    Attributes:
        needs_color_transform: True if pixel data must be colour converted.
        transform_kind: Which transform to apply.
        needs_big_tiff: True if the 64-bit offset TIFF variant is written.
    """

    needs_color_transform: bool
    transform_kind: TransformKind
    needs_big_tiff: bool = True


def plan(descriptor: ImageDescriptor) -> ConversionPlan:
    """Decides how an image is normalized before encoding.

    CMYK images are converted to sRGB through the fixed CMYK profile; any
    other image with an embedded profile is converted from that profile
    to sRGB; everything else passes through unchanged. The intermediate
    TIFF always uses the big-offset variant.

    Args:
        descriptor: Image to plan for.

    Returns:
        The ConversionPlan for this descriptor.
    """
    if descriptor.color_interpretation is ColorInterpretation.CMYK:
        kind = TransformKind.CMYK_TO_SRGB
    elif descriptor.has_icc_profile:
        kind = TransformKind.EMBEDDED_TO_SRGB
    else:
        kind = TransformKind.NONE

    conversion_plan = ConversionPlan(
        needs_color_transform=kind is not TransformKind.NONE,
        transform_kind=kind,
        needs_big_tiff=True,
    )
    logger.debug("Conversion plan for %s: %s", descriptor.path, conversion_plan)
    return conversion_plan
