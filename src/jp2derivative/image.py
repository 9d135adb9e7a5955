# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Read-only view over one image file.

Example:
    >>> from jp2derivative.image import describe
    >>> source = describe("/dir/page_001.tif")
    >>> source.is_candidate()
    True
    >>> jp2 = source.create_jp2(overwrite=True)
    >>> jp2.path
    PosixPath('/dir/page_001.jp2')
"""

import logging
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING

from PIL import Image, ImageOps

from .exceptions import NotFoundError, ValidationError
from .metadata import (
    ColorInterpretation,
    ImageMetadata,
    compute_checksums,
    read_metadata,
    sniff_mimetype,
)
from .utils import ACCEPTED_MIMETYPES, JP2_MIMETYPE, jp2_path_for

if TYPE_CHECKING:
    from .creator import Jp2Options

logger = logging.getLogger(__name__)


class ImageDescriptor:
    """An image file and its lazily read, cached metadata.

    Metadata is read on first access and kept for the lifetime of the
    descriptor, so a descriptor describes the file as it was when first
    inspected.

    Attributes:
        path: Path to the image file.
        source_tmp_path: Intermediate TIFF left behind by the
            ``create_jp2`` call that produced this image, when it was
            preserved.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.source_tmp_path: Path | None = None

    def __repr__(self) -> str:
        return f"ImageDescriptor({str(self.path)!r})"

    def check_for_file(self) -> None:
        """Raises NotFoundError unless the path is an existing file."""
        if not self.path.is_file():
            raise NotFoundError(
                f"input file {self.path} does not exist or is a directory"
            )

    @cached_property
    def metadata(self) -> ImageMetadata:
        """Raster metadata; raises ValidationError for non-images."""
        return read_metadata(self.path)

    @cached_property
    def mimetype(self) -> str | None:
        return sniff_mimetype(self.path)

    @property
    def width(self) -> int:
        return self.metadata.width

    @property
    def height(self) -> int:
        return self.metadata.height

    @property
    def samples_per_pixel(self) -> int:
        return self.metadata.samples_per_pixel

    @property
    def bits_per_sample(self) -> int | tuple[int, ...]:
        return self.metadata.bits_per_sample

    @property
    def has_icc_profile(self) -> bool:
        return self.metadata.has_icc_profile

    @property
    def profile_name(self) -> str | None:
        return self.metadata.profile_name

    @property
    def color_interpretation(self) -> ColorInterpretation:
        return self.metadata.color_interpretation

    @property
    def is_srgb(self) -> bool:
        return self.color_interpretation is ColorInterpretation.SRGB

    @property
    def filesize(self) -> int:
        return self.path.stat().st_size

    @cached_property
    def _checksums(self) -> tuple[str, str]:
        return compute_checksums(self.path)

    @property
    def md5(self) -> str:
        return self._checksums[0]

    @property
    def sha1(self) -> str:
        return self._checksums[1]

    @cached_property
    def is_valid_image(self) -> bool:
        """True if Pillow can read the image header."""
        try:
            _ = self.metadata
        except ValidationError as e:
            logger.debug("Not a valid image: %s", e)
            return False
        return True

    def is_candidate(self) -> bool:
        """Checks whether this image can be converted to JP2.

        Returns:
            True for readable JPEG and TIFF files. JP2 files are never
            candidates.
        """
        if self.mimetype == JP2_MIMETYPE:
            return False
        return self.mimetype in ACCEPTED_MIMETYPES and self.is_valid_image

    @property
    def jp2_filename(self) -> Path:
        """Default JP2 path: the source path with a ``.jp2`` extension."""
        return jp2_path_for(self.path)

    @property
    def dpg_jp2_filename(self) -> Path:
        """DPG-style JP2 path, with ``_00_`` replaced by ``_05_``."""
        jp2 = self.jp2_filename
        return jp2.with_name(jp2.name.replace("_00_", "_05_"))

    @property
    def is_multi_page(self) -> bool:
        """True for TIFFs holding more than one page."""
        if self.mimetype != "image/tiff":
            return False
        try:
            return self.metadata.n_frames > 1
        except ValidationError:
            return False

    def extract_first_page(self, output_path: str | Path) -> Path:
        """Saves only the first page of a multi-page TIFF.

        The page is auto-rotated according to its EXIF orientation.

        Args:
            output_path: Where to write the extracted page.

        Returns:
            The output path.

        Raises:
            ValidationError: If the image is not a TIFF.
        """
        if self.mimetype != "image/tiff":
            raise ValidationError(
                f"Cannot extract first page from mimetype {self.mimetype}"
            )

        output_path = Path(output_path)
        with Image.open(self.path) as image:
            image.seek(0)
            first_page = ImageOps.exif_transpose(image)
            save_kwargs = {}
            if "icc_profile" in image.info:
                save_kwargs["icc_profile"] = image.info["icc_profile"]
            first_page.save(output_path, format="TIFF", **save_kwargs)

        logger.debug("Extracted first page of %s to %s", self.path, output_path)
        return output_path

    def create_jp2(
        self, options: "Jp2Options | None" = None, **kwargs
    ) -> "ImageDescriptor":
        """Creates a JP2 derivative of this image.

        Args:
            options: Pipeline options. Keyword arguments build a
                ``Jp2Options`` when no options object is given.

        Returns:
            Descriptor of the generated JP2 file.

        Raises:
            TypeError: If both options and keyword arguments are given.
        """
        from .creator import Jp2Options, create_jp2

        if options is None:
            options = Jp2Options(**kwargs)
        elif kwargs:
            raise TypeError(
                "create_jp2() takes either options or keyword arguments, not both"
            )
        return create_jp2(self, options)


def describe(path: str | Path) -> ImageDescriptor:
    """Returns a descriptor for an existing image file.

    Args:
        path: Path to the image.

    Returns:
        ImageDescriptor for the file.

    Raises:
        NotFoundError: If the path does not exist or is a directory.
    """
    image = ImageDescriptor(path)
    image.check_for_file()
    return image
