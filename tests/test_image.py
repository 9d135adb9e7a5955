# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Unit tests for image.py."""

from pathlib import Path
from unittest.mock import patch

import pytest
from PIL import Image

from jp2derivative.exceptions import NotFoundError, ValidationError
from jp2derivative.image import ImageDescriptor, describe
from jp2derivative.metadata import ColorInterpretation


class TestDescribe:
    """Tests for describe and check_for_file."""

    def test_describe_existing_file(self, rgb_tiff: Path) -> None:
        """Returns a descriptor for an existing file."""
        image = describe(rgb_tiff)

        assert isinstance(image, ImageDescriptor)
        assert image.path == rgb_tiff

    def test_describe_accepts_str(self, rgb_tiff: Path) -> None:
        """String paths are converted to Path."""
        assert describe(str(rgb_tiff)).path == rgb_tiff

    def test_describe_missing_file(self, tmp_dir: Path) -> None:
        """Missing paths raise NotFoundError."""
        missing = tmp_dir / "missing.tif"

        with pytest.raises(NotFoundError, match="does not exist or is a directory"):
            describe(missing)

    def test_describe_directory(self, tmp_dir: Path) -> None:
        """Directories raise NotFoundError."""
        with pytest.raises(NotFoundError):
            describe(tmp_dir)

    def test_constructor_does_not_check(self, tmp_dir: Path) -> None:
        """ImageDescriptor itself can point at a missing file."""
        image = ImageDescriptor(tmp_dir / "later.tif")

        with pytest.raises(NotFoundError):
            image.check_for_file()


class TestImageAttributes:
    """Tests for metadata-backed attributes."""

    def test_rgb_tiff(self, rgb_tiff: Path) -> None:
        """Reads dimensions and sample layout of an RGB TIFF."""
        image = ImageDescriptor(rgb_tiff)

        assert image.width == 43
        assert image.height == 36
        assert image.mimetype == "image/tiff"
        assert image.samples_per_pixel == 3
        assert image.bits_per_sample == 8
        assert image.has_icc_profile is False
        assert image.profile_name is None
        assert image.color_interpretation is ColorInterpretation.SRGB
        assert image.is_srgb is True

    def test_jpeg(self, jpeg_image: Path) -> None:
        """JPEGs report image/jpeg."""
        image = ImageDescriptor(jpeg_image)

        assert image.mimetype == "image/jpeg"
        assert image.width == 43

    def test_cmyk(self, cmyk_tiff: Path) -> None:
        """CMYK TIFFs have four samples and CMYK interpretation."""
        image = ImageDescriptor(cmyk_tiff)

        assert image.samples_per_pixel == 4
        assert image.color_interpretation is ColorInterpretation.CMYK
        assert image.is_srgb is False

    def test_bitonal(self, bitonal_tiff: Path) -> None:
        """Bitonal TIFFs have one 1-bit sample."""
        image = ImageDescriptor(bitonal_tiff)

        assert image.samples_per_pixel == 1
        assert image.bits_per_sample == 1
        assert image.color_interpretation is ColorInterpretation.GRAYSCALE

    def test_embedded_profile(self, profiled_tiff: Path) -> None:
        """An embedded ICC profile is detected and named."""
        image = ImageDescriptor(profiled_tiff)

        assert image.has_icc_profile is True
        assert image.profile_name

    def test_filesize_and_checksums(self, rgb_tiff: Path) -> None:
        """File size and checksums describe the file bytes."""
        image = ImageDescriptor(rgb_tiff)

        assert image.filesize == rgb_tiff.stat().st_size
        assert len(image.md5) == 32
        assert len(image.sha1) == 40

    def test_metadata_is_cached(self, rgb_tiff: Path) -> None:
        """Metadata is read only once per descriptor."""
        image = ImageDescriptor(rgb_tiff)
        metadata = ImageDescriptor(rgb_tiff).metadata

        with patch("jp2derivative.image.read_metadata") as mock_read:
            mock_read.return_value = metadata
            _ = image.width
            _ = image.height
            _ = image.samples_per_pixel

        mock_read.assert_called_once_with(rgb_tiff)

    def test_non_image_metadata_raises(self, text_file: Path) -> None:
        """Reading metadata of a non-image raises ValidationError."""
        with pytest.raises(ValidationError):
            _ = ImageDescriptor(text_file).width


class TestIsCandidate:
    """Tests for is_candidate and is_valid_image."""

    def test_tiff_is_candidate(self, rgb_tiff: Path) -> None:
        """TIFFs are candidates."""
        assert ImageDescriptor(rgb_tiff).is_candidate() is True

    def test_jpeg_is_candidate(self, jpeg_image: Path) -> None:
        """JPEGs are candidates."""
        assert ImageDescriptor(jpeg_image).is_candidate() is True

    def test_png_is_not_candidate(self, png_image: Path) -> None:
        """Valid images of other types are rejected."""
        image = ImageDescriptor(png_image)

        assert image.is_valid_image is True
        assert image.is_candidate() is False

    def test_text_file_is_not_candidate(self, text_file: Path) -> None:
        """A non-image with a .tif name is rejected."""
        image = ImageDescriptor(text_file)

        assert image.is_valid_image is False
        assert image.is_candidate() is False

    def test_jp2_is_not_candidate(self, tmp_dir: Path) -> None:
        """JP2 files are never candidates."""
        path = tmp_dir / "test.jp2"
        Image.new("RGB", (43, 36)).save(path, "JPEG2000")

        image = ImageDescriptor(path)

        assert image.mimetype == "image/jp2"
        assert image.is_candidate() is False


class TestFilenames:
    """Tests for jp2_filename and dpg_jp2_filename."""

    def test_jp2_filename(self) -> None:
        """The extension is replaced by .jp2."""
        image = ImageDescriptor("/dir/page_001.tif")

        assert image.jp2_filename == Path("/dir/page_001.jp2")

    def test_jp2_filename_without_extension(self) -> None:
        """.jp2 is appended when there is no extension."""
        assert ImageDescriptor("/dir/page").jp2_filename == Path("/dir/page.jp2")

    def test_dpg_jp2_filename(self) -> None:
        """_00_ is replaced by _05_ in DPG names."""
        image = ImageDescriptor("/dir/bb112zx3193_00_0001.tif")

        assert image.dpg_jp2_filename == Path("/dir/bb112zx3193_05_0001.jp2")

    def test_dpg_jp2_filename_without_marker(self) -> None:
        """Names without _00_ are unchanged apart from the extension."""
        image = ImageDescriptor("/dir/page_001.tif")

        assert image.dpg_jp2_filename == Path("/dir/page_001.jp2")


class TestMultiPage:
    """Tests for is_multi_page and extract_first_page."""

    def test_single_page(self, rgb_tiff: Path) -> None:
        """Single-page TIFFs are not multi-page."""
        assert ImageDescriptor(rgb_tiff).is_multi_page is False

    def test_multi_page(self, multipage_tiff: Path) -> None:
        """Two-page TIFFs are multi-page."""
        assert ImageDescriptor(multipage_tiff).is_multi_page is True

    def test_jpeg_is_never_multi_page(self, jpeg_image: Path) -> None:
        """Only TIFFs can be multi-page."""
        assert ImageDescriptor(jpeg_image).is_multi_page is False

    def test_extract_first_page(self, multipage_tiff: Path, tmp_dir: Path) -> None:
        """The first page is written as a single-page TIFF."""
        output = tmp_dir / "first.tif"

        result = ImageDescriptor(multipage_tiff).extract_first_page(output)

        assert result == output
        page = ImageDescriptor(output)
        assert page.is_multi_page is False
        assert (page.width, page.height) == (43, 36)

    def test_extract_first_page_rejects_jpeg(
        self, jpeg_image: Path, tmp_dir: Path
    ) -> None:
        """Extracting a page from a JPEG raises ValidationError."""
        with pytest.raises(ValidationError, match="Cannot extract first page"):
            ImageDescriptor(jpeg_image).extract_first_page(tmp_dir / "out.tif")
