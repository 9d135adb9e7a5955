# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Pytest fixtures for the jp2derivative test suite."""

import stat
import sys
from pathlib import Path

import pytest
from PIL import Image, ImageCms

from jp2derivative.color_profile import get_default_cmyk_profile_bytes
from jp2derivative.encoder import ENCODER_ENV
from jp2derivative.materializer import TEMP_PREFIX

# Stand-in for kdu_compress: records its arguments next to itself and writes
# a real JP2 with Pillow.
_FAKE_ENCODER = """#!{python}
import sys
from pathlib import Path

from PIL import Image

args = sys.argv[1:]
Path(__file__).with_suffix(".args").write_text("\\n".join(args))
src = Path(args[args.index("-i") + 1])
out = Path(args[args.index("-o") + 1])
with Image.open(src) as image:
    if image.mode not in ("L", "LA", "RGB", "RGBA"):
        image = image.convert("RGB" if len(image.getbands()) > 2 else "L")
    image.save(out, "JPEG2000", num_resolutions=1)
"""

# Stand-in for a kdu_compress run that dies half way through
_FAILING_ENCODER = """#!{python}
import sys
from pathlib import Path

args = sys.argv[1:]
Path(args[args.index("-o") + 1]).write_bytes(b"partial")
print("Kakadu Error: Unable to open input file")
sys.exit(1)
"""


def _write_script(path: Path, template: str) -> Path:
    path.write_text(template.format(python=sys.executable))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def encoder_args(encoder: Path) -> list[str]:
    """Returns the arguments of the last fake encoder run."""
    return encoder.with_suffix(".args").read_text().splitlines()


def temp_artifacts(directory: Path) -> list[Path]:
    """Lists intermediate TIFFs left in a temporary directory."""
    return sorted(directory.glob(f"{TEMP_PREFIX}*"))


# -- Fixtures --


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Temporary directory for tests.

    Args:
        tmp_path: Pytest-provided temporary directory.

    Returns:
        Path to the temporary directory.
    """
    return tmp_path


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Separate directory used as tmp_dir for intermediate TIFFs."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def fake_encoder(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Installs a working fake kdu_compress via KDU_COMPRESS_PATH.

    Returns:
        Path to the fake encoder script.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    encoder = _write_script(bin_dir / "kdu_compress", _FAKE_ENCODER)
    monkeypatch.setenv(ENCODER_ENV, str(encoder))
    return encoder


@pytest.fixture
def failing_encoder(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Installs a fake kdu_compress that writes partial output and exits 1."""
    bin_dir = tmp_path / "failbin"
    bin_dir.mkdir()
    encoder = _write_script(bin_dir / "kdu_compress", _FAILING_ENCODER)
    monkeypatch.setenv(ENCODER_ENV, str(encoder))
    return encoder


@pytest.fixture
def srgb_profile_bytes() -> bytes:
    """Serialized built-in sRGB ICC profile."""
    return ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB")).tobytes()


@pytest.fixture
def rgb_tiff(tmp_dir: Path) -> Path:
    """43x36 RGB TIFF without an embedded profile."""
    path = tmp_dir / "test.tif"
    Image.new("RGB", (43, 36), (200, 30, 30)).save(path)
    return path


@pytest.fixture
def jpeg_image(tmp_dir: Path) -> Path:
    """43x36 RGB JPEG."""
    path = tmp_dir / "test.jpg"
    Image.new("RGB", (43, 36), (30, 200, 30)).save(path, quality=90)
    return path


@pytest.fixture
def cmyk_tiff(tmp_dir: Path) -> Path:
    """43x36 CMYK TIFF without an embedded profile."""
    path = tmp_dir / "test_cmyk.tif"
    Image.new("CMYK", (43, 36), (0, 128, 255, 10)).save(path)
    return path


@pytest.fixture
def gray_tiff(tmp_dir: Path) -> Path:
    """43x36 8-bit grayscale TIFF."""
    path = tmp_dir / "test_gray.tif"
    Image.new("L", (43, 36), 128).save(path)
    return path


@pytest.fixture
def bitonal_tiff(tmp_dir: Path) -> Path:
    """43x36 1-bit TIFF."""
    path = tmp_dir / "test_bitonal.tif"
    Image.new("1", (43, 36), 1).save(path)
    return path


@pytest.fixture
def profiled_tiff(tmp_dir: Path, srgb_profile_bytes: bytes) -> Path:
    """43x36 RGB TIFF carrying an embedded sRGB profile."""
    path = tmp_dir / "test_profiled.tif"
    Image.new("RGB", (43, 36), (30, 30, 200)).save(
        path, icc_profile=srgb_profile_bytes
    )
    return path


@pytest.fixture
def large_tiff(tmp_dir: Path) -> Path:
    """1000x800 RGB TIFF."""
    path = tmp_dir / "test_large.tif"
    Image.new("RGB", (1000, 800), (90, 90, 90)).save(path)
    return path


@pytest.fixture
def multipage_tiff(tmp_dir: Path) -> Path:
    """Two-page TIFF; the pages differ in size."""
    path = tmp_dir / "test_multi.tif"
    first = Image.new("RGB", (43, 36), (255, 0, 0))
    second = Image.new("RGB", (20, 10), (0, 0, 255))
    first.save(path, save_all=True, append_images=[second])
    return path


@pytest.fixture
def png_image(tmp_dir: Path) -> Path:
    """43x36 PNG, a readable image in a non-accepted format."""
    path = tmp_dir / "test.png"
    Image.new("RGB", (43, 36)).save(path)
    return path


@pytest.fixture
def text_file(tmp_dir: Path) -> Path:
    """Plain text file with an image extension."""
    path = tmp_dir / "not_an_image.tif"
    path.write_text("this is not an image")
    return path


@pytest.fixture
def cmyk_profile_path(tmp_dir: Path) -> Path:
    """Standalone copy of the CMYK ICC profile shipped with the package."""
    path = tmp_dir / "cmyk.icc"
    path.write_bytes(get_default_cmyk_profile_bytes())
    return path


@pytest.fixture(scope="session")
def huge_bitonal_tiff(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """14000x14000 1-bit TIFF, above Pillow's default pixel limit."""
    path = tmp_path_factory.mktemp("huge") / "huge.tif"
    Image.new("1", (14000, 14000), 1).save(path, compression="group4")
    return path
