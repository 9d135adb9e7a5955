# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""ICC profile loading and validation."""

import functools
import logging
import os
from importlib.resources import files
from io import BytesIO
from pathlib import Path

from PIL import ImageCms

from .exceptions import TranscodeError

logger = logging.getLogger(__name__)

# Environment variable naming the fixed CMYK source profile
CMYK_PROFILE_ENV = "JP2DERIVATIVE_CMYK_PROFILE"

# CMYK source profile shipped in resources/icc
DEFAULT_CMYK_PROFILE = "jp2derivative_cmyk.icc"


def _validate_icc_profile(profile_data: bytes) -> bool:
    """
    Validate ICC profile structure.

    Args:
        profile_data: Raw ICC profile bytes.

    Returns:
        True if valid, False otherwise.
    """
    # ICC profile must have at least 128-byte header
    if len(profile_data) < 128:
        return False

    # Check for 'acsp' signature at bytes 36-39
    if profile_data[36:40] != b"acsp":
        return False

    # Declared size (bytes 0-3, big-endian) must match actual size
    declared_size = int.from_bytes(profile_data[0:4], byteorder="big")
    if declared_size != len(profile_data):
        return False

    return profile_data[8] in (2, 4)


def _color_space_signature(profile_data: bytes) -> bytes:
    """Returns the data colour space signature (bytes 16-19) of a profile."""
    return profile_data[16:20]


@functools.cache
def get_srgb_profile() -> ImageCms.ImageCmsProfile:
    """
    Return the built-in sRGB profile used as transform target.

    The result is cached so the profile is built only once.
    """
    return ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB"))


@functools.cache
def get_srgb_profile_bytes() -> bytes:
    """Return the serialized sRGB profile embedded into converted images."""
    return get_srgb_profile().tobytes()


def open_embedded_profile(profile_data: bytes) -> ImageCms.ImageCmsProfile:
    """
    Open an ICC profile embedded in an image.

    Args:
        profile_data: Raw ICC profile bytes.

    Returns:
        Profile usable as a transform source.

    Raises:
        TranscodeError: If littleCMS rejects the profile.
    """
    try:
        return ImageCms.ImageCmsProfile(BytesIO(profile_data))
    except (ImageCms.PyCMSError, OSError) as e:
        raise TranscodeError(f"Embedded ICC profile is unreadable: {e}") from e


def get_cmyk_profile_path(override: Path | None = None) -> Path | None:
    """Returns the configured CMYK source profile path.

    Args:
        override: Explicit path, taking precedence over the environment.

    Returns:
        The profile path, or None if none is configured.
    """
    if override is not None:
        return override
    env_value = os.environ.get(CMYK_PROFILE_ENV)
    return Path(env_value) if env_value else None


def _check_cmyk_profile(profile_data: bytes, source: str | Path) -> None:
    if not _validate_icc_profile(profile_data):
        raise TranscodeError(f"CMYK ICC profile is invalid or corrupted: {source}")

    if _color_space_signature(profile_data) != b"CMYK":
        raise TranscodeError(f"ICC profile is not a CMYK profile: {source}")


@functools.cache
def get_default_cmyk_profile_bytes() -> bytes:
    """
    Load the CMYK source profile shipped with the package.

    The result is cached so the file is read only once.

    Returns:
        Raw ICC profile bytes.

    Raises:
        TranscodeError: If the profile cannot be loaded or is invalid.
    """
    try:
        resource_files = files("jp2derivative") / "resources" / "icc"
        profile_data = resource_files.joinpath(DEFAULT_CMYK_PROFILE).read_bytes()
    except OSError as e:
        raise TranscodeError(f"Could not load CMYK ICC profile: {e}") from e

    _check_cmyk_profile(profile_data, DEFAULT_CMYK_PROFILE)

    logger.debug("Default CMYK ICC profile loaded: %d bytes", len(profile_data))
    return profile_data


def load_cmyk_profile(path: Path | None = None) -> ImageCms.ImageCmsProfile:
    """
    Load the fixed CMYK source profile.

    Args:
        path: Path to a CMYK ICC profile. The profile shipped with the
            package is used when None.

    Returns:
        Profile usable as a transform source.

    Raises:
        TranscodeError: If the file cannot be read or is not a CMYK profile.
    """
    if path is None:
        return open_embedded_profile(get_default_cmyk_profile_bytes())

    try:
        profile_data = path.read_bytes()
    except OSError as e:
        raise TranscodeError(f"Could not load CMYK ICC profile {path}: {e}") from e

    _check_cmyk_profile(profile_data, path)

    logger.debug("CMYK ICC profile loaded: %s (%d bytes)", path, len(profile_data))
    return open_embedded_profile(profile_data)


def profile_description(profile_data: bytes | None) -> str | None:
    """Returns the description tag of an ICC profile.

    Args:
        profile_data: Raw ICC profile bytes, or None.

    Returns:
        Description such as ``"sRGB IEC61966-2.1"``, or None if there is
        no profile or it carries no readable description.
    """
    if not profile_data:
        return None
    try:
        profile = ImageCms.ImageCmsProfile(BytesIO(profile_data))
        description = ImageCms.getProfileDescription(profile)
    except (ImageCms.PyCMSError, OSError) as e:
        logger.debug("Could not read ICC profile description: %s", e)
        return None
    return description.strip() or None
