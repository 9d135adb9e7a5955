# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""jp2derivative - Create JPEG2000 derivatives from TIFF and JPEG images."""

from importlib.metadata import PackageNotFoundError, version

from .batch import Jp2Result, generate_directory, generate_jp2s
from .content_metadata import create_content_metadata
from .creator import Jp2Options, create_jp2
from .exceptions import (
    EncodeError,
    ImageIOError,
    Jp2DerivativeError,
    NotFoundError,
    TranscodeError,
    ValidationError,
)
from .image import ImageDescriptor, describe

try:
    __version__ = version("jp2derivative")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = [
    "__version__",
    "create_jp2",
    "describe",
    "generate_directory",
    "generate_jp2s",
    "create_content_metadata",
    "ImageDescriptor",
    "Jp2Options",
    "Jp2Result",
    "Jp2DerivativeError",
    "NotFoundError",
    "ValidationError",
    "ImageIOError",
    "TranscodeError",
    "EncodeError",
]
