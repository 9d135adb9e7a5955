# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Utility functions for JP2 derivative generation."""

import logging
import sys
from pathlib import Path

from .exceptions import ImageIOError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Source mimetypes accepted for JP2 conversion
ACCEPTED_MIMETYPES = frozenset({"image/jpeg", "image/tiff"})

JP2_MIMETYPE = "image/jp2"


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Configures logging for jp2derivative.

    Args:
        verbose: If True, DEBUG level is used.
        quiet: If True, only ERROR and higher are output.
            Takes precedence over verbose.

    Returns:
        Configured logger for jp2derivative.
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    package_logger = logging.getLogger("jp2derivative")
    package_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    package_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)
    handler.setFormatter(formatter)
    package_logger.addHandler(handler)

    logger.debug("Logging configured with level: %s", logging.getLevelName(level))
    return package_logger


def jp2_path_for(path: Path) -> Path:
    """Returns the default JP2 path for a source image.

    ``/dir/file.tif`` becomes ``/dir/file.jp2``; a path without an
    extension gets ``.jp2`` appended.

    Args:
        path: Source image path.

    Returns:
        Path of the JP2 derivative next to the source.
    """
    if not path.suffix:
        return path.with_name(f"{path.name}.jp2")
    return path.with_suffix(".jp2")


def remove_file(path: Path) -> bool:
    """Deletes a file if it exists.

    Args:
        path: File to delete.

    Returns:
        True if a file was deleted, False if nothing was there.

    Raises:
        ImageIOError: If the file exists but cannot be deleted.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise ImageIOError(f"Could not delete {path}: {e}", path=path) from e
    return True


def discard_file(path: Path) -> None:
    """Deletes a file, logging a warning instead of raising on failure.

    Args:
        path: File to delete.
    """
    try:
        if remove_file(path):
            logger.debug("Removed %s", path)
    except ImageIOError as e:
        logger.warning("Cleanup failed: %s", e)
