# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Kakadu JP2 encoder integration.

This module builds and runs the ``kdu_compress`` command that turns the
intermediate TIFF into a JP2. Kakadu is a native CLI tool that must be
installed externally; set the KDU_COMPRESS_PATH environment variable to
use a binary that is not on PATH.

Example:
    >>> from jp2derivative.encoder import EncoderParameters, build_encoder_command
    >>> params = EncoderParameters(resolution_layers=6, force_srgb_space_flag=True)
    >>> build_encoder_command(Path("in.tif"), Path("out.jp2"), params)[-5:]
    ['Clayers=6', '-i', 'in.tif', '-o', 'out.jp2']
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .exceptions import EncodeError
from .utils import discard_file

logger = logging.getLogger(__name__)

ENCODER_ENV = "KDU_COMPRESS_PATH"
ENCODER_NAME = "kdu_compress"

KDU_COMPRESS_DEFAULT_OPTIONS = (
    "-num_threads",  # cap Kakadu's own worker threads
    "2",
    "-quiet",
    "Creversible=no",  # irreversible (lossy) wavelet
    "Corder=RPCL",  # resolution, position, component, layer
    "Cblk={64,64}",  # code-block dimensions
    "Cprecincts={256,256},{256,256},{128,128}",
    "ORGgen_plt=yes",  # packet length markers
    "-rate",
    "-",
    "Clevels=5",  # wavelet decomposition levels
)


@dataclass(frozen=True)
class EncoderParameters:
    """Per-image encoder settings.

    Attributes:
        resolution_layers: Value for ``Clayers``, at least 1.
        force_srgb_space_flag: Pass ``-jp2_space sRGB`` to the encoder.
    """

    resolution_layers: int
    force_srgb_space_flag: bool = False

    def __post_init__(self) -> None:
        if self.resolution_layers < 1:
            raise ValueError(
                f"resolution_layers must be >= 1, got {self.resolution_layers}"
            )


def get_encoder_cmd() -> str:
    """Returns the encoder from KDU_COMPRESS_PATH or falls back to 'kdu_compress'.

    If KDU_COMPRESS_PATH points to a directory, the binary inside it is used.
    """
    configured = os.environ.get(ENCODER_ENV)
    if not configured:
        return ENCODER_NAME
    if Path(configured).is_dir():
        return str(Path(configured) / ENCODER_NAME)
    return configured


def is_encoder_available() -> bool:
    """Checks if the JP2 encoder is available.

    Returns:
        True if the encoder is found and executable.
    """
    return shutil.which(get_encoder_cmd()) is not None


def build_encoder_command(
    source_path: Path,
    output_path: Path,
    params: EncoderParameters,
) -> list[str]:
    """Builds the encoder command line.

    Args:
        source_path: Intermediate TIFF to encode.
        output_path: JP2 file to write.
        params: Encoder parameters for this image.

    Returns:
        Argument list, suitable for subprocess without a shell.
    """
    cmd = [get_encoder_cmd(), *KDU_COMPRESS_DEFAULT_OPTIONS]
    if params.force_srgb_space_flag:
        cmd.extend(["-jp2_space", "sRGB"])
    cmd.append(f"Clayers={params.resolution_layers}")
    cmd.extend(["-i", str(source_path), "-o", str(output_path)])
    return cmd


def encode(
    source_path: Path,
    output_path: Path,
    params: EncoderParameters,
    *,
    timeout: float | None = None,
) -> None:
    """Encodes a TIFF into a JP2 file.

    Success is decided by the encoder's exit status alone. On failure any
    partially written output is removed.

    Args:
        source_path: Intermediate TIFF to encode.
        output_path: JP2 file to write.
        params: Encoder parameters for this image.
        timeout: Optional limit in seconds for the encoder process.

    Raises:
        EncodeError: If the encoder cannot be run, times out or exits
            with a non-zero status.
    """
    cmd = build_encoder_command(source_path, output_path, params)

    logger.debug("Running JP2 encoder: %s", " ".join(cmd))

    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        discard_file(output_path)
        output = e.output if isinstance(e.output, str) else ""
        raise EncodeError(
            f"JP2 creation command timed out after {timeout} seconds: "
            f"{' '.join(cmd)}",
            command=cmd,
            output=output,
        ) from e
    except OSError as e:
        discard_file(output_path)
        raise EncodeError(
            f"JP2 creation command could not be run: {' '.join(cmd)} ({e})",
            command=cmd,
        ) from e

    if result.returncode != 0:
        discard_file(output_path)
        output = result.stdout or ""
        raise EncodeError(
            f"JP2 creation command failed with exit code {result.returncode}: "
            f"{' '.join(cmd)} with result {output.strip()}",
            command=cmd,
            output=output,
        )

    logger.debug("JP2 encoder finished: %s", output_path)
