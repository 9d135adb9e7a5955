# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Core logic for JP2 derivative creation."""

# Standard Library
import enum
import logging
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

# Local
from .encoder import EncoderParameters, encode
from .exceptions import NotFoundError, ValidationError
from .image import ImageDescriptor
from .layers import compute_layers
from .materializer import TempArtifact, materialize
from .planner import plan
from .utils import JP2_MIMETYPE, discard_file

logger = logging.getLogger(__name__)


class PipelineStage(enum.Enum):
    """Stages of one JP2 creation run."""

    VALIDATING = "validating"
    PLANNING = "planning"
    MATERIALIZING = "materializing"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Jp2Options:
    """Options for one JP2 creation run.

    Attributes:
        output_path: JP2 file to write. Defaults to the source path with a
            ``.jp2`` extension.
        overwrite: Replace an existing output file.
        tmp_dir: Directory for the intermediate TIFF. Defaults to the
            system temporary directory.
        preserve_temp_artifact: Keep the intermediate TIFF after the run.
        timeout: Limit in seconds for the encoder process.
        cmyk_profile: CMYK source ICC profile for CMYK images, overriding
            the JP2DERIVATIVE_CMYK_PROFILE environment variable.
    """

    output_path: Path | None = None
    overwrite: bool = False
    tmp_dir: Path | None = None
    preserve_temp_artifact: bool = False
    timeout: float | None = None
    cmyk_profile: Path | None = None


def _resolve_output_path(image: ImageDescriptor, options: Jp2Options) -> Path:
    if options.output_path is not None:
        return Path(options.output_path)
    return image.jp2_filename


def check_preconditions(
    image: ImageDescriptor, output_path: Path, overwrite: bool
) -> None:
    """Checks that a JP2 may be created before any file is written.

    Args:
        image: Source image.
        output_path: Requested JP2 path.
        overwrite: Whether an existing output may be replaced.

    Raises:
        NotFoundError: If the source file does not exist.
        ValidationError: If the source is not a JPEG/TIFF, the output exists
            without overwrite, or a JP2 would be re-encoded over itself.
    """
    image.check_for_file()

    if not image.is_candidate():
        raise ValidationError(
            "input file is not a valid image, or is the wrong mimetype"
        )

    if not overwrite and output_path.exists():
        raise ValidationError(f"output {output_path} exists, cannot overwrite")

    if (
        overwrite
        and image.mimetype == JP2_MIMETYPE
        and output_path.resolve() == image.path.resolve()
    ):
        raise ValidationError("cannot recreate jp2 over itself")


def encoder_parameters(
    image: ImageDescriptor, artifact: TempArtifact
) -> EncoderParameters:
    """Derives encoder parameters from the source and its intermediate TIFF.

    Args:
        image: Source image (for dimensions).
        artifact: Intermediate TIFF (for the normalized colour space).

    Returns:
        EncoderParameters for this run.
    """
    return EncoderParameters(
        resolution_layers=compute_layers(image.width, image.height),
        force_srgb_space_flag=artifact.is_srgb,
    )


def create_jp2(
    image: ImageDescriptor, options: Jp2Options | None = None
) -> ImageDescriptor:
    """Creates a JP2 derivative of a JPEG or TIFF image.

    Runs validation, planning, intermediate TIFF creation and encoding in
    order. Any failure stops the run; the intermediate TIFF is removed on
    every exit path unless ``preserve_temp_artifact`` is set, and a failed
    encode leaves no output file behind. Multi-page TIFFs are not
    supported; extract a single page first.

    Args:
        image: Source image.
        options: Run options; defaults apply when None.

    Returns:
        Descriptor of the generated JP2 file.

    Raises:
        NotFoundError: If the source file does not exist.
        ValidationError: If preconditions are not met.
        ImageIOError: If the temporary directory is missing or a file
            cannot be created or deleted.
        TranscodeError: If the intermediate TIFF cannot be produced.
        EncodeError: If the encoder fails.
    """
    options = options or Jp2Options()
    output_path = _resolve_output_path(image, options)
    tmp_dir = Path(options.tmp_dir or tempfile.gettempdir())
    start_time = time.perf_counter()
    artifact: TempArtifact | None = None
    stage = PipelineStage.VALIDATING

    logger.info("Starting JP2 creation: %s -> %s", image.path, output_path)

    try:
        check_preconditions(image, output_path, options.overwrite)

        stage = PipelineStage.PLANNING
        conversion_plan = plan(image)

        stage = PipelineStage.MATERIALIZING
        artifact = materialize(
            image,
            conversion_plan,
            tmp_dir,
            cmyk_profile=options.cmyk_profile,
        )

        stage = PipelineStage.ENCODING
        params = encoder_parameters(image, artifact)
        logger.debug(
            "Encoding %s with %d layer(s)%s",
            artifact.path,
            params.resolution_layers,
            " (sRGB)" if params.force_srgb_space_flag else "",
        )
        encode(artifact.path, output_path, params, timeout=options.timeout)

        stage = PipelineStage.DONE

        if not options.preserve_temp_artifact:
            discard_file(artifact.path)

    except (NotFoundError, ValidationError) as e:
        logger.debug("JP2 creation rejected for %s: %s", image.path, e)
        stage = PipelineStage.FAILED
        raise

    except Exception as e:
        logger.error(
            "JP2 creation failed for %s during %s: %s", image.path, stage.value, e
        )
        stage = PipelineStage.FAILED
        raise

    finally:
        if (
            stage is PipelineStage.FAILED
            and artifact is not None
            and not options.preserve_temp_artifact
        ):
            discard_file(artifact.path)

    logger.info(
        "JP2 created: %s (%.2f seconds)",
        output_path,
        time.perf_counter() - start_time,
    )

    result = ImageDescriptor(output_path)
    if artifact is not None and options.preserve_temp_artifact:
        result.source_tmp_path = artifact.path
    return result
