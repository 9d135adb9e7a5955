# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Batch JP2 generation for directories of images."""

# Standard Library
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

# Third Party
from tqdm import tqdm

# Local
from .creator import Jp2Options, create_jp2
from .exceptions import ImageIOError, Jp2DerivativeError, NotFoundError
from .image import ImageDescriptor

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_SUBDIR = "jp2"


@dataclass
class Jp2Result:
    """Result of one JP2 creation within a batch.

    Attributes:
        success: True if the JP2 was created.
        input_path: Source image.
        output_path: JP2 path.
        error: Error message if success=False.
        processing_time: Processing time in seconds.
    """

    success: bool
    input_path: Path
    output_path: Path
    error: str | None = None
    processing_time: float = 0.0


def generate_jp2s(
    file_pairs: list[tuple[Path, Path]],
    *,
    overwrite: bool = False,
    tmp_dir: Path | None = None,
    timeout: float | None = None,
    cmyk_profile: Path | None = None,
    on_progress: Callable[[int, int, str], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> list[Jp2Result]:
    """Creates JP2s for a list of images.

    A failing image is logged and recorded, and the batch continues with
    the next one.

    Args:
        file_pairs: List of (input_path, output_path) tuples.
        overwrite: If True, existing output files are replaced.
        tmp_dir: Directory for intermediate TIFFs.
        timeout: Limit in seconds for each encoder process.
        cmyk_profile: CMYK source ICC profile for CMYK images.
        on_progress: Optional callback(current_idx, total, filename) called
            before each file.
        cancel_event: Optional threading.Event; when set, iteration stops.

    Returns:
        List of Jp2Result for all processed files.
    """
    results: list[Jp2Result] = []
    total = len(file_pairs)

    for idx, (input_path, output_path) in enumerate(file_pairs):
        if cancel_event is not None and cancel_event.is_set():
            logger.info("JP2 generation cancelled")
            break

        if on_progress is not None:
            on_progress(idx, total, input_path.name)

        options = Jp2Options(
            output_path=output_path,
            overwrite=overwrite,
            tmp_dir=tmp_dir,
            timeout=timeout,
            cmyk_profile=cmyk_profile,
        )
        start_time = time.perf_counter()
        try:
            create_jp2(ImageDescriptor(input_path), options)
        except Jp2DerivativeError as e:
            logger.error("Error for %s: %s", input_path.name, e)
            results.append(
                Jp2Result(
                    success=False,
                    input_path=input_path,
                    output_path=output_path,
                    error=str(e),
                )
            )
            continue

        logger.debug("Generated jp2 for %s", input_path.name)
        results.append(
            Jp2Result(
                success=True,
                input_path=input_path,
                output_path=output_path,
                processing_time=time.perf_counter() - start_time,
            )
        )

    return results


def generate_directory(
    source_dir: Path,
    output_dir: Path | None = None,
    *,
    extension: str = "tif",
    recursive: bool = False,
    overwrite: bool = False,
    tmp_dir: Path | None = None,
    timeout: float | None = None,
    cmyk_profile: Path | None = None,
    show_progress: bool = True,
) -> list[Jp2Result]:
    """Creates JP2s for all images with a given extension in a directory.

    Args:
        source_dir: Directory containing the source images.
        output_dir: Directory for the JP2s. Defaults to a ``jp2``
            subdirectory of source_dir, created if missing.
        extension: Extension of the files to process, without dot.
        recursive: If True, subdirectories are included.
        overwrite: If True, existing output files are replaced.
        tmp_dir: Directory for intermediate TIFFs.
        timeout: Limit in seconds for each encoder process.
        cmyk_profile: CMYK source ICC profile for CMYK images.
        show_progress: If True, a progress bar is shown.

    Returns:
        List of Jp2Result for all processed files.

    Raises:
        NotFoundError: If the source directory does not exist.
        ImageIOError: If the output directory cannot be created.
    """
    if not source_dir.is_dir():
        raise NotFoundError(f"Input path does not exist: {source_dir}")

    if output_dir is None:
        output_dir = source_dir / DEFAULT_OUTPUT_SUBDIR

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ImageIOError(
            f"Output path does not exist or could not be created: {output_dir}",
            path=output_dir,
        ) from e

    extension = extension.lstrip(".")
    pattern = f"**/*.{extension}" if recursive else f"*.{extension}"
    sources = sorted(p for p in source_dir.glob(pattern) if p.is_file())

    if not sources:
        logger.warning("No .%s files found in: %s", extension, source_dir)
        return []

    logger.debug("Source: %s", source_dir)
    logger.debug("Destination: %s", output_dir)
    logger.info(
        "Found: %d .%s file(s) in %s%s",
        len(sources),
        extension,
        source_dir,
        " (recursive)" if recursive else "",
    )

    # Output image gets the source stem with a jp2 extension
    file_pairs = [(source, output_dir / f"{source.stem}.jp2") for source in sources]

    progress_bar = None
    if show_progress:
        progress_bar = tqdm(
            total=len(file_pairs),
            desc="Generating JP2",
            unit="file",
            ncols=80,
        )

    def _on_progress(current_idx: int, total: int, filename: str) -> None:
        if progress_bar is not None:
            progress_bar.update(1)
            progress_bar.set_postfix_str(filename)

    results = generate_jp2s(
        file_pairs,
        overwrite=overwrite,
        tmp_dir=tmp_dir,
        timeout=timeout,
        cmyk_profile=cmyk_profile,
        on_progress=_on_progress if show_progress else None,
    )

    if progress_bar is not None:
        progress_bar.close()

    successful = sum(1 for r in results if r.success)
    logger.info(
        "Directory JP2 generation completed: %d successful, %d failed",
        successful,
        len(results) - successful,
    )

    return results
