# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Click-based CLI for jp2derivative.

This module provides the command-line interface for creating
JPEG2000 derivatives of TIFF and JPEG images.
"""

# Standard Library
import logging
import sys
from pathlib import Path

# Third Party
import click
from colorama import Fore, Style, init

# Local
from . import __version__
from .batch import generate_directory
from .creator import Jp2Options, create_jp2
from .encoder import is_encoder_available
from .exceptions import (
    EncodeError,
    ImageIOError,
    NotFoundError,
    TranscodeError,
    ValidationError,
)
from .image import ImageDescriptor
from .utils import setup_logging

EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_FILE_NOT_FOUND = 2
EXIT_CONVERSION_FAILED = 3
EXIT_VALIDATION_FAILED = 4
EXIT_PERMISSION_ERROR = 5

logger = logging.getLogger(__name__)


def print_success(msg: str) -> None:
    """Prints a success message in green.

    Args:
        msg: The message to output.
    """
    click.echo(f"{Fore.GREEN}✓{Style.RESET_ALL} {msg}")


def print_error(msg: str) -> None:
    """Prints an error message in red.

    Args:
        msg: The error message to output.
    """
    click.echo(f"{Fore.RED}✗ Error:{Style.RESET_ALL} {msg}", err=True)


@click.command()
@click.argument("input_path", required=False, type=click.Path(exists=True))
@click.argument("output", required=False, type=click.Path())
@click.option(
    "-f",
    "--force",
    is_flag=True,
    help="Overwrite existing JP2 files",
)
@click.option(
    "--tmp-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for intermediate TIFFs (default: system temp directory)",
)
@click.option(
    "--keep-temp",
    is_flag=True,
    help="Keep the intermediate TIFF after a single-file conversion",
)
@click.option(
    "-r",
    "--recursive",
    is_flag=True,
    help="Process directories recursively",
)
@click.option(
    "-e",
    "--extension",
    default="tif",
    show_default=True,
    help="Extension of the files to process in a directory",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Time limit in seconds for each encoder run",
)
@click.option(
    "--cmyk-profile",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="CMYK ICC profile used to convert CMYK images to sRGB",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Only output errors",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Detailed output",
)
@click.version_option(version=__version__)
def main(
    input_path: str | None,
    output: str | None,
    force: bool,
    tmp_dir: str | None,
    keep_temp: bool,
    recursive: bool,
    extension: str,
    timeout: float | None,
    cmyk_profile: str | None,
    quiet: bool,
    verbose: bool,
) -> None:
    """Creates JPEG2000 derivatives of TIFF and JPEG images.

    INPUT is the path to a source image or a directory of images.
    OUTPUT is optionally the JP2 path (for a file) or the output
    directory (for a directory, default: INPUT/jp2).
    """
    # Initialize colorama for Windows compatibility
    init()

    if input_path is None:
        click.echo(click.get_current_context().get_help())
        sys.exit(EXIT_GENERAL_ERROR)

    setup_logging(verbose=verbose, quiet=quiet)

    if not is_encoder_available():
        print_error(
            "JP2 creation requires Kakadu's kdu_compress, but it was not found.\n"
            "Install Kakadu and ensure kdu_compress is in your PATH, or set "
            "KDU_COMPRESS_PATH."
        )
        sys.exit(EXIT_GENERAL_ERROR)

    input_path_obj = Path(input_path)
    tmp_dir_obj = Path(tmp_dir) if tmp_dir else None
    cmyk_profile_obj = Path(cmyk_profile) if cmyk_profile else None

    try:
        if input_path_obj.is_file():
            options = Jp2Options(
                output_path=Path(output) if output else None,
                overwrite=force,
                tmp_dir=tmp_dir_obj,
                preserve_temp_artifact=keep_temp,
                timeout=timeout,
                cmyk_profile=cmyk_profile_obj,
            )
            exit_code = _convert_single_file(input_path_obj, options, quiet)
        else:
            exit_code = _convert_directory(
                input_path_obj,
                Path(output) if output else None,
                force=force,
                recursive=recursive,
                extension=extension,
                tmp_dir=tmp_dir_obj,
                timeout=timeout,
                cmyk_profile=cmyk_profile_obj,
                quiet=quiet,
            )

    except NotFoundError as e:
        print_error(str(e))
        exit_code = EXIT_FILE_NOT_FOUND
    except PermissionError as e:
        print_error(f"Access denied: {e}")
        exit_code = EXIT_PERMISSION_ERROR
    except ValidationError as e:
        print_error(str(e))
        exit_code = EXIT_VALIDATION_FAILED
    except (ImageIOError, TranscodeError, EncodeError) as e:
        print_error(str(e))
        exit_code = EXIT_CONVERSION_FAILED
    except Exception as e:
        logger.exception("Unexpected error")
        print_error(f"Unexpected error: {e}")
        exit_code = EXIT_GENERAL_ERROR

    sys.exit(exit_code)


def _convert_single_file(input_path: Path, options: Jp2Options, quiet: bool) -> int:
    """Creates the JP2 for a single image.

    Args:
        input_path: Path to the source image.
        options: Pipeline options.
        quiet: Whether to only output errors.

    Returns:
        Exit code.
    """
    if not quiet:
        click.echo(f"Creating JP2 for {input_path.name}...")

    result = create_jp2(ImageDescriptor(input_path), options)

    if not quiet:
        print_success(f"Created: {input_path.name} -> {result.path}")
        if result.source_tmp_path is not None:
            click.echo(f"  Intermediate TIFF kept at {result.source_tmp_path}")

    return EXIT_SUCCESS


def _convert_directory(
    input_dir: Path,
    output_dir: Path | None,
    *,
    force: bool,
    recursive: bool,
    extension: str,
    tmp_dir: Path | None,
    timeout: float | None,
    cmyk_profile: Path | None,
    quiet: bool,
) -> int:
    """Creates JP2s for all matching images in a directory.

    Returns:
        Exit code.
    """
    if not quiet:
        mode = "recursive" if recursive else "non-recursive"
        click.echo(f"Creating JP2s for {input_dir} ({mode}, *.{extension})...")

    results = generate_directory(
        input_dir,
        output_dir,
        extension=extension,
        recursive=recursive,
        overwrite=force,
        tmp_dir=tmp_dir,
        timeout=timeout,
        cmyk_profile=cmyk_profile,
        show_progress=not quiet,
    )

    successful = [r for r in results if r.success]
    failed = [r for r in results if not r.success]

    if not quiet:
        click.echo()
        click.echo("Summary:")
        print_success(f"{len(successful)} JP2 file(s) created")
    if failed:
        print_error(f"{len(failed)} file(s) failed")
        for result in failed:
            click.echo(f"  - {result.input_path.name}: {result.error}", err=True)
        return EXIT_CONVERSION_FAILED

    return EXIT_SUCCESS


if __name__ == "__main__":
    main()
