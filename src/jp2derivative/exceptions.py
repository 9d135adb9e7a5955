# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Custom exceptions for jp2derivative."""

from pathlib import Path


class Jp2DerivativeError(Exception):
    """Base exception for all jp2derivative errors."""


class NotFoundError(Jp2DerivativeError):
    """Source file is missing or is a directory."""


class ValidationError(Jp2DerivativeError):
    """Source image or requested output is not acceptable."""


class ImageIOError(Jp2DerivativeError):
    """Filesystem error on a temporary or output path.

    Attributes:
        path: The offending path, if known.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class TranscodeError(Jp2DerivativeError):
    """The intermediate TIFF could not be produced."""


class EncodeError(Jp2DerivativeError):
    """The JP2 encoder failed.

    Attributes:
        command: The encoder command line as an argument list.
        output: Captured stdout/stderr of the encoder process.
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.command = command or []
        self.output = output
