# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""JP2 resolution layer calculation."""

import math

# Longest edge (pixels) the smallest resolution level approximates
THUMBNAIL_DIMENSION = 96


def compute_layers(width: int, height: int) -> int:
    """Returns the number of JP2 resolution layers for an image.

    ``ceil(log2(max(width, height)) - log2(96)) + 1``, so the lowest
    resolution level is roughly a 96 pixel thumbnail. Images whose longest
    edge is 96 pixels or less, including degenerate sizes, get one layer.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        Layer count, at least 1.
    """
    longest = max(width, height)
    if longest <= THUMBNAIL_DIMENSION:
        return 1
    return max(1, math.ceil(math.log2(longest / THUMBNAIL_DIMENSION)) + 1)
