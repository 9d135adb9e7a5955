# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Content metadata XML for image objects.

Describes sets of related files (typically a TIFF master and its JP2
derivative) as resources of one repository object:

    <contentMetadata objectId="nx288wh8889" type="image">
      <resource id="nx288wh8889_1" sequence="1" type="image">
        <label>Image 1</label>
        <file id="foo.tif" mimetype="image/tiff" preserve="yes" ...>
          <imageData height="36" width="43"/>
          <checksum type="sha1">...</checksum>
          <checksum type="md5">...</checksum>
        </file>
        ...
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from lxml import etree

from .exceptions import NotFoundError
from .image import ImageDescriptor

logger = logging.getLogger(__name__)

# preserve / publish / shelve flags by mimetype
FILE_ATTRIBUTES: dict[str, dict[str, str]] = {
    "image/tiff": {"preserve": "yes", "publish": "no", "shelve": "no"},
    "image/jp2": {"preserve": "no", "publish": "yes", "shelve": "yes"},
    "default": {"preserve": "yes", "publish": "no", "shelve": "no"},
}


def _file_element(parent: etree._Element, path: Path) -> etree._Element:
    """Appends a <file> element describing one image."""
    image = ImageDescriptor(path)
    mimetype = image.mimetype or "application/octet-stream"
    attributes = FILE_ATTRIBUTES.get(mimetype, FILE_ATTRIBUTES["default"])

    file_elem = etree.SubElement(
        parent,
        "file",
        id=str(path),
        mimetype=mimetype,
        preserve=attributes["preserve"],
        publish=attributes["publish"],
        shelve=attributes["shelve"],
        size=str(image.filesize),
    )
    if image.is_valid_image:
        etree.SubElement(
            file_elem,
            "imageData",
            height=str(image.height),
            width=str(image.width),
        )
    sha1 = etree.SubElement(file_elem, "checksum", type="sha1")
    sha1.text = image.sha1
    md5 = etree.SubElement(file_elem, "checksum", type="md5")
    md5.text = image.md5
    return file_elem


def create_content_metadata(
    object_id: str,
    file_sets: Sequence[Sequence[str | Path]],
    *,
    content_type: str = "image",
) -> str:
    """Generates content metadata XML for a repository object.

    Each file set becomes one resource, numbered from 1 in the given
    order.

    Args:
        object_id: Identifier of the repository object.
        file_sets: Groups of files, e.g. ``[["foo.tif", "foo.jp2"]]``.
        content_type: Value of the ``type`` attributes.

    Returns:
        The XML document as a string.

    Raises:
        NotFoundError: If any listed file does not exist.
    """
    paths = [[Path(p) for p in file_set] for file_set in file_sets]
    missing = [str(p) for file_set in paths for p in file_set if not p.is_file()]
    if missing:
        raise NotFoundError(f"Files not found: {', '.join(missing)}")

    root = etree.Element("contentMetadata", objectId=object_id, type=content_type)
    for sequence, file_set in enumerate(paths, start=1):
        resource = etree.SubElement(
            root,
            "resource",
            id=f"{object_id}_{sequence}",
            sequence=str(sequence),
            type=content_type,
        )
        label = etree.SubElement(resource, "label")
        label.text = f"Image {sequence}"
        for path in file_set:
            _file_element(resource, path)

    logger.debug(
        "Content metadata for %s: %d resource(s)", object_id, len(paths)
    )
    return etree.tostring(
        root, pretty_print=True, xml_declaration=True, encoding="UTF-8"
    ).decode("utf-8")
