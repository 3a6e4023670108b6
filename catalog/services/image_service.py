"""Image ingestion: turns client image inputs into stable image references.

Inline payloads (``data:image/jpeg;base64,...``) are decoded and written to
the upload directory; external URLs pass through untouched.
"""

import base64
import binascii
import logging
import re
import time
import uuid
from pathlib import Path

from catalog.utils.exceptions import InvalidImageFormatException

logger = logging.getLogger(__name__)

INLINE_PREFIXES = ("data:", "image/")
INLINE_PATTERN = re.compile(r"^(?:data:)?image/([A-Za-z0-9.+-]+);base64,(.*)$", re.DOTALL)
EXTENSION_ALIASES = {"jpeg": "jpg", "svg+xml": "svg", "x-icon": "ico"}


def is_inline_payload(value: str) -> bool:
    return value.startswith(INLINE_PREFIXES)


def parse_inline_payload(value: str, field: str | None = None) -> tuple[str, bytes]:
    """
    Split an inline payload into (MIME subtype, decoded bytes).

    Raises:
        InvalidImageFormatException: the tag is malformed or the data is not base64.
    """
    match = INLINE_PATTERN.match(value)
    if not match:
        raise InvalidImageFormatException(field=field)
    subtype, data = match.groups()
    try:
        content = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageFormatException("Image payload is not valid base64", field=field) from e
    return subtype.lower(), content


def extension_for(subtype: str) -> str:
    return EXTENSION_ALIASES.get(subtype, re.sub(r"[^a-z0-9]", "", subtype.split("+")[0]) or "bin")


class ImageStorage:
    """Resolves image inputs and owns the files written to ``upload_dir``."""

    def __init__(self, upload_dir: str | Path, url_prefix: str = "/uploads", persist_inline: bool = True):
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.url_prefix = url_prefix.rstrip("/")
        self.persist_inline = persist_inline

    def resolve(self, image_input: str, index: int) -> str:
        """Return the reference to store for one image input."""
        if not is_inline_payload(image_input):
            return image_input

        subtype, content = parse_inline_payload(image_input, field=f"images[{index}]")
        if not self.persist_inline:
            # Kept verbatim inside the record once validated
            return image_input
        return self.save(content, extension_for(subtype), index)

    def save(self, content: bytes, extension: str, index: int) -> str:
        filename = f"{int(time.time() * 1000)}-{index}-{uuid.uuid4().hex[:8]}.{extension}"
        (self.upload_dir / filename).write_bytes(content)
        logger.info(f"Stored image payload {filename} ({len(content)} bytes)")
        return f"{self.url_prefix}/{filename}"

    def is_local(self, reference: str) -> bool:
        return reference.startswith(self.url_prefix + "/")

    def path_for(self, reference: str) -> Path:
        return self.upload_dir / Path(reference).name

    def release(self, reference: str) -> None:
        """Delete the file behind a local reference. Missing files and external URLs are ignored."""
        if not self.is_local(reference):
            return
        path = self.path_for(reference)
        path.unlink(missing_ok=True)
        logger.info(f"Removed image payload {path.name}")
