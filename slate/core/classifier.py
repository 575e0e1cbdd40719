"""Content Classifier component for deciding the type of a capture."""

import base64
import io
import logging
from urllib.parse import urlparse

from .errors import Skip
from .models import Classification, ImageCapture, ItemType, TextCapture

logger = logging.getLogger(__name__)

LINK_SCHEMES: tuple[str, ...] = ('http', 'https')
IMAGE_DATA_URI_PREFIX = "data:image/png;base64,"


def is_valid_url(value: str) -> bool:
    """Check whether a string is an absolute http(s) URL.

    Args:
        value: Candidate string, already trimmed by the caller.

    Returns:
        True if the value parses as a URL with an http/https scheme and a host.
    """
    if not value or any(ch.isspace() for ch in value):
        return False

    # Scheme must be written in lowercase
    if not value.startswith(('http://', 'https://')):
        return False

    try:
        parsed = urlparse(value)
        # Accessing .port validates the port component
        parsed.port
    except ValueError:
        return False

    return parsed.scheme in LINK_SCHEMES and bool(parsed.hostname)


def encode_image(capture: ImageCapture) -> str:
    """Encode an image as a PNG data URI.

    Identical pixels in the same mode always produce the same string.
    """
    buffer = io.BytesIO()
    capture.image.save(buffer, format='PNG')
    encoded = base64.b64encode(buffer.getvalue()).decode('ascii')
    return IMAGE_DATA_URI_PREFIX + encoded


def classify(capture: TextCapture | ImageCapture) -> Classification:
    """Decide the semantic type and canonical content of a capture.

    Args:
        capture: Raw text or image capture.

    Returns:
        Classification with type and content.

    Raises:
        Skip: If the capture is empty and must not be stored.
    """
    if isinstance(capture, TextCapture):
        text = capture.text or ""
        trimmed = text.strip()
        if not trimmed:
            raise Skip("empty text capture")
        if is_valid_url(trimmed):
            return Classification(type=ItemType.LINK, content=text)
        return Classification(type=ItemType.TEXT, content=text)

    if isinstance(capture, ImageCapture):
        if capture.is_empty():
            raise Skip("empty image capture")
        return Classification(type=ItemType.IMAGE, content=encode_image(capture))

    raise TypeError(f"Unsupported capture type: {type(capture).__name__}")
