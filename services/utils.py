"""
Utility functions for image payloads

Helpers for moving image bytes between base64 text and data URLs.
"""

import base64
import binascii
import re

DEFAULT_MIME_TYPE = "application/octet-stream"

_DATA_URL_HEADER = re.compile(r":(.*?);")


def encode_base64(data):
    """
    Encodes binary data as base64 text.

    Args:
        data: Bytes to encode (str is returned unchanged)

    Returns:
        str: ASCII base64 text
    """
    if isinstance(data, str):
        return data
    return base64.b64encode(data).decode("ascii")


def decode_base64(text):
    """
    Decodes base64 text back to bytes.

    Raises:
        ValueError: If the text is not valid base64
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


def to_data_url(base64_data, mime_type="image/png"):
    """Wraps a base64 payload into a directly displayable data URL"""
    return f"data:{mime_type};base64,{base64_data}"


def parse_data_url(data_url):
    """
    Splits a data URL into its media type and base64 payload.

    Args:
        data_url: String like "data:image/png;base64,iVBOR..."

    Returns:
        tuple: (mime_type, base64_data). The media type falls back to
        application/octet-stream when the header does not name one.

    Raises:
        ValueError: If the string is not a data URL
    """
    if not data_url or not data_url.startswith("data:") or "," not in data_url:
        raise ValueError("Not a data URL")

    header, base64_data = data_url.split(",", 1)
    match = _DATA_URL_HEADER.search(header)
    mime_type = match.group(1) if match and match.group(1) else DEFAULT_MIME_TYPE

    return mime_type, base64_data
