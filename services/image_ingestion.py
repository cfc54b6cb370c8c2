"""
Image ingestion service

Turns an uploaded photo into a preview reference plus a base64 payload and
media type ready to be sent to Gemini.
"""

from dataclasses import dataclass
from io import BytesIO

import structlog
from PIL import Image, UnidentifiedImageError

from .errors import IngestionError, ValidationError
from .utils import DEFAULT_MIME_TYPE, encode_base64

logger = structlog.get_logger(__name__)

# Types offered by the page's file picker
ACCEPTED_MIME_TYPES = ("image/png", "image/jpeg", "image/webp")

FORMAT_TO_MIME = {
    'JPEG': 'image/jpeg',
    'PNG': 'image/png',
    'GIF': 'image/gif',
    'BMP': 'image/bmp',
    'WEBP': 'image/webp',
}

MIN_DIMENSION = 10
MAX_DIMENSION = 10000

READ_FAILURE_MESSAGE = "Failed to read the image file."
TOO_LARGE_MESSAGE = "Image dimensions too large"


@dataclass(frozen=True)
class IngestedImage:
    """Result of a successful ingestion"""

    filename: str
    preview_url: str
    base64_data: str
    mime_type: str


def is_image_content_type(content_type) -> bool:
    """Check that an upload declares an image content type"""
    return bool(content_type) and content_type.lower().startswith("image/")


def detect_media_type(image_bytes: bytes, declared_type=None) -> str:
    """
    Detect image MIME type from file contents.

    Args:
        image_bytes: Raw image bytes
        declared_type: Content type the browser sent with the upload

    Returns:
        MIME type string (e.g., 'image/jpeg'), application/octet-stream
        when nothing can be determined
    """
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            mime_type = FORMAT_TO_MIME.get(img.format)
    except Image.DecompressionBombError as e:
        raise IngestionError(TOO_LARGE_MESSAGE) from e
    except (UnidentifiedImageError, OSError):
        mime_type = None

    if not mime_type:
        mime_type = declared_type or DEFAULT_MIME_TYPE

    return mime_type


def validate_image_bytes(image_bytes: bytes) -> None:
    """
    Validate that the bytes decode as an image of reasonable size.

    Raises:
        IngestionError: If the image is unreadable or its dimensions are out of range
    """
    if not image_bytes:
        raise IngestionError(READ_FAILURE_MESSAGE)

    try:
        with Image.open(BytesIO(image_bytes)) as img:
            img.verify()

        # Re-open (verify leaves the image unusable)
        with Image.open(BytesIO(image_bytes)) as img:
            width, height = img.size
    except Image.DecompressionBombError as e:
        logger.warning("Uploaded image exceeds the pixel limit", error=str(e))
        raise IngestionError(TOO_LARGE_MESSAGE) from e
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        logger.warning("Uploaded file is not a readable image", error=str(e))
        raise IngestionError(READ_FAILURE_MESSAGE) from e

    if width < MIN_DIMENSION or height < MIN_DIMENSION:
        raise IngestionError("Image dimensions too small")
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise IngestionError(TOO_LARGE_MESSAGE)


def ingest_upload(stream, filename, content_type, preview_store) -> IngestedImage:
    """
    Read an uploaded photo and prepare it for display and transport.

    Nothing is registered with the preview store unless every check passes,
    so a failed ingestion leaves no trace.

    Args:
        stream: File-like object with the upload contents
        filename: Name the browser sent for the file
        content_type: Declared content type of the upload
        preview_store: PreviewStore issuing the preview reference

    Returns:
        IngestedImage

    Raises:
        ValidationError: If the upload does not declare an image type
        IngestionError: If the file cannot be read as an image
    """
    if not is_image_content_type(content_type):
        raise ValidationError("Please select an image file.")

    try:
        image_bytes = stream.read()
    except OSError as e:
        logger.warning("Failed to read upload stream", filename=filename, error=str(e))
        raise IngestionError(READ_FAILURE_MESSAGE) from e

    validate_image_bytes(image_bytes)

    mime_type = detect_media_type(image_bytes, content_type)
    base64_data = encode_base64(image_bytes)
    preview_url = preview_store.create(image_bytes, mime_type)

    logger.info(
        "Image ingested",
        filename=filename,
        mime_type=mime_type,
        size_bytes=len(image_bytes),
    )

    return IngestedImage(
        filename=filename,
        preview_url=preview_url,
        base64_data=base64_data,
        mime_type=mime_type,
    )
