"""
Error types raised by the editor services.

All of them carry a message that is safe to show on the page.
"""


class PhotoEditorError(Exception):
    """Base class for editor failures"""


class IngestionError(PhotoEditorError):
    """An uploaded file could not be read as an image"""


class ValidationError(PhotoEditorError):
    """A request was made with missing or invalid input"""


class GenerationError(PhotoEditorError):
    """The image generation service failed or returned no image"""


class ShareUnsupportedError(PhotoEditorError):
    """The platform cannot share the generated image"""

    def __init__(self, message="Sharing this file type is not supported on your device."):
        super().__init__(message)


class GenerationInProgressError(ValidationError):
    """A generation was requested while another one is still running"""
