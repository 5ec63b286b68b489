"""
Exception types raised by the sprite designer library.
"""


class SpriteDesignerError(RuntimeError):
    """Base exception for sprite designer errors."""
    pass


class ProjectFormatError(SpriteDesignerError, ValueError):
    """Raised when a project snapshot is missing required fields or has unknown values."""
    pass


class DataUrlError(SpriteDesignerError, ValueError):
    """Raised when a data URL is malformed or carries an unsupported image type."""
    pass


class ImageDecodeError(SpriteDesignerError):
    """
    Raised when an image source cannot be read or decoded.

    Attributes:
        source: The path or URL that failed to decode (data URLs are abbreviated).
    """
    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class ExportError(SpriteDesignerError):
    """Raised when an output image cannot be exported."""
    pass


def error_message(error: BaseException) -> str:
    """Text to show a user for an error, falling back to its repr when it has no message."""
    message = str(error)
    if message:
        return message
    return repr(error)
