"""Exception hierarchy shared across the pixeltree package."""


class PixelTreeError(Exception):
    """Base exception for pixeltree errors."""

    pass


class ConfigError(PixelTreeError, ValueError):
    """Raised when configuration is missing or invalid."""

    pass


class ImageDecodeError(PixelTreeError):
    """Raised when an image file cannot be opened or decoded."""

    pass


class ChannelOpenError(PixelTreeError):
    """Raised when a transmission channel cannot be opened."""

    pass


class ChannelSendError(PixelTreeError):
    """Raised when a single packet transmission fails."""

    pass
