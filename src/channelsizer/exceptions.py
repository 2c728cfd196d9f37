"""
channel-sizer exceptions.

All exceptions inherit from ChannelSizerError so callers can catch
everything raised by the package in one place.
"""


class ChannelSizerError(Exception):
    """Base exception for all channel-sizer errors."""
    pass


class InvalidInputError(ChannelSizerError, ValueError):
    """Raised when a value handed to a calculator is out of its domain
    (non-positive, non-finite, negative geometry)."""
    pass


class SizingError(ChannelSizerError):
    """Raised when a channel cannot be sized for the given target flow."""
    pass


class IdfLookupError(ChannelSizerError, LookupError):
    """Raised when no IDF constants exist for a return period."""
    pass


class InputTableError(ChannelSizerError):
    """Raised when an input table cannot be read or fails validation."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or []
