"""Error types shared by the watermark, caption and publishing modules."""

from __future__ import annotations

from typing import Optional


class AutomatorError(Exception):
    """Base class for errors raised by the post automator."""


class DecodeError(AutomatorError):
    """Raised when an uploaded asset cannot be interpreted as an image."""


class ConfigurationError(AutomatorError):
    """Raised when a required credential or setting is missing."""


class RequestError(AutomatorError):
    """Raised for transport failures or non-success upstream responses.

    Attributes:
        status_code: HTTP status returned by the upstream service, if any.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(AutomatorError):
    """Raised when required caption parameters are missing."""
