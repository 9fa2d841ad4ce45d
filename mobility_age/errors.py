from __future__ import annotations

from typing import Optional


class MobilityAgeError(RuntimeError):
    """Base class for every error raised by the mobility age library."""


class RetryableInputError(MobilityAgeError):
    """Raised when the report generator declined to assess the image.

    Callers should ask the user to recapture the photo rather than treat this
    as a bug. ``reason`` carries the human readable explanation.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason.strip()
        super().__init__(self.reason or "image could not be assessed")


class BlendUndefinedError(MobilityAgeError):
    """Raised when both blending weights are zero."""


class MissingFieldError(MobilityAgeError, ValueError):
    """Raised when pose, biological age or report text is absent or invalid."""


class ReportParseError(MobilityAgeError):
    """Wraps an unexpected failure inside the report parser."""

    def __init__(self, message: str, report_text: Optional[str] = None) -> None:
        self.report_text = report_text
        super().__init__(message)


class HistoryStoreError(MobilityAgeError):
    """Raised when an assessment record cannot be persisted."""


class MalformedSectionWarning(UserWarning):
    """A report section was missing or unreadable and a default was used."""


__all__ = [
    "MobilityAgeError",
    "RetryableInputError",
    "BlendUndefinedError",
    "MissingFieldError",
    "ReportParseError",
    "HistoryStoreError",
    "MalformedSectionWarning",
]
