"""
Pipeline errors.

Only whole-video failures are exceptions. A frame without a detection or a
keypoint below the confidence gate is an ordinary `None` reading.
"""


class AnalysisError(Exception):
    """Base class for failures that abort the analysis of a video."""


class DecodeError(AnalysisError):
    """The video could not be opened or produced no frames."""


class EncodeError(AnalysisError):
    """The annotated output video could not be written."""
