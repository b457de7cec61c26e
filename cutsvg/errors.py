"""Exception hierarchy for the conversion pipeline.

AIDEV-NOTE: Callers must be able to tell a failed conversion (exception)
apart from a successful one that produced fewer layers than requested
(ConversionResult with warnings). Never raise for "zero layers".
"""


class CutSvgError(Exception):
    """Base class for all cutsvg errors."""


class SettingsError(CutSvgError, ValueError):
    """Settings are out of range or malformed.

    Raised before any pixel work begins.
    """


class DecodeError(CutSvgError):
    """The input bytes could not be decoded as an image."""


class ConversionError(CutSvgError):
    """The conversion failed and produced no result."""


class TraceError(ConversionError):
    """The bitmap tracer rejected its input or failed."""
