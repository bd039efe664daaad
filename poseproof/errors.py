# poseproof/errors.py
"""
Export failures.

Usage errors are raised before any decoding or canvas work. Decode and
encode failures are fatal for that export attempt; nothing is retried.
"""


class ExportError(Exception):
    """Base class for export failures."""


class InvalidExportOptions(ExportError, ValueError):
    """Quality, format, resolution or watermark options are out of range."""


class ImageDecodeError(ExportError):
    """A source image (or logo) could not be decoded."""


class EncodingError(ExportError):
    """The canvas could not be allocated or encoded."""
