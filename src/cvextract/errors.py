"""
Exceptions for the text extraction pipeline.

Falling below the minimum-text threshold is not an error: it is what
triggers the OCR fallback. Blank pages are not errors either.
"""


class ExtractionError(RuntimeError):
    """Base exception for all extraction pipeline errors."""
    pass


class LoadError(ExtractionError):
    """Raised when the input buffer is not a parseable PDF document."""
    pass


class RenderError(ExtractionError):
    """Raised when a page cannot be rasterized."""
    pass


class RecognitionError(ExtractionError):
    """Raised when the OCR engine fails to initialize or to process a page."""
    pass
