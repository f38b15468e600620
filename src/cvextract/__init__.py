"""
cvextract
=========

Reading-order text extraction for PDF documents such as CVs.

Main components:
- Document loading and glyph-run extraction (PyMuPDF)
- Layout reconstruction (lines, two-column pages)
- Page rasterization and OCR preprocessing
- Tesseract OCR with confidence filtering
- Text normalization
"""

__version__ = "1.0.0"
__author__ = "cvextract developers"

from .errors import ExtractionError, LoadError, RenderError, RecognitionError
from .layout import PositionedGlyphRun, LayoutTextExtractor, extract_page_text
from .normalize import normalize_text
from .progress import ProgressEvent, ProgressPhase
from .pipeline import (
    ExtractionMethod,
    ExtractionOutcome,
    TextExtractionPipeline,
    extract_text_from_file,
    extract_text_from_pdf,
)

__all__ = [
    # Errors
    "ExtractionError", "LoadError", "RenderError", "RecognitionError",
    # Layout
    "PositionedGlyphRun", "LayoutTextExtractor", "extract_page_text",
    # Normalization
    "normalize_text",
    # Pipeline
    "ProgressEvent", "ProgressPhase", "ExtractionMethod", "ExtractionOutcome",
    "TextExtractionPipeline", "extract_text_from_pdf", "extract_text_from_file",
]
