"""
Pipeline orchestrator for PDF text extraction.

Tries the text layer first; if it yields too little text the whole
document goes through OCR instead. The result is always normalized.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .config import PipelineConfig, get_config
from .io import PDFDocument, read_pdf_bytes
from .layout import LayoutTextExtractor
from .normalize import normalize_text
from .ocr_text import OCRExtractor, RecognizerFactory
from .progress import ProgressCallback, ProgressPhase, emit

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes and Enums
# ============================================================================

class ExtractionMethod(str, Enum):
    TEXT = "text"
    OCR = "ocr"


class PipelineState(Enum):
    IDLE = "idle"
    LOADING_DOCUMENT = "loading_document"
    EXTRACTING_TEXT = "extracting_text"
    INITIALIZING_OCR = "initializing_ocr"
    RECOGNIZING_PAGES = "recognizing_pages"
    NORMALIZING = "normalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ExtractionOutcome:
    """Final result of extracting one document."""
    text: str
    num_pages: int
    method: ExtractionMethod

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "numPages": self.num_pages,
            "method": self.method.value,
        }


# ============================================================================
# Pipeline
# ============================================================================

class TextExtractionPipeline:
    """
    Extracts reading-order text from one PDF document.

    An instance handles a single document: ``run`` may be called once.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        recognizer_factory: Optional[RecognizerFactory] = None,
        on_progress: Optional[ProgressCallback] = None
    ):
        self.config = config or get_config()
        self.recognizer_factory = recognizer_factory
        self.on_progress = on_progress
        self.state = PipelineState.IDLE

    def _enter(self, state: PipelineState):
        logger.debug(f"Pipeline state: {self.state.value} -> {state.value}")
        self.state = state

    def run(self, pdf_bytes: bytes) -> ExtractionOutcome:
        """
        Extract text from a PDF byte buffer.

        Args:
            pdf_bytes: Raw PDF file contents

        Returns:
            ExtractionOutcome with normalized text, page count and method

        Raises:
            LoadError: If the buffer is not a parseable PDF
            RenderError: If a page cannot be rasterized for OCR
            RecognitionError: If the OCR engine fails
            RuntimeError: If this pipeline instance was already used
        """
        if self.state is not PipelineState.IDLE:
            raise RuntimeError("TextExtractionPipeline instances are single-use")

        try:
            self._enter(PipelineState.LOADING_DOCUMENT)
            with PDFDocument.from_bytes(pdf_bytes) as document:
                outcome = self._extract(document)
        except Exception:
            self._enter(PipelineState.FAILED)
            raise

        self._enter(PipelineState.DONE)
        return outcome

    def _extract(self, document: PDFDocument) -> ExtractionOutcome:
        num_pages = document.page_count

        self._enter(PipelineState.EXTRACTING_TEXT)
        emit(self.on_progress, ProgressPhase.TEXT, 0)
        layout = LayoutTextExtractor(self.config.layout, self.config.page_separator)
        text = layout.extract_document(document)
        emit(self.on_progress, ProgressPhase.TEXT, 100)

        text_length = len(text.strip())
        if text_length >= self.config.min_text_threshold:
            logger.info(f"Text layer yielded {text_length} characters from {num_pages} page(s)")
            method = ExtractionMethod.TEXT
        else:
            logger.info(
                f"Text layer yielded {text_length} characters "
                f"(< {self.config.min_text_threshold}); falling back to OCR"
            )
            self._enter(PipelineState.INITIALIZING_OCR)
            emit(self.on_progress, ProgressPhase.OCR_INIT, 0, page=0, total_pages=num_pages)
            ocr = OCRExtractor(self.config, self.recognizer_factory)
            self._enter(PipelineState.RECOGNIZING_PAGES)
            text = ocr.extract(document, self.on_progress)
            method = ExtractionMethod.OCR

        self._enter(PipelineState.NORMALIZING)
        return ExtractionOutcome(
            text=normalize_text(text),
            num_pages=num_pages,
            method=method
        )


# ============================================================================
# Convenience Functions
# ============================================================================

def extract_text_from_pdf(
    pdf_bytes: bytes,
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[PipelineConfig] = None,
    recognizer_factory: Optional[RecognizerFactory] = None
) -> ExtractionOutcome:
    """Extract text from PDF bytes, falling back to OCR for image-only documents."""
    pipeline = TextExtractionPipeline(
        config=config,
        recognizer_factory=recognizer_factory,
        on_progress=on_progress
    )
    return pipeline.run(pdf_bytes)


def extract_text_from_file(
    pdf_path: Union[str, Path],
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[PipelineConfig] = None,
    recognizer_factory: Optional[RecognizerFactory] = None
) -> ExtractionOutcome:
    """Read a PDF from disk and extract its text."""
    return extract_text_from_pdf(
        read_pdf_bytes(pdf_path),
        on_progress=on_progress,
        config=config,
        recognizer_factory=recognizer_factory
    )
