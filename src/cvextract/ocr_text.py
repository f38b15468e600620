"""
Text OCR module for the text extraction pipeline.

Provides:
- Block / paragraph / line / word OCR result model
- Tesseract recognizer (pytesseract)
- Confidence-filtered text reconstruction
- Whole-document OCR with scoped recognizer lifetime
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import numpy as np

from .config import PipelineConfig
from .errors import RecognitionError
from .images import preprocess_for_ocr
from .progress import ProgressCallback, ProgressPhase, emit, percent

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class OCRWord:
    """A recognized word; confidence is on a 0-100 scale."""
    text: str
    confidence: float


@dataclass
class OCRLine:
    words: List[OCRWord] = field(default_factory=list)


@dataclass
class OCRParagraph:
    lines: List[OCRLine] = field(default_factory=list)


@dataclass
class OCRBlock:
    paragraphs: List[OCRParagraph] = field(default_factory=list)


@dataclass
class OCRResult:
    """Structured recognition output for one page."""
    blocks: List[OCRBlock] = field(default_factory=list)
    raw_text: str = ""

    @property
    def words(self) -> List[OCRWord]:
        return [
            word
            for block in self.blocks
            for paragraph in block.paragraphs
            for line in paragraph.lines
            for word in line.words
        ]

    @property
    def confidence(self) -> float:
        """Mean word confidence (0 when nothing was recognized)."""
        words = self.words
        if not words:
            return 0.0
        return float(np.mean([w.confidence for w in words]))


# ============================================================================
# Text Reconstruction
# ============================================================================

def reconstruct_text(result: OCRResult, min_confidence: float = 30.0) -> str:
    """
    Rebuild readable text from a structured OCR result.

    Words at or below ``min_confidence`` are dropped. Lines within a
    paragraph are joined with newlines and paragraphs are separated by
    a blank line. Falls back to ``raw_text`` when there is no structure
    or nothing survives the filter.

    Args:
        result: OCR result for one page
        min_confidence: Exclusive lower bound on word confidence

    Returns:
        Page text
    """
    if not result.blocks:
        return result.raw_text or ""

    out = []
    for block in result.blocks:
        for paragraph in block.paragraphs:
            line_texts = []
            for line in paragraph.lines:
                words = [
                    w.text.strip() for w in line.words
                    if w.confidence > min_confidence and w.text and w.text.strip()
                ]
                line_text = " ".join(words).strip()
                if line_text:
                    line_texts.append(line_text)

            paragraph_text = "\n".join(line_texts).strip()
            if paragraph_text:
                out.append(paragraph_text + "\n\n")

    return "".join(out) or result.raw_text or ""


def parse_tesseract_data(data: Dict[str, List[Any]]) -> OCRResult:
    """
    Build an OCRResult from ``pytesseract.image_to_data`` dict output.

    Word rows are grouped by (block_num, par_num, line_num) in the order
    Tesseract reports them. ``raw_text`` contains every word regardless
    of confidence.
    """
    result = OCRResult()
    blocks: Dict[Any, OCRBlock] = {}
    paragraphs: Dict[Any, OCRParagraph] = {}
    lines: Dict[Any, OCRLine] = {}

    texts = data.get("text") or []
    levels = data.get("level") or [5] * len(texts)

    for i, raw in enumerate(texts):
        text = str(raw or "").strip()
        if int(levels[i]) != 5 or not text:
            continue

        try:
            conf = float(data["conf"][i])
        except (KeyError, IndexError, TypeError, ValueError):
            conf = -1.0

        block_key = data["block_num"][i]
        par_key = (block_key, data["par_num"][i])
        line_key = par_key + (data["line_num"][i],)

        if block_key not in blocks:
            blocks[block_key] = OCRBlock()
            result.blocks.append(blocks[block_key])
        if par_key not in paragraphs:
            paragraphs[par_key] = OCRParagraph()
            blocks[block_key].paragraphs.append(paragraphs[par_key])
        if line_key not in lines:
            lines[line_key] = OCRLine()
            paragraphs[par_key].lines.append(lines[line_key])

        lines[line_key].words.append(OCRWord(text=text, confidence=conf))

    result.raw_text = _raw_text(result)
    return result


def _raw_text(result: OCRResult) -> str:
    paragraphs = []
    for block in result.blocks:
        for paragraph in block.paragraphs:
            paragraphs.append("\n".join(
                " ".join(w.text for w in line.words) for line in paragraph.lines
            ))
    return "\n\n".join(paragraphs) + "\n" if paragraphs else ""


# ============================================================================
# Recognizers
# ============================================================================

StepProgress = Callable[[float], None]


class Recognizer:
    """
    Interface for an OCR engine instance.

    One instance serves every page of one document and is released
    once the document is done.
    """

    def configure(self, page_segmentation_mode: int = 3, preserve_spacing: bool = True):
        raise NotImplementedError

    def recognize(self, image: np.ndarray, progress: Optional[StepProgress] = None) -> OCRResult:
        """Recognize one page; ``progress`` receives 0-1 fractions."""
        raise NotImplementedError

    def release(self):
        pass


class TesseractRecognizer(Recognizer):
    """OCR using Tesseract through pytesseract."""

    def __init__(self, languages: Sequence[str] = ("fra", "eng"), tesseract_cmd: str = ""):
        try:
            import pytesseract
        except ImportError:
            raise ImportError(
                "pytesseract is required. Install with: pip install pytesseract\n"
                "Also install Tesseract: https://github.com/tesseract-ocr/tesseract"
            )
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

        self.pytesseract = pytesseract
        self.languages = list(languages)
        self.page_segmentation_mode = 3
        self.preserve_spacing = True
        self._released = False

    @classmethod
    def initialize(cls, languages: Sequence[str] = ("fra", "eng"), tesseract_cmd: str = "") -> "TesseractRecognizer":
        """
        Create a recognizer after checking the Tesseract installation.

        Raises:
            RecognitionError: If Tesseract or a requested language is missing
        """
        recognizer = cls(languages, tesseract_cmd)
        try:
            version = recognizer.pytesseract.get_tesseract_version()
            available = set(recognizer.pytesseract.get_languages(config=""))
        except (RuntimeError, OSError) as e:
            raise RecognitionError(f"Tesseract not available: {e}") from e

        missing = [lang for lang in recognizer.languages if lang not in available]
        if missing:
            raise RecognitionError(
                f"Tesseract language data not installed: {', '.join(missing)}"
            )

        logger.info(f"Initialized Tesseract {version} ({recognizer.lang})")
        return recognizer

    @property
    def lang(self) -> str:
        return "+".join(self.languages)

    @property
    def config_string(self) -> str:
        config = f"--psm {self.page_segmentation_mode}"
        if self.preserve_spacing:
            config += " -c preserve_interword_spaces=1"
        return config

    def configure(self, page_segmentation_mode: int = 3, preserve_spacing: bool = True):
        self.page_segmentation_mode = page_segmentation_mode
        self.preserve_spacing = preserve_spacing

    def recognize(self, image: np.ndarray, progress: Optional[StepProgress] = None) -> OCRResult:
        """Recognize text using Tesseract."""
        if self._released:
            raise RecognitionError("Recognizer has already been released")

        if progress:
            progress(0.0)
        try:
            data = self.pytesseract.image_to_data(
                image,
                lang=self.lang,
                config=self.config_string,
                output_type=self.pytesseract.Output.DICT
            )
        except (RuntimeError, OSError) as e:
            raise RecognitionError(f"Tesseract error: {e}") from e
        if progress:
            progress(1.0)

        return parse_tesseract_data(data)

    def release(self):
        if not self._released:
            self._released = True
            logger.debug("Released Tesseract recognizer")


RecognizerFactory = Callable[[Sequence[str]], Recognizer]


def default_recognizer_factory(config: PipelineConfig) -> RecognizerFactory:
    """Factory creating Tesseract recognizers from the pipeline config."""
    def factory(languages: Sequence[str]) -> Recognizer:
        return TesseractRecognizer.initialize(languages, config.ocr.tesseract_cmd)
    return factory


@contextmanager
def open_recognizer(
    factory: RecognizerFactory,
    languages: Sequence[str],
    page_segmentation_mode: int = 3,
    preserve_spacing: bool = True
) -> Iterator[Recognizer]:
    """
    Acquire a configured recognizer; it is released on every exit path.
    """
    recognizer = factory(languages)
    try:
        recognizer.configure(
            page_segmentation_mode=page_segmentation_mode,
            preserve_spacing=preserve_spacing
        )
        yield recognizer
    finally:
        recognizer.release()


# ============================================================================
# Document OCR
# ============================================================================

class OCRExtractor:
    """
    OCR extraction path.

    Renders every page at high resolution, preprocesses it and runs one
    shared recognizer over the pages in order.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        recognizer_factory: Optional[RecognizerFactory] = None
    ):
        self.config = config or PipelineConfig()
        self.recognizer_factory = recognizer_factory or default_recognizer_factory(self.config)

    def extract(self, document, on_progress: Optional[ProgressCallback] = None) -> str:
        """
        Run OCR over every page of a ``PDFDocument``.

        Args:
            document: Loaded document
            on_progress: Optional progress consumer

        Returns:
            Page texts joined with the page separator

        Raises:
            RenderError: If a page cannot be rasterized
            RecognitionError: If the engine fails
        """
        ocr = self.config.ocr
        total = document.page_count
        page_texts = []

        with open_recognizer(
            self.recognizer_factory,
            ocr.languages,
            page_segmentation_mode=ocr.page_segmentation_mode,
            preserve_spacing=ocr.preserve_spacing
        ) as recognizer:
            for page_number in range(1, total + 1):
                page_texts.append(
                    self.recognize_page(recognizer, document, page_number, on_progress)
                )

        emit(on_progress, ProgressPhase.OCR_DONE, 100, page=total, total_pages=total)
        return self.config.page_separator.join(page_texts)

    def recognize_page(
        self,
        recognizer: Recognizer,
        document,
        page_number: int,
        on_progress: Optional[ProgressCallback] = None
    ) -> str:
        """Render, preprocess and recognize a single page."""
        total = document.page_count
        emit(on_progress, ProgressPhase.OCR_PAGE, percent((page_number - 1) / total),
             page=page_number, total_pages=total)

        def step(fraction: float):
            emit(on_progress, ProgressPhase.OCR_RECOGNIZE, percent(fraction),
                 page=page_number, total_pages=total)

        image = document.get_page(page_number).render(self.config.ocr.render_scale)
        preprocess_for_ocr(image, self.config.image)
        result = recognizer.recognize(image, progress=step)
        # The page buffer is not reused; drop it before the next page renders
        del image

        if not result.raw_text.strip() and not result.words:
            logger.info(f"Page {page_number}/{total}: no text recognized")
            return ""

        text = reconstruct_text(result, self.config.ocr.min_word_confidence)
        logger.info(
            f"Page {page_number}/{total}: {len(result.words)} words, "
            f"mean confidence {result.confidence:.1f}"
        )
        return text
