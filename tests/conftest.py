"""
Shared fixtures: in-memory PDFs and scripted OCR recognizers.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class FakeRecognizer:
    """Recognizer returning scripted results, one per page."""

    def __init__(self, results, fail_on_call=None):
        self.results = list(results)
        self.fail_on_call = fail_on_call
        self.configured = None
        self.images = []
        self.released = False

    def configure(self, page_segmentation_mode=3, preserve_spacing=True):
        self.configured = (page_segmentation_mode, preserve_spacing)

    def recognize(self, image, progress=None):
        from cvextract.errors import RecognitionError

        self.images.append(image.copy())
        if self.fail_on_call == len(self.images):
            raise RecognitionError("engine crashed")
        if progress:
            progress(0.0)
            progress(0.5)
            progress(1.0)
        return self.results[len(self.images) - 1]

    def release(self):
        self.released = True


class FakeRecognizerFactory:
    """Callable standing in for ``TesseractRecognizer.initialize``."""

    def __init__(self, results=(), fail_on_call=None):
        self.results = list(results)
        self.fail_on_call = fail_on_call
        self.calls = 0
        self.languages = None
        self.recognizer = None

    def __call__(self, languages):
        self.calls += 1
        self.languages = list(languages)
        self.recognizer = FakeRecognizer(self.results, self.fail_on_call)
        return self.recognizer


@pytest.fixture
def make_factory():
    return FakeRecognizerFactory


@pytest.fixture
def make_ocr_result():
    """
    Build an OCRResult with a single block.

    Each paragraph is a list of lines; each line a list of (text, confidence).
    """
    def build(paragraphs, raw_text=None):
        from cvextract.ocr_text import OCRBlock, OCRLine, OCRParagraph, OCRResult, OCRWord

        block = OCRBlock()
        for lines in paragraphs:
            paragraph = OCRParagraph()
            for words in lines:
                paragraph.lines.append(OCRLine(words=[OCRWord(t, c) for t, c in words]))
            block.paragraphs.append(paragraph)

        if raw_text is None:
            raw_text = "\n\n".join(
                "\n".join(" ".join(t for t, _ in words) for words in lines)
                for lines in paragraphs
            )
        return OCRResult(blocks=[block] if paragraphs else [], raw_text=raw_text)

    return build


@pytest.fixture
def make_pdf():
    """
    Build PDF bytes with PyMuPDF.

    ``pages`` is a list of pages; each page a list of (x, y_from_top, text)
    or (x, y_from_top, text, font_size) tuples.
    """
    def build(pages, width=595, height=842):
        import fitz

        doc = fitz.open()
        for items in pages:
            page = doc.new_page(width=width, height=height)
            for item in items:
                x, y, text = item[:3]
                size = item[3] if len(item) > 3 else 11
                page.insert_text((x, y), text, fontsize=size)
        data = doc.tobytes()
        doc.close()
        return data

    return build
