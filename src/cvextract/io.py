"""
I/O utilities for the text extraction pipeline.

Handles:
- PDF loading from bytes or disk (PyMuPDF)
- Positioned glyph run extraction per page
- Page rasterization for OCR and preview (pdf2image / poppler)
- Image and JSON output
"""

import json
import logging
import re
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, List, Tuple, Union

import fitz  # PyMuPDF
import numpy as np

from .errors import LoadError, RenderError
from .layout import PositionedGlyphRun

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


# ============================================================================
# Document Loading
# ============================================================================

def read_pdf_bytes(pdf_path: Union[str, Path]) -> bytes:
    """
    Read the raw bytes of a PDF file.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")
    return pdf_path.read_bytes()


class PDFPage:
    """A single page of a loaded ``PDFDocument`` (1-indexed)."""

    def __init__(self, document: "PDFDocument", number: int, page: fitz.Page):
        self.document = document
        self.number = number
        self._page = page

    def viewport(self, scale: float = 1.0) -> Tuple[float, float]:
        """Page size in page units multiplied by ``scale``."""
        rect = self._page.rect
        return rect.width * scale, rect.height * scale

    def glyph_runs(self) -> List[PositionedGlyphRun]:
        """
        Extract the positioned text runs of the page.

        One run per PyMuPDF span. Coordinates are converted to PDF user
        space, with ``y`` measured upwards from the bottom edge.

        Returns:
            List of runs in content-stream order (possibly empty)
        """
        page_height = self._page.rect.height
        text_dict = self._page.get_text("dict")
        runs = []

        for block in text_dict.get("blocks", []):
            # Skip image blocks
            if block.get("type") != 0:
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    text = _WHITESPACE.sub(" ", span.get("text", ""))
                    if not text:
                        continue
                    x0, _, x1, _ = span.get("bbox", (0, 0, 0, 0))
                    origin_x, origin_y = span.get("origin", (x0, 0))
                    runs.append(PositionedGlyphRun(
                        text=text,
                        x=float(origin_x),
                        y=float(page_height - origin_y),
                        width=float(x1 - x0),
                        font_size=float(span.get("size", 0.0)),
                    ))

        logger.debug(f"Page {self.number}: {len(runs)} glyph runs")
        return runs

    def render(self, scale: float = 3.0) -> np.ndarray:
        """Rasterize the page; see ``render_page``."""
        return render_page(self.document.data, self.number, scale)


class PDFDocument:
    """
    A PDF document opened from an in-memory byte buffer.

    Use as a context manager, or call ``close()`` when done.
    """

    def __init__(self, data: bytes, doc: fitz.Document):
        self.data = data
        self._doc = doc

    @classmethod
    def from_bytes(cls, data: bytes) -> "PDFDocument":
        """
        Open a PDF from raw bytes.

        Raises:
            LoadError: If the buffer is empty or not a parseable PDF
        """
        if not data:
            raise LoadError("Empty PDF buffer")
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise LoadError(f"Failed to parse PDF: {e}") from e
        if not doc.is_pdf:
            doc.close()
            raise LoadError("Buffer is not a PDF document")

        logger.info(f"Loaded PDF with {doc.page_count} page(s)")
        return cls(data, doc)

    @classmethod
    def from_path(cls, pdf_path: Union[str, Path]) -> "PDFDocument":
        """Open a PDF file from disk."""
        return cls.from_bytes(read_pdf_bytes(pdf_path))

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def get_page(self, number: int) -> PDFPage:
        """
        Get a page handle.

        Args:
            number: 1-based page number

        Raises:
            IndexError: If the page number is out of range
        """
        if number < 1 or number > self.page_count:
            raise IndexError(
                f"Page {number} out of range (document has {self.page_count} pages)"
            )
        return PDFPage(self, number, self._doc.load_page(number - 1))

    def close(self):
        if not self._doc.is_closed:
            self._doc.close()

    def __enter__(self) -> "PDFDocument":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        return f"PDFDocument(pages={self.page_count}, bytes={len(self.data)})"


# ============================================================================
# Page Rasterization
# ============================================================================

def _flatten_on_white(pil_image) -> np.ndarray:
    """Composite a PIL image onto an opaque white RGB canvas."""
    from PIL import Image

    canvas = Image.new("RGB", pil_image.size, (255, 255, 255))
    if "A" in pil_image.getbands():
        canvas.paste(pil_image.convert("RGBA"), mask=pil_image.getchannel("A"))
    else:
        canvas.paste(pil_image.convert("RGB"))
    return np.array(canvas)


def render_page(pdf_bytes: bytes, page_number: int, scale: float = 3.0) -> np.ndarray:
    """
    Render one PDF page to an RGB image using pdf2image (poppler backend).

    Args:
        pdf_bytes: Raw PDF bytes
        page_number: 1-based page number
        scale: Multiple of the page size in page units (1.0 = 72 DPI)

    Returns:
        Numpy array (H, W, 3), uint8, on an opaque white background

    Raises:
        RenderError: If poppler fails or the page produces no image
    """
    try:
        from pdf2image import convert_from_bytes
        from pdf2image.exceptions import (
            PDFInfoNotInstalledError,
            PDFPageCountError,
            PDFPopplerTimeoutError,
            PDFSyntaxError,
        )
    except ImportError:
        raise ImportError(
            "pdf2image is required. Install with: pip install pdf2image\n"
            "Also ensure poppler is installed on your system."
        )

    dpi = max(1, int(round(72 * scale)))
    try:
        pil_images = convert_from_bytes(
            pdf_bytes,
            dpi=dpi,
            first_page=page_number,
            last_page=page_number,
        )
    except (PDFInfoNotInstalledError, PDFPageCountError,
            PDFPopplerTimeoutError, PDFSyntaxError) as e:
        raise RenderError(f"Failed to render page {page_number}: {e}") from e

    if not pil_images:
        raise RenderError(f"Page {page_number} produced no image")

    image = _flatten_on_white(pil_images[0])
    logger.debug(f"Rendered page {page_number} at {dpi} DPI: {image.shape[1]}x{image.shape[0]}")
    return image


def render_pages(pdf_bytes: bytes, scale: float = 1.2) -> List[np.ndarray]:
    """
    Render every page of a document, typically at a low preview scale.

    Args:
        pdf_bytes: Raw PDF bytes
        scale: Render scale (1.0 = 72 DPI)

    Returns:
        List of RGB images, one per page
    """
    with PDFDocument.from_bytes(pdf_bytes) as document:
        page_count = document.page_count
    return [render_page(pdf_bytes, number, scale) for number in range(1, page_count + 1)]


# ============================================================================
# Output
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def save_image(image: np.ndarray, output_path: Union[str, Path]) -> Path:
    """
    Save an RGB or grayscale image to file.

    Args:
        image: Numpy array (RGB, RGBA or grayscale)
        output_path: Destination path; the extension selects the format

    Returns:
        Path to the saved image
    """
    import cv2

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if image.ndim == 3 and image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)
    elif image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)

    if not cv2.imwrite(str(output_path), image):
        raise IOError(f"Could not write image: {output_path}")

    logger.debug(f"Saved image: {output_path}")
    return output_path


class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles dataclasses, enums and paths."""

    def default(self, obj):
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def dump_json(data: Any, indent: int = 2) -> str:
    """Serialize data to a JSON string with ``EnhancedJSONEncoder``."""
    return json.dumps(data, indent=indent, ensure_ascii=False, cls=EnhancedJSONEncoder)
