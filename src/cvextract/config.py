"""
Configuration and constants for the text extraction pipeline.

This module provides:
- Layout reconstruction thresholds
- Image preprocessing parameters
- OCR engine settings
- Pipeline-level settings (fallback threshold, page separator)
"""

import os
from dataclasses import dataclass, field
from typing import List
import logging

logger = logging.getLogger("cvextract")


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class LayoutConfig:
    """Layout reconstruction thresholds (all in PDF page units)."""
    default_font_size: float = 10.0
    # Runs within avg_font_size * factor of each other share a line
    line_threshold_factor: float = 0.4
    min_line_threshold: float = 2.0
    # Column detection, as fractions of half the page width
    left_column_limit: float = 0.6
    right_column_limit: float = 0.8
    min_column_lines: int = 3
    min_column_ratio: float = 0.25
    # Two-column emission
    full_width_span: float = 0.6  # fraction of the full page width
    left_bucket_limit: float = 0.7  # fraction of half the page width
    # Intra-line spacing, as multiples of the estimated space width
    space_width_factor: float = 0.3
    same_word_gap: float = 0.5
    tab_gap: float = 6.0
    tab_separator: str = "    "


@dataclass
class ImageConfig:
    """Image preprocessing configuration."""
    low_percentile: float = 0.02
    high_percentile: float = 0.98
    gamma: float = 0.85


@dataclass
class OCRConfig:
    """OCR configuration."""
    languages: List[str] = field(default_factory=lambda: ["fra", "eng"])
    # PSM 3 = fully automatic page segmentation
    page_segmentation_mode: int = 3
    preserve_spacing: bool = True
    min_word_confidence: float = 30.0
    render_scale: float = 3.0
    tesseract_cmd: str = ""


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    image: ImageConfig = field(default_factory=ImageConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)

    # Below this many characters of trimmed text the OCR path is used
    min_text_threshold: int = 80
    page_separator: str = "\n---\n"
    preview_scale: float = 1.2
    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    min_text = os.environ.get("CVEXTRACT_MIN_TEXT")
    if min_text:
        try:
            config.min_text_threshold = int(min_text)
        except ValueError:
            logger.warning(f"Ignoring invalid CVEXTRACT_MIN_TEXT: {min_text!r}")

    langs = os.environ.get("CVEXTRACT_OCR_LANGS")
    if langs:
        config.ocr.languages = [lang for lang in langs.split("+") if lang]

    scale = os.environ.get("CVEXTRACT_OCR_SCALE")
    if scale:
        try:
            config.ocr.render_scale = float(scale)
        except ValueError:
            logger.warning(f"Ignoring invalid CVEXTRACT_OCR_SCALE: {scale!r}")

    if os.environ.get("CVEXTRACT_DEBUG", "").lower() == "true":
        config.debug_mode = True

    config.ocr.tesseract_cmd = os.environ.get("TESSERACT_CMD", "")

    return config
