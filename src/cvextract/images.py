"""
Image preprocessing utilities for OCR input.

Provides:
- Grayscale conversion (ITU-R 601 luma)
- Percentile contrast stretching
- Gamma correction
- In-place preprocessing of a rendered page

All passes are deterministic functions of the pixel values.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from .config import ImageConfig

logger = logging.getLogger(__name__)


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


# ============================================================================
# Core Preprocessing Functions
# ============================================================================

def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert an RGB(A) image to 8-bit luminance.

    Uses ``0.299 R + 0.587 G + 0.114 B`` rounded to the nearest integer.
    Alpha is ignored.

    Args:
        image: Input image, (H, W), (H, W, 3) or (H, W, 4), uint8

    Returns:
        Grayscale image (H, W), uint8
    """
    if image.ndim == 2:
        return image.astype(np.uint8, copy=True)
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Unexpected image shape: {image.shape}")

    rgb = image[..., :3].astype(np.float64)
    gray = 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]
    return np.clip(_round_half_up(gray), 0, 255).astype(np.uint8)


def compute_histogram(gray: np.ndarray) -> np.ndarray:
    """256-bin histogram of a uint8 grayscale image."""
    return np.bincount(gray.ravel(), minlength=256)


def percentile_bounds(
    histogram: np.ndarray,
    low: float = 0.02,
    high: float = 0.98
) -> Tuple[int, int]:
    """
    Find the luminance values at the low and high percentiles.

    Each bound is the first bin at which the cumulative pixel count
    reaches the given fraction of the total.

    Args:
        histogram: 256-bin histogram
        low: Lower fraction (0.02 = 2nd percentile)
        high: Upper fraction (0.98 = 98th percentile)

    Returns:
        Tuple of (low_val, high_val)
    """
    total = int(histogram.sum())
    cumulative = np.cumsum(histogram)
    low_val = int(np.argmax(cumulative >= total * low))
    high_val = int(np.argmax(cumulative >= total * high))
    return low_val, high_val


def stretch_lut(low_val: int, high_val: int) -> np.ndarray:
    """Lookup table mapping [low_val, high_val] onto [0, 255]."""
    span = max(1, high_val - low_val)
    values = (np.arange(256, dtype=np.float64) - low_val) / span * 255
    return np.clip(_round_half_up(values), 0, 255).astype(np.uint8)


def gamma_lut(gamma: float = 0.85) -> np.ndarray:
    """Lookup table for ``255 * (v / 255) ** gamma``."""
    values = 255 * np.power(np.arange(256, dtype=np.float64) / 255, gamma)
    return np.clip(_round_half_up(values), 0, 255).astype(np.uint8)


def contrast_stretch(
    gray: np.ndarray,
    low: float = 0.02,
    high: float = 0.98
) -> np.ndarray:
    """
    Stretch the observed luminance range to the full 0-255 range.

    Args:
        gray: Grayscale image, uint8
        low: Lower percentile fraction
        high: Upper percentile fraction

    Returns:
        New contrast-stretched image
    """
    import cv2

    low_val, high_val = percentile_bounds(compute_histogram(gray), low, high)
    return cv2.LUT(gray, stretch_lut(low_val, high_val))


def gamma_correct(gray: np.ndarray, gamma: float = 0.85) -> np.ndarray:
    """Apply gamma correction; ``gamma < 1`` lifts midtones."""
    import cv2

    return cv2.LUT(gray, gamma_lut(gamma))


# ============================================================================
# Main Preprocessing Pipeline
# ============================================================================

def preprocess_for_ocr(
    image: np.ndarray,
    config: Optional[ImageConfig] = None
) -> np.ndarray:
    """
    Prepare a rendered page for recognition, in place.

    Grayscale, then contrast stretch, then gamma correction. The result
    is written back into every color channel of ``image``; an alpha
    channel is left untouched.

    Args:
        image: Rendered page, (H, W), (H, W, 3) or (H, W, 4), uint8.
            Must be writable and owned by the caller.
        config: Percentiles and gamma

    Returns:
        The same ``image`` object
    """
    import cv2

    config = config or ImageConfig()

    gray = to_grayscale(image)
    low_val, high_val = percentile_bounds(
        compute_histogram(gray), config.low_percentile, config.high_percentile
    )
    # Stretch then gamma, folded into one table
    lut = gamma_lut(config.gamma)[stretch_lut(low_val, high_val)]
    processed = cv2.LUT(gray, lut)

    if image.ndim == 2:
        image[...] = processed
    else:
        image[..., :3] = processed[..., np.newaxis]

    logger.debug(
        f"Preprocessed {image.shape[1]}x{image.shape[0]} image "
        f"(stretch {low_val}-{high_val}, gamma {config.gamma})"
    )
    return image
