"""
Layout text extraction for the text extraction pipeline.

Provides:
- Line grouping of positioned glyph runs
- Two-column detection
- Reading-order text emission with gap-aware spacing

PDF text layers store glyph runs with coordinates but no line or
paragraph structure, so reading order is rebuilt from geometry alone.
"""

import functools
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .config import LayoutConfig

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class PositionedGlyphRun:
    """A run of characters with its baseline origin in page units.

    ``y`` grows upwards from the bottom edge of the page, as in PDF user space.
    """
    text: str
    x: float
    y: float
    width: float = 0.0
    font_size: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.width


@dataclass
class Line:
    """Glyph runs judged to share a vertical position."""
    y: float
    runs: List[PositionedGlyphRun] = field(default_factory=list)
    font_size: float = 0.0

    @property
    def avg_x(self) -> float:
        if not self.runs:
            return 0.0
        return sum(run.x for run in self.runs) / len(self.runs)

    @property
    def span(self) -> float:
        if not self.runs:
            return 0.0
        return max(run.right for run in self.runs) - min(run.x for run in self.runs)

    def sort_runs(self):
        self.runs.sort(key=lambda run: run.x)


@dataclass
class ColumnAssignment:
    """Lines of one page bucketed for emission."""
    full_width: List[Line] = field(default_factory=list)
    left: List[Line] = field(default_factory=list)
    right: List[Line] = field(default_factory=list)
    is_two_column: bool = False


# ============================================================================
# Geometry Helpers
# ============================================================================

def run_font_size(run: PositionedGlyphRun, default: float = 10.0) -> float:
    """Font size of a run, falling back to ``default`` when unknown."""
    return abs(run.font_size) or default


def average_font_size(
    runs: Sequence[PositionedGlyphRun],
    default: float = 10.0
) -> float:
    """Mean font size over ``runs`` (``default`` for an empty sequence)."""
    if not runs:
        return default
    return sum(run_font_size(run, default) for run in runs) / len(runs)


def line_threshold(avg_font_size: float, config: Optional[LayoutConfig] = None) -> float:
    """Maximum vertical distance for two runs to share a line."""
    config = config or LayoutConfig()
    return max(avg_font_size * config.line_threshold_factor, config.min_line_threshold)


def sort_runs(
    runs: Sequence[PositionedGlyphRun],
    threshold: float
) -> List[PositionedGlyphRun]:
    """
    Sort runs top-to-bottom, then left-to-right within the line threshold.

    Args:
        runs: Glyph runs of one page
        threshold: Line threshold in page units

    Returns:
        New list in reading order
    """
    def compare(a: PositionedGlyphRun, b: PositionedGlyphRun) -> float:
        y_diff = b.y - a.y
        if abs(y_diff) > threshold:
            return y_diff
        return a.x - b.x

    return sorted(runs, key=functools.cmp_to_key(compare))


def group_into_lines(
    runs: Sequence[PositionedGlyphRun],
    config: Optional[LayoutConfig] = None
) -> Tuple[List[Line], float]:
    """
    Group glyph runs into lines.

    Empty runs are discarded first. A new line starts whenever a run's
    vertical distance from the current line exceeds the line threshold.

    Args:
        runs: Unordered glyph runs of one page
        config: Layout thresholds

    Returns:
        Tuple of (lines in reading order, average font size of the kept runs)
    """
    config = config or LayoutConfig()
    items = [run for run in runs if run.text and run.text.strip()]
    if not items:
        return [], config.default_font_size

    avg_size = average_font_size(items, config.default_font_size)
    threshold = line_threshold(avg_size, config)

    lines: List[Line] = []
    current: Optional[Line] = None

    for run in sort_runs(items, threshold):
        size = run_font_size(run, config.default_font_size)
        if current is None or abs(current.y - run.y) > threshold:
            current = Line(y=run.y, font_size=size)
            lines.append(current)
        current.runs.append(run)
        current.font_size = max(current.font_size, size)

    logger.debug(
        f"Grouped {len(items)} runs into {len(lines)} lines "
        f"(avg font {avg_size:.1f}, threshold {threshold:.1f})"
    )
    return lines, avg_size


# ============================================================================
# Column Detection
# ============================================================================

def is_two_column(
    lines: Sequence[Line],
    page_width: float,
    config: Optional[LayoutConfig] = None
) -> bool:
    """Decide whether a page's lines form two independent columns."""
    config = config or LayoutConfig()
    mid = page_width / 2
    left_count = 0
    right_count = 0

    for line in lines:
        avg_x = line.avg_x
        if avg_x < mid * config.left_column_limit:
            left_count += 1
        elif avg_x > mid * config.right_column_limit:
            right_count += 1

    if left_count <= config.min_column_lines or right_count <= config.min_column_lines:
        return False
    ratio = min(left_count, right_count) / max(left_count, right_count)
    return ratio > config.min_column_ratio


def assign_columns(
    lines: Sequence[Line],
    page_width: float,
    config: Optional[LayoutConfig] = None
) -> ColumnAssignment:
    """
    Bucket lines into full-width, left and right columns.

    Single-column pages put every line in ``left`` so that emission
    order is unchanged.

    Args:
        lines: Lines in reading order
        page_width: Page width in page units
        config: Layout thresholds

    Returns:
        ColumnAssignment for the page
    """
    config = config or LayoutConfig()
    assignment = ColumnAssignment(is_two_column=is_two_column(lines, page_width, config))

    if not assignment.is_two_column:
        assignment.left = list(lines)
        return assignment

    mid = page_width / 2
    for line in lines:
        if line.span > page_width * config.full_width_span:
            assignment.full_width.append(line)
        elif line.avg_x < mid * config.left_bucket_limit:
            assignment.left.append(line)
        else:
            assignment.right.append(line)

    logger.debug(
        f"Two-column page: {len(assignment.full_width)} full-width, "
        f"{len(assignment.left)} left, {len(assignment.right)} right"
    )
    return assignment


# ============================================================================
# Text Emission
# ============================================================================

def build_line_text(
    runs: Sequence[PositionedGlyphRun],
    avg_font_size: float,
    config: Optional[LayoutConfig] = None
) -> str:
    """
    Join x-sorted runs, choosing separators from the horizontal gaps.

    Example: runs at x=10 (width 20) and x=34 with a 10pt average font
    are 4 units apart, more than half a space (1.5) and at most six
    spaces (18), so they are joined by a single space.
    """
    config = config or LayoutConfig()
    space_width = avg_font_size * config.space_width_factor
    parts = []

    for i, run in enumerate(runs):
        if i > 0:
            gap = run.x - runs[i - 1].right
            if gap > space_width * config.tab_gap:
                parts.append(config.tab_separator)
            elif gap > space_width * config.same_word_gap:
                parts.append(" ")
        parts.append(run.text)

    return "".join(parts)


def _emit(lines: Sequence[Line], avg_font_size: float, config: LayoutConfig) -> str:
    out = []
    for line in lines:
        line.sort_runs()
        text = build_line_text(line.runs, avg_font_size, config).strip()
        if text:
            out.append(text + "\n")
    return "".join(out)


def extract_page_text(
    runs: Sequence[PositionedGlyphRun],
    page_width: float,
    config: Optional[LayoutConfig] = None
) -> str:
    """
    Rebuild the reading-order text of one page.

    Args:
        runs: Glyph runs of the page, in any order
        page_width: Page width in page units (viewport at scale 1.0)
        config: Layout thresholds

    Returns:
        Page text, one line per reconstructed line (empty for blank pages)
    """
    config = config or LayoutConfig()
    lines, avg_size = group_into_lines(runs, config)
    if not lines:
        return ""

    columns = assign_columns(lines, page_width, config)
    if not columns.is_two_column:
        return _emit(columns.left, avg_size, config)

    text = _emit(columns.full_width, avg_size, config)
    if columns.full_width and (columns.left or columns.right):
        text += "\n"
    text += _emit(columns.left, avg_size, config)
    if columns.left and columns.right:
        text += "\n"
    text += _emit(columns.right, avg_size, config)
    return text


# ============================================================================
# Layout Text Extractor
# ============================================================================

class LayoutTextExtractor:
    """
    Standard (non-OCR) extraction path.

    Walks every page of a loaded document, rebuilds reading order from
    its glyph runs and joins pages with the page separator.
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        page_separator: str = "\n---\n"
    ):
        self.config = config or LayoutConfig()
        self.page_separator = page_separator

    def extract_page(self, page) -> str:
        """Extract the text of one ``PDFPage``."""
        width, _ = page.viewport(1.0)
        return extract_page_text(page.glyph_runs(), width, self.config)

    def extract_document(self, document) -> str:
        """
        Extract the text of every page of a ``PDFDocument``.

        Each page with text is followed by the page separator unless it is
        the last page. Pages without text-bearing runs add nothing, not even
        a separator, so blank pages cannot inflate the text length.
        """
        total = document.page_count
        text = ""
        for page_number in range(1, total + 1):
            page_text = self.extract_page(document.get_page(page_number))
            if not page_text:
                logger.debug(f"Page {page_number}: no text-bearing runs")
                continue
            text += page_text
            if page_number < total:
                text += self.page_separator
        return text
