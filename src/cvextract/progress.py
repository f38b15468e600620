"""
Progress events emitted while a document is being extracted.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ProgressPhase(str, Enum):
    """Extraction phases reported to progress consumers."""
    TEXT = "text"
    OCR_INIT = "ocr-init"
    OCR_PAGE = "ocr-page"
    OCR_RECOGNIZE = "ocr-recognize"
    OCR_DONE = "ocr-done"


@dataclass(frozen=True)
class ProgressEvent:
    """A single progress notification; ``progress`` is a 0-100 percentage."""
    phase: ProgressPhase
    progress: int
    page: Optional[int] = None
    total_pages: Optional[int] = None

    def to_dict(self):
        data = {"phase": self.phase.value, "progress": self.progress}
        if self.page is not None:
            data["page"] = self.page
        if self.total_pages is not None:
            data["totalPages"] = self.total_pages
        return data


ProgressCallback = Callable[[ProgressEvent], None]


def percent(fraction: float) -> int:
    """Convert a 0-1 fraction to a whole percentage, rounding half up."""
    return int(math.floor(fraction * 100 + 0.5))


def emit(
    callback: Optional[ProgressCallback],
    phase: ProgressPhase,
    progress: int,
    page: Optional[int] = None,
    total_pages: Optional[int] = None
):
    """Send an event to ``callback`` if one was given."""
    if callback is None:
        return
    event = ProgressEvent(phase=phase, progress=progress, page=page, total_pages=total_pages)
    logger.debug(f"Progress: {event}")
    callback(event)
