"""
Post-processing of extracted text.

Cleans artifacts shared by the text-layer and OCR paths. Each step is a
pure ``str -> str`` function; ``normalize_text`` applies them in order.
"""

import logging
import re

logger = logging.getLogger(__name__)


# ============================================================================
# Patterns
# ============================================================================

# Lines made of one or two characters that are neither letters nor digits
_NOISE_LINE = re.compile(r"^[^a-zA-ZÀ-ÿ0-9\n]{1,2}$", re.MULTILINE)
_HYPHENATED_BREAK = re.compile(r"(\w)-\n(\w)")
_EXCESS_NEWLINES = re.compile(r"\n{4,}")
_WIDE_GAP = re.compile(r"[ \t]{3,}")
_DOUBLE_SPACE = re.compile(r"(?<! ) {2}(?! )")
_DECORATIVE_LINE = re.compile(r"^[.\-_=•·]{3,}$", re.MULTILINE)

# Common CV section headers (French and English)
SECTION_HEADERS = (
    r"expérience|experience|formation|education|compétences|skills|"
    r"langues|languages|certifications|projets|projects|profil|profile|"
    r"résumé|summary|contact|références|references|objectif|objective|"
    r"centres d'intérêt|hobbies|informations?\s*personnelles?|personal\s*info"
)
_SECTION_BREAK = re.compile(
    r"(?<=\S)\n(?=(?:" + SECTION_HEADERS + r"))",
    re.IGNORECASE | re.MULTILINE
)

_OCR_MISREADS = str.maketrans({"|": "l", "{": "(", "}": ")"})


# ============================================================================
# Normalization Steps
# ============================================================================

def remove_noise_lines(text: str) -> str:
    """Blank out lines holding only one or two non-alphanumeric characters."""
    return _NOISE_LINE.sub("", text)


def join_hyphenated_breaks(text: str) -> str:
    """
    Join words split across lines by a hyphen.

    Example: "infor-\\nmation" -> "information"
    """
    return _HYPHENATED_BREAK.sub(r"\1\2", text)


def collapse_blank_lines(text: str) -> str:
    """Cap runs of blank lines at two."""
    return _EXCESS_NEWLINES.sub("\n\n\n", text)


def collapse_spaces(text: str) -> str:
    """
    Normalize horizontal whitespace.

    Runs of three or more spaces/tabs become a four-space gap, which
    keeps column-like layouts readable; an isolated double space
    becomes a single space.
    """
    text = _WIDE_GAP.sub("    ", text)
    return _DOUBLE_SPACE.sub(" ", text)


def fix_ocr_misreads(text: str) -> str:
    """Replace characters OCR commonly confuses: ``|`` -> ``l``, braces -> parentheses."""
    return text.translate(_OCR_MISREADS)


def remove_decorative_lines(text: str) -> str:
    """Blank out separator lines such as ``-----`` or ``•••``."""
    return _DECORATIVE_LINE.sub("", text)


def trim_lines(text: str) -> str:
    return "\n".join(line.strip() for line in text.split("\n"))


def trim_document(text: str) -> str:
    return text.strip("\n")


def separate_section_headers(text: str) -> str:
    """Insert a blank line before section headers that directly follow text."""
    return _SECTION_BREAK.sub("\n\n", text)


NORMALIZATION_STEPS = (
    remove_noise_lines,
    join_hyphenated_breaks,
    collapse_blank_lines,
    collapse_spaces,
    fix_ocr_misreads,
    remove_decorative_lines,
    trim_lines,
    trim_document,
    separate_section_headers,
)


def normalize_text(text: str) -> str:
    """
    Clean extracted text.

    Args:
        text: Raw text from either extraction path

    Returns:
        Normalized text (empty string for empty input)
    """
    if not text:
        return ""

    for step in NORMALIZATION_STEPS:
        text = step(text)

    logger.debug(f"Normalized text to {len(text)} characters")
    return text
