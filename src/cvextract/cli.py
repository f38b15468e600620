#!/usr/bin/env python
"""
Command-line interface for the PDF text extraction pipeline.

Usage:
    cvextract --input <pdf> [--output <txt>] [options]

Examples:
    # Print the text of a CV
    cvextract --input cv.pdf

    # Save the outcome as JSON
    cvextract --input cv.pdf --output cv.json --json

    # Also save low-resolution previews of every page
    cvextract --input cv.pdf --preview-dir ./previews
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from . import __version__

logger = logging.getLogger("cvextract")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="PDF text extraction - reading-order text with automatic OCR fallback",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Extract text to stdout:
    cvextract --input cv.pdf

  Extract to a JSON file:
    cvextract --input cv.pdf --output cv.json --json

  OCR scanned English-only documents at 4x:
    cvextract --input scan.pdf --languages eng --ocr-scale 4
        """
    )

    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input PDF file"
    )

    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Output file (default: stdout)"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Write the outcome (text, numPages, method) as JSON"
    )

    parser.add_argument(
        "--languages",
        default=None,
        help="Tesseract languages joined with '+' (default: fra+eng)"
    )

    parser.add_argument(
        "--min-text",
        type=int,
        default=None,
        help="Minimum characters from the text layer before falling back to OCR (default: 80)"
    )

    parser.add_argument(
        "--ocr-scale",
        type=float,
        default=None,
        help="Render scale for OCR pages (default: 3.0)"
    )

    parser.add_argument(
        "--preview-dir",
        default=None,
        help="Also save a PNG preview of every page to this directory"
    )

    parser.add_argument(
        "--preview-scale",
        type=float,
        default=None,
        help="Render scale for previews (default: 1.2)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def build_config(args):
    """Apply command-line overrides on top of the environment config."""
    from .config import get_config

    config = get_config()
    if args.languages:
        config.ocr.languages = [lang for lang in args.languages.split("+") if lang]
    if args.min_text is not None:
        config.min_text_threshold = args.min_text
    if args.ocr_scale is not None:
        config.ocr.render_scale = args.ocr_scale
    if args.preview_scale is not None:
        config.preview_scale = args.preview_scale
    return config


def log_progress(event):
    """Progress consumer that logs each event."""
    if event.page is not None and event.total_pages:
        logger.info(f"[{event.phase.value}] page {event.page}/{event.total_pages} - {event.progress}%")
    else:
        logger.info(f"[{event.phase.value}] {event.progress}%")


def save_previews(pdf_bytes: bytes, output_dir: Path, scale: float) -> int:
    """Render every page at preview scale and save as PNG; returns the page count."""
    from .io import ensure_dir, render_pages, save_image

    ensure_dir(output_dir)
    images = render_pages(pdf_bytes, scale=scale)
    for number, image in enumerate(images, 1):
        path = save_image(image, output_dir / f"page_{number:04d}.png")
        logger.info(f"Saved preview: {path}")
    return len(images)


def run_pipeline(args) -> int:
    """Run the extraction pipeline."""
    from .errors import ExtractionError
    from .io import dump_json, read_pdf_bytes
    from .pipeline import TextExtractionPipeline

    start_time = time.time()
    config = build_config(args)
    if config.debug_mode:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled by CVEXTRACT_DEBUG")

    input_path = Path(args.input)
    try:
        pdf_bytes = read_pdf_bytes(input_path)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    pipeline = TextExtractionPipeline(config=config, on_progress=log_progress)
    try:
        outcome = pipeline.run(pdf_bytes)
        if args.preview_dir:
            save_previews(pdf_bytes, Path(args.preview_dir), config.preview_scale)
    except ExtractionError as e:
        logger.error(f"Extraction failed: {e}")
        if args.verbose:
            raise
        return 1

    content = dump_json(outcome.to_dict()) if args.json else outcome.text

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content + "\n", encoding="utf-8")
        logger.info(f"Saved output: {output_path}")
    else:
        sys.stdout.write(content + "\n")

    elapsed = time.time() - start_time
    logger.info(
        f"Extracted {len(outcome.text)} characters from {outcome.num_pages} page(s) "
        f"using {outcome.method.value} in {elapsed:.2f}s"
    )
    return 0


def main(argv=None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
