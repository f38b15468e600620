"""
End-to-end tests for the extraction pipeline.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


CV_LINES = [
    "Jane Doe",
    "Senior data engineer with ten years of experience building pipelines",
    "Paris, France",
]


@pytest.fixture
def text_pdf(make_pdf):
    """A one-page PDF with a text layer of more than 80 characters."""
    return make_pdf([[(72, 80 + 20 * i, line) for i, line in enumerate(CV_LINES)]])


@pytest.fixture
def blank_render(monkeypatch):
    """Replace page rasterization with a plain white image."""
    scales = []

    def fake_render(pdf_bytes, page_number, scale=3.0):
        scales.append(scale)
        return np.full((20, 20, 3), 255, dtype=np.uint8)

    monkeypatch.setattr("cvextract.io.render_page", fake_render)
    return scales


class TestTextPath:
    """Documents with a usable text layer."""

    def test_text_method(self, text_pdf, make_factory):
        """The text layer is used and OCR is never initialized."""
        from cvextract.config import PipelineConfig
        from cvextract.pipeline import ExtractionMethod, extract_text_from_pdf
        from cvextract.progress import ProgressPhase

        factory = make_factory()
        events = []

        outcome = extract_text_from_pdf(
            text_pdf, on_progress=events.append,
            config=PipelineConfig(), recognizer_factory=factory
        )

        assert outcome.method is ExtractionMethod.TEXT
        assert outcome.num_pages == 1
        assert outcome.text.split("\n") == CV_LINES
        assert factory.calls == 0
        assert [(e.phase, e.progress) for e in events] == [
            (ProgressPhase.TEXT, 0),
            (ProgressPhase.TEXT, 100),
        ]

    def test_two_column_reading_order(self, make_pdf, make_factory):
        """The left column is read completely before the right one."""
        from cvextract.config import PipelineConfig
        from cvextract.pipeline import ExtractionMethod, extract_text_from_pdf

        items = []
        for i in range(1, 6):
            items.append((40, 100 + 20 * i, f"Left column line {i}"))
            items.append((330, 110 + 20 * i, f"Right column line {i}"))

        outcome = extract_text_from_pdf(
            make_pdf([items]), config=PipelineConfig(), recognizer_factory=make_factory()
        )

        assert outcome.method is ExtractionMethod.TEXT
        text = outcome.text
        assert text.index("Left column line 5") < text.index("Right column line 1")
        assert text.index("Left column line 1") < text.index("Left column line 2")
        assert text.index("Right column line 4") < text.index("Right column line 5")

    def test_multi_page(self, make_pdf, make_factory):
        """Page count covers every page, blank ones included."""
        from cvextract.config import PipelineConfig
        from cvextract.pipeline import extract_text_from_pdf

        page = [(72, 80 + 20 * i, line) for i, line in enumerate(CV_LINES)]

        outcome = extract_text_from_pdf(
            make_pdf([page, [], page]), config=PipelineConfig(), recognizer_factory=make_factory()
        )

        assert outcome.num_pages == 3
        assert outcome.text.count("Jane Doe") == 2
        assert "---" not in outcome.text

    def test_from_file(self, text_pdf, tmp_path, make_factory):
        """Files on disk go through the same pipeline."""
        from cvextract.config import PipelineConfig
        from cvextract.pipeline import ExtractionMethod, extract_text_from_file

        pdf_path = tmp_path / "cv.pdf"
        pdf_path.write_bytes(text_pdf)

        outcome = extract_text_from_file(
            pdf_path, config=PipelineConfig(), recognizer_factory=make_factory()
        )

        assert outcome.method is ExtractionMethod.TEXT
        assert outcome.text.startswith("Jane Doe")


class TestOCRPath:
    """Documents without a usable text layer."""

    def test_ocr_fallback(self, make_pdf, make_factory, make_ocr_result, blank_render):
        """A scanned document is recognized page by page and normalized."""
        from cvextract.config import PipelineConfig
        from cvextract.pipeline import ExtractionMethod, extract_text_from_pdf
        from cvextract.progress import ProgressPhase

        factory = make_factory([
            make_ocr_result([[[("Jane", 90), ("Doe", 88), ("~", 12)]]]),
            make_ocr_result([[[("Skills", 95)], [("Python", 91)]]]),
        ])
        events = []

        outcome = extract_text_from_pdf(
            make_pdf([[], []]), on_progress=events.append,
            config=PipelineConfig(), recognizer_factory=factory
        )

        assert outcome.method is ExtractionMethod.OCR
        assert outcome.num_pages == 2
        assert outcome.text == "Jane Doe\n\n\n\nSkills\nPython"
        assert factory.languages == ["fra", "eng"]
        assert factory.recognizer.released is True
        assert blank_render == [3.0, 3.0]

        phases = [e.phase for e in events]
        assert phases[:3] == [ProgressPhase.TEXT, ProgressPhase.TEXT, ProgressPhase.OCR_INIT]
        assert phases[-1] is ProgressPhase.OCR_DONE
        assert events[2].page == 0
        assert events[2].total_pages == 2

    def test_threshold_boundary(self, make_pdf, make_factory, make_ocr_result, blank_render):
        """Text exactly at the threshold is accepted, one character less is not."""
        from cvextract.config import PipelineConfig
        from cvextract.pipeline import ExtractionMethod, extract_text_from_pdf

        data = make_pdf([[(72, 100, "x" * 20)]])

        config = PipelineConfig(min_text_threshold=20)
        outcome = extract_text_from_pdf(data, config=config, recognizer_factory=make_factory())
        assert outcome.method is ExtractionMethod.TEXT

        config = PipelineConfig(min_text_threshold=21)
        factory = make_factory([make_ocr_result([[[("scanned", 90)]]])])
        outcome = extract_text_from_pdf(data, config=config, recognizer_factory=factory)
        assert outcome.method is ExtractionMethod.OCR
        assert outcome.text == "scanned"

    def test_blank_pages_do_not_count_toward_threshold(
        self, make_pdf, make_factory, make_ocr_result, blank_render
    ):
        """A short text layer followed by blank pages still goes through OCR."""
        from cvextract.config import PipelineConfig
        from cvextract.pipeline import ExtractionMethod, extract_text_from_pdf

        pages = [[(72, 100, "A" * 40)]] + [[] for _ in range(9)]
        factory = make_factory([make_ocr_result([[[("page", 90)]]])] * 10)

        outcome = extract_text_from_pdf(
            make_pdf(pages), config=PipelineConfig(), recognizer_factory=factory
        )

        assert outcome.method is ExtractionMethod.OCR
        assert outcome.num_pages == 10
        assert factory.calls == 1
        assert len(blank_render) == 10

    def test_recognition_failure(self, make_pdf, make_factory, make_ocr_result, blank_render):
        """Engine failures propagate and the recognizer is still released."""
        from cvextract.config import PipelineConfig
        from cvextract.errors import RecognitionError
        from cvextract.pipeline import PipelineState, TextExtractionPipeline

        factory = make_factory([make_ocr_result([[[("a", 90)]]])], fail_on_call=1)
        pipeline = TextExtractionPipeline(config=PipelineConfig(), recognizer_factory=factory)

        with pytest.raises(RecognitionError):
            pipeline.run(make_pdf([[]]))

        assert pipeline.state is PipelineState.FAILED
        assert factory.recognizer.released is True


class TestPipelineState:
    """Test the pipeline lifecycle."""

    def test_load_error(self):
        """Garbage input fails with LoadError."""
        from cvextract.config import PipelineConfig
        from cvextract.errors import LoadError
        from cvextract.pipeline import PipelineState, TextExtractionPipeline

        pipeline = TextExtractionPipeline(config=PipelineConfig())

        with pytest.raises(LoadError):
            pipeline.run(b"definitely not a pdf")

        assert pipeline.state is PipelineState.FAILED

    def test_single_use(self, text_pdf):
        """A pipeline instance runs once."""
        from cvextract.config import PipelineConfig
        from cvextract.pipeline import PipelineState, TextExtractionPipeline

        pipeline = TextExtractionPipeline(config=PipelineConfig())
        pipeline.run(text_pdf)

        assert pipeline.state is PipelineState.DONE
        with pytest.raises(RuntimeError):
            pipeline.run(text_pdf)

    def test_outcome_dict(self):
        """The outcome serializes with camelCase keys."""
        from cvextract.pipeline import ExtractionMethod, ExtractionOutcome

        outcome = ExtractionOutcome(text="Hello", num_pages=2, method=ExtractionMethod.OCR)

        assert outcome.to_dict() == {"text": "Hello", "numPages": 2, "method": "ocr"}
