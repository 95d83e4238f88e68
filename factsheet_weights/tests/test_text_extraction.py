"""Tests for PDF text extraction and the OCR fallback."""

from unittest.mock import MagicMock

import pytest

from factsheet_weights.core import text_extraction
from factsheet_weights.core.errors import TextExtractionError
from factsheet_weights.core.ocr import OcrExtractor
from factsheet_weights.core.pdf_reader import PDFReader
from factsheet_weights.pydantic_models import ConstituentWeight, OcrResult


# =============================================================================
# Text layer
# =============================================================================


class TestExtractText:
    """PyMuPDF first, pypdf when PyMuPDF raises."""

    def test_primary(self, make_pdf):
        text = text_extraction.extract_text(make_pdf("Asset Allocation", "BTC 60%"))

        assert "Asset Allocation" in text
        assert "BTC 60%" in text

    def test_secondary_when_primary_raises(self, make_pdf, monkeypatch):
        def broken(data):
            raise RuntimeError("cannot open")

        monkeypatch.setattr(text_extraction, "extract_text_primary", broken)

        text = text_extraction.extract_text(make_pdf("Hello factsheet"))

        assert "Hello" in text

    def test_both_fail(self):
        with pytest.raises(TextExtractionError):
            text_extraction.extract_text(b"definitely not a pdf")

    def test_blank_page_is_valid(self, make_pdf):
        assert text_extraction.extract_text(make_pdf("")).strip() == ""


class TestPDFReader:
    """Page-level helpers used by OCR."""

    def test_find_page(self, make_pdf):
        with PDFReader(make_pdf("Intro", "Index Composition")) as pdf:
            assert pdf.page_count == 2
            assert pdf.find_page(("Index Composition",)) == 2
            assert pdf.find_page(("Nothing",)) is None

    def test_page_out_of_range(self, make_pdf):
        with PDFReader(make_pdf("Only page")) as pdf:
            with pytest.raises(IndexError):
                pdf.page_text(2)


# =============================================================================
# OCR
# =============================================================================


class TestOcrExtractor:
    """Marker page -> raster -> recognizer -> parser."""

    @pytest.mark.asyncio
    async def test_marker_page_is_recognized(self, make_pdf):
        recognizer = MagicMock(return_value="BTC 60%\nETH 40%")
        ocr = OcrExtractor(recognizer=recognizer)

        result = await ocr.extract_via_ocr(make_pdf("Cover", "Asset Allocation"))

        png = recognizer.call_args.args[0]
        assert png.startswith(b"\x89PNG")
        assert result.text == "BTC 60%\nETH 40%"
        assert result.constituents == [
            ConstituentWeight(name="BTC", weight=60.0),
            ConstituentWeight(name="ETH", weight=40.0),
        ]

    @pytest.mark.asyncio
    async def test_no_marker_means_no_ocr(self, make_pdf):
        recognizer = MagicMock(return_value="BTC 100%")
        ocr = OcrExtractor(recognizer=recognizer)

        result = await ocr.extract_via_ocr(make_pdf("Performance", "Risk"))

        assert result == OcrResult()
        recognizer.assert_not_called()

    @pytest.mark.asyncio
    async def test_unreadable_text(self, make_pdf):
        ocr = OcrExtractor(recognizer=MagicMock(return_value="@@ ## noise"))

        result = await ocr.extract_via_ocr(make_pdf("ASSET ALLOCATION"))

        assert result.constituents == []

    def test_render_scale(self, make_pdf):
        small = OcrExtractor(scale=1.0).render_target_page(make_pdf("Index Composition"))
        large = OcrExtractor(scale=3.0).render_target_page(make_pdf("Index Composition"))

        assert len(large) > len(small)
