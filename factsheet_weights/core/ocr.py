"""OCR fallback for factsheets whose allocation table is an image.

Finds the allocation page through its text layer, rasterizes only that page
at 3x and runs Tesseract on it. No marker page means no OCR at all.
"""

import asyncio
import io
import logging
from collections.abc import Callable

import pytesseract
from PIL import Image

from factsheet_weights.core.config import TESSERACT_CMD, OcrConfig
from factsheet_weights.core.parser import parse_factsheet_text
from factsheet_weights.core.pdf_reader import PDFReader
from factsheet_weights.pydantic_models import OcrResult, Provider

logger = logging.getLogger(__name__)

Recognizer = Callable[[bytes], str]


def tesseract_recognizer(png: bytes) -> str:
    """Run Tesseract over PNG bytes."""
    if TESSERACT_CMD:
        pytesseract.pytesseract.tesseract_cmd = TESSERACT_CMD
    with Image.open(io.BytesIO(png)) as image:
        return pytesseract.image_to_string(image, lang=OcrConfig.LANGUAGE) or ""


class OcrExtractor:
    """Marker page -> raster -> OCR -> parser (generic rules).

    Args:
        recognizer: Callable turning PNG bytes into text. Defaults to Tesseract.
        markers: Text-layer phrases identifying the allocation page.
        scale: Rasterization zoom.
    """

    def __init__(
        self,
        recognizer: Recognizer = tesseract_recognizer,
        markers: tuple[str, ...] = OcrConfig.SECTION_MARKERS,
        scale: float = OcrConfig.RENDER_SCALE,
    ):
        self.recognizer = recognizer
        self.markers = markers
        self.scale = scale

    def render_target_page(self, data: bytes) -> bytes | None:
        """PNG of the first marker page, or None when no page carries a marker."""
        with PDFReader(data) as pdf:
            page_num = pdf.find_page(self.markers)
            if page_num is None:
                return None
            logger.debug("OCR target page %d of %d", page_num, pdf.page_count)
            return pdf.render_page_png(page_num, self.scale)

    async def extract_via_ocr(self, data: bytes) -> OcrResult:
        """OCR the allocation page and parse the recovered text."""
        png = await asyncio.to_thread(self.render_target_page, data)
        if png is None:
            return OcrResult()
        text = await asyncio.to_thread(self.recognizer, png)
        parsed = parse_factsheet_text(text, Provider.UNKNOWN)
        return OcrResult(text=text, constituents=parsed.constituents)
