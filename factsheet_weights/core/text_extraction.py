"""Text extraction from factsheet PDFs.

Primary: PyMuPDF over the whole document.
Secondary: pypdf page by page, joined with newlines, used only when the
primary method raises. An empty string is a valid result.
"""

import io
import logging

from pypdf import PdfReader

from factsheet_weights.core.errors import TextExtractionError
from factsheet_weights.core.pdf_reader import PDFReader

logger = logging.getLogger(__name__)


def extract_text_primary(data: bytes) -> str:
    with PDFReader(data) as pdf:
        return pdf.full_text()


def extract_text_secondary(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def extract_text(data: bytes) -> str:
    """Extract the document text layer.

    Raises:
        TextExtractionError: Both methods failed.
    """
    try:
        return extract_text_primary(data)
    except Exception as primary_exc:
        logger.debug("PyMuPDF extraction failed (%s: %s), trying pypdf", type(primary_exc).__name__, primary_exc)
        try:
            return extract_text_secondary(data)
        except Exception as secondary_exc:
            raise TextExtractionError(
                f"PDF text could not be extracted: {type(secondary_exc).__name__}: {secondary_exc}"
            ) from secondary_exc
