"""PDF reader over in-memory documents.

Pure Python + PyMuPDF.
"""

import fitz  # PyMuPDF


class PDFReader:
    """PyMuPDF document opened from bytes, with page-level access."""

    def __init__(self, data: bytes):
        """Open a PDF document from bytes.

        Args:
            data: Raw PDF bytes.

        Raises:
            Any PyMuPDF error for unreadable documents.
        """
        self._doc = fitz.open(stream=data, filetype="pdf")

    @property
    def page_count(self) -> int:
        """Total number of pages in the document."""
        return len(self._doc)

    def page_text(self, page_num: int) -> str:
        """Text layer of a single page (1-indexed)."""
        if page_num < 1 or page_num > self.page_count:
            raise IndexError(f"Page {page_num} out of range (1-{self.page_count})")
        return self._doc[page_num - 1].get_text()

    def full_text(self) -> str:
        """Text layer of every page, pages separated by newlines."""
        return "\n".join(page.get_text() for page in self._doc)

    def find_page(self, markers: tuple[str, ...] | list[str]) -> int | None:
        """First page (1-indexed) whose text contains any of ``markers``."""
        for i, page in enumerate(self._doc):
            text = page.get_text()
            if any(marker in text for marker in markers):
                return i + 1
        return None

    def render_page_png(self, page_num: int, scale: float) -> bytes:
        """Rasterize one page (1-indexed) at ``scale`` and return PNG bytes."""
        if page_num < 1 or page_num > self.page_count:
            raise IndexError(f"Page {page_num} out of range (1-{self.page_count})")
        page = self._doc[page_num - 1]
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale))
        return pix.tobytes("png")

    def close(self):
        """Close the document."""
        self._doc.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
