"""Pytest configuration and shared fixtures.

Provides reusable test fixtures for:
- In-memory PDF documents built with PyMuPDF
- httpx mock transports routed by URL
- In-memory stores
- Mock workflow collaborators (fetcher, resolver, holdings, OCR)
"""

from unittest.mock import AsyncMock, MagicMock

import fitz  # PyMuPDF
import httpx
import pytest

from factsheet_weights.core.pipeline_logger import reset_logger
from factsheet_weights.core.stores import InMemoryStore
from factsheet_weights.orchestrator import WeightsWorkflow
from factsheet_weights.pydantic_models import OcrResult


ISIN = "CH0454664001"
FACTSHEET_URL = "https://cdn.21shares.com/uploads/current-documents/factsheets/all/Factsheet_ABTC.pdf"


@pytest.fixture(autouse=True)
def _fresh_logger():
    """Each test gets a new global PipelineLogger."""
    reset_logger()
    yield
    reset_logger()


# =============================================================================
# PDF documents
# =============================================================================


def build_pdf(*pages: str) -> bytes:
    """PDF bytes with one page per argument (text layer only)."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def make_pdf():
    """Factory for in-memory PDFs: ``make_pdf("page 1 text", "page 2 text")``."""
    return build_pdf


# =============================================================================
# HTTP
# =============================================================================


class Router:
    """httpx.MockTransport handler answering from a ``(method, url) -> response`` table.

    Unrouted requests answer 404. Every request is recorded in ``calls``.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], httpx.Response | Exception] = {}
        self.calls: list[httpx.Request] = []

    def add(self, url: str, response: httpx.Response | Exception, method: str = "GET"):
        self.routes[(method, url)] = response

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        response = self.routes.get((request.method, str(request.url)))
        if response is None:
            return httpx.Response(404)
        if isinstance(response, Exception):
            raise response
        # Fresh copy per request; routed responses are served repeatedly
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)

    def called(self, url: str, method: str = "GET") -> int:
        return sum(1 for r in self.calls if r.method == method and str(r.url) == url)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def router():
    return Router()


# =============================================================================
# Stores and workflow collaborators
# =============================================================================


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def mock_fetcher():
    fetcher = MagicMock()
    fetcher.download = AsyncMock()
    return fetcher


@pytest.fixture
def mock_resolver():
    resolver = MagicMock()
    resolver.resolve = AsyncMock()
    return resolver


@pytest.fixture
def mock_holdings():
    holdings = MagicMock()
    holdings.fetch_nav = AsyncMock(return_value=None)
    holdings.fetch_constituents = AsyncMock(return_value=None)
    holdings.resolve_ticker_from_catalog = AsyncMock(return_value=None)
    return holdings


@pytest.fixture
def mock_ocr():
    ocr = MagicMock()
    ocr.extract_via_ocr = AsyncMock(return_value=OcrResult())
    return ocr


@pytest.fixture
def workflow(memory_store, mock_fetcher, mock_resolver, mock_holdings, mock_ocr):
    """WeightsWorkflow wired entirely to mocks and an in-memory store."""
    return WeightsWorkflow(
        cache=memory_store,
        fetch_log=memory_store,
        http=MagicMock(),
        fetcher=mock_fetcher,
        resolver=mock_resolver,
        holdings=mock_holdings,
        ocr=mock_ocr,
    )
