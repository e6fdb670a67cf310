"""
PDF Text Extractor

Extracts plain text and page counts from PDF bytes. A concrete backend
(PyMuPDF, or pypdf when PyMuPDF is not importable) is chosen once at
startup and handed to the pipeline; callers only see the ``TextExtractor``
interface.
"""

import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Type

import structlog

try:
    import fitz  # PyMuPDF
except ImportError:
    fitz = None

try:
    import pypdf
except ImportError:
    pypdf = None

from .errors import ConfigError, ExtractionError

logger = structlog.get_logger(__name__)


@dataclass
class ExtractedText:
    """Text pulled from a PDF along with its page count."""
    text: str
    page_count: int

    @property
    def char_count(self) -> int:
        return len(self.text)


class TextExtractor(ABC):
    """Extracts text from PDF bytes."""

    name = "base"

    @classmethod
    def is_usable(cls) -> bool:
        return False

    @abstractmethod
    def _extract(self, pdf_bytes: bytes) -> ExtractedText:
        ...

    def extract(self, pdf_bytes: bytes) -> ExtractedText:
        """
        Extract text and page count.

        Whitespace-only output is normalized to empty text.

        Raises:
            ExtractionError: If the backend cannot read the document
        """
        try:
            result = self._extract(pdf_bytes)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"{self.name} could not read PDF: {e}") from e

        text = result.text if result.text and result.text.strip() else ""
        return ExtractedText(text=text, page_count=result.page_count)


class PyMuPDFExtractor(TextExtractor):
    """Extraction backed by PyMuPDF."""

    name = "pymupdf"

    @classmethod
    def is_usable(cls) -> bool:
        return fitz is not None

    def _extract(self, pdf_bytes: bytes) -> ExtractedText:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            pages_text = [page.get_text() for page in doc]
            return ExtractedText(text='\n'.join(pages_text).strip(), page_count=len(pages_text))


class PypdfExtractor(TextExtractor):
    """Extraction backed by pypdf."""

    name = "pypdf"

    @classmethod
    def is_usable(cls) -> bool:
        return pypdf is not None

    def _extract(self, pdf_bytes: bytes) -> ExtractedText:
        reader = pypdf.PdfReader(io.BytesIO(pdf_bytes))
        pages_text = [page.extract_text() or "" for page in reader.pages]
        return ExtractedText(text='\n'.join(pages_text).strip(), page_count=len(reader.pages))


BACKENDS: Dict[str, Type[TextExtractor]] = {
    PyMuPDFExtractor.name: PyMuPDFExtractor,
    PypdfExtractor.name: PypdfExtractor,
}


def create_text_extractor(preferred: Optional[str] = None) -> TextExtractor:
    """
    Select a usable extraction backend.

    Args:
        preferred: Backend name to try first ("pymupdf" or "pypdf")

    Returns:
        A ready extractor instance

    Raises:
        ConfigError: If the preferred backend is unknown or no backend is importable
    """
    if preferred and preferred not in BACKENDS:
        raise ConfigError(f"Unknown PDF extraction backend: {preferred}")

    order = list(BACKENDS)
    if preferred:
        order.remove(preferred)
        order.insert(0, preferred)

    for name in order:
        backend = BACKENDS[name]
        if backend.is_usable():
            logger.info("text_extractor_selected", backend=name)
            return backend()

    raise ConfigError("No PDF text extraction backend is installed (install pymupdf or pypdf)")
