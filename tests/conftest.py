"""
Shared fixtures for the breakdown test suite.

Provides in-memory fakes for the three external collaborators of the
pipeline (text extraction, page rasterization, synthesis calls) and helpers
for writing uploaded files to a temporary directory.
"""

import asyncio
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from breakdown.config import BreakdownConfig, ProcessingConfig
from breakdown.errors import ExtractionError, RenderError, SummarizationCallError
from breakdown.models import UploadedFile
from breakdown.pdf_extractor import ExtractedText, TextExtractor
from breakdown.synthesis import SynthesisClient


class FakeExtractor(TextExtractor):
    """Returns canned results keyed by the PDF's bytes."""

    name = "fake"

    def __init__(self, results: Optional[Dict[bytes, ExtractedText]] = None):
        self.results = results or {}

    def _extract(self, pdf_bytes: bytes) -> ExtractedText:
        if pdf_bytes not in self.results:
            raise ExtractionError("unreadable")
        return self.results[pdf_bytes]


class FakeRenderer:
    """Stands in for PageRenderer without spawning a rasterizer."""

    def __init__(self, available: bool = True, failing_pages=()):
        self.available = available
        self.failing_pages = set(failing_pages)
        self.rendered: List[int] = []

    def is_available(self) -> bool:
        return self.available

    async def render_page_base64(self, pdf_path: str, page_number: int) -> str:
        if page_number in self.failing_pages:
            raise RenderError(f"page {page_number} failed")
        self.rendered.append(page_number)
        return f"jpeg-page-{page_number}"


class RecordingClient(SynthesisClient):
    """Synthesis client that records calls and answers from a responder."""

    def __init__(
        self,
        responder: Optional[Callable] = None,
        configured: bool = True,
        delays: Optional[Callable[[str], float]] = None,
    ):
        self.calls = []
        self.responder = responder or (lambda system, messages, limit: "BREAKDOWN")
        self.configured = configured
        self.delays = delays
        self.active = 0
        self.max_active = 0

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def synthesize(self, system_instructions, messages, max_output_tokens) -> str:
        self.calls.append((system_instructions, list(messages), max_output_tokens))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delays:
                await asyncio.sleep(self.delays(messages[-1].content[-1].text))
            else:
                await asyncio.sleep(0)
            result = self.responder(system_instructions, messages, max_output_tokens)
        finally:
            self.active -= 1
        if isinstance(result, Exception):
            raise result
        return result


class FailingClient(RecordingClient):
    """Raises SummarizationCallError on every call."""

    def __init__(self):
        super().__init__(responder=lambda *args: SummarizationCallError())


@pytest.fixture
def processing_config():
    """Small thresholds so tests can use short strings."""
    return ProcessingConfig(
        chunk_size=100,
        chunk_overlap=10,
        multi_pass_threshold=1000,
        notes_concurrency=2,
        min_text_chars=300,
        min_chars_per_page=100,
        max_render_pages=6,
    )


@pytest.fixture
def breakdown_config(processing_config, tmp_path):
    config = BreakdownConfig(processing=processing_config)
    config.model.api_key = "test-key"
    config.paths.upload_dir = str(tmp_path / "uploads")
    config.paths.render_dir = str(tmp_path / "rendered")
    return config


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def make_upload(upload_dir):
    """Write bytes to the uploads directory and describe them as an UploadedFile."""

    def _make(name: str, data: bytes, mime_hint: Optional[str] = None) -> UploadedFile:
        path = upload_dir / f"stored-{name}"
        path.write_bytes(data)
        return UploadedFile(
            original_name=name,
            storage_path=str(path),
            size_bytes=len(data),
            mime_hint=mime_hint,
        )

    return _make


def make_pdf_bytes(pages: List[str]) -> bytes:
    """Build a real PDF whose pages carry the given text."""
    import fitz

    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        y = 72
        for line in text.split('\n'):
            if line:
                page.insert_text((72, y), line, fontsize=9, fontname="helv")
            y += 11
    data = doc.tobytes()
    doc.close()
    return data


def stored_paths(files: List[UploadedFile]) -> List[Path]:
    return [Path(f.storage_path) for f in files]
