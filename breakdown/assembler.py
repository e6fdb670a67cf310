"""
Content Assembler

Turns uploaded files into the ordered list of content blocks sent to the
synthesis call:

- images pass through as image blocks
- PDFs are extracted, chunked and bracketed with per-file markers
- sparse-text PDFs (likely scans) additionally get a sample of their pages
  rendered as images, or a notice when no rasterizer is installed
- anything else is dropped
"""

import asyncio
import base64
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import structlog

from .chunker import chunk_text
from .config import ProcessingConfig
from .errors import ExtractionError, RenderError
from .models import BlockPurpose, ContentBlock, PdfDiagnostics, UploadedFile
from .page_renderer import PageRenderer
from .pdf_extractor import ExtractedText, TextExtractor
from .prompts import chunk_block_text, file_marker

logger = structlog.get_logger(__name__)


@dataclass
class AssembledContent:
    """Blocks for one request plus per-PDF diagnostics."""
    blocks: List[ContentBlock] = field(default_factory=list)
    diagnostics: List[PdfDiagnostics] = field(default_factory=list)
    total_extracted_chars: int = 0


def chars_per_page(text_chars: int, page_count: int) -> float:
    if page_count <= 0:
        return 0.0
    return text_chars / page_count


def needs_visual_fallback(
    page_count: int,
    text_chars: int,
    min_text_chars: int,
    min_chars_per_page: float,
) -> bool:
    """Heuristic for scanned or image-only PDFs."""
    if page_count <= 0:
        return False
    density = chars_per_page(text_chars, page_count)
    return text_chars < min_text_chars or density < min_chars_per_page


def sample_pages(page_count: int, max_pages: int) -> List[int]:
    """
    Pick evenly spaced 1-based page numbers to render.

    Page 1 is always included, then every ``max(2, page_count // 5)`` pages
    starting at ``1 + interval``. The result is capped at ``max_pages``.
    """
    if page_count <= 0 or max_pages <= 0:
        return []

    interval = max(2, page_count // 5)
    pages = [1]
    page = 1 + interval
    while page <= page_count:
        pages.append(page)
        page += interval

    unique = sorted({p for p in pages if 1 <= p <= page_count})
    return unique[:max_pages]


class ContentAssembler:
    """Builds model-ready content blocks from uploaded files."""

    def __init__(
        self,
        extractor: TextExtractor,
        renderer: PageRenderer,
        config: Optional[ProcessingConfig] = None,
    ):
        self.extractor = extractor
        self.renderer = renderer
        self.config = config or ProcessingConfig()

    async def assemble(
        self,
        files: List[UploadedFile],
        leading_instruction: Optional[str] = None,
    ) -> AssembledContent:
        """
        Assemble content blocks for a list of files, in submission order.

        Args:
            files: Uploaded files; they are read but never deleted here
            leading_instruction: Optional task prompt placed first

        Returns:
            Blocks, one diagnostics entry per PDF and the total PDF text size
        """
        content = AssembledContent()

        if leading_instruction:
            content.blocks.append(
                ContentBlock.text_block(leading_instruction, purpose=BlockPurpose.INSTRUCTION)
            )

        for uploaded in files:
            if uploaded.is_image:
                content.blocks.append(await self._image_block(uploaded))
            elif uploaded.is_pdf:
                blocks, diagnostics = await self._pdf_blocks(uploaded)
                content.blocks.extend(blocks)
                content.diagnostics.append(diagnostics)
                content.total_extracted_chars += diagnostics.extracted_char_count
            else:
                logger.info(
                    "file_skipped",
                    filename=uploaded.original_name,
                    media_type=uploaded.media_type,
                )

        return content

    async def _image_block(self, uploaded: UploadedFile) -> ContentBlock:
        data = await asyncio.to_thread(Path(uploaded.storage_path).read_bytes)
        return ContentBlock.image_block(
            uploaded.media_type,
            base64.b64encode(data).decode("ascii"),
        )

    async def _extract(self, uploaded: UploadedFile) -> Tuple[ExtractedText, bool]:
        """Extract text; failures count as a zero-text document."""
        try:
            data = await asyncio.to_thread(Path(uploaded.storage_path).read_bytes)
            return await asyncio.to_thread(self.extractor.extract, data), False
        except (ExtractionError, OSError) as e:
            logger.warning(
                "pdf_extraction_failed",
                filename=uploaded.original_name,
                error=str(e),
            )
            return ExtractedText(text="", page_count=0), True

    async def _pdf_blocks(self, uploaded: UploadedFile) -> Tuple[List[ContentBlock], PdfDiagnostics]:
        name = uploaded.original_name
        extracted, failed = await self._extract(uploaded)
        text_chars = extracted.char_count
        density = chars_per_page(text_chars, extracted.page_count)

        fallback = failed or needs_visual_fallback(
            extracted.page_count,
            text_chars,
            self.config.min_text_chars,
            self.config.min_chars_per_page,
        )

        blocks: List[ContentBlock] = []
        rendered = 0

        if fallback:
            if self.renderer.is_available():
                # Page count is unknown after a failed extraction; try the first page only
                pages = sample_pages(max(extracted.page_count, 1), self.config.max_render_pages)
                page_blocks, rendered = await self._render_pages(uploaded, pages)
                blocks.extend(page_blocks)
            else:
                logger.warning("rasterizer_unavailable", filename=name)
                blocks.append(ContentBlock.text_block(
                    f"[NOTE] {name} has little or no extractable text and may be a scanned "
                    f"document. Page images could not be rendered on this server, so details "
                    f"from this file may be missing.",
                    purpose=BlockPurpose.MARKER,
                ))

        chunks = chunk_text(extracted.text, self.config.chunk_size, self.config.chunk_overlap)
        if chunks:
            total = len(chunks)
            for index, chunk in enumerate(chunks, start=1):
                blocks.append(ContentBlock.text_block(chunk_block_text(name, index, total, chunk)))
        else:
            blocks.append(ContentBlock.text_block(
                file_marker("START", name, "no extractable text") + "\n" + file_marker("END", name),
                purpose=BlockPurpose.MARKER,
            ))

        diagnostics = PdfDiagnostics(
            filename=name,
            page_count=extracted.page_count,
            extracted_char_count=text_chars,
            chunk_count=len(chunks),
            chars_per_page=round(density, 1),
            visual_fallback=fallback,
            rendered_pages=rendered,
        )
        logger.debug("pdf_processed", **diagnostics.to_dict())

        return blocks, diagnostics

    async def _render_pages(
        self,
        uploaded: UploadedFile,
        pages: List[int],
    ) -> Tuple[List[ContentBlock], int]:
        """Render sampled pages; a failed page is logged and skipped."""
        name = uploaded.original_name
        blocks: List[ContentBlock] = []
        rendered = 0

        for page in pages:
            try:
                data = await self.renderer.render_page_base64(uploaded.storage_path, page)
            except (RenderError, OSError) as e:
                logger.warning("page_render_failed", filename=name, page=page, error=str(e))
                continue

            detail = f"page {page} image"
            blocks.append(ContentBlock.text_block(
                file_marker("START", name, detail), purpose=BlockPurpose.MARKER
            ))
            blocks.append(ContentBlock.image_block("image/jpeg", data))
            blocks.append(ContentBlock.text_block(
                file_marker("END", name, detail), purpose=BlockPurpose.MARKER
            ))
            rendered += 1

        logger.info("pdf_pages_rendered", filename=name, sampled=pages, rendered=rendered)
        return blocks, rendered
