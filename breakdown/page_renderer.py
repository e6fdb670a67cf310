"""
PDF Page Renderer

Rasterizes single PDF pages to JPEG through poppler's ``pdftoppm``. Rendered
files are temporary: ``rendered_page`` deletes them as soon as the caller is
done, even if reading them fails.
"""

import asyncio
import base64
import shutil
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import structlog

from .errors import RenderError

logger = structlog.get_logger(__name__)


class PageRenderer:
    """Renders PDF pages to JPEG images with an external rasterizer."""

    def __init__(
        self,
        output_dir: str,
        binary: str = "pdftoppm",
        dpi: int = 110,
        jpeg_quality: int = 70,
    ):
        """
        Initialize the renderer.

        Args:
            output_dir: Directory for temporary rendered images
            binary: Rasterizer executable name or path
            dpi: Default render resolution
            jpeg_quality: Default JPEG quality (1-100)
        """
        self.output_dir = Path(output_dir)
        self.binary = binary
        self.dpi = dpi
        self.jpeg_quality = jpeg_quality

    def is_available(self) -> bool:
        """Whether the rasterizer executable can be found on this host."""
        return shutil.which(self.binary) is not None

    async def render_page(
        self,
        pdf_path: str,
        page_number: int,
        dpi: Optional[int] = None,
        jpeg_quality: Optional[int] = None,
    ) -> Path:
        """
        Render one page (1-based) to a uniquely named JPEG.

        Raises:
            RenderError: If the rasterizer fails or produces no output
        """
        dpi = dpi or self.dpi
        jpeg_quality = jpeg_quality or self.jpeg_quality

        self.output_dir.mkdir(parents=True, exist_ok=True)
        prefix = self.output_dir / f"page-{uuid.uuid4().hex}-{page_number}"
        output_path = prefix.with_name(prefix.name + ".jpg")

        cmd = [
            self.binary,
            "-f", str(page_number),
            "-l", str(page_number),
            "-r", str(dpi),
            "-jpeg",
            "-jpegopt", f"quality={jpeg_quality}",
            "-singlefile",
            str(pdf_path),
            str(prefix),
        ]

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await process.communicate()
        except OSError as e:
            raise RenderError(f"Could not start {self.binary}: {e}") from e

        if process.returncode != 0:
            output_path.unlink(missing_ok=True)
            detail = stderr.decode(errors="replace").strip() if stderr else ""
            raise RenderError(
                f"{self.binary} exited with {process.returncode} on page {page_number}: {detail}"
            )

        if not output_path.exists():
            raise RenderError(f"{self.binary} produced no image for page {page_number}")

        return output_path

    @asynccontextmanager
    async def rendered_page(
        self,
        pdf_path: str,
        page_number: int,
        dpi: Optional[int] = None,
        jpeg_quality: Optional[int] = None,
    ) -> AsyncIterator[Path]:
        """Render a page and delete the image when the block exits."""
        image_path = await self.render_page(pdf_path, page_number, dpi, jpeg_quality)
        try:
            yield image_path
        finally:
            try:
                image_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("rendered_page_cleanup_failed", path=str(image_path), error=str(e))

    async def render_page_base64(self, pdf_path: str, page_number: int) -> str:
        """Render a page and return it base64-encoded; the temp file is always removed."""
        async with self.rendered_page(pdf_path, page_number) as image_path:
            data = await asyncio.to_thread(image_path.read_bytes)
            return base64.b64encode(data).decode("ascii")
