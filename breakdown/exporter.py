"""
Word Document Exporter

Renders finished breakdown text as a .docx file.
"""

import io
import re

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt

from .errors import InputError

DOCX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'
DOCX_FILENAME = 'production-breakdown.docx'

_HEADER_PATTERN = re.compile(r'^[A-Z\s]+:?$')


def is_header(line: str) -> bool:
    """All-caps lines and lines ending in a colon are section headers."""
    stripped = line.strip()
    return bool(_HEADER_PATTERN.match(stripped)) or stripped.endswith(':')


class DocxExporter:
    """Builds a US Letter Word document from breakdown text."""

    title = 'PRODUCTION BREAKDOWN'

    def export(self, breakdown: str) -> bytes:
        if not breakdown or not breakdown.strip():
            raise InputError("No breakdown provided")

        doc = Document()
        section = doc.sections[0]
        section.page_width = Inches(8.5)
        section.page_height = Inches(11)
        for side in ('top_margin', 'right_margin', 'bottom_margin', 'left_margin'):
            setattr(section, side, Inches(1))

        title = doc.add_heading(level=1)
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER
        title.paragraph_format.space_after = Pt(20)
        run = title.add_run(self.title)
        run.bold = True
        run.font.size = Pt(18)

        for block in breakdown.split('\n\n'):
            if not block.strip():
                continue

            for line in block.split('\n'):
                if not line.strip():
                    continue

                paragraph = doc.add_paragraph()
                if is_header(line):
                    header = paragraph.add_run(line.strip())
                    header.bold = True
                    header.font.size = Pt(14)
                    paragraph.paragraph_format.space_before = Pt(12)
                    paragraph.paragraph_format.space_after = Pt(6)
                else:
                    paragraph.add_run(line)
                    paragraph.paragraph_format.space_after = Pt(5)

            # Space between sections
            doc.add_paragraph('')

        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()
