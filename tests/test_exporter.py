"""
Tests for the Word document exporter.
"""

import io

import pytest
from docx import Document
from docx.shared import Inches, Pt

from breakdown.errors import InputError
from breakdown.exporter import DocxExporter, is_header


BREAKDOWN = """SHOOT DAYS:
2 days (CONFIRMED)

CREW
Director 1x
DP 1x (Travel RECOMMENDED)

Locations:
Beach, Malibu"""


def read_back(data: bytes):
    return Document(io.BytesIO(data))


class TestIsHeader:

    @pytest.mark.parametrize("line", ["CREW", "SHOOT DAYS:", "Locations:", "  ART PROPS  "])
    def test_headers(self, line):
        assert is_header(line)

    @pytest.mark.parametrize("line", ["Director 1x", "DP 1x (Travel RECOMMENDED)", "ART/PROPS"])
    def test_body_lines(self, line):
        assert not is_header(line)


class TestDocxExporter:

    def test_document_layout(self):
        doc = read_back(DocxExporter().export(BREAKDOWN))
        section = doc.sections[0]

        assert section.page_width == Inches(8.5)
        assert section.page_height == Inches(11)
        assert section.left_margin == Inches(1)
        assert doc.paragraphs[0].text == "PRODUCTION BREAKDOWN"

    def test_headers_are_bold(self):
        doc = read_back(DocxExporter().export(BREAKDOWN))
        by_text = {p.text: p for p in doc.paragraphs if p.text}

        for header in ("SHOOT DAYS:", "CREW", "Locations:"):
            run = by_text[header].runs[0]
            assert run.bold
            assert run.font.size == Pt(14)

        assert not by_text["Director 1x"].runs[0].bold

    def test_every_line_kept_in_order(self):
        doc = read_back(DocxExporter().export(BREAKDOWN))
        lines = [p.text for p in doc.paragraphs[1:] if p.text]

        assert lines == [line for line in BREAKDOWN.split('\n') if line.strip()]

    def test_blank_paragraph_between_sections(self):
        doc = read_back(DocxExporter().export(BREAKDOWN))
        texts = [p.text for p in doc.paragraphs[1:]]

        assert texts.count('') == 3

    @pytest.mark.parametrize("text", ["", "   \n\n  "])
    def test_empty_breakdown_rejected(self, text):
        with pytest.raises(InputError):
            DocxExporter().export(text)
