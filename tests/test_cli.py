"""
Tests for the command line interface.
"""

import json
import logging
from unittest.mock import patch

import pytest

from breakdown import cli
from breakdown.config import ENV_OVERRIDES
from breakdown.pdf_extractor import create_text_extractor
from breakdown.pipeline import BreakdownPipeline

from conftest import FakeRenderer, RecordingClient, make_pdf_bytes


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in list(ENV_OVERRIDES) + ['BREAKDOWN_CONFIG']:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('BREAKDOWN_UPLOAD_DIR', str(tmp_path / "uploads"))
    yield
    # main() points the root handler at the captured stdout
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)


def fake_pipeline_factory(client):
    def factory(config):
        return BreakdownPipeline(
            config,
            create_text_extractor(config.processing.extraction_backend),
            FakeRenderer(available=False),
            client,
        )
    return factory


class TestCli:

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_config_sample(self, tmp_path):
        assert cli.main(['config', 'sample', '--path', 'sample.json']) == 0
        assert json.loads((tmp_path / "sample.json").read_text())['processing']['chunk_size'] == 12000

    def test_extract(self, tmp_path, capsys):
        pdf = tmp_path / "scan.pdf"
        pdf.write_bytes(make_pdf_bytes(["Short page", ""]))

        assert cli.main(['extract', str(pdf)]) == 0

        out = capsys.readouterr().out
        assert "Pages: 2" in out
        assert "Visual fallback: yes" in out

    def test_generate_keeps_original_files(self, tmp_path):
        pdf = tmp_path / "brief.pdf"
        pdf.write_bytes(make_pdf_bytes(["EXT. BEACH - DAY\nDrone shot."]))
        client = RecordingClient(responder=lambda *args: "SHOOT DAYS:\n1")

        with patch.object(cli, "create_pipeline", fake_pipeline_factory(client)):
            code = cli.main([
                'generate', str(pdf),
                '-o', 'out.txt', '--docx', 'out.docx', '--history', 'history.json',
            ])

        assert code == 0
        assert pdf.exists()
        assert (tmp_path / "out.txt").read_text() == "SHOOT DAYS:\n1"
        assert (tmp_path / "out.docx").read_bytes()[:2] == b"PK"
        history = json.loads((tmp_path / "history.json").read_text())
        assert [turn['role'] for turn in history] == ['user', 'assistant']
        assert list((tmp_path / "uploads").glob("*")) == []

    def test_generate_missing_file(self, capsys):
        assert cli.main(['generate', 'nope.pdf']) == 1
        assert "File not found" in capsys.readouterr().out

    def test_extract_missing_file(self, capsys):
        assert cli.main(['extract', 'nope.pdf']) == 1
        assert "File not found: nope.pdf" in capsys.readouterr().out

    def test_revise(self, tmp_path):
        (tmp_path / "history.json").write_text(json.dumps([
            {'role': 'user', 'content': 'Analyze'},
            {'role': 'assistant', 'content': 'CREW:\nDP 1x'},
        ]))
        (tmp_path / "breakdown.txt").write_text("CREW:\nDP 1x")
        client = RecordingClient(responder=lambda *args: "CREW:\nDP 1x\nGaffer 1x")

        with patch.object(cli, "create_pipeline", fake_pipeline_factory(client)):
            code = cli.main([
                'revise', '--history-in', 'history.json', '--breakdown', 'breakdown.txt',
                '--request', 'Add a gaffer', '-o', 'revised.txt', '--history', 'next.json',
            ])

        assert code == 0
        assert "Gaffer" in (tmp_path / "revised.txt").read_text()
        assert len(json.loads((tmp_path / "next.json").read_text())) == 4

    def test_breakdown_errors_exit_nonzero(self, tmp_path, capsys):
        (tmp_path / "history.json").write_text("[]")
        (tmp_path / "breakdown.txt").write_text("CREW")

        with patch.object(cli, "create_pipeline", fake_pipeline_factory(RecordingClient(configured=False))):
            code = cli.main([
                'revise', '--history-in', 'history.json', '--breakdown', 'breakdown.txt',
                '--request', 'Add a gaffer',
            ])

        assert code == 1
        assert "ANTHROPIC_API_KEY" in capsys.readouterr().out
